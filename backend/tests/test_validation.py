"""
Request validation tests.

Verifies:
- Schema violations become a single 400 listing every offending field
- Unknown keys and non-object bodies are rejected
- Patch bodies tell an absent field apart from an explicit null
- Paging and enum query parameters are bounded
"""

import pytest
from werkzeug.datastructures import MultiDict

from oem_api.errors import ValidationError
from oem_api.models import ComplianceItem
from oem_api.schemas import CompliancePatch, OrderCreate, WhatsAppSend
from oem_api.validation import apply_patch, choice_arg, page_params, parse_body


# =============================================================================
# BODY SCHEMAS
# =============================================================================


class TestParseBody:
    def test_lists_every_violation(self):
        with pytest.raises(ValidationError) as exc:
            parse_body(OrderCreate, {"client": "", "quantity": 0})
        message = exc.value.message
        assert "client:" in message
        assert "product: Field required" in message
        assert "quantity:" in message
        assert message.count(", ") >= 2

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_body(OrderCreate, {"client": "A", "product": "B", "quantity": 1, "status": "completed"})
        assert "status: Extra inputs are not permitted" in exc.value.message

    @pytest.mark.parametrize("payload", [None, [], "text", 42])
    def test_body_must_be_object(self, payload):
        with pytest.raises(ValidationError) as exc:
            parse_body(OrderCreate, payload)
        assert exc.value.message == "Request body must be a JSON object"

    def test_strings_are_trimmed(self):
        body = parse_body(OrderCreate, {"client": "  Acme  ", "product": "Denim", "quantity": 5})
        assert body.client == "Acme"
        assert body.specifications == {}

    @pytest.mark.parametrize("phone", ["+919876543210", "14155238886"])
    def test_phone_pattern_accepts(self, phone):
        assert parse_body(WhatsAppSend, {"phone_number": phone, "message": "hi"}).phone_number == phone

    @pytest.mark.parametrize("phone", ["+0123", "phone", "+91 98765 43210", "+1234567890123456"])
    def test_phone_pattern_rejects(self, phone):
        with pytest.raises(ValidationError):
            parse_body(WhatsAppSend, {"phone_number": phone, "message": "hi"})

    def test_invalid_body_over_http(self, client, user, auth_headers):
        resp = client.post("/api/orders", json={"client": "Acme"}, headers=auth_headers(user))
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["success"] is False
        assert "product: Field required" in body["error"]
        assert "quantity: Field required" in body["error"]


# =============================================================================
# PATCH SEMANTICS
# =============================================================================


class TestApplyPatch:
    def _item(self):
        return ComplianceItem(
            title="GOTS renewal", type="certification", description="Annual renewal",
            priority="medium", status="pending", documents=["cert.pdf"],
        )

    def test_absent_fields_untouched(self):
        item = self._item()
        changed = apply_patch(parse_body(CompliancePatch, {"status": "in_progress"}), item)
        assert changed == {"status"}
        assert item.description == "Annual renewal"
        assert item.documents == ["cert.pdf"]

    def test_explicit_null_clears(self):
        item = self._item()
        patch = parse_body(CompliancePatch, {"description": None, "documents": None})
        changed = apply_patch(patch, item, null_defaults={"documents": []})
        assert changed == {"description", "documents"}
        assert item.description is None
        assert item.documents == []

    def test_unchanged_value_not_reported(self):
        item = self._item()
        assert apply_patch(parse_body(CompliancePatch, {"priority": "medium"}), item) == set()

    @pytest.mark.parametrize("field", ["status", "priority", "due_date"])
    def test_null_rejected_for_required_columns(self, field):
        with pytest.raises(ValidationError) as exc:
            parse_body(CompliancePatch, {field: None})
        assert field in exc.value.message


# =============================================================================
# QUERY PARAMETERS
# =============================================================================


class TestQueryParams:
    def test_defaults(self):
        params = page_params(MultiDict())
        assert (params.page, params.limit, params.offset) == (1, 10, 0)

    def test_offset(self):
        assert page_params(MultiDict({"page": "3", "limit": "20"})).offset == 40

    @pytest.mark.parametrize(
        "args,message",
        [
            ({"page": "0"}, "page must be at least 1"),
            ({"limit": "0"}, "limit must be between 1 and 100"),
            ({"limit": "101"}, "limit must be between 1 and 100"),
            ({"page": "two"}, "page must be an integer"),
        ],
    )
    def test_out_of_range(self, args, message):
        with pytest.raises(ValidationError) as exc:
            page_params(MultiDict(args))
        assert exc.value.message == message

    def test_choice_arg(self):
        choices = ("sent", "failed")
        assert choice_arg("status", choices, MultiDict()) is None
        assert choice_arg("status", choices, MultiDict({"status": "sent"})) == "sent"
        with pytest.raises(ValidationError) as exc:
            choice_arg("status", choices, MultiDict({"status": "queued"}))
        assert exc.value.message == "status must be one of: sent, failed"

    def test_bad_filter_over_http(self, client, user, auth_headers):
        resp = client.get("/api/orders?status=shipped", headers=auth_headers(user))
        assert resp.status_code == 400
        assert resp.get_json()["error"].startswith("status must be one of:")
