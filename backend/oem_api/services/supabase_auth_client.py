# Overview: Hosted identity provider (Supabase Auth) token verification.

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderUser:
    id: str
    email: str | None


class SupabaseAuthClient:
    """
    Verifies access tokens by asking the provider who they belong to.

    verify_token() returns None for any token the provider rejects or when
    the provider cannot be reached; callers treat both as "invalid token".
    """

    def __init__(self, base_url: str, anon_key: str, http: httpx.Client):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.http = http

    def verify_token(self, token: str) -> ProviderUser | None:
        try:
            response = self.http.get(
                f"{self.base_url}/auth/v1/user",
                headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.error("Identity provider unreachable: %s", e)
            return None

        if response.status_code != 200:
            return None
        try:
            payload = response.json()
        except ValueError:
            return None
        if not payload.get("id"):
            return None
        return ProviderUser(id=payload["id"], email=payload.get("email"))
