# Overview: Builds the external provider adapters owned by an app instance.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings
from .cache_client import connect_cache
from .razorpay_client import RazorpayClient
from .supabase_auth_client import SupabaseAuthClient
from .whatsapp_client import WhatsAppClient


@dataclass
class Integrations:
    http: httpx.Client
    razorpay: RazorpayClient
    whatsapp: WhatsAppClient
    identity: SupabaseAuthClient
    cache: Any = None  # redis.Redis | None

    def close(self) -> None:
        self.http.close()
        if self.cache is not None:
            self.cache.close()


def build_integrations(settings: Settings, http: httpx.Client | None = None, cache: Any = None) -> Integrations:
    """
    Wire every adapter to one shared httpx client.

    Tests pass an httpx.Client backed by MockTransport to drive the real
    adapters without network access.
    """
    if http is None:
        http = httpx.Client(timeout=settings.PROVIDER_TIMEOUT_SECONDS)
    if cache is None:
        cache = connect_cache(settings.UPSTASH_REDIS_URL, settings.UPSTASH_REDIS_TOKEN)

    return Integrations(
        http=http,
        razorpay=RazorpayClient(
            key_id=settings.RAZORPAY_KEY_ID,
            key_secret=settings.RAZORPAY_KEY_SECRET,
            base_url=settings.RAZORPAY_API_URL,
            http=http,
        ),
        whatsapp=WhatsAppClient(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            from_number=settings.TWILIO_WHATSAPP_NUMBER,
            base_url=settings.TWILIO_API_URL,
            http=http,
        ),
        identity=SupabaseAuthClient(
            base_url=settings.SUPABASE_URL,
            anon_key=settings.SUPABASE_ANON_KEY,
            http=http,
        ),
        cache=cache,
    )


EXTENSION_KEY = "oem_integrations"


def current_integrations() -> Integrations:
    from flask import current_app

    return current_app.extensions[EXTENSION_KEY]
