# taskmarket/services/payment_service.py
# Thin Stripe Checkout client (REST over requests, form-encoded).
from __future__ import annotations
import requests
from flask import current_app
import logging

from ..exceptions import ExternalServiceError

log = logging.getLogger(__name__)


def _api_base() -> str:
    return current_app.config.get("STRIPE_API_BASE", "https://api.stripe.com/v1").rstrip("/")


def _auth() -> tuple[str, str]:
    key = current_app.config.get("STRIPE_SECRET_KEY")
    if not key:
        log.error("STRIPE_SECRET_KEY is not configured")
        raise ExternalServiceError("Payments are not configured. Please try again later.")
    # Stripe: secret key as basic-auth user, empty password
    return key, ""


def _timeout() -> float:
    return float(current_app.config.get("PAYMENT_HTTP_TIMEOUT", 20))


def create_checkout_session(*, amount_minor: int, currency: str, description: str,
                            metadata: dict | None = None) -> dict:
    """Create a one-line Checkout session. Returns the session JSON (``id``, ``url``)."""
    payload = {
        "mode": "payment",
        "success_url": current_app.config["PAYMENT_SUCCESS_URL"],
        "cancel_url": current_app.config["PAYMENT_CANCEL_URL"],
        "line_items[0][quantity]": 1,
        "line_items[0][price_data][currency]": (currency or "usd").lower(),
        "line_items[0][price_data][unit_amount]": int(amount_minor),
        "line_items[0][price_data][product_data][name]": (description or "Task payment")[:250],
    }
    for k, v in (metadata or {}).items():
        payload[f"metadata[{k}]"] = str(v)

    try:
        r = requests.post(
            f"{_api_base()}/checkout/sessions",
            data=payload,
            auth=_auth(),
            headers={"Accept": "application/json"},
            timeout=_timeout(),
        )
        log.info("Stripe create session status=%s", r.status_code)
        if r.status_code >= 400:
            log.error("Stripe error %s | body=%s | amount=%s %s",
                      r.status_code, r.text, payload["line_items[0][price_data][unit_amount]"],
                      payload["line_items[0][price_data][currency]"])
        r.raise_for_status()
        data = r.json()
    except (requests.RequestException, ValueError) as e:
        log.exception("create_checkout_session failed: %s", e)
        raise ExternalServiceError("Failed to initiate payment. Please try again.") from e

    if not data.get("id") or not data.get("url"):
        log.error("Stripe session response missing id/url: keys=%s", list(data.keys()))
        raise ExternalServiceError("Failed to initiate payment. Please try again.")
    return data


def retrieve_checkout_session(session_id: str) -> dict:
    try:
        r = requests.get(
            f"{_api_base()}/checkout/sessions/{session_id}",
            auth=_auth(),
            headers={"Accept": "application/json"},
            timeout=_timeout(),
        )
        r.raise_for_status()
        return r.json()
    except (requests.RequestException, ValueError) as e:
        log.exception("retrieve_checkout_session %s failed: %s", session_id, e)
        raise ExternalServiceError("We couldn't verify the payment at the moment.") from e
