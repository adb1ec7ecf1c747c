# taskmarket/blueprints/stripe_webhook.py
from flask import Blueprint, jsonify
from ..services.payments import verify_payment
from .utils import payload

stripe_webhook_bp = Blueprint("stripe_webhook", __name__, url_prefix="/payments")

@stripe_webhook_bp.post("/verify")
def verify():
    body = payload()
    status, _ = verify_payment(body.get("sessionId") or body.get("session_id"))
    return jsonify({"status": status}), 200
