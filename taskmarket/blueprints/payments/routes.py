# taskmarket/blueprints/payments/routes.py
from flask import jsonify, request
from flask_login import login_required

from ...services.payments import create_payment, verify_payment
from ..utils import actor_id, payload
from . import payments_bp


# -----------------
# Start payment: hand back the processor's checkout URL
# -----------------

@payments_bp.post("/tasks/<task_id>/checkout")
@login_required
def checkout(task_id):
    body = payload()
    payment, url = create_payment(
        actor_id(),
        task_id,
        tasker_id=body.get("tasker_id"),
        amount=body.get("amount"),
    )
    return jsonify({"payment": payment.to_dict(), "url": url, "message": "Redirecting to payment..."}), 201


# -----------------
# Checkout return (public; the processor redirects the browser here)
# -----------------

@payments_bp.get("/return")
def pay_return():
    session_id = (
        request.args.get("session_id")
        or request.args.get("sessionId")
    )
    status, payment = verify_payment(session_id)
    messages = {
        "paid": "Payment successful.",
        "unpaid": "Payment is still pending. We’ll update this page when it clears.",
    }
    return jsonify({
        "status": status,
        "payment": payment.to_dict() if payment else None,
        "message": messages.get(status, "Payment return received."),
    })
