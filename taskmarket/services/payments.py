# taskmarket/services/payments.py
"""
Paying the tasker.

``create_payment`` opens a Checkout session for an assigned task and records a
pending Payment. ``verify_payment`` is called by the processor webhook and by
the browser return URL; it settles the Payment and notifies the tasker exactly
once, however many times it runs for the same session.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import logging

from flask import current_app

from ..extensions import db
from ..exceptions import (
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from ..models.payment import Payment
from ..models.task import Task
from ..models.user import User
from . import payment_service
from .billing_notifications import email_payment_received, queue_payment_received
from .budget import parse_amount
from .lifecycle import get_task

log = logging.getLogger(__name__)

PAYABLE_STATUSES = ("assigned", "in_progress", "review", "completed")


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def create_payment(actor_id: Optional[str], task_id: str, tasker_id: Optional[str] = None, amount=None) -> tuple[Payment, str]:
    if not actor_id:
        raise PermissionDenied("Please sign in to pay.")

    t = get_task(task_id)
    if t.user_id != actor_id:
        raise PermissionDenied("Only the task owner can pay for this task.")
    if t.status not in PAYABLE_STATUSES:
        raise InvalidTransition("Only assigned tasks can be paid.")

    accepted = t.accepted_proposal
    if accepted is not None and not tasker_id:
        tasker_id = accepted.tasker_id
    if accepted is None or accepted.tasker_id != tasker_id:
        raise InvalidTransition("That tasker is not assigned to this task.")

    if Payment.query.filter_by(task_id=t.id, status="paid").first():
        raise InvalidTransition("This task has already been paid.")

    amt = parse_amount(amount, field="Amount") if amount not in (None, "") else accepted.amount
    if amt is None or amt <= 0:
        raise ValidationError("Payment amount must be greater than zero.")
    amount_minor = to_minor_units(Decimal(amt))
    currency = current_app.config.get("PAYMENT_CURRENCY", "usd")

    # Processor first: nothing is stored if it fails
    session = payment_service.create_checkout_session(
        amount_minor=amount_minor,
        currency=currency,
        description=f'Payment for "{t.title}"',
        metadata={"task_id": t.id, "tasker_id": tasker_id, "client_id": actor_id},
    )

    p = Payment(
        task_id=t.id,
        client_id=actor_id,
        tasker_id=tasker_id,
        amount=amount_minor,
        currency=currency,
        stripe_session_id=session["id"],
        status="pending",
    )
    db.session.add(p)
    db.session.commit()
    log.info("payment %s opened for task %s (%s %s) session=%s",
             p.id, t.id, amount_minor, currency, p.stripe_session_id)
    return p, session["url"]


def verify_payment(session_id: str) -> tuple[str, Optional[Payment]]:
    """Settle the payment behind ``session_id``. Returns (processor status, payment)."""
    session_id = (session_id or "").strip()
    if not session_id:
        raise ValidationError("Missing session id.")

    session = payment_service.retrieve_checkout_session(session_id)
    status = session.get("payment_status") or "unpaid"

    payment = Payment.query.filter_by(stripe_session_id=session_id).first()
    if payment is None:
        log.warning("verify_payment: no payment for session %s (status=%s)", session_id, status)
        return status, None

    if status != "paid":
        log.info("verify_payment: session %s is %s", session_id, status)
        return status, payment

    # Only the call that flips the row emits the notification
    flipped = (Payment.query
               .filter(Payment.stripe_session_id == session_id, Payment.status != "paid")
               .update({"status": "paid", "updated_at": datetime.utcnow()}, synchronize_session=False))
    if not flipped:
        db.session.rollback()
        log.info("verify_payment: session %s already settled", session_id)
        return status, payment

    task = db.session.get(Task, payment.task_id)
    if task is None:
        db.session.rollback()
        raise NotFound("Task not found for this payment.")
    queue_payment_received(task, payment)
    db.session.commit()
    log.info("payment %s paid for task %s", payment.id, payment.task_id)

    email_payment_received(task, payment, db.session.get(User, payment.tasker_id))
    return status, payment
