# taskmarket/services/billing_notifications.py
from . import notification_service
from .budget import format_amount
from .email_service import send_email
from decimal import Decimal


def queue_payment_received(task, payment):
    """In-app notice for the tasker. Added to the caller's unit of work."""
    return notification_service.emit(
        user_id=payment.tasker_id,
        task_id=payment.task_id,
        type="payment_received",
        title="Payment Received!",
        message=f'You have received payment for the task "{task.title}".',
    )


def email_payment_received(task, payment, tasker) -> bool:
    if not tasker or not tasker.email:
        return False
    return send_email(
        to=tasker.email,
        subject=f"Payment received for “{task.title}”",
        template="payment_received_tasker.html",
        task=task,
        payment=payment,
        tasker=tasker,
        amount_display=f"${format_amount(Decimal(payment.amount) / 100)}",
    )
