from datetime import datetime
from typing import Optional

from flask import request
from flask_login import current_user

from ..exceptions import ValidationError


def actor_id() -> Optional[str]:
    """Id of the signed-in user, or None. Passed explicitly into the services."""
    if getattr(current_user, "is_authenticated", False):
        return current_user.id
    return None


def payload() -> dict:
    """JSON body, falling back to form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def parse_since(val: Optional[str]) -> Optional[datetime]:
    if not val:
        return None
    try:
        return datetime.fromisoformat(val)
    except ValueError:
        raise ValidationError("since must be an ISO timestamp.")


def form_errors(form) -> dict:
    return {
        "error": "validation_error",
        "message": "Please check the highlighted fields.",
        "fields": form.errors,
    }
