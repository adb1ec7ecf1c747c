# taskmarket/services/notification_service.py
from __future__ import annotations
from datetime import datetime
from typing import Optional
import logging

from ..extensions import db
from ..exceptions import NotFound, PermissionDenied
from ..models.notification import Notification

log = logging.getLogger(__name__)


def emit(*, user_id: str, task_id: Optional[str], type: str, title: str, message: str) -> Notification:
    """Queue a notification on the current session. The caller commits."""
    n = Notification(user_id=user_id, task_id=task_id, type=type, title=title, message=message)
    db.session.add(n)
    log.info("notification queued type=%s user=%s task=%s", type, user_id, task_id)
    return n


def list_notifications(actor_id: str, *, limit: int = 20, since: Optional[datetime] = None) -> list[Notification]:
    if not actor_id:
        raise PermissionDenied("Please sign in to see notifications.")
    qry = Notification.query.filter_by(user_id=actor_id)
    if since is not None:
        qry = qry.filter(Notification.created_at > since)
    return qry.order_by(Notification.created_at.desc()).limit(limit).all()


def unread_count(actor_id: str) -> int:
    if not actor_id:
        raise PermissionDenied("Please sign in to see notifications.")
    return Notification.query.filter_by(user_id=actor_id, read=False).count()


def mark_read(actor_id: str, notification_id: str) -> Notification:
    n = db.session.get(Notification, notification_id)
    if n is None:
        raise NotFound("Notification not found.")
    if n.user_id != actor_id:
        raise PermissionDenied("That notification belongs to someone else.")
    if not n.read:
        n.read = True
        db.session.commit()
    return n


def mark_all_read(actor_id: str) -> int:
    if not actor_id:
        raise PermissionDenied("Please sign in to see notifications.")
    changed = (Notification.query
               .filter_by(user_id=actor_id, read=False)
               .update({"read": True}, synchronize_session=False))
    db.session.commit()
    return changed
