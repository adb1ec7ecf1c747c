# tests/test_notifications.py

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from taskmarket.exceptions import NotFound, PermissionDenied
from taskmarket.extensions import db
from taskmarket.models.notification import Notification
from taskmarket.services import notification_service as ns


def _notice(user_id, title="Heads up", created_at=None, task_id=None):
    n = ns.emit(user_id=user_id, task_id=task_id, type="payment_received",
                title=title, message=f"{title} message")
    if created_at is not None:
        n.created_at = created_at
    db.session.commit()
    return n


def test_emit_waits_for_caller_commit(tasker):
    ns.emit(user_id=tasker, task_id=None, type="payment_received", title="T", message="M")
    db.session.rollback()
    assert Notification.query.count() == 0


def test_list_newest_first_and_scoped(tasker, tasker2):
    base = datetime(2026, 10, 1, 12, 0)
    for i in range(3):
        _notice(tasker, title=f"n{i}", created_at=base + timedelta(minutes=i))
    _notice(tasker2, title="other")

    titles = [n.title for n in ns.list_notifications(tasker)]
    assert titles == ["n2", "n1", "n0"]
    assert [n.title for n in ns.list_notifications(tasker, limit=2)] == ["n2", "n1"]


def test_since_filter(tasker):
    base = datetime(2026, 10, 1, 12, 0)
    for i in range(3):
        _notice(tasker, title=f"n{i}", created_at=base + timedelta(minutes=i))

    newer = ns.list_notifications(tasker, since=base + timedelta(minutes=1))
    assert [n.title for n in newer] == ["n2"]


def test_unread_and_mark_read(tasker):
    a = _notice(tasker, "a")
    _notice(tasker, "b")
    assert ns.unread_count(tasker) == 2

    assert ns.mark_read(tasker, a.id).read is True
    assert ns.unread_count(tasker) == 1

    # marking again is harmless
    ns.mark_read(tasker, a.id)
    assert ns.unread_count(tasker) == 1


def test_mark_read_ownership(tasker, tasker2):
    n = _notice(tasker)
    with pytest.raises(PermissionDenied):
        ns.mark_read(tasker2, n.id)
    with pytest.raises(NotFound):
        ns.mark_read(tasker, "missing")
    assert ns.unread_count(tasker) == 1


def test_mark_all_read(tasker, tasker2):
    for t in ("a", "b", "c"):
        _notice(tasker, t)
    _notice(tasker2, "d")

    assert ns.mark_all_read(tasker) == 3
    assert ns.unread_count(tasker) == 0
    assert ns.unread_count(tasker2) == 1
    assert ns.mark_all_read(tasker) == 0


def test_anonymous_has_no_inbox(ctx):
    with pytest.raises(PermissionDenied):
        ns.list_notifications(None)
    with pytest.raises(PermissionDenied):
        ns.unread_count("")
