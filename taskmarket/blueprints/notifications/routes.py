from flask import current_app, jsonify, request
from flask_login import login_required

from ...services import notification_service
from ..utils import actor_id, parse_since
from . import notifications_bp


# Poll target for the bell; the list is always the source of truth
@notifications_bp.get("")
@login_required
def index():
    default = current_app.config.get("NOTIFICATIONS_PAGE_SIZE", 20)
    limit = min(max(request.args.get("limit", default, type=int) or default, 1), 100)
    items = notification_service.list_notifications(
        actor_id(), limit=limit, since=parse_since(request.args.get("since"))
    )
    return jsonify({
        "notifications": [n.to_dict() for n in items],
        "unread": notification_service.unread_count(actor_id()),
    })


@notifications_bp.get("/unread-count")
@login_required
def unread():
    return jsonify({"unread": notification_service.unread_count(actor_id())})


@notifications_bp.post("/<notification_id>/read")
@login_required
def mark_read(notification_id):
    n = notification_service.mark_read(actor_id(), notification_id)
    return jsonify({"notification": n.to_dict()})


@notifications_bp.post("/read-all")
@login_required
def mark_all_read():
    changed = notification_service.mark_all_read(actor_id())
    return jsonify({"updated": changed})
