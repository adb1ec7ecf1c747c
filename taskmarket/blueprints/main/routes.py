from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from ...extensions import db
from ...services import lifecycle, task_queries
from ..auth.forms import ProfileForm
from ..utils import actor_id, form_errors, payload
from . import main_bp


@main_bp.get("/health")
def health():
    return jsonify({"ok": True, "version": current_app.config.get("APP_VERSION")})


# -----------------
# Browse (public)
# -----------------

@main_bp.get("/tasks")
def browse():
    tasks = task_queries.browse_tasks(
        search=request.args.get("search"),
        category=request.args.get("category"),
        budget_min=request.args.get("budget_min"),
        budget_max=request.args.get("budget_max"),
        sort=request.args.get("sort"),
    )
    return jsonify({"tasks": [t.to_dict() for t in tasks], "count": len(tasks)})


@main_bp.get("/tasks/categories")
def categories():
    return jsonify({"categories": list(current_app.config.get("TASK_CATEGORIES", ()))})


@main_bp.get("/tasks/<task_id>")
def task_detail(task_id):
    t = lifecycle.get_task(task_id)
    me = actor_id()
    data = t.to_dict()
    data["progress"] = lifecycle.PROGRESS.get(t.status, 0)
    data["actions"] = lifecycle.available_transitions(t, me)
    data["proposal_count"] = len(t.proposals or [])
    if me and me != t.user_id:
        mine = next((p for p in t.proposals or [] if p.tasker_id == me), None)
        data["my_proposal"] = mine.to_dict() if mine else None
    return jsonify({"task": data})


# -----------------
# Profile
# -----------------

@main_bp.get("/profile")
@login_required
def profile():
    return jsonify({"user": current_user.to_dict()})


@main_bp.patch("/profile")
@login_required
def profile_update():
    form = ProfileForm()
    if not form.validate_on_submit():
        return jsonify(form_errors(form)), 400

    body = payload()
    if "full_name" in body:
        current_user.full_name = (form.full_name.data or "").strip() or None
    if "avatar_url" in body:
        current_user.avatar_url = (form.avatar_url.data or "").strip() or None
    db.session.commit()
    return jsonify({"user": current_user.to_dict(), "message": "Profile updated."})


@main_bp.get("/profile/stats")
@login_required
def profile_stats():
    return jsonify({"stats": task_queries.user_stats(actor_id())})
