# taskmarket/blueprints/tasker/routes.py
# Tasker actions: bid on open tasks, then carry out the ones won.
from flask import jsonify
from flask_login import login_required

from . import tasker_bp
from ...services import lifecycle, task_queries
from ..utils import actor_id, payload


# -----------------
# Offers
# -----------------

@tasker_bp.post('/tasks/<task_id>/proposals')
@login_required
def submit_proposal(task_id):
    body = payload()
    p = lifecycle.submit_proposal(
        actor_id(),
        task_id,
        amount=body.get('amount'),
        message=body.get('message'),
        timeline=body.get('timeline'),
    )
    return jsonify({"proposal": p.to_dict(), "message": "Offer submitted successfully!"}), 201


@tasker_bp.get('/proposals')
@login_required
def my_proposals():
    proposals = task_queries.list_my_proposals(actor_id())
    return jsonify({"proposals": [p.to_dict(with_task=True) for p in proposals]})


# -----------------
# Work
# -----------------

@tasker_bp.get('/work')
@login_required
def my_work():
    tasks = task_queries.list_tasker_work(actor_id())
    return jsonify({"tasks": [
        {**t.to_dict(), "progress": lifecycle.PROGRESS.get(t.status, 0)} for t in tasks
    ]})


@tasker_bp.post('/tasks/<task_id>/start')
@login_required
def start_work(task_id):
    t = lifecycle.start_task(actor_id(), task_id)
    return jsonify({"task": t.to_dict(), "message": "Task status updated to in progress"})


@tasker_bp.post('/tasks/<task_id>/submit-review')
@login_required
def submit_review(task_id):
    t = lifecycle.submit_for_review(actor_id(), task_id)
    return jsonify({"task": t.to_dict(), "message": "Task status updated to review"})
