# taskmarket/blueprints/client/routes.py
# Task owner actions: post, review proposals, confirm or cancel.
from flask import current_app, jsonify
from flask_login import login_required

from . import client_bp
from ...services import lifecycle, task_queries
from ..utils import actor_id, payload


# -----------------
# Dashboard
# -----------------

@client_bp.get('/tasks')
@login_required
def my_tasks():
    groups = task_queries.list_my_tasks(actor_id())
    data = {name: [t.to_dict() for t in tasks] for name, tasks in groups.items()}
    # Simple KPIs for the header
    data["kpis"] = {name: len(tasks) for name, tasks in groups.items()}
    return jsonify(data)


@client_bp.get('/tasks/assigned')
@login_required
def assigned_tasks():
    rows = task_queries.list_assigned_tasks(actor_id())
    return jsonify({"tasks": [
        {**t.to_dict(), "accepted_proposal": p.to_dict(with_tasker=True)} for t, p in rows
    ]})


# -----------------
# Create Task
# -----------------

@client_bp.post('/tasks')
@login_required
def task_new():
    body = payload()
    t = lifecycle.create_task(
        actor_id(),
        title=body.get('title'),
        description=body.get('description'),
        category=body.get('category'),
        location=body.get('location'),
        budget_type=body.get('budget_type'),
        budget_amount=body.get('budget_amount'),
        budget_min=body.get('budget_min'),
        budget_max=body.get('budget_max'),
        skills=body.get('skills'),
        urgent=body.get('urgent', False),
        required_date=body.get('required_date'),
        time_flexible=body.get('time_flexible', False),
        categories=current_app.config.get('TASK_CATEGORIES'),
    )
    return jsonify({"task": t.to_dict(), "message": "Task posted successfully!"}), 201


# -----------------
# Proposals → Accept / Reject
# -----------------

@client_bp.get('/tasks/<task_id>/proposals')
@login_required
def task_proposals(task_id):
    proposals = task_queries.list_task_proposals(actor_id(), task_id)
    return jsonify({"proposals": [p.to_dict(with_tasker=True) for p in proposals]})


@client_bp.get('/proposals')
@login_required
def received_proposals():
    proposals = task_queries.list_received_proposals(actor_id())
    return jsonify({"proposals": [p.to_dict(with_tasker=True, with_task=True) for p in proposals]})


@client_bp.post('/proposals/<proposal_id>/accept')
@login_required
def proposal_accept(proposal_id):
    p, t = lifecycle.accept_proposal(actor_id(), proposal_id)
    return jsonify({
        "proposal": p.to_dict(),
        "task": t.to_dict(),
        "message": "Proposal accepted successfully!",
    })


@client_bp.post('/proposals/<proposal_id>/reject')
@login_required
def proposal_reject(proposal_id):
    p = lifecycle.reject_proposal(actor_id(), proposal_id)
    return jsonify({"proposal": p.to_dict(), "message": "Proposal rejected successfully!"})


# -----------------
# Confirm / Cancel
# -----------------

@client_bp.post('/tasks/<task_id>/complete')
@login_required
def task_complete(task_id):
    t = lifecycle.complete_task(actor_id(), task_id)
    return jsonify({"task": t.to_dict(), "message": "Task marked as completed!"})


@client_bp.post('/tasks/<task_id>/cancel')
@login_required
def task_cancel(task_id):
    t = lifecycle.cancel_task(actor_id(), task_id)
    return jsonify({"task": t.to_dict(), "message": "Task cancelled."})
