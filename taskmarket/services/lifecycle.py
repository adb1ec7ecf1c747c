# taskmarket/services/lifecycle.py
"""
Task and proposal lifecycle.

Every state change on a task or a proposal goes through this module. Callers
pass the acting user's id explicitly; nothing here reads the request or the
login session.

Task status graph::

    open -> assigned -> in_progress -> review -> completed
    open -> cancelled
    assigned -> cancelled

``open -> assigned`` only happens as part of accepting a proposal. Writes are
conditioned on the status the caller saw (``UPDATE ... WHERE status = :seen``)
so two racing requests cannot both win; the loser gets InvalidTransition and
is expected to refetch.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional
import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..exceptions import (
    DuplicateProposal,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    TaskNoLongerOpen,
    ValidationError,
)
from ..models.proposal import Proposal, TIMELINES
from ..models.task import Task, TASK_STATUSES
from .budget import Budget, parse_amount

log = logging.getLogger(__name__)

OWNER = "owner"
TASKER = "tasker"

# (from, to) -> who may trigger it
TRANSITIONS = {
    ("open", "assigned"): OWNER,
    ("assigned", "in_progress"): TASKER,
    ("in_progress", "review"): TASKER,
    ("review", "completed"): OWNER,
    ("open", "cancelled"): OWNER,
    ("assigned", "cancelled"): OWNER,
}

PROGRESS = {"assigned": 25, "in_progress": 50, "review": 75, "completed": 100}


# -----------------
# Helpers
# -----------------

def _require_actor(actor_id: Optional[str], action: str) -> str:
    if not actor_id:
        raise PermissionDenied(f"Please sign in to {action}.")
    return actor_id


def _text(val, field: str, *, max_len: Optional[int] = None) -> str:
    val = "" if val is None else str(val).strip()
    if not val:
        raise ValidationError(f"{field} is required.")
    if max_len and len(val) > max_len:
        raise ValidationError(f"{field} is too long (max {max_len} characters).")
    return val


def _parse_date(val) -> Optional[date]:
    if val in (None, ""):
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    try:
        # Accept both YYYY-MM-DD and full ISO strings
        return datetime.fromisoformat(str(val).strip()).date()
    except ValueError:
        raise ValidationError("Required date must be an ISO date (YYYY-MM-DD).")


def _clean_skills(skills: Optional[Iterable[str]]) -> list[str]:
    if not skills:
        return []
    if isinstance(skills, str):
        skills = skills.split(",")
    out: list[str] = []
    for s in skills:
        s = str(s).strip()
        if s and s not in out:
            out.append(s)
    return out


def get_task(task_id: str) -> Task:
    t = db.session.get(Task, task_id)
    if t is None:
        raise NotFound("Task not found.")
    return t


def get_proposal(proposal_id: str) -> Proposal:
    p = db.session.get(Proposal, proposal_id)
    if p is None:
        raise NotFound("Proposal not found.")
    return p


def assigned_tasker_id(task: Task) -> Optional[str]:
    """Tasker holding the accepted proposal, if any."""
    row = (db.session.query(Proposal.tasker_id)
           .filter_by(task_id=task.id, status="accepted")
           .first())
    return row[0] if row else None


def _set_task_status(task_id: str, expected: str, new: str) -> bool:
    changed = (Task.query
               .filter_by(id=task_id, status=expected)
               .update({"status": new, "updated_at": datetime.utcnow()}, synchronize_session=False))
    return changed == 1


def _set_proposal_status(proposal_id: str, new: str) -> bool:
    changed = (Proposal.query
               .filter_by(id=proposal_id, status="pending")
               .update({"status": new, "updated_at": datetime.utcnow()}, synchronize_session=False))
    return changed == 1


def available_transitions(task: Task, actor_id: Optional[str]) -> list[str]:
    """Statuses the actor may move the task to right now."""
    if not actor_id:
        return []
    roles = set()
    if task.user_id == actor_id:
        roles.add(OWNER)
    if task.status in ("assigned", "in_progress", "review") and assigned_tasker_id(task) == actor_id:
        roles.add(TASKER)
    return [
        to for (frm, to), who in TRANSITIONS.items()
        if frm == task.status and who in roles and (frm, to) != ("open", "assigned")
    ]


# -----------------
# Tasks
# -----------------

def create_task(actor_id: Optional[str], *, title, description, category, location,
                budget_type, budget_amount=None, budget_min=None, budget_max=None,
                skills=None, urgent=False, required_date=None, time_flexible=False,
                categories: Optional[Iterable[str]] = None) -> Task:
    actor_id = _require_actor(actor_id, "post a task")

    title = _text(title, "Title", max_len=200)
    description = _text(description, "Description")
    category = _text(category, "Category", max_len=50).lower()
    location = _text(location, "Location", max_len=255)
    if categories is not None and category not in categories:
        raise ValidationError("Please pick one of the listed categories.")

    budget = Budget(budget_type, amount=budget_amount, min=budget_min, max=budget_max)

    t = Task(
        user_id=actor_id,
        title=title,
        description=description,
        category=category,
        location=location,
        skills=_clean_skills(skills),
        urgent=bool(urgent),
        required_date=_parse_date(required_date),
        time_flexible=bool(time_flexible),
        status="open",
        **budget.to_columns(),
    )
    db.session.add(t)
    db.session.commit()
    log.info("task %s posted by %s (%s)", t.id, actor_id, budget.display())
    return t


def transition_task(actor_id: Optional[str], task_id: str, new_status: str) -> Task:
    actor_id = _require_actor(actor_id, "update this task")
    if new_status not in TASK_STATUSES:
        raise ValidationError(f"Unknown task status: {new_status}.")

    t = get_task(task_id)
    current = t.status
    edge = (current, new_status)
    if edge not in TRANSITIONS:
        raise InvalidTransition(f"A task cannot move from {current} to {new_status}.")
    if edge == ("open", "assigned"):
        raise InvalidTransition("A task is assigned by accepting one of its proposals.")

    who = TRANSITIONS[edge]
    if who == OWNER and t.user_id != actor_id:
        raise PermissionDenied("Only the task owner can do that.")
    if who == TASKER and assigned_tasker_id(t) != actor_id:
        raise PermissionDenied("Only the assigned tasker can do that.")

    if not _set_task_status(t.id, current, new_status):
        db.session.rollback()
        log.warning("task %s changed underneath %s -> %s", t.id, current, new_status)
        raise InvalidTransition()

    db.session.commit()
    log.info("task %s %s -> %s by %s", t.id, current, new_status, actor_id)
    return t


def start_task(actor_id, task_id) -> Task:
    return transition_task(actor_id, task_id, "in_progress")


def submit_for_review(actor_id, task_id) -> Task:
    return transition_task(actor_id, task_id, "review")


def complete_task(actor_id, task_id) -> Task:
    return transition_task(actor_id, task_id, "completed")


def cancel_task(actor_id, task_id) -> Task:
    return transition_task(actor_id, task_id, "cancelled")


# -----------------
# Proposals
# -----------------

def submit_proposal(actor_id: Optional[str], task_id: str, amount, message, timeline) -> Proposal:
    actor_id = _require_actor(actor_id, "make an offer")

    amt = parse_amount(amount, field="Offer amount")
    if amt is None or amt <= 0:
        raise ValidationError("Please enter a valid offer amount.")
    message = _text(message, "Message")
    timeline = _text(timeline, "Timeline")
    if timeline not in TIMELINES:
        raise ValidationError("Please pick one of the listed timelines.")

    t = get_task(task_id)
    if t.user_id == actor_id:
        raise PermissionDenied("You cannot make an offer on your own task.")
    if t.status != "open":
        raise TaskNoLongerOpen("This task is no longer accepting offers.")

    if Proposal.query.filter_by(task_id=t.id, tasker_id=actor_id).first():
        raise DuplicateProposal()

    p = Proposal(task_id=t.id, tasker_id=actor_id, amount=amt,
                 message=message, timeline=timeline, status="pending")
    db.session.add(p)
    try:
        db.session.commit()
    except IntegrityError:
        # lost a race against the same tasker's other submit
        db.session.rollback()
        raise DuplicateProposal()

    log.info("proposal %s submitted on task %s by %s", p.id, t.id, actor_id)
    return p


def _owned_pending_proposal(actor_id: str, proposal_id: str) -> tuple[Proposal, Task]:
    p = get_proposal(proposal_id)
    t = get_task(p.task_id)
    if t.user_id != actor_id:
        raise PermissionDenied("Only the task owner can respond to proposals.")
    if p.status != "pending":
        raise InvalidTransition(f"This proposal was already {p.status}.")
    return p, t


def accept_proposal(actor_id: Optional[str], proposal_id: str) -> tuple[Proposal, Task]:
    """
    Accept a pending proposal and assign its task, as one unit.

    Sibling proposals are left pending.
    """
    actor_id = _require_actor(actor_id, "accept proposals")
    p, t = _owned_pending_proposal(actor_id, proposal_id)

    if not _set_task_status(t.id, "open", "assigned"):
        db.session.rollback()
        log.warning("accept of proposal %s lost: task %s no longer open", p.id, t.id)
        raise TaskNoLongerOpen()

    if not _set_proposal_status(p.id, "accepted"):
        db.session.rollback()
        log.warning("accept of proposal %s lost: no longer pending", p.id)
        raise InvalidTransition()

    db.session.commit()
    log.info("proposal %s accepted; task %s assigned to %s", p.id, t.id, p.tasker_id)
    return p, t


def reject_proposal(actor_id: Optional[str], proposal_id: str) -> Proposal:
    actor_id = _require_actor(actor_id, "reject proposals")
    p, _ = _owned_pending_proposal(actor_id, proposal_id)

    if not _set_proposal_status(p.id, "rejected"):
        db.session.rollback()
        raise InvalidTransition()

    db.session.commit()
    log.info("proposal %s rejected", p.id)
    return p
