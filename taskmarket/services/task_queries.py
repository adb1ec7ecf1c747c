# taskmarket/services/task_queries.py
# Read side of the marketplace: listings, dashboards, profile stats.
from __future__ import annotations
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import joinedload

from ..exceptions import PermissionDenied, ValidationError
from ..models.proposal import Proposal
from ..models.task import Task
from .budget import parse_amount
from .lifecycle import get_task

BROWSE_SORTS = ("newest", "budget-high", "budget-low")

ACTIVE_STATUSES = ("assigned", "in_progress", "review")
CLOSED_STATUSES = ("completed", "cancelled")


def _budget_low():
    return func.coalesce(Task.budget_amount, Task.budget_min)


def _budget_high():
    return func.coalesce(Task.budget_amount, Task.budget_max)


def browse_tasks(*, search: Optional[str] = None, category: Optional[str] = None,
                 budget_min=None, budget_max=None, sort: Optional[str] = None,
                 limit: int = 100) -> list[Task]:
    """Open tasks a tasker can bid on."""
    sort = (sort or "newest").strip().lower()
    if sort not in BROWSE_SORTS:
        raise ValidationError(f"Sort must be one of: {', '.join(BROWSE_SORTS)}.")

    qry = Task.query.filter(Task.status == "open")

    search = (search or "").strip()
    if search:
        like = f"%{search}%"
        qry = qry.filter(or_(Task.title.ilike(like), Task.description.ilike(like)))

    category = (category or "").strip().lower()
    if category and category != "all":
        qry = qry.filter(Task.category == category)

    # overlap between the requested window and the task's budget
    lo = parse_amount(budget_min, field="Minimum budget")
    hi = parse_amount(budget_max, field="Maximum budget")
    if lo is not None:
        qry = qry.filter(_budget_high() >= lo)
    if hi is not None:
        qry = qry.filter(_budget_low() <= hi)

    if sort == "budget-high":
        qry = qry.order_by(_budget_high().desc(), Task.created_at.desc())
    elif sort == "budget-low":
        qry = qry.order_by(_budget_low().asc(), Task.created_at.desc())
    else:
        qry = qry.order_by(Task.created_at.desc())

    return qry.limit(limit).all()


def list_my_tasks(actor_id: str) -> dict[str, list[Task]]:
    if not actor_id:
        raise PermissionDenied("Please sign in to see your tasks.")
    tasks = (Task.query
             .filter_by(user_id=actor_id)
             .order_by(Task.created_at.desc())
             .all())
    return {
        "open": [t for t in tasks if t.status == "open"],
        "active": [t for t in tasks if t.status in ACTIVE_STATUSES],
        "closed": [t for t in tasks if t.status in CLOSED_STATUSES],
    }


def list_assigned_tasks(actor_id: str) -> list[tuple[Task, Proposal]]:
    """Owner's tasks that have a tasker on them, with the winning proposal."""
    if not actor_id:
        raise PermissionDenied("Please sign in to see your tasks.")
    rows = (Task.query
            .join(Proposal, Proposal.task_id == Task.id)
            .filter(Task.user_id == actor_id,
                    Task.status.in_(ACTIVE_STATUSES),
                    Proposal.status == "accepted")
            .add_entity(Proposal)
            .order_by(Task.created_at.desc())
            .all())
    return [(t, p) for t, p in rows]


def list_task_proposals(actor_id: str, task_id: str) -> list[Proposal]:
    t = get_task(task_id)
    if t.user_id != actor_id:
        raise PermissionDenied("Only the task owner can see its proposals.")
    return (Proposal.query
            .options(joinedload(Proposal.tasker))
            .filter_by(task_id=t.id)
            .order_by(Proposal.created_at.desc())
            .all())


def list_received_proposals(actor_id: str) -> list[Proposal]:
    """Every offer made on the actor's tasks, newest first."""
    if not actor_id:
        raise PermissionDenied("Please sign in to see your offers.")
    return (Proposal.query
            .join(Task, Proposal.task_id == Task.id)
            .options(joinedload(Proposal.task), joinedload(Proposal.tasker))
            .filter(Task.user_id == actor_id)
            .order_by(Proposal.created_at.desc())
            .all())


def list_my_proposals(actor_id: str) -> list[Proposal]:
    if not actor_id:
        raise PermissionDenied("Please sign in to see your offers.")
    return (Proposal.query
            .options(joinedload(Proposal.task))
            .filter_by(tasker_id=actor_id)
            .order_by(Proposal.created_at.desc())
            .all())


def list_tasker_work(actor_id: str) -> list[Task]:
    """Tasks the actor won."""
    if not actor_id:
        raise PermissionDenied("Please sign in to see your work.")
    return (Task.query
            .join(Proposal, Proposal.task_id == Task.id)
            .filter(Proposal.tasker_id == actor_id, Proposal.status == "accepted")
            .order_by(Task.updated_at.desc())
            .all())


def user_stats(actor_id: str) -> dict:
    if not actor_id:
        raise PermissionDenied("Please sign in to see your stats.")
    mine = Task.query.filter_by(user_id=actor_id)
    completed_as_tasker = (Proposal.query
                           .join(Task, Proposal.task_id == Task.id)
                           .filter(Proposal.tasker_id == actor_id,
                                   Proposal.status == "accepted",
                                   Task.status == "completed")
                           .count())
    return {
        "posted_tasks": mine.count(),
        "active_tasks": mine.filter(Task.status.in_(("open", "assigned"))).count(),
        "completed_tasks_as_client": mine.filter(Task.status == "completed").count(),
        "completed_tasks_as_tasker": completed_as_tasker,
    }
