# taskmarket/models/proposal.py
from datetime import datetime
from uuid import uuid4
from ..extensions import db
from ..services.budget import as_number

PROPOSAL_STATUSES = ("pending", "accepted", "rejected")

TIMELINES = {
    "asap": "As soon as possible",
    "1-3-days": "1-3 days",
    "1-week": "Within 1 week",
    "2-weeks": "Within 2 weeks",
    "1-month": "Within 1 month",
    "flexible": "Flexible",
}


class Proposal(db.Model):
    __tablename__ = 'proposal'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    task_id = db.Column(db.String(36), db.ForeignKey('task.id'), nullable=False, index=True)
    tasker_id = db.Column(db.String(36), db.ForeignKey('user.id'), nullable=False, index=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    message = db.Column(db.Text, nullable=False)
    timeline = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), default='pending', nullable=False, index=True)  # pending|accepted|rejected
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    task = db.relationship('Task', back_populates='proposals')
    tasker = db.relationship('User', foreign_keys=[tasker_id],
                             backref=db.backref('proposals', lazy='selectin'))

    __table_args__ = (
        db.UniqueConstraint("task_id", "tasker_id", name="uq_proposal_task_tasker"),
    )

    @property
    def timeline_display(self) -> str:
        return TIMELINES.get(self.timeline, self.timeline)

    def to_dict(self, with_tasker=False, with_task=False):
        data = {
            'id': self.id,
            'task_id': self.task_id,
            'tasker_id': self.tasker_id,
            'amount': as_number(self.amount),
            'message': self.message,
            'timeline': self.timeline,
            'timeline_display': self.timeline_display,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_tasker:
            data['tasker'] = self.tasker.public_profile() if self.tasker else None
        if with_task and self.task:
            data['task'] = {
                'id': self.task.id,
                'title': self.task.title,
                'category': self.task.category,
                'status': self.task.status,
            }
        return data

    def __repr__(self):
        return f'<Proposal {self.id} task={self.task_id} [{self.status}]>'
