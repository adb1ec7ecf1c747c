# taskmarket/models/task.py
from datetime import datetime
from uuid import uuid4
from ..extensions import db
from ..services.budget import Budget, as_number

# open|assigned|in_progress|review|completed|cancelled
TASK_STATUSES = ("open", "assigned", "in_progress", "review", "completed", "cancelled")


class Task(db.Model):
    __tablename__ = 'task'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    # Owner (client); never reassigned
    user_id = db.Column(db.String(36), db.ForeignKey('user.id'), nullable=False, index=True)

    title = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(50), nullable=False, index=True)
    location = db.Column(db.String(255), nullable=False)
    skills = db.Column(db.JSON)
    urgent = db.Column(db.Boolean, default=False)
    required_date = db.Column(db.Date)
    time_flexible = db.Column(db.Boolean, default=False)

    budget_type = db.Column(db.String(10), nullable=False)  # fixed|range|hourly
    budget_amount = db.Column(db.Numeric(10, 2))
    budget_min = db.Column(db.Numeric(10, 2))
    budget_max = db.Column(db.Numeric(10, 2))

    status = db.Column(db.String(20), default="open", nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = db.relationship(
        'User',
        foreign_keys=[user_id],
        backref=db.backref('tasks', lazy='selectin')
    )

    proposals = db.relationship(
        'Proposal',
        back_populates='task',
        lazy='selectin',
        cascade='all, delete-orphan',
        order_by='Proposal.created_at.desc()'
    )

    @property
    def accepted_proposal(self):
        for p in self.proposals or []:
            if p.status == "accepted":
                return p
        return None

    @property
    def budget(self):
        return Budget.from_row(self)

    def to_dict(self):
        budget = self.budget
        return {
            'id': self.id,
            'user_id': self.user_id,
            'title': self.title,
            'description': self.description,
            'category': self.category,
            'location': self.location,
            'skills': list(self.skills or []),
            'urgent': bool(self.urgent),
            'required_date': self.required_date.isoformat() if self.required_date else None,
            'time_flexible': bool(self.time_flexible),
            **budget.to_json(),
            'budget_display': budget.display(),
            'suggested_amount': as_number(budget.suggested_amount()),
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Task {self.id}: {self.title} [{self.status}]>'
