from datetime import datetime
from uuid import uuid4
from ..extensions import db


class Payment(db.Model):
    __tablename__ = "payment"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    task_id = db.Column(db.String(36), db.ForeignKey('task.id'), index=True)
    client_id = db.Column(db.String(36), db.ForeignKey('user.id'), index=True)
    tasker_id = db.Column(db.String(36), db.ForeignKey('user.id'), index=True)

    # minor currency units (cents)
    amount = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(10), default="usd")
    stripe_session_id = db.Column(db.String(255), unique=True, index=True)
    # pending|paid|failed
    status = db.Column(db.String(20), default="pending", nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    task = db.relationship('Task', backref=db.backref('payments', lazy='selectin'))

    def to_dict(self):
        return {
            "id": self.id,
            "task_id": self.task_id,
            "client_id": self.client_id,
            "tasker_id": self.tasker_id,
            "amount": self.amount,
            "currency": self.currency,
            "stripe_session_id": self.stripe_session_id,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
