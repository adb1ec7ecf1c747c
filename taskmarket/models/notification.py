from datetime import datetime
from uuid import uuid4
from ..extensions import db


class Notification(db.Model):
    __tablename__ = "notification"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey("user.id", ondelete="CASCADE"), index=True)
    task_id = db.Column(db.String(36), db.ForeignKey("task.id", ondelete="SET NULL"), index=True)

    type = db.Column(db.String(40), nullable=False)  # payment_received|...
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.Index("ix_notification_user_created", "user_id", "created_at"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "task_id": self.task_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "read": bool(self.read),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
