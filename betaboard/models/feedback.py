from sqlalchemy import func, CheckConstraint
from betaboard.extensions import db

FEEDBACK_TYPES = ("bug_report", "suggestion", "general_comment")

FEEDBACK_STATUSES = ("to_discuss", "low", "high", "to_implement", "archived")
DEFAULT_FEEDBACK_STATUS = "to_discuss"

# Kanban columns, in display order
BOARD_COLUMNS = (
    ("to_discuss", "To Discuss"),
    ("low", "Low Priority"),
    ("high", "High Priority"),
    ("to_implement", "To Implement"),
)

STATUS_LABELS = dict(BOARD_COLUMNS, archived="Archived")
TYPE_LABELS = {"bug_report": "Bug", "suggestion": "Suggestion", "general_comment": "Comment"}


class Feedback(db.Model):
    __tablename__ = "beta_feedback"

    id = db.Column(db.Integer, primary_key=True)
    device_type = db.Column(db.String(16), nullable=False)
    device_model = db.Column(db.String(255), nullable=False)
    feedback_type = db.Column(db.String(32), nullable=False, index=True)
    comment = db.Column(db.Text, nullable=False)
    is_anonymous = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    # Always NULL for anonymous submissions
    email = db.Column(db.String(320), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=DEFAULT_FEEDBACK_STATUS, server_default=DEFAULT_FEEDBACK_STATUS)
    development_estimate = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        db.Index("ix_beta_feedback_status_created_at", "status", "created_at"),
        CheckConstraint(f"feedback_type IN {FEEDBACK_TYPES}", name="ck_beta_feedback_type"),
        CheckConstraint(f"status IN {FEEDBACK_STATUSES}", name="ck_beta_feedback_status"),
        CheckConstraint("development_estimate >= 0", name="ck_beta_feedback_estimate_nonneg"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "device_type": self.device_type,
            "device_model": self.device_model,
            "feedback_type": self.feedback_type,
            "comment": self.comment,
            "is_anonymous": self.is_anonymous,
            "email": self.email,
            "status": self.status,
            "development_estimate": self.development_estimate or 0,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
