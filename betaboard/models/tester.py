from sqlalchemy import func, CheckConstraint
from betaboard.extensions import db

# Text + CHECK instead of DB enums (no enum migration pain)
DEVICE_IOS = "ios"
DEVICE_ANDROID = "android"
DEVICE_TYPES = (DEVICE_IOS, DEVICE_ANDROID)

EXPERIENCE_LEVELS = ("beginner", "intermediate", "expert")

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_INVITED = "invited"
STATUS_ACTIVE = "active"
STATUS_DECLINED = "declined"
TESTER_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_INVITED, STATUS_ACTIVE, STATUS_DECLINED)


class Tester(db.Model):
    __tablename__ = "beta_testers"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(320), nullable=False)  # case-insensitive unique via index
    full_name = db.Column(db.String(255), nullable=False)
    device_type = db.Column(db.String(16), nullable=False)
    device_model = db.Column(db.String(255), nullable=False)
    experience_level = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, server_default=STATUS_PENDING, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    invitations = db.relationship(
        "Invitation",
        back_populates="tester",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        db.Index("ux_beta_testers_lower_email", func.lower(email), unique=True),
        CheckConstraint(f"device_type IN {DEVICE_TYPES}", name="ck_beta_testers_device_type"),
        CheckConstraint(f"experience_level IN {EXPERIENCE_LEVELS}", name="ck_beta_testers_experience"),
        CheckConstraint(f"status IN {TESTER_STATUSES}", name="ck_beta_testers_status"),
    )

    @property
    def first_name(self) -> str:
        parts = (self.full_name or "").split(" ")
        return parts[0] if parts else ""

    @property
    def last_name(self) -> str:
        return " ".join((self.full_name or "").split(" ")[1:])

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "device_type": self.device_type,
            "device_model": self.device_model,
            "experience_level": self.experience_level,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Tester id={self.id} email={self.email} status={self.status}>"
