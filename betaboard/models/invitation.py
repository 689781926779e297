from sqlalchemy import func, CheckConstraint
from betaboard.extensions import db

PLATFORM_GOOGLE_PLAY = "google_play"
PLATFORM_APP_STORE = "app_store"
PLATFORMS = (PLATFORM_GOOGLE_PLAY, PLATFORM_APP_STORE)

INVITATION_SENT = "sent"
INVITATION_STATUSES = (INVITATION_SENT, "accepted", "declined", "expired")


class Invitation(db.Model):
    __tablename__ = "beta_invitations"

    id = db.Column(db.Integer, primary_key=True)
    tester_id = db.Column(
        db.Integer,
        db.ForeignKey("beta_testers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    platform = db.Column(db.String(16), nullable=False)
    invitation_link = db.Column(db.String(500), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=INVITATION_SENT, server_default=INVITATION_SENT)
    invitation_sent_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    tester = db.relationship("Tester", back_populates="invitations")

    __table_args__ = (
        CheckConstraint(f"platform IN {PLATFORMS}", name="ck_beta_invitations_platform"),
        CheckConstraint(f"status IN {INVITATION_STATUSES}", name="ck_beta_invitations_status"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "tester_id": self.tester_id,
            "platform": self.platform,
            "invitation_link": self.invitation_link,
            "status": self.status,
            "invitation_sent_at": self.invitation_sent_at.isoformat() if self.invitation_sent_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "tester": {
                "id": self.tester.id,
                "full_name": self.tester.full_name,
                "email": self.tester.email,
            } if self.tester else None,
        }

    def __repr__(self) -> str:
        return f"<Invitation id={self.id} tester_id={self.tester_id} platform={self.platform} status={self.status}>"
