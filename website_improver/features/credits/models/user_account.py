import enum

from sqlalchemy import CheckConstraint, Column, Enum, Float, String

from website_improver.platform.db.base import BaseModel


class PlanTier(enum.Enum):
    free = "free"
    pro = "pro"


class UserAccount(BaseModel):
    """Credit account for a user provisioned by the identity provider."""

    __tablename__ = "users"

    # Opaque id issued by the identity provider, never generated here
    id = Column(String, primary_key=True, index=True)
    email = Column(String(255), nullable=True, index=True)
    plan = Column(Enum(PlanTier), default=PlanTier.free, nullable=False)
    credits = Column(Float, default=0, nullable=False)

    __table_args__ = (
        CheckConstraint("credits >= 0", name="check_credits_non_negative"),
    )

    def __repr__(self):
        return f"<UserAccount(id={self.id}, plan={self.plan}, credits={self.credits})>"
