"""User database model."""
from datetime import datetime

from sqlalchemy import Column, DateTime, String

from agrimarket.domain.marketplace.models import UserSummary
from agrimarket.infra.db.base import Base


class UserModel(Base):
    """Directory of marketplace users, kept in sync by the identity provider."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=True)
    role = Column(String, nullable=False, default="buyer")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_summary(self) -> UserSummary:
        """Public summary shown next to listings and offers."""
        return UserSummary(id=self.id, name=self.name, email=self.email)
