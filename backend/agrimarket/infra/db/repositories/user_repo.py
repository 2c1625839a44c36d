"""User directory repository implementation."""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.domain.marketplace.models import UserSummary
from agrimarket.infra.db.models.user import UserModel


class UserRepositoryImpl:
    """User summaries for offer and listing views."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_summaries(self, user_ids: set[str]) -> dict[str, UserSummary]:
        """Summaries for the given IDs; unknown IDs are left out."""
        if not user_ids:
            return {}
        result = await self.session.execute(
            select(UserModel).where(UserModel.id.in_(sorted(user_ids)))
            .execution_options(populate_existing=True)
        )
        return {model.id: model.to_summary() for model in result.scalars().all()}

    async def upsert(
        self,
        user_id: str,
        name: Optional[str],
        email: Optional[str],
        role: str,
    ) -> UserSummary:
        """Create or refresh a directory entry."""
        model = await self.session.get(UserModel, user_id)
        if model:
            model.name = name
            model.email = email
            model.role = role
        else:
            model = UserModel(id=user_id, name=name, email=email, role=role)
            self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return model.to_summary()
