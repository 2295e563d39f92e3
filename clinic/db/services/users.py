from clinic.db.models.users import User
from clinic.db.services.base import BaseService


class UsersService(BaseService[User]):
    """Service for working with users."""

    model = User

    async def get_user_by_id(self, user_id: str) -> User | None:
        """Get user by ID."""
        return await self.find_one_or_none(id=user_id)
