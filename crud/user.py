"""
UserRepository for database operations on User model
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from database_models import User


class UserRepository:
    """
    Repository class for User database operations.
    Encapsulates all database logic for the User model.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Retrieve a user by email address.

        Args:
            email: User's email address (case-insensitive search)

        Returns:
            User object if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """
        Retrieve a user by ID.

        Args:
            user_id: User's ID

        Returns:
            User object if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_user(self, user_data: dict) -> User:
        """
        Create a new user in the database.

        Args:
            user_data: Dictionary containing user data. Must include:
                - email: str
                Optional:
                - name: str
                - image: str

        Returns:
            Created User object
        """
        user = User(
            email=user_data["email"].lower(),
            name=user_data.get("name"),
            image=user_data.get("image"),
        )
        self.db.add(user)
        await self.db.flush()  # Flush to get the ID without committing
        await self.db.refresh(user)  # Refresh to get the generated ID
        return user

    async def set_plan(
        self,
        user_id: int,
        plan: str,
        plan_expiry: datetime,
        allowed_watch_duration: int,
    ) -> Optional[User]:
        """
        Write all three plan fields in a single UPDATE statement.

        Returns:
            The refreshed User, or None when no row matched user_id
        """
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                plan=plan,
                plan_expiry=plan_expiry,
                allowed_watch_duration=allowed_watch_duration,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        user = await self.get_user_by_id(user_id)
        await self.db.refresh(user)
        return user
