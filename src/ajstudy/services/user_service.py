"""User service for managing user accounts."""
import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from ajstudy.models.models import User, UserLog

# Configure logging
logger = logging.getLogger(__name__)


class UserService:
    """Service for managing user accounts."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_external_id(self, provider: str, external_id: str) -> Optional[User]:
        """Get user by identity provider subject."""
        return (
            self.db.query(User)
            .filter(User.auth_provider == provider, User.external_id == external_id)
            .first()
        )

    def create_user(self, display_name: str, provider: str = "sso", external_id: Optional[str] = None) -> User:
        """Create a new user."""
        display_name = (display_name or "").strip()
        if not display_name:
            raise ValueError("Display name must not be empty")
        if external_id is not None and self.get_user_by_external_id(provider, external_id):
            raise ValueError(f"User {external_id!r} already exists for provider {provider!r}")

        user = User(
            display_name=display_name,
            auth_provider=provider,
            external_id=external_id or uuid.uuid4().hex,
            is_active=True,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        self.log_user_activity(user.id, "User created", "INFO", "user_created")
        return user

    def get_or_create_user(self, provider: str, external_id: str, display_name: Optional[str] = None) -> User:
        """Get existing user or create a new one."""
        user = self.get_user_by_external_id(provider, external_id)
        if not user:
            user = self.create_user(display_name or external_id, provider, external_id)
        return user

    def list_users(self, active: Optional[bool] = None) -> List[User]:
        """Get all users, optionally only active or inactive ones."""
        query = self.db.query(User)
        if active is not None:
            query = query.filter(User.is_active == active)
        return query.order_by(User.id).all()

    def update_user(
        self,
        user_id: int,
        display_name: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> User:
        """Update a user's display name or activation state."""
        user = self.get_user(user_id)
        if not user:
            raise ValueError(f"User {user_id} not found")
        changes = []
        if display_name is not None:
            if not display_name.strip():
                raise ValueError("Display name must not be empty")
            user.display_name = display_name.strip()
            changes.append(f"display_name: {user.display_name}")
        if is_active is not None:
            user.is_active = is_active
            changes.append(f"is_active: {is_active}")

        self.db.commit()
        self.db.refresh(user)

        self.log_user_activity(user.id, f"User updated: [{', '.join(changes)}]", "INFO", "user_updated")
        return user

    def get_users_count(self) -> int:
        """Get the total number of users in the database."""
        return self.db.query(User).count()

    def log_user_activity(
        self,
        user_id: int,
        message: str,
        level: str,
        category: str,
    ) -> None:
        """Log user activity."""
        logger.log(logging.getLevelName(level), f"Logging user activity: {message}")
        log = UserLog(
            user_id=user_id,
            message=message,
            level=level,
            category=category,
        )
        self.db.add(log)
        self.db.commit()
