"""Pluggable authentication: single sign-on now, own accounts later.

A provider is picked by name when a login session starts. Sessions never
expire and there is no logout.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Type

from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from ajstudy.config import settings
from ajstudy.exceptions import AuthenticationError
from ajstudy.models.base import utcnow
from ajstudy.models.models import User, UserCredential
from ajstudy.monitoring import error_count
from ajstudy.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class LoginSession:
    """An authenticated user. There is no expiry."""
    user: User
    provider: str
    started_at: datetime = field(default_factory=utcnow)
    claims: Dict[str, Any] = field(default_factory=dict)


class AuthProvider(ABC):
    """Base class for identity providers."""

    name: str = ""

    def __init__(self, db: Session):
        self.db = db
        self.users = UserService(db)

    @abstractmethod
    def authenticate(self, credentials: Mapping[str, Any]) -> User:
        """Resolve credentials to an active user or raise AuthenticationError."""
        raise NotImplementedError("Subclasses must implement this method")

    def start_session(self, credentials: Mapping[str, Any]) -> LoginSession:
        """Authenticate and open a login session."""
        try:
            user = self.authenticate(credentials)
        except AuthenticationError as e:
            error_count.labels(error_type="authentication").inc()
            logger.warning(f"{self.name} login failed: {e}")
            raise
        if not user.is_active:
            error_count.labels(error_type="authentication").inc()
            raise AuthenticationError(f"User {user.id} is not active")
        logger.info(f"User {user.id} logged in via {self.name}")
        claims = {key: value for key, value in credentials.items() if key != "password"}
        return LoginSession(user=user, provider=self.name, claims=claims)


class SSOProvider(AuthProvider):
    """Trusts identity claims issued by a configured single sign-on issuer."""

    name = "sso"

    def __init__(self, db: Session, issuers: Optional[List[str]] = None):
        super().__init__(db)
        self.issuers = list(settings.auth.sso_issuers if issuers is None else issuers)

    def authenticate(self, credentials: Mapping[str, Any]) -> User:
        subject = credentials.get("sub")
        issuer = credentials.get("iss")
        if not subject:
            raise AuthenticationError("SSO claims are missing the subject")
        if issuer not in self.issuers:
            raise AuthenticationError(f"Untrusted SSO issuer {issuer!r}")

        user = self.users.get_user_by_external_id(self.name, str(subject))
        if user is None:
            user = self.users.create_user(credentials.get("name") or str(subject), self.name, str(subject))
            self.users.log_user_activity(user.id, f"Registered through {issuer}", "INFO", "auth")
        return user


class CustomProvider(AuthProvider):
    """Accounts with a username and password stored by the application."""

    name = "custom"

    def register(self, username: str, password: str, display_name: Optional[str] = None) -> User:
        """Create a user with a password credential."""
        username = (username or "").strip().lower()
        if not username:
            raise ValueError("Username must not be empty")
        if len(password or "") < 8:
            raise ValueError("Password must have at least 8 characters")
        if self.db.query(UserCredential).filter(UserCredential.username == username).first():
            raise ValueError(f"Username {username!r} is taken")

        user = self.users.create_user(display_name or username, self.name, username)
        self.db.add(UserCredential(
            user_id=user.id,
            username=username,
            password_hash=generate_password_hash(password, method=settings.auth.password_method),
        ))
        self.db.commit()
        self.users.log_user_activity(user.id, "Registered with password", "INFO", "auth")
        return user

    def authenticate(self, credentials: Mapping[str, Any]) -> User:
        username = str(credentials.get("username") or "").strip().lower()
        password = str(credentials.get("password") or "")
        credential = self.db.query(UserCredential).filter(UserCredential.username == username).first()
        if credential is None or not check_password_hash(credential.password_hash, password):
            raise AuthenticationError("Invalid username or password")
        return credential.user


PROVIDERS: Dict[str, Type[AuthProvider]] = {
    SSOProvider.name: SSOProvider,
    CustomProvider.name: CustomProvider,
}


def get_auth_provider(db: Session, name: Optional[str] = None) -> AuthProvider:
    """Get the provider configured by ``AUTH_PROVIDER`` or named explicitly."""
    name = name or settings.auth.provider
    try:
        return PROVIDERS[name](db)
    except KeyError:
        raise ValueError(f"Unknown authentication provider {name!r}") from None
