"""JWT authentication and role/permission route guards."""

import bcrypt
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Union

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from rolekit.core.config import settings
from rolekit.core.exceptions import ForbiddenError, UnauthenticatedError
from rolekit.db.session import get_db
from rolekit.models import User
from rolekit.services.authorization import Authorizer
from rolekit.services.gate import Gate, GateRegistry

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pwd_bytes, hashed_bytes)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token; None if it is invalid or expired."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Resolve the bearer token to an active user, or None."""
    if credentials is None:
        return None
    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") != "access":
        return None
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(user: Optional[User] = Depends(get_current_user_optional)) -> User:
    if user is None:
        raise UnauthenticatedError()
    return user


def get_authorizer(
    user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db),
) -> Optional[Authorizer]:
    """Authorizer for the current request's subject, or None if anonymous."""
    if user is None:
        return None
    return Authorizer(db, user)


def parse_expression(expression: Union[str, Sequence[str]]) -> List[str]:
    """Normalise ``"admin|editor"`` or ``["admin", "editor"]`` to a list."""
    items = expression.split("|") if isinstance(expression, str) else list(expression)
    return [item.strip() for item in items if item and item.strip()]


class RequireRole:
    """Dependency that passes if the user holds any of the given roles."""

    message = "Unauthorized. Insufficient role privileges."

    def __init__(self, roles: Union[str, Sequence[str]]):
        self.items = parse_expression(roles)

    def allowed(self, authorizer: Authorizer) -> bool:
        return authorizer.has_role(*self.items)

    async def __call__(self, authorizer: Optional[Authorizer] = Depends(get_authorizer)) -> Authorizer:
        if authorizer is None:
            raise UnauthenticatedError()
        if not self.allowed(authorizer):
            raise ForbiddenError(self.message)
        return authorizer


class RequirePermission(RequireRole):
    """Dependency that passes if the user holds any of the given permissions."""

    message = "Unauthorized. Insufficient permissions."

    def allowed(self, authorizer: Authorizer) -> bool:
        return authorizer.has_permission(*self.items)


class RequireRoleOrPermission(RequireRole):
    """Each token may name a role or a permission."""

    message = "Unauthorized. Insufficient privileges."

    def allowed(self, authorizer: Authorizer) -> bool:
        return authorizer.has_role(*self.items) or authorizer.has_permission(*self.items)


class RequireAbility:
    """Dependency that passes if the user passes the named gate."""

    message = "Unauthorized. Insufficient permissions."

    def __init__(self, ability: str, registry: Optional[GateRegistry] = None):
        self.ability = ability
        self.registry = registry

    async def __call__(self, authorizer: Optional[Authorizer] = Depends(get_authorizer)) -> Authorizer:
        Gate(authorizer, self.registry).authorize(self.ability, self.message)
        return authorizer


# Convenience dependency factories
require_manage_roles = RequirePermission("manage-roles")
require_view_settings = RequirePermission("view-settings")
require_edit_settings = RequirePermission("edit-settings")
