"""Auth API router — login, register, me."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from rolekit.db.session import get_db
from rolekit.models import User
from rolekit.schemas.schemas import (
    AbilityCheckOut, LoginRequest, RegisterRequest, TokenResponse, UserAccessOut,
)
from rolekit.services.auth_service import auth_service
from rolekit.services.audit_service import audit_service
from rolekit.services.authorization import Authorizer
from rolekit.services.gate import Gate
from rolekit.core.security import get_current_user
from rolekit.api.users import user_access

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Authenticate and return a JWT access token."""
    result = auth_service.authenticate(db, body.email, body.password)
    actor = auth_service.get_user_by_email(db, body.email)
    audit_service.record(db, request, actor, "user.login", "user", actor.id)
    return result


@router.post("/register", response_model=UserAccessOut, status_code=201)
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new user with the default roles."""
    user = auth_service.create_user(db, body.email, body.password, body.full_name)
    return user_access(db, user)


@router.get("/me", response_model=UserAccessOut)
async def get_me(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Current user with roles and effective permissions."""
    return user_access(db, user)


@router.get("/can/{ability}", response_model=AbilityCheckOut)
async def can(
    ability: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Whether the current user passes the named gate."""
    return AbilityCheckOut(ability=ability, allowed=Gate(Authorizer(db, user)).allows(ability))
