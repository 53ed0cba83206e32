"""Staff login and account management."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from escalafin.infrastructure.database import get_db
from escalafin.application.services import auth_service
from escalafin.domain.schemas.auth import LoginRequest, TokenResponse, UserCreate, UserRead
from escalafin.interfaces.api.deps import get_current_user, require_admin
from escalafin.domain.models.user import User

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = auth_service.login(db, body.email, body.password)
    return TokenResponse(access_token=auth_service.issue_token(user), user=UserRead.model_validate(user))


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(body: UserCreate, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    """Admins create advisor (or admin) accounts; there is no self sign-up."""
    return auth_service.register_user(db, **body.model_dump())


@router.get("/me", response_model=UserRead)
def get_me(user: User = Depends(get_current_user)):
    return user
