"""FastAPI dependencies for the staff panel: bearer auth and roles."""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from escalafin.core.exceptions import ForbiddenException
from escalafin.infrastructure.database import get_db
from escalafin.application.services.auth_service import resolve_token_user
from escalafin.domain.enums import UserRole
from escalafin.domain.models.user import User

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    return resolve_token_user(db, credentials.credentials)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.ADMIN:
        raise ForbiddenException("Solo los administradores pueden acceder a este recurso")
    return user
