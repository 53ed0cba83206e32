"""Staff authentication: bcrypt passwords and JWT bearer tokens.

Tokens carry the user's email in ``sub`` plus ``uid`` and ``role`` so the
panel can render without a round trip. Authorization is always decided
against the database row, never against the claims.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from fastapi import status
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from escalafin.config import get_settings
from escalafin.core.exceptions import AppError, UnauthorizedException
from escalafin.domain.enums import UserRole
from escalafin.domain.models.user import User

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def issue_token(user: User, expires_in: Optional[timedelta] = None) -> str:
    settings = get_settings()
    lifetime = expires_in if expires_in is not None else timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    claims = {
        "sub": user.email,
        "uid": user.id,
        "role": user.role.value,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def find_user(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def resolve_token_user(db: Session, token: str) -> User:
    """Return the active user a bearer token belongs to, or raise 401."""
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise UnauthorizedException("Token inválido o expirado")

    email = claims.get("sub")
    if not email:
        raise UnauthorizedException("Token inválido")

    user = find_user(db, email)
    if user is None or not user.is_active:
        raise UnauthorizedException("Usuario no encontrado o inactivo")
    return user


def login(db: Session, email: str, password: str) -> User:
    user = find_user(db, email)
    # Same message for unknown email, bad password and disabled account
    if user is None or not user.is_active or not pwd_context.verify(password, user.password_hash):
        logger.warning("Failed login", email=email)
        raise UnauthorizedException("Correo o contraseña incorrectos")
    return user


def register_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.ADVISOR,
    phone: Optional[str] = None,
) -> User:
    if find_user(db, email):
        raise AppError("Correo ya registrado", status.HTTP_409_CONFLICT, {"email": email})

    user = User(name=name, email=email, password_hash=hash_password(password), role=role, phone=phone)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User registered", user_id=user.id, role=role.value)
    return user


def ensure_default_admin(db: Session, email: str, password: str) -> None:
    """Create the bootstrap administrator on an empty install."""
    if find_user(db, email):
        return
    register_user(db, name="Admin", email=email, password=password, role=UserRole.ADMIN)
