import logging
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.database import get_db
from app.models.models import AdminUser

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR.lstrip('/')}/admin/auth/login")

# Higher level grants everything below it
ROLE_LEVELS = {"moderator": 1, "admin": 2, "superadmin": 3}


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """Create a JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def create_admin_token(user: AdminUser) -> str:
    return create_access_token(
        data={"sub": str(user.id), "username": user.username, "role": user.role}
    )


def authenticate_admin(db: Session, username: str, password: str):
    """Authenticate an admin by username and password"""
    user = db.query(AdminUser).filter(AdminUser.username == username).first()
    if not user:
        return False
    if not verify_password(password, user.hashed_password):
        return False
    return user


def has_role(user: AdminUser, minimum: str) -> bool:
    return ROLE_LEVELS.get(user.role, 0) >= ROLE_LEVELS[minimum]


async def get_current_admin(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> AdminUser:
    """Resolve the acting admin from the bearer token"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authorized, token failed",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            raise credentials_exception
        user_id = int(subject)
    except (JWTError, ValueError):
        raise credentials_exception

    user = db.query(AdminUser).filter(AdminUser.id == user_id).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, user not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_admin(
    current_user: AdminUser = Depends(get_current_admin)
) -> AdminUser:
    """Ensure the current user is at least an admin"""
    if not has_role(current_user, "admin"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as admin"
        )
    return current_user


async def require_superadmin(
    current_user: AdminUser = Depends(get_current_admin)
) -> AdminUser:
    """Ensure the current user is a superadmin"""
    if current_user.role != "superadmin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as superadmin"
        )
    return current_user


def ensure_first_superadmin(db: Session) -> Optional[AdminUser]:
    """Create the configured bootstrap superadmin if no superadmin exists yet"""
    username = settings.FIRST_SUPERADMIN_USERNAME
    password = settings.FIRST_SUPERADMIN_PASSWORD
    if not username or not password:
        return None

    if db.query(AdminUser).filter(AdminUser.role == "superadmin").first():
        return None

    now = datetime.utcnow()
    user = AdminUser(
        username=username,
        hashed_password=get_password_hash(password),
        role="superadmin",
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created bootstrap superadmin '{username}'")
    return user
