import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core import runtime_config
from app.core.database import get_db
from app.core.security import (
    authenticate_admin, create_admin_token, get_current_admin, get_password_hash,
    require_admin, require_superadmin
)
from app.models.models import AdminUser, DEFAULT_ADMIN_ROLE
from app.schemas.schemas import (
    LoginRequest, LoginResponse, AdminUserCreate, AdminUserUpdate, AdminUserResponse,
    AdminUserEnvelope, AdminUserListResponse, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter()


def default_role() -> str:
    return runtime_config.get("user.defaultAdminRole", DEFAULT_ADMIN_ROLE) or DEFAULT_ADMIN_ROLE


def get_admin_or_404(db: Session, user_id: int) -> AdminUser:
    user = db.query(AdminUser).filter(AdminUser.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


# ==================== AUTH ====================

@router.post("/auth/login", response_model=LoginResponse)
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    """Login endpoint for back-office users"""
    user = authenticate_admin(db, login_data.username, login_data.password)
    if not user:
        logger.info(f"Failed login for '{login_data.username}'")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid credentials"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    logger.info(f"Admin '{user.username}' logged in")
    return {
        "token": create_admin_token(user),
        "user": user
    }


@router.post("/auth/register", response_model=AdminUserEnvelope, status_code=status.HTTP_201_CREATED)
def register_admin(
    user_data: AdminUserCreate,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_superadmin)
):
    """Create a new back-office account (superadmin only)"""
    existing_user = db.query(AdminUser).filter(AdminUser.username == user_data.username).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists"
        )

    now = datetime.utcnow()
    db_user = AdminUser(
        username=user_data.username,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role or default_role(),
        is_active=True,
        created_at=now,
        updated_at=now
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists"
        )
    db.refresh(db_user)

    logger.info(f"'{current_user.username}' created {db_user.role} account '{db_user.username}'")
    return {"user": db_user}


@router.post("/auth/logout", response_model=MessageResponse)
def logout(current_user: AdminUser = Depends(get_current_admin)):
    """Tokens are stateless; the client discards its copy"""
    return {"message": "Logout successful"}


@router.get("/auth/me", response_model=AdminUserEnvelope)
def read_current_admin(current_user: AdminUser = Depends(get_current_admin)):
    return {"user": current_user}


# ==================== USERS ====================

@router.get("/users", response_model=AdminUserListResponse)
def get_admin_users(
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    users = db.query(AdminUser).order_by(AdminUser.created_at.desc()).all()
    return {"count": len(users), "users": users}


@router.get("/users/{user_id}", response_model=AdminUserEnvelope)
def get_admin_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    return {"user": get_admin_or_404(db, user_id)}


@router.put("/users/{user_id}", response_model=AdminUserEnvelope)
def update_admin_user(
    user_id: int,
    user_data: AdminUserUpdate,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    user = get_admin_or_404(db, user_id)

    if user_data.username and user_data.username != user.username:
        taken = db.query(AdminUser).filter(
            AdminUser.username == user_data.username,
            AdminUser.id != user.id
        ).first()
        if taken:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username already exists"
            )
        user.username = user_data.username

    if user_data.role and user_data.role != user.role:
        # Only a superadmin may grant or revoke superadmin
        if "superadmin" in (user_data.role, user.role) and current_user.role != "superadmin":
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized as superadmin"
            )
        user.role = user_data.role

    if user_data.password:
        user.hashed_password = get_password_hash(user_data.password)
    if user_data.is_active is not None:
        user.is_active = user_data.is_active

    user.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(user)
    return {"user": user}


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_admin_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    user = get_admin_or_404(db, user_id)

    if user.id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )
    if user.role == "superadmin" and current_user.role != "superadmin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as superadmin"
        )

    db.delete(user)
    db.commit()
    logger.info(f"'{current_user.username}' deleted account '{user.username}'")
    return {"message": "User deleted successfully"}
