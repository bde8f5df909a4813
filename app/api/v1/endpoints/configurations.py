import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core import runtime_config
from app.core.database import get_db
from app.core.security import get_current_admin, require_admin, require_superadmin
from app.models.models import AdminUser, Configuration
from app.schemas.schemas import (
    ConfigurationCreate, ConfigurationUpdate, ConfigurationEnvelope, ConfigurationListResponse,
    PublicConfigurationResponse, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_configuration_or_404(db: Session, key: str, active_only: bool = False) -> Configuration:
    query = db.query(Configuration).filter(Configuration.key == key)
    if active_only:
        query = query.filter(Configuration.is_active == True)  # noqa: E712
    configuration = query.first()
    if not configuration:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Configuration not found"
        )
    return configuration


@router.get("", response_model=ConfigurationListResponse)
def get_configurations(
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    query = db.query(Configuration).filter(Configuration.is_active == True)  # noqa: E712
    if category:
        query = query.filter(Configuration.category == category)
    return {"configurations": query.order_by(Configuration.category, Configuration.key).all()}


@router.get("/public/{category}", response_model=PublicConfigurationResponse)
def get_public_configurations(category: str):
    """Keys and values of one category as the running app sees them, for the storefront"""
    values = runtime_config.get_by_category(category)
    return {
        "category": category,
        "configurations": [{"key": key, "value": value} for key, value in values.items()]
    }


@router.post("/reset", response_model=MessageResponse)
def reset_configurations(
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_superadmin)
):
    """Re-insert any default configuration that has been deleted"""
    created = runtime_config.apply_defaults(db)
    runtime_config.refresh(db)
    logger.info(f"'{current_user.username}' restored {created} default configuration(s)")
    return {"message": f"Restored {created} default configuration(s)"}


@router.get("/{key}", response_model=ConfigurationEnvelope)
def get_configuration(
    key: str,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    return {"configuration": get_configuration_or_404(db, key, active_only=True)}


@router.post("", response_model=ConfigurationEnvelope, status_code=status.HTTP_201_CREATED)
def create_configuration(
    config_data: ConfigurationCreate,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    if db.query(Configuration).filter(Configuration.key == config_data.key).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Configuration key already exists"
        )

    now = datetime.utcnow()
    configuration = Configuration(
        key=config_data.key,
        value=config_data.value,
        description=config_data.description,
        category=config_data.category,
        is_active=True,
        created_at=now,
        updated_at=now
    )
    db.add(configuration)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Configuration key already exists"
        )
    db.refresh(configuration)
    runtime_config.refresh(db)

    logger.info(f"Configuration '{configuration.key}' created by '{current_user.username}'")
    return {
        "message": "Configuration created successfully",
        "configuration": configuration
    }


@router.put("/{key}", response_model=ConfigurationEnvelope)
def update_configuration(
    key: str,
    config_data: ConfigurationUpdate,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    configuration = get_configuration_or_404(db, key)

    update_data = config_data.model_dump(exclude_unset=True)
    configuration.value = update_data.pop("value")
    for field, value in update_data.items():
        if value is not None:
            setattr(configuration, field, value)

    configuration.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(configuration)
    runtime_config.refresh(db)

    logger.info(f"Configuration '{key}' updated by '{current_user.username}'")
    return {
        "message": "Configuration updated successfully",
        "configuration": configuration
    }


@router.delete("/{key}", response_model=MessageResponse)
def delete_configuration(
    key: str,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    configuration = get_configuration_or_404(db, key)
    db.delete(configuration)
    db.commit()
    runtime_config.refresh(db)

    logger.info(f"Configuration '{key}' deleted by '{current_user.username}'")
    return {"message": "Configuration deleted successfully"}
