import logging
from datetime import datetime, timedelta
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, File, Form, Query, UploadFile
from sqlalchemy import or_
from sqlalchemy.orm import Session
from app.core import runtime_config
from app.core.config import settings
from app.core.database import get_db
from app.core.security import get_current_admin
from app.core.storage import UploadError, delete_local_upload, public_path, save_upload
from app.models.models import Activity, AdminUser, MEDIA_TYPES
from app.schemas.schemas import (
    ActivityUpdate, ActivityEnvelope, ActivityListResponse, MessageResponse, is_media_url
)

logger = logging.getLogger(__name__)

# Mounted at /activities
public_router = APIRouter()
# Mounted at /admin/activities
admin_router = APIRouter()

DEFAULT_MEDIA_URL = "https://images.unsplash.com/photo-1618219908412-a29a1bb7b86e?w=800&h=600&fit=crop"
DEFAULT_RANGE_DAYS = 30


def parse_activity_date(value: str, field: str) -> datetime:
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).replace(tzinfo=None)
    except (AttributeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {field}: expected an ISO 8601 date"
        )


def get_activity_or_404(db: Session, activity_id: int) -> Activity:
    activity = db.query(Activity).filter(Activity.id == activity_id).first()
    if not activity:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Activity not found"
        )
    return activity


def all_activities(db: Session):
    return db.query(Activity).order_by(Activity.date.desc(), Activity.id.desc()).all()


# ==================== PUBLIC ENDPOINTS ====================

@public_router.get("", response_model=ActivityListResponse)
def get_activities(db: Session = Depends(get_db)):
    return {"activities": all_activities(db)}


@public_router.get("/range", response_model=ActivityListResponse)
def get_activities_by_range(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    db: Session = Depends(get_db)
):
    """Activities dated within [startDate, endDate], defaulting to the last 30 days"""
    end = parse_activity_date(end_date, "endDate") if end_date else datetime.utcnow()
    start = parse_activity_date(start_date, "startDate") if start_date else datetime.utcnow() - timedelta(days=DEFAULT_RANGE_DAYS)

    activities = db.query(Activity).filter(
        Activity.date >= start,
        Activity.date <= end
    ).order_by(Activity.date.desc(), Activity.id.desc()).all()
    return {"activities": activities}


@public_router.get("/search", response_model=ActivityListResponse)
def search_activities(query: Optional[str] = None, db: Session = Depends(get_db)):
    if not query or not query.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search query is required"
        )

    pattern = f"%{query.strip()}%"
    activities = db.query(Activity).filter(
        or_(Activity.title.ilike(pattern), Activity.description.ilike(pattern))
    ).order_by(Activity.date.desc(), Activity.id.desc()).all()
    return {"activities": activities}


# ==================== ADMIN ENDPOINTS ====================

@admin_router.get("", response_model=ActivityListResponse)
def get_admin_activities(
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    return {"activities": all_activities(db)}


@admin_router.post("", response_model=ActivityEnvelope, status_code=status.HTTP_201_CREATED)
def create_activity(
    title: str = Form(..., min_length=2, max_length=100),
    description: str = Form(..., min_length=10, max_length=1000),
    date: str = Form(...),
    media_type: Optional[str] = Form(None, alias="mediaType"),
    media_url: Optional[str] = Form(None, alias="mediaUrl"),
    media_file: Optional[UploadFile] = File(None, alias="mediaFile"),
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    """
    Create an activity.

    Media comes from, in order of preference: an uploaded ``mediaFile``,
    a ``mediaUrl`` form field, or a default stock image.
    """
    activity_date = parse_activity_date(date, "date")
    media_type = media_type or "image"
    if media_type not in MEDIA_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid media type: {media_type}. Valid values are: {', '.join(MEDIA_TYPES)}"
        )

    if media_file is not None and media_file.filename:
        prefix = "activity-image" if (media_file.content_type or "").startswith("image/") else "activity-video"
        try:
            filename = save_upload(
                media_file,
                prefix=prefix,
                allowed_types=runtime_config.get_list(
                    "system.upload.activityAllowedTypes", settings.activity_allowed_file_types
                ),
                max_size=runtime_config.get_positive_int("system.upload.activityMaxFileSize", settings.ACTIVITY_MAX_FILE_SIZE)
            )
        except UploadError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e)
            )
        resolved_url = public_path(filename)
        if prefix == "activity-video":
            media_type = "video"
    elif media_url:
        if not is_media_url(media_url, allow_video=True):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Media URL must be a valid URL, upload path, or base64 data"
            )
        resolved_url = media_url
    else:
        resolved_url = DEFAULT_MEDIA_URL

    activity = Activity(
        title=title.strip(),
        description=description.strip(),
        media_type=media_type,
        media_url=resolved_url,
        date=activity_date,
        created_at=datetime.utcnow()
    )
    db.add(activity)
    db.commit()
    db.refresh(activity)

    logger.info(f"Activity {activity.id} '{activity.title}' created by '{current_user.username}'")
    return {"activity": activity}


@admin_router.put("/{activity_id}", response_model=ActivityEnvelope)
def update_activity(
    activity_id: int,
    activity_data: ActivityUpdate,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    activity = get_activity_or_404(db, activity_id)

    update_data = activity_data.model_dump(exclude_unset=True, exclude_none=True)
    if "date" in update_data:
        update_data["date"] = update_data["date"].replace(tzinfo=None)
    for field, value in update_data.items():
        setattr(activity, field, value)

    db.commit()
    db.refresh(activity)
    return {"activity": activity}


@admin_router.delete("/{activity_id}", response_model=MessageResponse)
def delete_activity(
    activity_id: int,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    activity = get_activity_or_404(db, activity_id)

    if delete_local_upload(activity.media_url):
        logger.info(f"Removed media file {activity.media_url}")

    db.delete(activity)
    db.commit()
    return {"message": "Activity deleted"}
