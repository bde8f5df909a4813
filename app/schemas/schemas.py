from __future__ import annotations
import re
from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Any, Dict, Optional, List

from app.models.models import (
    ADMIN_ROLES, BOOKING_STATUSES, CONFIGURATION_CATEGORIES, MEDIA_TYPES,
    PRODUCT_CATEGORIES, PRODUCT_CURRENCIES, PRODUCT_STATUSES
)
from app.core import runtime_config
from app.utils.slot_manager import validate_booking_date


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, which is what the storefront sends"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


SKU_PATTERN = re.compile(r"^[A-Z0-9-]+$")
HTTP_URL_PATTERN = re.compile(r"^https?://.+")
VIDEO_URL_PATTERN = re.compile(r"^https?://(www\.)?(youtube\.com/(embed/|watch\?v=)|vimeo\.com/)")
YOUTUBE_WATCH_PATTERN = re.compile(r"youtube\.com/watch\?(?:.*&)?v=([\w-]+)")


def _check_choice(value: str, choices: List[str], label: str) -> str:
    if value not in choices:
        raise ValueError(f"Invalid {label}: {value}. Valid values are: {', '.join(choices)}")
    return value


def is_media_url(value: str, allow_video: bool = False) -> bool:
    """Absolute URL, local upload path, or inline base64 data"""
    if HTTP_URL_PATTERN.match(value) or value.startswith("/uploads/") or value.startswith("data:image/"):
        return True
    return allow_video and value.startswith("data:video/")


def normalize_video_url(value: Optional[str]) -> Optional[str]:
    """Convert YouTube watch URLs to embed URLs and reject other hosts"""
    if not value:
        return None
    value = value.strip()
    match = YOUTUBE_WATCH_PATTERN.search(value)
    if match:
        value = f"https://www.youtube.com/embed/{match.group(1)}"
    if not VIDEO_URL_PATTERN.match(value):
        raise ValueError("Video URL must be a valid YouTube or Vimeo URL")
    return value


class Pagination(CamelModel):
    current: int
    total: int
    count: int
    total_count: int


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# ==================== ADMIN USERS ====================

class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AdminUserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    password: str = Field(..., min_length=6)
    role: Optional[str] = None

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters long")
        return v

    @field_validator("role")
    @classmethod
    def check_role(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, ADMIN_ROLES, "role") if v is not None else v


class AdminUserUpdate(CamelModel):
    username: Optional[str] = Field(None, min_length=3, max_length=30)
    password: Optional[str] = Field(None, min_length=6)
    role: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("role")
    @classmethod
    def check_role(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, ADMIN_ROLES, "role") if v is not None else v


class AdminUserResponse(CamelModel):
    id: int
    username: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
    user: AdminUserResponse


class AdminUserEnvelope(BaseModel):
    success: bool = True
    user: AdminUserResponse


class AdminUserListResponse(BaseModel):
    success: bool = True
    count: int
    users: List[AdminUserResponse]


# ==================== BOOKINGS ====================

class BookingCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=10, max_length=20)
    date: str
    time: str
    service_type: str
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("name", "phone", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("notes", mode="before")
    @classmethod
    def strip_notes(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("date")
    @classmethod
    def check_date(cls, v: str) -> str:
        return validate_booking_date(v)

    @field_validator("time")
    @classmethod
    def check_time(cls, v: str) -> str:
        return _check_choice(v, runtime_config.time_slots(), "time slot")

    @field_validator("service_type")
    @classmethod
    def check_service_type(cls, v: str) -> str:
        return _check_choice(v, runtime_config.service_types(), "service type")


class BookingUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=10, max_length=20)
    date: Optional[str] = None
    time: Optional[str] = None
    service_type: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)
    status: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("date")
    @classmethod
    def check_date(cls, v: Optional[str]) -> Optional[str]:
        return validate_booking_date(v) if v is not None else v

    @field_validator("time")
    @classmethod
    def check_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, runtime_config.time_slots(), "time slot") if v is not None else v

    @field_validator("service_type")
    @classmethod
    def check_service_type(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, runtime_config.service_types(), "service type") if v is not None else v

    @field_validator("status")
    @classmethod
    def check_status(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, BOOKING_STATUSES, "status") if v is not None else v


class BookingResponse(CamelModel):
    id: int
    name: str
    email: str
    phone: str
    date: str
    time: str
    service_type: str
    notes: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    formatted_date: str
    formatted_time: str


class BookingEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    booking: BookingResponse


class BookingListResponse(BaseModel):
    success: bool = True
    bookings: List[BookingResponse]
    pagination: Pagination


class AvailabilityResponse(CamelModel):
    success: bool = True
    date: str
    available_slots: List[str]
    booked_slots: List[str]


# ==================== PRODUCTS ====================

class Dimensions(BaseModel):
    width: Optional[str] = None
    depth: Optional[str] = None
    height: Optional[str] = None


class Seo(CamelModel):
    meta_title: Optional[str] = Field(None, max_length=60)
    meta_description: Optional[str] = Field(None, max_length=160)


class _ProductFieldChecks(CamelModel):
    """Field normalization shared by create and update payloads"""

    @field_validator("sku", mode="before", check_fields=False)
    @classmethod
    def check_sku(cls, v):
        if v is None or v == "":
            return None
        v = str(v).strip().upper()
        if not SKU_PATTERN.match(v):
            raise ValueError("SKU must contain only uppercase letters, numbers, and hyphens")
        return v

    @field_validator("category", mode="before", check_fields=False)
    @classmethod
    def check_category(cls, v):
        if v is None:
            return v
        return _check_choice(str(v).strip().lower(), PRODUCT_CATEGORIES, "category")

    @field_validator("currency", check_fields=False)
    @classmethod
    def check_currency(cls, v):
        return _check_choice(v, PRODUCT_CURRENCIES, "currency") if v is not None else v

    @field_validator("status", check_fields=False)
    @classmethod
    def check_status(cls, v):
        return _check_choice(v, PRODUCT_STATUSES, "status") if v is not None else v

    @field_validator("tags", check_fields=False)
    @classmethod
    def normalize_tags(cls, v):
        return [t.strip().lower() for t in v if t and t.strip()] if v is not None else v

    @field_validator("materials", check_fields=False)
    @classmethod
    def strip_materials(cls, v):
        return [m.strip() for m in v if m and m.strip()] if v is not None else v

    @field_validator("main_image", check_fields=False)
    @classmethod
    def check_main_image(cls, v):
        if v is not None and not is_media_url(v):
            raise ValueError("Main image must be a valid URL, upload path, or base64 data")
        return v

    @field_validator("images", check_fields=False)
    @classmethod
    def check_images(cls, v):
        if v is None:
            return v
        for image in v:
            if image != "" and not is_media_url(image):
                raise ValueError("Each image must be a valid URL, upload path, or base64 data")
        return v

    @field_validator("video_url", check_fields=False)
    @classmethod
    def check_video_url(cls, v):
        return normalize_video_url(v)


class ProductCreate(_ProductFieldChecks):
    title: str = Field(..., min_length=2, max_length=200)
    sku: Optional[str] = None
    price: float = Field(..., ge=0)
    currency: str = "RWF"
    short_description: str = Field(..., min_length=10, max_length=500)
    description: str = Field(..., min_length=20, max_length=5000)
    dimensions: Optional[Dimensions] = None
    materials: List[str] = []
    main_image: str
    images: List[str] = []
    video_url: Optional[str] = None
    tags: List[str] = []
    category: str
    featured: bool = False
    in_stock: bool = True
    stock_quantity: int = Field(0, ge=0)
    weight: Optional[str] = None
    assembly_required: bool = False
    warranty: Optional[str] = None
    care_instructions: Optional[str] = Field(None, max_length=1000)
    seo: Optional[Seo] = None
    status: str = "active"


class ProductUpdate(_ProductFieldChecks):
    title: Optional[str] = Field(None, min_length=2, max_length=200)
    sku: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    short_description: Optional[str] = Field(None, min_length=10, max_length=500)
    description: Optional[str] = Field(None, min_length=20, max_length=5000)
    dimensions: Optional[Dimensions] = None
    materials: Optional[List[str]] = None
    main_image: Optional[str] = None
    images: Optional[List[str]] = None
    video_url: Optional[str] = None
    tags: Optional[List[str]] = None
    category: Optional[str] = None
    featured: Optional[bool] = None
    in_stock: Optional[bool] = None
    stock_quantity: Optional[int] = Field(None, ge=0)
    weight: Optional[str] = None
    assembly_required: Optional[bool] = None
    warranty: Optional[str] = None
    care_instructions: Optional[str] = Field(None, max_length=1000)
    seo: Optional[Seo] = None
    status: Optional[str] = None


class ProductResponse(CamelModel):
    id: int
    title: str
    sku: Optional[str] = None
    price: float
    currency: str
    short_description: str
    description: str
    dimensions: Optional[Dimensions] = None
    materials: List[str] = []
    main_image: str
    images: List[str] = []
    video_url: Optional[str] = None
    tags: List[str] = []
    category: str
    featured: bool
    in_stock: bool
    stock_quantity: int
    weight: Optional[str] = None
    assembly_required: bool
    warranty: Optional[str] = None
    care_instructions: Optional[str] = None
    rating: float
    review_count: int
    seo: Optional[Seo] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    formatted_price: str
    dimensions_string: Optional[str] = None


class ProductEnvelope(BaseModel):
    success: bool = True
    product: ProductResponse


class ProductListResponse(BaseModel):
    success: bool = True
    products: List[ProductResponse]
    pagination: Optional[Pagination] = None


class CategoryCount(BaseModel):
    id: str
    name: str
    count: int


class CategoryListResponse(BaseModel):
    success: bool = True
    categories: List[CategoryCount]


# ==================== RATINGS ====================

class RatingCreate(CamelModel):
    product_id: int
    rating: int = Field(..., ge=1, le=5)

    @field_validator("rating", mode="before")
    @classmethod
    def reject_boolean(cls, v):
        if isinstance(v, bool):
            raise ValueError("Rating must be a whole number between 1 and 5")
        return v


class RatingResponse(CamelModel):
    id: int
    product_id: int
    rating: int
    created_at: Optional[datetime] = None
    rating_stars: str


class RatingEnvelope(BaseModel):
    success: bool = True
    message: str
    rating: RatingResponse


class RatingSummary(CamelModel):
    average_rating: float = 0
    total_ratings: int = 0


class DistributionBucket(BaseModel):
    count: int = 0
    percentage: int = 0


# ==================== CONFIGURATION ====================

class ConfigurationCreate(CamelModel):
    key: str = Field(..., min_length=1)
    value: Any
    description: Optional[str] = Field(None, max_length=500)
    category: str

    @field_validator("key")
    @classmethod
    def strip_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Key is required")
        return v

    @field_validator("value")
    @classmethod
    def require_value(cls, v):
        if v is None:
            raise ValueError("Value is required")
        return v

    @field_validator("category")
    @classmethod
    def check_category(cls, v: str) -> str:
        return _check_choice(v.strip(), CONFIGURATION_CATEGORIES, "category")


class ConfigurationUpdate(CamelModel):
    value: Any
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("value")
    @classmethod
    def require_value(cls, v):
        if v is None:
            raise ValueError("Value is required")
        return v

    @field_validator("category")
    @classmethod
    def check_category(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, CONFIGURATION_CATEGORIES, "category") if v is not None else v


class ConfigurationResponse(CamelModel):
    key: str
    value: Any
    description: Optional[str] = None
    category: str
    is_active: bool
    updated_at: Optional[datetime] = None


class ConfigurationEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    configuration: ConfigurationResponse


class ConfigurationListResponse(BaseModel):
    success: bool = True
    configurations: List[ConfigurationResponse]


class PublicConfigurationResponse(BaseModel):
    success: bool = True
    category: str
    configurations: List[Dict[str, Any]]


# ==================== CONTACT MESSAGES ====================

class ContactMessageCreate(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    message: str = Field(..., min_length=10)
    product_ref: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class ContactMessageResponse(CamelModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    message: str
    product_ref: Optional[str] = None
    read: bool
    created_at: Optional[datetime] = None


class ContactMessageEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    contact_message: ContactMessageResponse = Field(..., serialization_alias="contactMessage")


class ContactMessageListResponse(BaseModel):
    success: bool = True
    count: int
    messages: List[ContactMessageResponse]


# ==================== ACTIVITIES ====================

class ActivityUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    media_type: Optional[str] = None
    media_url: Optional[str] = None
    date: Optional[datetime] = None

    @field_validator("media_type")
    @classmethod
    def check_media_type(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, MEDIA_TYPES, "media type") if v is not None else v

    @field_validator("media_url")
    @classmethod
    def check_media_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_media_url(v, allow_video=True):
            raise ValueError("Media URL must be a valid URL, upload path, or base64 data")
        return v


class ActivityResponse(CamelModel):
    id: int
    title: str
    description: str
    media_type: str
    media_url: str
    date: datetime
    created_at: Optional[datetime] = None


class ActivityEnvelope(BaseModel):
    success: bool = True
    activity: ActivityResponse


class ActivityListResponse(BaseModel):
    success: bool = True
    activities: List[ActivityResponse]


# ==================== UPLOADS ====================

class UploadResponse(BaseModel):
    message: str
    filename: str
    url: str
