from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, Float, Boolean, JSON,
    Index, UniqueConstraint, text
)
from sqlalchemy.orm import relationship
from datetime import datetime
from app.core.database import Base


# Statuses that occupy a booking slot
ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")
BOOKING_STATUSES = ["pending", "confirmed", "completed", "cancelled"]

ADMIN_ROLES = ["superadmin", "admin", "moderator"]
DEFAULT_ADMIN_ROLE = "admin"

PRODUCT_CATEGORIES = [
    "living-room", "bedroom", "dining", "office", "outdoor", "storage", "lighting", "decor"
]
PRODUCT_CURRENCIES = ["USD", "EUR", "RWF"]
PRODUCT_STATUSES = ["active", "inactive", "discontinued"]

CONFIGURATION_CATEGORIES = ["product", "booking", "user", "system", "localization"]

MEDIA_TYPES = ["image", "video"]

_ACTIVE_SLOT_CLAUSE = text("status IN ('pending', 'confirmed')")


class AdminUser(Base):
    """Back-office account. The password hash is never serialized."""
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String(20), nullable=False, default=DEFAULT_ADMIN_ROLE)  # superadmin, admin, moderator
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


class Booking(Base):
    """Showroom/consultation appointment for a (date, time) slot"""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String(20), nullable=False)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    time = Column(String(5), nullable=False)  # HH:MM, one of booking.timeSlots
    service_type = Column(String(50), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_bookings_date_time", "date", "time"),
        Index("ix_bookings_status", "status"),
        # At most one pending/confirmed booking per slot, enforced by the store
        Index(
            "uq_bookings_active_slot", "date", "time",
            unique=True,
            postgresql_where=_ACTIVE_SLOT_CLAUSE,
            sqlite_where=_ACTIVE_SLOT_CLAUSE,
        ),
    )


class Product(Base):
    """Catalog entry"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    sku = Column(String, unique=True, nullable=True)
    price = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="RWF")
    short_description = Column(String(500), nullable=False)
    description = Column(Text, nullable=False)
    dimensions = Column(JSON, nullable=True)  # {"width": ..., "depth": ..., "height": ...}
    materials = Column(JSON, default=list)
    main_image = Column(Text, nullable=False)
    images = Column(JSON, default=list)
    video_url = Column(String, nullable=True)
    tags = Column(JSON, default=list)
    category = Column(String(50), nullable=False, index=True)
    featured = Column(Boolean, default=False, index=True)
    in_stock = Column(Boolean, default=True)
    stock_quantity = Column(Integer, default=0)
    weight = Column(String, nullable=True)
    assembly_required = Column(Boolean, default=False)
    warranty = Column(String, nullable=True)
    care_instructions = Column(Text, nullable=True)
    # Denormalized from product_ratings
    rating = Column(Float, default=0)
    review_count = Column(Integer, default=0)
    seo = Column(JSON, nullable=True)  # {"meta_title": ..., "meta_description": ...}
    status = Column(String(20), nullable=False, default="active", index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow)

    ratings = relationship("ProductRating", back_populates="product", cascade="all, delete-orphan")


class ProductRating(Base):
    """One star rating per client per product"""
    __tablename__ = "product_ratings"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)  # 1-5
    client_identifier = Column(String, nullable=False)  # normalized client IP
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    product = relationship("Product", back_populates="ratings")

    __table_args__ = (
        UniqueConstraint("product_id", "client_identifier", name="uq_product_ratings_product_client"),
    )


class Configuration(Base):
    """Runtime-tunable key/value setting"""
    __tablename__ = "configurations"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, index=True, nullable=False)
    value = Column(JSON, nullable=False)
    description = Column(String(500), nullable=True)
    category = Column(String(20), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


class Activity(Base):
    """Media post shown on the activities page"""
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    media_type = Column(String(10), nullable=False, default="image")
    media_url = Column(Text, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class ContactMessage(Base):
    """Message sent from the storefront contact form"""
    __tablename__ = "contact_messages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    message = Column(Text, nullable=False)
    product_ref = Column(String, nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
