"""
Process-wide runtime configuration.

Values live in the ``configurations`` table. They are loaded into an
immutable snapshot at startup and reloaded only after an admin write, so
request handlers read a consistent view without hitting the database.
"""
import logging
import threading
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from app.models.models import (
    Configuration, ADMIN_ROLES, BOOKING_STATUSES, DEFAULT_ADMIN_ROLE,
    PRODUCT_CATEGORIES, PRODUCT_CURRENCIES
)

logger = logging.getLogger(__name__)

DEFAULT_TIME_SLOTS = ["09:00", "10:00", "11:00", "12:00", "13:00", "14:00", "15:00", "16:00", "17:00"]
DEFAULT_SERVICE_TYPES = ["consultation", "showroom-visit", "home-measurement", "delivery"]

DEFAULT_CONFIGURATIONS = [
    {
        "key": "product.categories",
        "value": PRODUCT_CATEGORIES,
        "description": "Available product categories",
        "category": "product",
    },
    {
        "key": "product.materials",
        "value": ["Wood", "Metal", "Glass", "Fabric", "Leather", "Plastic", "Ceramic", "Bamboo"],
        "description": "Available product materials",
        "category": "product",
    },
    {
        "key": "product.currencies",
        "value": PRODUCT_CURRENCIES,
        "description": "Supported currencies",
        "category": "product",
    },
    {
        "key": "product.defaultCurrency",
        "value": "RWF",
        "description": "Default currency for products",
        "category": "product",
    },
    {
        "key": "booking.timeSlots",
        "value": DEFAULT_TIME_SLOTS,
        "description": "Available booking time slots",
        "category": "booking",
    },
    {
        "key": "booking.serviceTypes",
        "value": DEFAULT_SERVICE_TYPES,
        "description": "Available booking service types",
        "category": "booking",
    },
    {
        "key": "booking.statuses",
        "value": BOOKING_STATUSES,
        "description": "Available booking statuses",
        "category": "booking",
    },
    {
        "key": "user.adminRoles",
        "value": ADMIN_ROLES,
        "description": "Available admin user roles",
        "category": "user",
    },
    {
        "key": "user.defaultAdminRole",
        "value": DEFAULT_ADMIN_ROLE,
        "description": "Default role for new admin users",
        "category": "user",
    },
    {
        "key": "system.upload.maxFileSize",
        "value": 5 * 1024 * 1024,
        "description": "Maximum file upload size in bytes",
        "category": "system",
    },
    {
        "key": "system.upload.allowedTypes",
        "value": ["image/jpeg", "image/png", "image/gif", "image/webp"],
        "description": "Allowed file types for uploads",
        "category": "system",
    },
    {
        "key": "system.upload.activityMaxFileSize",
        "value": 10 * 1024 * 1024,
        "description": "Maximum file upload size for activities in bytes",
        "category": "system",
    },
    {
        "key": "system.upload.activityAllowedTypes",
        "value": ["image/jpeg", "image/png", "image/gif", "image/webp", "video/mp4", "video/webm"],
        "description": "Allowed file types for activity uploads",
        "category": "system",
    },
    {
        "key": "system.pagination.defaultLimit",
        "value": 12,
        "description": "Default pagination limit",
        "category": "system",
    },
    {
        "key": "system.pagination.adminLimit",
        "value": 10,
        "description": "Default pagination limit for admin pages",
        "category": "system",
    },
    {
        "key": "localization.defaultLanguage",
        "value": "en",
        "description": "Default language code",
        "category": "localization",
    },
    {
        "key": "localization.timezone",
        "value": "UTC",
        "description": "Default timezone",
        "category": "localization",
    },
]

_DEFAULT_VALUES = {c["key"]: c["value"] for c in DEFAULT_CONFIGURATIONS}
_DEFAULT_CATEGORIES = {c["key"]: c["category"] for c in DEFAULT_CONFIGURATIONS}

_lock = threading.Lock()
# (values, categories) swapped together so readers never see a mix of two loads
_state: Tuple[Mapping[str, Any], Mapping[str, str]] = (
    MappingProxyType(dict(_DEFAULT_VALUES)),
    MappingProxyType(dict(_DEFAULT_CATEGORIES)),
)


def apply_defaults(db: Session) -> int:
    """Insert every default configuration whose key is missing. Returns the number inserted."""
    existing = {row[0] for row in db.query(Configuration.key).all()}
    created = 0
    now = datetime.utcnow()
    for config in DEFAULT_CONFIGURATIONS:
        if config["key"] in existing:
            continue
        db.add(Configuration(
            key=config["key"],
            value=config["value"],
            description=config["description"],
            category=config["category"],
            is_active=True,
            created_at=now,
            updated_at=now,
        ))
        created += 1
    if created:
        db.commit()
    return created


def load(db: Session) -> None:
    """Rebuild the snapshot from active rows, falling back to defaults for missing keys"""
    global _state
    rows = db.query(Configuration).filter(Configuration.is_active == True).all()  # noqa: E712

    values: Dict[str, Any] = dict(_DEFAULT_VALUES)
    categories: Dict[str, str] = dict(_DEFAULT_CATEGORIES)
    for row in rows:
        values[row.key] = row.value
        categories[row.key] = row.category

    with _lock:
        _state = (MappingProxyType(values), MappingProxyType(categories))
    logger.info(f"Loaded {len(rows)} active configuration(s)")


def refresh(db: Session) -> None:
    """Reload after an admin write. A failed reload keeps the previous snapshot."""
    try:
        load(db)
    except Exception as e:
        logger.error(f"Configuration reload failed, keeping previous snapshot: {e}")


def snapshot() -> Mapping[str, Any]:
    return _state[0]


def get(key: str, default: Optional[Any] = None) -> Any:
    return _state[0].get(key, default)


def get_by_category(category: str) -> Dict[str, Any]:
    current, categories = _state
    return {k: v for k, v in sorted(current.items()) if categories.get(k) == category}


def get_list(key: str, default: List[Any]) -> List[Any]:
    """Read a list-valued key, ignoring values of the wrong shape"""
    value = get(key, default)
    return list(value) if isinstance(value, (list, tuple)) and value else list(default)


def get_positive_int(key: str, default: int) -> int:
    """Read a count or size key, ignoring anything that is not a positive integer"""
    value = get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return default
    return value


def time_slots() -> List[str]:
    return get_list("booking.timeSlots", DEFAULT_TIME_SLOTS)


def service_types() -> List[str]:
    return get_list("booking.serviceTypes", DEFAULT_SERVICE_TYPES)
