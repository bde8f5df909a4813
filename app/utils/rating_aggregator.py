"""
Product rating submission and aggregation.

Each client (identified by its normalized IP address) may rate a product
once. The existence check gives a fast answer; the unique constraint on
(product_id, client_identifier) settles races. Read paths never raise:
any failure degrades to an empty aggregate.
"""
import enum
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from fastapi import Request
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.models import Product, ProductRating

logger = logging.getLogger(__name__)

IPV4_MAPPED_PREFIX = "::ffff:"
RATING_VALUES = (1, 2, 3, 4, 5)


class RatingOutcome(enum.Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    PRODUCT_NOT_FOUND = "product_not_found"


def normalize_client_ip(address: Optional[str]) -> str:
    if not address:
        return "unknown"
    address = address.strip()
    if address.lower().startswith(IPV4_MAPPED_PREFIX):
        address = address[len(IPV4_MAPPED_PREFIX):]
    return address or "unknown"


def get_client_identifier(request: Request) -> str:
    """Client IP, preferring proxy headers over the socket peer"""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return normalize_client_ip(first)

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return normalize_client_ip(real_ip)

    return normalize_client_ip(request.client.host if request.client else None)


def round_rating(value: float) -> float:
    """One decimal place, halves rounded up (4.65 -> 4.7)"""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def find_existing_rating(db: Session, product_id: int, client_identifier: str) -> Optional[ProductRating]:
    return db.query(ProductRating).filter(
        ProductRating.product_id == product_id,
        ProductRating.client_identifier == client_identifier
    ).first()


def _aggregate(db: Session, product_id: int) -> Dict[str, float]:
    total, count = db.query(
        func.sum(ProductRating.rating),
        func.count(ProductRating.id)
    ).filter(ProductRating.product_id == product_id).one()
    count = count or 0
    if not count:
        return {"average_rating": 0, "total_ratings": 0}
    return {"average_rating": round_rating(float(total) / count), "total_ratings": int(count)}


def _sync_product_rating(db: Session, product: Product) -> None:
    aggregate = _aggregate(db, product.id)
    product.rating = aggregate["average_rating"]
    product.review_count = aggregate["total_ratings"]
    product.updated_at = datetime.utcnow()


def submit_rating(
    db: Session,
    product_id: int,
    rating: int,
    client_identifier: str,
    user_agent: Optional[str] = None
) -> Tuple[RatingOutcome, Optional[ProductRating]]:
    """
    Record a rating unless this client already rated the product.

    Returns:
        (CREATED, new rating), (DUPLICATE, existing rating or None when the
        store constraint caught a race), or (PRODUCT_NOT_FOUND, None)
    """
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        return RatingOutcome.PRODUCT_NOT_FOUND, None

    existing = find_existing_rating(db, product_id, client_identifier)
    if existing:
        return RatingOutcome.DUPLICATE, existing

    db_rating = ProductRating(
        product_id=product_id,
        rating=rating,
        client_identifier=client_identifier,
        user_agent=user_agent,
        created_at=datetime.utcnow()
    )
    db.add(db_rating)
    try:
        db.flush()
        _sync_product_rating(db, product)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Concurrent duplicate rating rejected for product {product_id} from {client_identifier}")
        return RatingOutcome.DUPLICATE, find_existing_rating(db, product_id, client_identifier)

    db.refresh(db_rating)
    return RatingOutcome.CREATED, db_rating


def delete_rating(db: Session, rating: ProductRating) -> None:
    product = rating.product
    db.delete(rating)
    db.flush()
    if product is not None:
        _sync_product_rating(db, product)
    db.commit()


def get_summary(db: Session, product_id: int) -> Dict[str, float]:
    """Average (one decimal) and count. Never raises."""
    try:
        return _aggregate(db, product_id)
    except Exception as e:
        logger.error(f"Rating summary failed for product {product_id}: {e}")
        db.rollback()
        return {"average_rating": 0, "total_ratings": 0}


def get_distribution(db: Session, product_id: int) -> Dict[int, int]:
    """Count per star value 1..5, missing values reported as zero. Never raises."""
    distribution = {value: 0 for value in RATING_VALUES}
    try:
        rows = db.query(
            ProductRating.rating,
            func.count(ProductRating.id)
        ).filter(
            ProductRating.product_id == product_id
        ).group_by(ProductRating.rating).all()
    except Exception as e:
        logger.error(f"Rating distribution failed for product {product_id}: {e}")
        db.rollback()
        return distribution

    for value, count in rows:
        if value in distribution:
            distribution[value] = count
    return distribution


def get_recent_ratings(db: Session, product_id: int, limit: int = 10) -> List[ProductRating]:
    try:
        return db.query(ProductRating).filter(
            ProductRating.product_id == product_id
        ).order_by(ProductRating.created_at.desc(), ProductRating.id.desc()).limit(limit).all()
    except Exception as e:
        logger.error(f"Recent ratings lookup failed for product {product_id}: {e}")
        db.rollback()
        return []
