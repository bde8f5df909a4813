import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.security import require_admin
from app.models.models import AdminUser, Product, ProductRating
from app.schemas.schemas import (
    RatingCreate, RatingResponse, RatingEnvelope, RatingSummary, DistributionBucket, MessageResponse
)
from app.utils.formatting import rating_stars
from app.utils.rating_aggregator import (
    RATING_VALUES, RatingOutcome, get_client_identifier, get_distribution, get_recent_ratings,
    get_summary, submit_rating, delete_rating
)

logger = logging.getLogger(__name__)

router = APIRouter()

RECENT_RATINGS_LIMIT = 10


def rating_to_response(rating: ProductRating) -> RatingResponse:
    return RatingResponse(
        id=rating.id,
        product_id=rating.product_id,
        rating=rating.rating,
        created_at=rating.created_at,
        rating_stars=rating_stars(rating.rating)
    )


def get_product_or_404(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found"
        )
    return product


def _dump(model) -> dict:
    return jsonable_encoder(model.model_dump(by_alias=True))


@router.post("", response_model=RatingEnvelope, status_code=status.HTTP_201_CREATED)
def create_rating(
    rating_data: RatingCreate,
    request: Request,
    db: Session = Depends(get_db)
):
    """Submit a rating; each client may rate a product once"""
    client_identifier = get_client_identifier(request)
    outcome, rating = submit_rating(
        db,
        product_id=rating_data.product_id,
        rating=rating_data.rating,
        client_identifier=client_identifier,
        user_agent=request.headers.get("user-agent")
    )

    if outcome is RatingOutcome.PRODUCT_NOT_FOUND:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found"
        )

    if outcome is RatingOutcome.DUPLICATE:
        logger.info(f"Duplicate rating for product {rating_data.product_id} from {client_identifier}")
        content = {
            "success": False,
            "detail": "You have already rated this product",
            "alreadyRated": True,
        }
        if rating is not None:
            content["existingRating"] = _dump(rating_to_response(rating))
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=content)

    logger.info(f"Rating {rating.rating} submitted for product {rating.product_id}")
    return {
        "message": "Rating submitted successfully",
        "rating": rating_to_response(rating)
    }


@router.get("/{product_id}")
def get_product_ratings(product_id: int, db: Session = Depends(get_db)):
    """Aggregate, distribution and recent ratings for a product"""
    product = get_product_or_404(db, product_id)

    summary = RatingSummary(**get_summary(db, product_id))
    distribution = get_distribution(db, product_id)
    recent = get_recent_ratings(db, product_id, limit=RECENT_RATINGS_LIMIT)

    return {
        "success": True,
        "productId": product.id,
        "productTitle": product.title,
        **_dump(summary),
        "ratingDistribution": {str(value): count for value, count in distribution.items()},
        "recentRatings": [_dump(rating_to_response(r)) for r in recent]
    }


@router.get("/{product_id}/stats")
def get_rating_stats(product_id: int, db: Session = Depends(get_db)):
    """Distribution with a percentage per star value"""
    product = get_product_or_404(db, product_id)

    summary = RatingSummary(**get_summary(db, product_id))
    distribution = get_distribution(db, product_id)
    total = sum(distribution.values())

    buckets = {}
    for value in RATING_VALUES:
        count = distribution.get(value, 0)
        buckets[str(value)] = DistributionBucket(
            count=count,
            percentage=round(count * 100 / total) if total else 0
        ).model_dump()

    return {
        "success": True,
        "productId": product.id,
        "productTitle": product.title,
        **_dump(summary),
        "distribution": buckets
    }


@router.get("/{product_id}/summary")
def get_rating_summary(product_id: str, db: Session = Depends(get_db)):
    """Lightweight summary for product cards; zeros when nothing is known, including unparseable ids"""
    try:
        summary = RatingSummary(**get_summary(db, int(product_id)))
    except ValueError:
        summary = RatingSummary(average_rating=0, total_ratings=0)
    return {"success": True, **_dump(summary)}


@router.delete("/{rating_id}", response_model=MessageResponse)
def remove_rating(
    rating_id: int,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    rating = db.query(ProductRating).filter(ProductRating.id == rating_id).first()
    if not rating:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Rating not found"
        )

    delete_rating(db, rating)
    logger.info(f"Rating {rating_id} deleted by '{current_user.username}'")
    return {"message": "Rating deleted successfully"}
