import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import func, or_, String, cast
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core import runtime_config
from app.core.database import get_db
from app.core.security import get_current_admin
from app.models.models import AdminUser, Product
from app.schemas.schemas import (
    ProductCreate, ProductUpdate, ProductResponse, ProductEnvelope, ProductListResponse,
    CategoryListResponse, MessageResponse
)
from app.utils.formatting import dimensions_string, format_price

logger = logging.getLogger(__name__)

router = APIRouter()

SORT_OPTIONS = {
    "price-asc": Product.price.asc(),
    "price-desc": Product.price.desc(),
    "name": Product.title.asc(),
    "newest": Product.created_at.desc(),
}

RELATED_LIMIT = 4


def product_to_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        title=product.title,
        sku=product.sku,
        price=product.price,
        currency=product.currency,
        short_description=product.short_description,
        description=product.description,
        dimensions=product.dimensions,
        materials=product.materials or [],
        main_image=product.main_image,
        images=product.images or [],
        video_url=product.video_url,
        tags=product.tags or [],
        category=product.category,
        featured=bool(product.featured),
        in_stock=bool(product.in_stock),
        stock_quantity=product.stock_quantity or 0,
        weight=product.weight,
        assembly_required=bool(product.assembly_required),
        warranty=product.warranty,
        care_instructions=product.care_instructions,
        rating=product.rating or 0,
        review_count=product.review_count or 0,
        seo=product.seo,
        status=product.status,
        created_at=product.created_at,
        updated_at=product.updated_at,
        formatted_price=format_price(product.price, product.currency),
        dimensions_string=dimensions_string(product.dimensions)
    )


def category_label(category: str) -> str:
    """'living-room' -> 'Living room'"""
    return category[:1].upper() + category[1:].replace("-", " ")


def get_product_or_404(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found"
        )
    return product


def ensure_unique_sku(db: Session, sku: Optional[str], exclude_id: Optional[int] = None) -> None:
    if not sku:
        return
    query = db.query(Product).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'SKU "{sku}" already exists. Please use a different SKU.'
        )


def commit_product(db: Session, product: Product) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Duplicate sku: "{product.sku}" already exists. Please use a different value.'
        )
    db.refresh(product)


# ==================== PUBLIC ENDPOINTS ====================

@router.get("", response_model=ProductListResponse)
def get_products(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    q: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = "newest",
    db: Session = Depends(get_db)
):
    """Active products with search, category filter, sorting and pagination"""
    limit = limit or runtime_config.get_positive_int("system.pagination.defaultLimit", 12)
    query = db.query(Product).filter(Product.status == "active")

    if q:
        pattern = f"%{q}%"
        query = query.filter(
            or_(
                Product.title.ilike(pattern),
                Product.short_description.ilike(pattern),
                cast(Product.tags, String).ilike(pattern)
            )
        )

    if category and category != "all":
        query = query.filter(Product.category == category)

    total = query.count()
    order = SORT_OPTIONS.get(sort, SORT_OPTIONS["newest"])
    products = query.order_by(order, Product.id.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "products": [product_to_response(p) for p in products],
        "pagination": {
            "current": page,
            "total": (total + limit - 1) // limit,
            "count": len(products),
            "total_count": total
        }
    }


@router.get("/featured", response_model=ProductListResponse)
def get_featured_products(db: Session = Depends(get_db)):
    products = db.query(Product).filter(
        Product.status == "active",
        Product.featured == True  # noqa: E712
    ).order_by(Product.created_at.desc()).all()
    return {"products": [product_to_response(p) for p in products]}


@router.get("/categories", response_model=CategoryListResponse)
def get_categories(db: Session = Depends(get_db)):
    """Active product count per category, most populated first"""
    rows = db.query(Product.category, func.count(Product.id)).filter(
        Product.status == "active"
    ).group_by(Product.category).order_by(func.count(Product.id).desc()).all()

    return {
        "categories": [
            {"id": category, "name": category_label(category), "count": count}
            for category, count in rows
        ]
    }


# ==================== ADMIN ENDPOINTS ====================

@router.get("/admin", response_model=ProductListResponse)
def get_all_products(
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    products = db.query(Product).order_by(Product.created_at.desc()).all()
    return {"products": [product_to_response(p) for p in products]}


@router.post("/admin", response_model=ProductEnvelope, status_code=status.HTTP_201_CREATED)
def create_product(
    product_data: ProductCreate,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    ensure_unique_sku(db, product_data.sku)

    now = datetime.utcnow()
    product = Product(
        **product_data.model_dump(exclude={"dimensions", "seo"}),
        dimensions=product_data.dimensions.model_dump() if product_data.dimensions else None,
        seo=product_data.seo.model_dump() if product_data.seo else None,
        rating=0,
        review_count=0,
        created_at=now,
        updated_at=now
    )
    db.add(product)
    commit_product(db, product)

    logger.info(f"Product {product.id} '{product.title}' created by '{current_user.username}'")
    return {"product": product_to_response(product)}


@router.put("/admin/{product_id}", response_model=ProductEnvelope)
def update_product(
    product_id: int,
    product_data: ProductUpdate,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    product = get_product_or_404(db, product_id)
    ensure_unique_sku(db, product_data.sku, exclude_id=product.id)

    update_data = product_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(product, field, value)

    product.updated_at = datetime.utcnow()
    commit_product(db, product)
    return {"product": product_to_response(product)}


@router.delete("/admin/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    product = get_product_or_404(db, product_id)
    db.delete(product)
    db.commit()
    logger.info(f"Product {product_id} deleted by '{current_user.username}'")
    return {"message": "Product deleted"}


# Path-parameter routes last so they do not shadow the fixed paths above

@router.get("/{product_id}", response_model=ProductEnvelope)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return {"product": product_to_response(get_product_or_404(db, product_id))}


@router.get("/{product_id}/related", response_model=ProductListResponse)
def get_related_products(product_id: int, db: Session = Depends(get_db)):
    product = get_product_or_404(db, product_id)
    related = db.query(Product).filter(
        Product.status == "active",
        Product.category == product.category,
        Product.id != product.id
    ).order_by(Product.created_at.desc()).limit(RELATED_LIMIT).all()
    return {"products": [product_to_response(p) for p in related]}
