import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from app.core import runtime_config
from app.core.config import settings
from app.core.security import get_current_admin
from app.core.storage import UploadError, public_path, save_upload
from app.models.models import AdminUser
from app.schemas.schemas import UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload", response_model=UploadResponse)
def upload_product_image(
    product_image: Optional[UploadFile] = File(None, alias="productImage"),
    current_user: AdminUser = Depends(get_current_admin)
):
    """Store a product image and return its public path"""
    if product_image is None or not product_image.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded"
        )

    try:
        filename = save_upload(
            product_image,
            prefix="product",
            allowed_types=runtime_config.get_list("system.upload.allowedTypes", settings.allowed_file_types),
            max_size=runtime_config.get_positive_int("system.upload.maxFileSize", settings.MAX_FILE_SIZE)
        )
    except UploadError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    logger.info(f"'{current_user.username}' uploaded {filename}")
    return {
        "message": "File uploaded successfully",
        "filename": filename,
        "url": public_path(filename)
    }
