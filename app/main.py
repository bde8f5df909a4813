import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from app.api.v1.api import api_router
from app.core.config import settings
from app.core.database import init_db
from app.core.errors import register_exception_handlers
from app.core.storage import get_upload_dir

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

# Set up CORS; any localhost origin is always allowed for development
allow_all = "*" in settings.cors_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else settings.cors_origins,
    allow_origin_regex=None if allow_all else r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=not allow_all,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Uploaded product images and activity media
app.mount("/uploads", StaticFiles(directory=get_upload_dir()), name="uploads")


# Initialize database on startup
@app.on_event("startup")
def on_startup():
    logger.info(f"Starting {settings.PROJECT_NAME} {settings.VERSION}")
    init_db()


app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
def read_root():
    return {"message": "Welcome to Dream Decol API"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.get(settings.API_V1_STR)
def api_index():
    prefix = settings.API_V1_STR
    return {
        "message": "Dream Decol API",
        "version": settings.VERSION,
        "endpoints": {
            "products": f"{prefix}/products",
            "bookings": f"{prefix}/bookings",
            "ratings": f"{prefix}/ratings",
            "contact": f"{prefix}/contact",
            "activities": f"{prefix}/activities",
            "config": f"{prefix}/config",
            "admin": f"{prefix}/admin",
            "upload": f"{prefix}/upload",
            "health": "/health"
        }
    }
