import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a database session for the duration of a request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Create tables and prime process-wide state.

    Applies the default configuration values, loads the runtime
    configuration snapshot and bootstraps the first superadmin account
    when one is configured.
    """
    # Imported here so every model is registered on Base before create_all
    from app.models import models  # noqa: F401
    from app.core import runtime_config
    from app.core.security import ensure_first_superadmin

    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        # The API still starts so health checks respond; store-backed routes will fail
        logger.error(f"Could not create tables, continuing without database: {e}")
        return

    db = SessionLocal()
    try:
        created = runtime_config.apply_defaults(db)
        if created:
            logger.info(f"Inserted {created} default configuration(s)")
        runtime_config.load(db)
        ensure_first_superadmin(db)
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        db.rollback()
    finally:
        db.close()
