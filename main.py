import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.router import api_router
from app.core.config import settings
from app.core.errors import AppError, app_error_handler
from app.core.logging_config import configure_logging
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.services.storage_service import upload_root
from app import models  # noqa: F401

configure_logging()
logger = logging.getLogger("app.main")

app = FastAPI(title=settings.app_name)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppError, app_error_handler)


@app.on_event("startup")
def on_startup():
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError:
        logger.error("Database initialization failed", exc_info=True)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/health/db")
def health_db():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected"}
    except SQLAlchemyError as exc:
        return {"status": "error", "database": str(exc)}
    finally:
        db.close()


app.include_router(api_router, prefix=settings.api_prefix)
app.mount("/uploads", StaticFiles(directory=upload_root()), name="uploads")
