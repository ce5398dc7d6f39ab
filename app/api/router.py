from fastapi import APIRouter

from app.api.routes.ai import router as ai_router
from app.api.routes.answers import router as answers_router
from app.api.routes.auth import router as auth_router
from app.api.routes.catalog import router as catalog_router
from app.api.routes.email import router as email_router
from app.api.routes.interviews import router as interviews_router
from app.api.routes.uploads import router as uploads_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(catalog_router)
api_router.include_router(interviews_router)
api_router.include_router(answers_router)
api_router.include_router(uploads_router)
api_router.include_router(ai_router)
api_router.include_router(email_router)
