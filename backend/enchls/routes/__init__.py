# enchls/routes/__init__.py
from fastapi import APIRouter
from .videos import router as videos_router

router = APIRouter()
router.include_router(videos_router)
