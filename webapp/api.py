from fastapi import APIRouter

from webapp import auth, categories, words

router = APIRouter(prefix="/api")

router.include_router(auth.router)
router.include_router(categories.router)
router.include_router(words.router)
