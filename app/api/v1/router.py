from fastapi import APIRouter
from api.v1.routes.languages import router as languages_router
from api.v1.routes.translations import router as translations_router
from api.v1.routes.ui_translations import router as ui_translations_router


# Main v1 router (includes all endpoints)
router = APIRouter()
router.include_router(languages_router)
router.include_router(translations_router)
router.include_router(ui_translations_router)
