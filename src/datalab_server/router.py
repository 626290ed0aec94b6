from fastapi import APIRouter

from datalab_server.routers.exporter import router as exporter_router
from datalab_server.routers.importer import router as importer_router

router = APIRouter()
router.include_router(importer_router)
router.include_router(exporter_router)
