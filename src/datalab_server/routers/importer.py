from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from datalab_server.dependencies import get_db_session
from datalab_server.schemas.importer import ImportConversationsRequest, ImportItemsRequest, ImportResponse
from datalab_server.services.importer import import_conversations, import_items

router = APIRouter(prefix="/v1", tags=["import"])


@router.post("/import/conversations", response_model=ImportResponse)
async def import_conversations_endpoint(
    request: ImportConversationsRequest,
    session: AsyncSession = Depends(get_db_session),
) -> ImportResponse:
    return await import_conversations(session, request)


@router.post("/import/items", response_model=ImportResponse)
async def import_items_endpoint(
    request: ImportItemsRequest,
    session: AsyncSession = Depends(get_db_session),
) -> ImportResponse:
    return await import_items(session, request)
