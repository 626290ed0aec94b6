import logging

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from datalab_server.models import Conversation, ConversationMessage, Dataset, DatasetItem, DatasetKind
from datalab_server.schemas.importer import ImportConversationsRequest, ImportItemsRequest, ImportResponse
from datalab_server.services.jsonl import dumps

logger = logging.getLogger(__name__)


async def ensure_dataset(session: AsyncSession, name: str, kind: DatasetKind, description: str = "") -> Dataset:
    result = await session.execute(select(Dataset).where(col(Dataset.name) == name))
    dataset = result.scalar_one_or_none()

    if dataset is None:
        dataset = Dataset(name=name, description=description, kind=kind.value)
        session.add(dataset)
        await session.flush()
        logger.info(f"Created {kind} dataset {name!r} ({dataset.id})")
        return dataset

    if dataset.kind.lower() != kind.value:
        raise ValueError(f"Dataset {name!r} holds {dataset.kind}, cannot import {kind}")
    return dataset


async def _clear_conversations(session: AsyncSession, dataset_id: int) -> None:
    conversation_ids = select(Conversation.id).where(col(Conversation.dataset_id) == dataset_id)
    await session.execute(
        delete(ConversationMessage).where(col(ConversationMessage.conversation_id).in_(conversation_ids))
    )
    await session.execute(delete(Conversation).where(col(Conversation.dataset_id) == dataset_id))


async def import_conversations(session: AsyncSession, request: ImportConversationsRequest) -> ImportResponse:
    dataset = await ensure_dataset(session, request.dataset, DatasetKind.CONVERSATIONS, request.description)
    assert dataset.id is not None

    if request.replace:
        await _clear_conversations(session, dataset.id)

    for record in request.conversations:
        conversation = Conversation(
            dataset_id=dataset.id,
            split=record.split,
            status=record.status,
            tags=record.tags,
            source=record.source.strip(),
            notes=record.notes.strip(),
        )
        session.add(conversation)
        await session.flush()
        assert conversation.id is not None

        for idx, message in enumerate(record.messages):
            meta = message.meta if message.meta is not None else {}
            # Raises ValueError on NaN and Infinity, which have no JSON form.
            dumps(meta)
            session.add(
                ConversationMessage(
                    conversation_id=conversation.id,
                    idx=idx,
                    role=message.role,
                    name=message.name,
                    content=message.content,
                    meta=meta,
                )
            )

    logger.info(f"Imported {len(request.conversations)} conversations into dataset {dataset.id}")
    return ImportResponse(dataset_id=dataset.id, imported=len(request.conversations))


async def import_items(session: AsyncSession, request: ImportItemsRequest) -> ImportResponse:
    dataset = await ensure_dataset(session, request.dataset, DatasetKind.ITEMS, request.description)
    assert dataset.id is not None

    if request.replace:
        await session.execute(delete(DatasetItem).where(col(DatasetItem.dataset_id) == dataset.id))

    for item in request.items:
        session.add(DatasetItem(dataset_id=dataset.id, data=dumps(item.data), source_ref=item.source_ref))

    logger.info(f"Imported {len(request.items)} items into dataset {dataset.id}")
    return ImportResponse(dataset_id=dataset.id, imported=len(request.items))
