from collections.abc import AsyncIterator
from typing import NamedTuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select
from sqlmodel.sql.expression import SelectOfScalar

from datalab_server.models import Conversation, ConversationMessage, Dataset, DatasetItem

SPLIT_ALL = "all"


class ConversationRecord(NamedTuple):
    conversation: Conversation
    messages: list[ConversationMessage]


async def get_dataset_kind(session: AsyncSession, dataset_id: int) -> str | None:
    result = await session.execute(select(Dataset.kind).where(col(Dataset.id) == dataset_id))
    return result.scalar_one_or_none()


def conversations_query(dataset_id: int, split: str, status: str) -> SelectOfScalar[Conversation]:
    query = select(Conversation).where(col(Conversation.status) == status)

    if dataset_id > 0:
        query = query.where(col(Conversation.dataset_id) == dataset_id)

    if split and split != SPLIT_ALL:
        query = query.where(col(Conversation.split) == split)

    return query.order_by(col(Conversation.id))


def dataset_items_query(dataset_id: int) -> SelectOfScalar[DatasetItem]:
    return select(DatasetItem).where(col(DatasetItem.dataset_id) == dataset_id).order_by(col(DatasetItem.id))


async def _load_messages(session: AsyncSession, conversation_ids: list[int]) -> dict[int, list[ConversationMessage]]:
    result = await session.execute(
        select(ConversationMessage)
        .where(col(ConversationMessage.conversation_id).in_(conversation_ids))
        .order_by(col(ConversationMessage.conversation_id), col(ConversationMessage.idx))
    )
    by_conversation: dict[int, list[ConversationMessage]] = {cid: [] for cid in conversation_ids}
    for message in result.scalars():
        by_conversation[message.conversation_id].append(message)
    return by_conversation


async def iter_conversations(
    session: AsyncSession,
    dataset_id: int,
    split: str,
    status: str,
    batch_size: int,
) -> AsyncIterator[ConversationRecord]:
    """Yield matching conversations in ascending id order, one keyset batch at a time."""
    base = conversations_query(dataset_id, split, status)
    last_id = 0
    while True:
        result = await session.execute(base.where(col(Conversation.id) > last_id).limit(batch_size))
        batch = list(result.scalars().all())
        if not batch:
            return

        ids = [c.id for c in batch if c.id is not None]
        messages = await _load_messages(session, ids)
        for conversation in batch:
            yield ConversationRecord(conversation, messages.get(conversation.id or 0, []))

        if len(batch) < batch_size:
            return
        last_id = ids[-1]


async def iter_dataset_items(session: AsyncSession, dataset_id: int, batch_size: int) -> AsyncIterator[DatasetItem]:
    base = dataset_items_query(dataset_id)
    last_id = 0
    while True:
        result = await session.execute(base.where(col(DatasetItem.id) > last_id).limit(batch_size))
        batch = list(result.scalars().all())
        if not batch:
            return

        for item in batch:
            yield item

        if len(batch) < batch_size:
            return
        last_id = batch[-1].id or last_id
