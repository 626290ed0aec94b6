import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from dataclasses import dataclass
from enum import StrEnum
from typing import BinaryIO

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from datalab_server.errors import DatasetNotFoundError, ExportConfigError, ExportStreamError
from datalab_server.models import DatasetKind
from datalab_server.schemas.exporter import ExportOptions
from datalab_server.services import jsonl
from datalab_server.services.pairs import derive_item_pairs, derive_pairs
from datalab_server.services.record_source import get_dataset_kind, iter_conversations, iter_dataset_items

logger = logging.getLogger(__name__)

ITEMS_TYPES = frozenset({"items", "items_with_meta"})


class ExportMode(StrEnum):
    CONVERSATION_PAIRS = "conversation_pairs"
    CONVERSATIONS = "conversations"
    ITEM_PAIRS = "item_pairs"
    ITEMS = "items"
    ITEMS_WITH_META = "items_with_meta"


_ITEMS_DATASET_MODES = {
    "pairs": ExportMode.ITEM_PAIRS,
    "items": ExportMode.ITEMS,
    "items_with_meta": ExportMode.ITEMS_WITH_META,
}

_CONVERSATION_MODES = {
    "pairs": ExportMode.CONVERSATION_PAIRS,
    "conversations": ExportMode.CONVERSATIONS,
}


@dataclass(frozen=True)
class ExportPlan:
    mode: ExportMode
    options: ExportOptions


@dataclass
class ExportRun:
    """Per-request generation state. Never shared between exports."""

    plan: ExportPlan
    emitted: int = 0

    @property
    def limit(self) -> int:
        return self.plan.options.max_examples

    @property
    def exhausted(self) -> bool:
        return self.limit > 0 and self.emitted >= self.limit


async def resolve_export_plan(session: AsyncSession, options: ExportOptions) -> ExportPlan:
    if options.type in ITEMS_TYPES and options.dataset_id <= 0:
        raise ExportConfigError("dataset_id is required for items exports")

    if options.dataset_id > 0:
        kind = await get_dataset_kind(session, options.dataset_id)
        if kind is None:
            raise DatasetNotFoundError(options.dataset_id)

        if kind.lower() == DatasetKind.ITEMS.value:
            if options.type not in _ITEMS_DATASET_MODES:
                raise ExportConfigError(f"type={options.type} is not valid for items datasets")
            return ExportPlan(_ITEMS_DATASET_MODES[options.type], options)

    if options.type not in _CONVERSATION_MODES:
        raise ExportConfigError("items export types are only valid for items datasets")
    return ExportPlan(_CONVERSATION_MODES[options.type], options)


async def _conversation_pairs(session: AsyncSession, options: ExportOptions, batch_size: int) -> AsyncIterator[bytes]:
    async for record in iter_conversations(session, options.dataset_id, options.split, options.status, batch_size):
        for pair in derive_pairs(record.messages, options):
            yield jsonl.encode_pair(pair)


async def _conversations(session: AsyncSession, options: ExportOptions, batch_size: int) -> AsyncIterator[bytes]:
    async for record in iter_conversations(session, options.dataset_id, options.split, options.status, batch_size):
        yield jsonl.encode_conversation(record.conversation, record.messages)


async def _item_pairs(session: AsyncSession, options: ExportOptions, batch_size: int) -> AsyncIterator[bytes]:
    async for item in iter_dataset_items(session, options.dataset_id, batch_size):
        for pair in derive_item_pairs(item.data, options):
            yield jsonl.encode_pair(pair)


async def _items(session: AsyncSession, options: ExportOptions, batch_size: int) -> AsyncIterator[bytes]:
    async for item in iter_dataset_items(session, options.dataset_id, batch_size):
        yield jsonl.encode_item_raw(item)


async def _items_with_meta(session: AsyncSession, options: ExportOptions, batch_size: int) -> AsyncIterator[bytes]:
    async for item in iter_dataset_items(session, options.dataset_id, batch_size):
        yield jsonl.encode_item_with_meta(item)


Generator = Callable[[AsyncSession, ExportOptions, int], AsyncIterator[bytes]]

GENERATORS: dict[ExportMode, Generator] = {
    ExportMode.CONVERSATION_PAIRS: _conversation_pairs,
    ExportMode.CONVERSATIONS: _conversations,
    ExportMode.ITEM_PAIRS: _item_pairs,
    ExportMode.ITEMS: _items,
    ExportMode.ITEMS_WITH_META: _items_with_meta,
}


async def iter_export(session: AsyncSession, plan: ExportPlan, batch_size: int = 100) -> AsyncIterator[bytes]:
    """Yield encoded JSONL lines for ``plan``, honoring ``max_examples`` across the whole stream."""
    run = ExportRun(plan)
    async with aclosing(GENERATORS[plan.mode](session, plan.options, batch_size)) as lines:
        async for line in lines:
            yield line
            run.emitted += 1
            if run.exhausted:
                break

    logger.info(f"Export {plan.mode} finished with {run.emitted} records")


async def stream_export(
    session: AsyncSession,
    options: ExportOptions,
    sink: BinaryIO,
    batch_size: int = 100,
) -> int:
    """Write an export to ``sink``, flushing after every record.

    Configuration problems raise before anything is written. Failures after
    that point are raised as ``ExportStreamError``.
    """
    plan = await resolve_export_plan(session, options)
    logger.info(f"Streaming export mode={plan.mode} dataset_id={options.dataset_id} max={options.max_examples}")

    written = 0
    try:
        async with aclosing(iter_export(session, plan, batch_size)) as lines:
            async for line in lines:
                sink.write(line)
                sink.flush()
                written += 1
    except (OSError, SQLAlchemyError) as e:
        logger.error(f"Export aborted after {written} records: {e}")
        raise ExportStreamError(str(e)) from e

    return written
