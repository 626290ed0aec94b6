import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from datalab_server.dependencies import SessionFactory, get_readonly_db_session, get_session_factory, get_settings
from datalab_server.schemas.exporter import ExportOptions
from datalab_server.services.exporter import ExportPlan, iter_export, resolve_export_plan
from datalab_server.settings import Settings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1", tags=["exporter"])

NDJSON = "application/x-ndjson"


async def _export_body(session_factory: SessionFactory, plan: ExportPlan, batch_size: int) -> AsyncIterator[bytes]:
    # The response headers are already sent when this runs, so failures can only end the stream early.
    try:
        async with session_factory(read_only=True) as session:
            async for line in iter_export(session, plan, batch_size=batch_size):
                yield line
    except asyncio.CancelledError:
        logger.info(f"Export {plan.mode} cancelled, client disconnected")
        raise
    except Exception as e:
        logger.error(f"Export {plan.mode} failed mid-stream: {e}")
        raise


@router.get("/export.jsonl", response_model=None)
async def export_jsonl(
    type: Literal["pairs", "conversations", "items", "items_with_meta"] = Query("pairs"),
    dataset_id: int = Query(0),
    split: str = Query("train"),
    status: str = Query("approved"),
    include_system: bool = Query(False),
    context: Literal["none", "window", "full"] = Query("none"),
    context_turns: int = Query(6),
    role_style: Literal["labels", "plain"] = Query("labels"),
    max_examples: int = Query(0),
    session: AsyncSession = Depends(get_readonly_db_session),
    session_factory: SessionFactory = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    options = ExportOptions(
        type=type,
        dataset_id=max(dataset_id, 0),
        split=split.strip() or "train",
        status=status.strip() or "approved",
        include_system=include_system,
        context=context,
        context_turns=max(context_turns, 0),
        role_style=role_style,
        max_examples=max(max_examples, 0),
    )

    # Configuration errors surface here, before any header is committed.
    plan = await resolve_export_plan(session, options)
    logger.info(f"Export requested: mode={plan.mode} {options.model_dump()}")

    return StreamingResponse(
        _export_body(session_factory, plan, settings.export_batch_size),
        media_type=NDJSON,
        headers={"Content-Disposition": f"attachment; filename={settings.export_filename}"},
    )
