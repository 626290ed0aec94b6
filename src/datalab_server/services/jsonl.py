import json
from typing import Any

from datalab_server.models import Conversation, ConversationMessage, DatasetItem
from datalab_server.schemas.exporter import ExportPair

NEWLINE = b"\n"


def dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, allow_nan=False, separators=(",", ":"))


def encode_line(value: Any) -> bytes:
    return dumps(value).encode("utf-8") + NEWLINE


def encode_pair(pair: ExportPair) -> bytes:
    return encode_line({"user": pair.user, "assistant": pair.assistant})


def _message_object(message: ConversationMessage) -> dict[str, Any]:
    obj: dict[str, Any] = {"role": message.role, "content": message.content}
    if message.name:
        obj["name"] = message.name
    if message.meta is not None:
        obj["meta"] = message.meta
    return obj


def encode_conversation(conversation: Conversation, messages: list[ConversationMessage]) -> bytes:
    return encode_line(
        {
            "id": conversation.id,
            "messages": [_message_object(m) for m in messages],
            "notes": conversation.notes,
            "source": conversation.source,
            "split": conversation.split,
            "status": conversation.status,
            "tags": list(conversation.tags or []),
        }
    )


def encode_item_raw(item: DatasetItem) -> bytes:
    return item.data.encode("utf-8") + NEWLINE


def encode_item_with_meta(item: DatasetItem) -> bytes:
    # The stored document is spliced in as-is so it is never re-encoded.
    head = f'{{"data":{item.data},"dataset_id":{item.dataset_id},"id":{item.id},"source_ref":'
    return head.encode("utf-8") + dumps(item.source_ref).encode("utf-8") + b"}" + NEWLINE
