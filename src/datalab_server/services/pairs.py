"""Derive (prompt, completion) training pairs from dialogue.

A pair is produced for every assistant turn that has a user turn somewhere
before it. The prompt is either that user turn alone or a rendered window of
the history ending at it, depending on ``ExportOptions.context``.
"""

import json
from collections.abc import Iterator, Sequence
from typing import Any, Protocol

from pydantic import TypeAdapter, ValidationError

from datalab_server.schemas.exporter import ExportMessage, ExportOptions, ExportPair, RoleStyle

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

ROLE_LABELS = {
    ROLE_SYSTEM: "System: ",
    ROLE_USER: "User: ",
    ROLE_ASSISTANT: "Assistant: ",
}

_item_messages = TypeAdapter(list[ExportMessage])


class ChatTurn(Protocol):
    role: str
    content: str


def _window_start(messages: Sequence[ChatTurn], upto_index: int, context_turns: int) -> int:
    if context_turns <= 0:
        return 0

    turns = 0
    for index in range(upto_index, -1, -1):
        if messages[index].role == ROLE_USER:
            turns += 1
            if turns >= context_turns:
                return index
    return 0


def render_context(
    messages: Sequence[ChatTurn],
    upto_index: int,
    include_system: bool,
    context_turns: int,
    role_style: RoleStyle,
) -> str:
    """Render the history ending at ``upto_index`` as one prompt string.

    ``context_turns`` bounds the number of user turns in the window; 0 means
    the whole history. Blank messages are always dropped, system messages
    unless ``include_system`` is set.
    """
    start = _window_start(messages, upto_index, context_turns)

    lines: list[str] = []
    for message in messages[start : upto_index + 1]:
        if message.role == ROLE_SYSTEM and not include_system:
            continue
        content = (message.content or "").strip()
        if not content:
            continue

        if role_style == "plain":
            lines.append(content)
        else:
            lines.append(ROLE_LABELS.get(message.role, ROLE_LABELS[ROLE_USER]) + content)

    return "\n".join(lines)


def _find_previous_user(messages: Sequence[ChatTurn], start: int) -> int | None:
    for index in range(start, -1, -1):
        if messages[index].role == ROLE_USER:
            return index
    return None


def _build_prompt(messages: Sequence[ChatTurn], user_index: int, options: ExportOptions) -> str:
    if options.context == "window":
        return render_context(messages, user_index, options.include_system, options.context_turns, options.role_style)
    if options.context == "full":
        return render_context(messages, user_index, options.include_system, 0, options.role_style)
    return (messages[user_index].content or "").strip()


def derive_pairs(messages: Sequence[ChatTurn], options: ExportOptions) -> Iterator[ExportPair]:
    for index, message in enumerate(messages):
        if message.role != ROLE_ASSISTANT:
            continue

        completion = (message.content or "").strip()
        if not completion:
            continue

        # Consecutive assistant turns each pair with the same user turn.
        user_index = _find_previous_user(messages, index - 1)
        if user_index is None:
            continue

        prompt = _build_prompt(messages, user_index, options)
        if not prompt:
            continue

        yield ExportPair(user=prompt, assistant=completion)


def parse_item_messages(value: Any) -> list[ExportMessage] | None:
    try:
        return _item_messages.validate_python(value)
    except ValidationError:
        return None


def _single_turn_pair(obj: dict[str, Any]) -> ExportPair | None:
    if "user" not in obj or "assistant" not in obj:
        return None

    user, assistant = obj["user"], obj["assistant"]
    if not isinstance(user, str) or not isinstance(assistant, str):
        return None

    user, assistant = user.strip(), assistant.strip()
    if not user or not assistant:
        return None
    return ExportPair(user=user, assistant=assistant)


def derive_item_pairs(data: str | bytes, options: ExportOptions) -> list[ExportPair]:
    """Pairs from a stored item document.

    Recognizes ``{"user": ..., "assistant": ...}`` (checked first) and
    ``{"messages": [...]}``. Anything else, including invalid JSON, yields no
    pairs.
    """
    try:
        obj = json.loads(data)
    except ValueError:
        return []
    if not isinstance(obj, dict):
        return []

    pair = _single_turn_pair(obj)
    if pair is not None:
        return [pair]

    if "messages" in obj:
        messages = parse_item_messages(obj["messages"])
        if not messages:
            return []
        return list(derive_pairs(messages, options))

    return []
