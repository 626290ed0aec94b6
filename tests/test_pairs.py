import json

from datalab_server.schemas.exporter import ExportMessage, ExportOptions
from datalab_server.services.pairs import derive_item_pairs, derive_pairs, parse_item_messages, render_context


def _messages(*turns: tuple[str, str]) -> list[ExportMessage]:
    return [ExportMessage(role=role, content=content) for role, content in turns]


def _pairs(messages: list[ExportMessage], **options: object) -> list[tuple[str, str]]:
    return [(p.user, p.assistant) for p in derive_pairs(messages, ExportOptions(**options))]


def test_derive_pairs_single_turn_context_none() -> None:
    messages = _messages(("user", "  Hi  "), ("assistant", " Hello\n"))
    assert _pairs(messages) == [("Hi", "Hello")]


def test_derive_pairs_consecutive_assistants_share_prompt() -> None:
    messages = _messages(("user", "Q"), ("assistant", "A1"), ("assistant", "A2"))
    assert _pairs(messages) == [("Q", "A1"), ("Q", "A2")]


def test_derive_pairs_skips_assistant_without_preceding_user() -> None:
    messages = _messages(("system", "Be brief"), ("assistant", "Welcome!"), ("user", "Hi"), ("assistant", "Hello"))
    assert _pairs(messages) == [("Hi", "Hello")]


def test_derive_pairs_skips_blank_assistant() -> None:
    messages = _messages(("user", "Hi"), ("assistant", "   "), ("user", "Still there?"), ("assistant", "Yes"))
    assert _pairs(messages) == [("Still there?", "Yes")]


def test_derive_pairs_skips_blank_prompt() -> None:
    messages = _messages(("user", "  "), ("assistant", "Hello"))
    assert _pairs(messages) == []


def test_derive_pairs_window_uses_labels() -> None:
    messages = _messages(("system", "You are helpful"), ("user", "Hi"), ("assistant", "Hello"))
    assert _pairs(messages, context="window", context_turns=6) == [("User: Hi", "Hello")]


def test_derive_pairs_window_includes_system_when_requested() -> None:
    messages = _messages(("system", "You are helpful"), ("user", "Hi"), ("assistant", "Hello"))
    pairs = _pairs(messages, context="window", include_system=True)
    assert pairs == [("System: You are helpful\nUser: Hi", "Hello")]


def test_derive_pairs_full_context_plain_style() -> None:
    messages = _messages(
        ("user", "one"),
        ("assistant", "1"),
        ("user", "two"),
        ("assistant", "2"),
        ("user", "three"),
        ("assistant", "3"),
    )
    pairs = _pairs(messages, context="full", role_style="plain")
    assert pairs[-1] == ("one\n1\ntwo\n2\nthree", "3")
    assert pairs[0] == ("one", "1")


def test_render_context_window_limits_user_turns() -> None:
    messages = _messages(
        ("user", "one"),
        ("assistant", "1"),
        ("user", "two"),
        ("assistant", "2"),
        ("user", "three"),
    )
    rendered = render_context(messages, 4, include_system=False, context_turns=2, role_style="labels")
    assert rendered == "User: two\nAssistant: 2\nUser: three"
    assert sum(line.startswith("User: ") for line in rendered.split("\n")) == 2


def test_render_context_window_larger_than_history_starts_at_zero() -> None:
    messages = _messages(("system", "sys"), ("user", "one"), ("assistant", "1"), ("user", "two"))
    rendered = render_context(messages, 3, include_system=True, context_turns=10, role_style="labels")
    assert rendered == "System: sys\nUser: one\nAssistant: 1\nUser: two"


def test_render_context_zero_turns_is_full_history() -> None:
    messages = _messages(("user", "one"), ("assistant", "1"), ("user", "two"))
    assert render_context(messages, 2, False, 0, "plain") == "one\n1\ntwo"


def test_render_context_drops_blank_messages() -> None:
    messages = _messages(("user", "one"), ("assistant", " \t"), ("user", "two"))
    assert render_context(messages, 2, False, 0, "labels") == "User: one\nUser: two"


def test_render_context_returns_empty_when_everything_filtered() -> None:
    messages = _messages(("system", "only system"), ("user", ""))
    assert render_context(messages, 1, False, 0, "labels") == ""


def test_render_context_unknown_role_renders_as_user() -> None:
    messages = _messages(("tool", "result"), ("user", "next"))
    assert render_context(messages, 1, False, 0, "labels") == "User: result\nUser: next"


def test_item_pairs_user_assistant() -> None:
    data = json.dumps({"user": " Hi ", "assistant": "Hello  "})
    pairs = derive_item_pairs(data, ExportOptions(context="none"))
    assert [(p.user, p.assistant) for p in pairs] == [("Hi", "Hello")]


def test_item_pairs_messages() -> None:
    data = '{"messages":[{"role":"user","content":"Hi"},{"role":"assistant","content":"Hello"}]}'
    pairs = derive_item_pairs(data, ExportOptions(context="none"))
    assert [(p.user, p.assistant) for p in pairs] == [("Hi", "Hello")]


def test_item_pairs_user_assistant_takes_precedence_over_messages() -> None:
    data = json.dumps(
        {
            "user": "short",
            "assistant": "answer",
            "messages": [{"role": "user", "content": "Hi"}, {"role": "assistant", "content": "Hello"}],
        }
    )
    pairs = derive_item_pairs(data, ExportOptions())
    assert [(p.user, p.assistant) for p in pairs] == [("short", "answer")]


def test_item_pairs_blank_user_falls_back_to_messages() -> None:
    data = json.dumps(
        {
            "user": "  ",
            "assistant": "answer",
            "messages": [{"role": "user", "content": "Hi"}, {"role": "assistant", "content": "Hello"}],
        }
    )
    pairs = derive_item_pairs(data, ExportOptions())
    assert [(p.user, p.assistant) for p in pairs] == [("Hi", "Hello")]


def test_item_pairs_unrecognized_shapes_yield_nothing() -> None:
    options = ExportOptions()
    assert derive_item_pairs('["not","an","object"]', options) == []
    assert derive_item_pairs("{not json", options) == []
    assert derive_item_pairs('"just a string"', options) == []
    assert derive_item_pairs('{"prompt":"Hi","completion":"Hello"}', options) == []
    assert derive_item_pairs('{"user":1,"assistant":2}', options) == []
    assert derive_item_pairs('{"messages":[]}', options) == []
    assert derive_item_pairs('{"messages":"nope"}', options) == []
    assert derive_item_pairs('{"messages":[{"role":"user","content":5}]}', options) == []


def test_item_pairs_accepts_bytes() -> None:
    pairs = derive_item_pairs(b'{"user":"Hi","assistant":"Hello"}', ExportOptions())
    assert len(pairs) == 1


def test_item_pairs_messages_window_context() -> None:
    data = json.dumps(
        {
            "messages": [
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "Hello"},
                {"role": "user", "content": "How are you?"},
                {"role": "assistant", "content": "Fine"},
            ]
        }
    )
    pairs = derive_item_pairs(data, ExportOptions(context="window", context_turns=1))
    assert [(p.user, p.assistant) for p in pairs] == [("User: Hi", "Hello"), ("User: How are you?", "Fine")]


def test_parse_item_messages_ignores_extra_fields() -> None:
    messages = parse_item_messages([{"role": "user", "content": "Hi", "weight": 1}])
    assert messages is not None
    assert messages[0].role == "user"
    assert messages[0].content == "Hi"


def test_parse_item_messages_rejects_non_list() -> None:
    assert parse_item_messages({"role": "user"}) is None


def test_item_pairs_null_message_fields_read_as_empty() -> None:
    data = (
        '{"messages":[{"role":"user","content":"Hi","name":null,"meta":null},'
        '{"role":"assistant","content":"Hello","name":null}]}'
    )
    pairs = derive_item_pairs(data, ExportOptions())
    assert [(p.user, p.assistant) for p in pairs] == [("Hi", "Hello")]


def test_parse_item_messages_null_content_is_blank() -> None:
    messages = parse_item_messages([{"role": None, "content": None}])
    assert messages is not None
    assert messages[0].role == ""
    assert messages[0].content == ""
    assert parse_item_messages([{"role": "user", "content": "Hi", "name": 5}]) is None
