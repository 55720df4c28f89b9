"""
Test suite for the ChatGPT export parser.

Tests accepted export shapes, active-path recovery from the mapping tree,
ordering and skipping of invalid conversations.

System role: Verification of the bulk import parse step
"""

from datetime import datetime, timezone

from convoflow.core.transcript import parse_chatgpt_export
from convoflow.core.transcript.markers import UNTITLED


def _node(node_id, parent, role=None, text=None, children=(), create_time=None):
    message = None
    if role is not None:
        message = {
            "id": node_id,
            "author": {"role": role},
            "content": {"content_type": "text", "parts": [text]},
        }
        if create_time is not None:
            message["create_time"] = create_time
    return {"id": node_id, "parent": parent, "children": list(children), "message": message}


def _branching_conversation() -> dict:
    """root -> a (user) -> b (assistant) | b-alt (assistant, abandoned)."""
    return {
        "id": "conv-1",
        "title": "Indexing",
        "current_node": "b",
        "mapping": {
            "root": _node("root", None, children=["a"]),
            "a": _node("a", "root", "user", "Which index?", children=["b", "b-alt"]),
            "b": _node("b", "a", "assistant", "A btree."),
            "b-alt": _node("b-alt", "a", "assistant", "A hash index."),
        },
    }


class TestParseChatgptExport:
    """Test suite for parse_chatgpt_export()."""

    def test_parse_should_follow_active_path_from_current_node(self) -> None:
        # Act
        conversations = parse_chatgpt_export([_branching_conversation()])

        # Assert
        assert len(conversations) == 1
        conv = conversations[0]
        assert conv.id == "conv-1"
        assert conv.title == "Indexing"
        assert [(m.role, m.content) for m in conv.messages] == [
            ("user", "Which index?"),
            ("assistant", "A btree."),
        ]
        assert [m.source_message_id for m in conv.messages] == ["a", "b"]

    def test_parse_should_accept_object_with_conversations_list(self) -> None:
        # Act
        conversations = parse_chatgpt_export({"conversations": [_branching_conversation()]})

        # Assert
        assert [c.id for c in conversations] == ["conv-1"]

    def test_parse_should_accept_single_conversation_object(self) -> None:
        # Act
        conversations = parse_chatgpt_export(_branching_conversation())

        # Assert
        assert [c.id for c in conversations] == ["conv-1"]

    def test_parse_should_order_by_timestamp_and_set_window(self) -> None:
        # Arrange
        conv = {
            "conversation_id": "conv-2",
            "title": "Timed",
            "current_node": "b",
            "mapping": {
                "a": _node("a", None, "user", "first", children=["b"], create_time=1_700_000_100),
                "b": _node("b", "a", "assistant", "second", create_time=1_700_000_000),
            },
        }

        # Act
        parsed = parse_chatgpt_export([conv])[0]

        # Assert
        assert [m.content for m in parsed.messages] == ["second", "first"]
        assert parsed.started_at == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
        assert parsed.ended_at == datetime.fromtimestamp(1_700_000_100, tz=timezone.utc)

    def test_parse_should_walk_tree_when_current_node_missing(self) -> None:
        # Arrange
        conv = _branching_conversation()
        del conv["current_node"]

        # Act
        parsed = parse_chatgpt_export([conv])[0]

        # Assert
        assert parsed.messages[0].content == "Which index?"

    def test_parse_should_accept_flat_message_list(self) -> None:
        # Arrange
        conv = {
            "id": "flat",
            "messages": [
                {"role": "user", "content": "hi"},
                {"role": "robot", "content": "unknown role"},
                {"role": "assistant", "content": "   "},
            ],
        }

        # Act
        parsed = parse_chatgpt_export([conv])[0]

        # Assert
        assert parsed.title == UNTITLED
        assert [(m.role, m.content) for m in parsed.messages] == [
            ("user", "hi"),
            ("user", "unknown role"),
        ]

    def test_parse_should_skip_invalid_conversations(self) -> None:
        # Arrange
        items = [
            "not a dict",
            {"title": "no id", "mapping": {}},
            {"id": "empty", "mapping": {"root": _node("root", None)}},
            {"id": "blank", "messages": [{"role": "user", "content": ""}]},
            _branching_conversation(),
        ]

        # Act
        conversations = parse_chatgpt_export(items)

        # Assert
        assert [c.id for c in conversations] == ["conv-1"]

    def test_parse_unrecognized_shape_should_return_empty_list(self) -> None:
        assert parse_chatgpt_export(42) == []
        assert parse_chatgpt_export({}) == []
