"""
Test suite for transcript parsing.

Tests speaker-marker parsing, normalization of pasted content, automatic
titles and role ambiguity detection.

System role: Verification of capture and transcript-import parsing
"""

from convoflow.core.transcript import (
    generate_auto_title,
    has_role_markers,
    is_role_ambiguous,
    normalize_transcript,
    parse_transcript,
    role_ambiguity_warnings,
    strip_code_fence,
)
from convoflow.core.transcript.markers import ParsedMessage, ParsedTranscript, UNTITLED
from convoflow.models.transcript import TranscriptMessage


def _messages(*roles: str) -> list[TranscriptMessage]:
    return [
        TranscriptMessage(role=role, content=f"m{index}", index_in_conversation=index)
        for index, role in enumerate(roles)
    ]


class TestParseTranscript:
    """Test suite for parse_transcript()."""

    def test_parse_should_split_on_speaker_labels(self) -> None:
        # Arrange
        text = "User: How do I index this?\nAssistant: Use a btree.\nIt is the default."

        # Act
        parsed = parse_transcript(text)

        # Assert
        assert [m.role for m in parsed.messages] == ["user", "assistant"]
        assert parsed.messages[0].content == "How do I index this?"
        assert parsed.messages[1].content == "Use a btree.\nIt is the default."

    def test_parse_should_accept_bold_and_alternate_labels(self) -> None:
        # Arrange
        text = "**Human:** first\n**ChatGPT:** second\nMe: third\nClaude: fourth"

        # Act
        parsed = parse_transcript(text)

        # Assert
        assert [m.role for m in parsed.messages] == ["user", "assistant", "user", "assistant"]
        assert [m.content for m in parsed.messages] == ["first", "second", "third", "fourth"]
        assert parsed.user_count == 2
        assert parsed.assistant_count == 2

    def test_parse_should_drop_text_before_first_label(self) -> None:
        # Arrange
        text = "Copied from the app\n\nUser: question\nAI: answer"

        # Act
        parsed = parse_transcript(text)

        # Assert
        assert len(parsed.messages) == 2
        assert parsed.messages[0].content == "question"

    def test_parse_should_skip_empty_segments(self) -> None:
        # Arrange
        text = "User:\nAssistant: only answer"

        # Act
        parsed = parse_transcript(text)

        # Assert
        assert len(parsed.messages) == 1
        assert parsed.messages[0].role == "assistant"

    def test_parse_without_labels_should_return_single_user_message(self) -> None:
        # Act
        parsed = parse_transcript("  just some notes  ")

        # Assert
        assert parsed.messages == [ParsedMessage("user", "just some notes")]

    def test_parse_with_swap_roles_should_exchange_roles(self) -> None:
        # Act
        parsed = parse_transcript("User: a\nAssistant: b", swap_roles=True)

        # Assert
        assert [m.role for m in parsed.messages] == ["assistant", "user"]

    def test_parse_as_single_block_should_ignore_labels(self) -> None:
        # Act
        parsed = parse_transcript("User: a\nAssistant: b", treat_as_single_block=True)

        # Assert
        assert len(parsed.messages) == 1
        assert parsed.messages[0].content == "User: a\nAssistant: b"

    def test_has_role_markers_should_detect_labels_on_any_line(self) -> None:
        assert has_role_markers("intro\nassistant: hi") is True
        assert has_role_markers("no labels here") is False
        assert has_role_markers("") is False


class TestNormalizeTranscript:
    """Test suite for normalize_transcript()."""

    def test_normalize_empty_input_should_warn_and_return_no_messages(self) -> None:
        # Act
        result = normalize_transcript("   \n ")

        # Assert
        assert result.messages == []
        assert result.detected_format == "unknown"
        assert result.warnings == ["empty_input"]

    def test_normalize_none_should_be_treated_as_empty(self) -> None:
        assert normalize_transcript(None).warnings == ["empty_input"]

    def test_normalize_labelled_text_should_produce_chat_roles(self) -> None:
        # Act
        result = normalize_transcript("User: q1\nAssistant: a1\nUser: q2")

        # Assert
        assert result.detected_format == "chat_roles"
        assert result.had_explicit_roles is True
        assert result.normalized_roles is True
        assert [m.index_in_conversation for m in result.messages] == [0, 1, 2]
        assert [m.role for m in result.messages] == ["user", "assistant", "user"]

    def test_normalize_plain_text_should_produce_one_user_message(self) -> None:
        # Act
        result = normalize_transcript("Thinking about the migration plan.\nStill unsure.")

        # Assert
        assert result.detected_format == "plain"
        assert result.had_explicit_roles is False
        assert len(result.messages) == 1
        assert result.messages[0].role == "user"
        assert result.messages[0].index_in_conversation == 0

    def test_normalize_should_strip_surrounding_code_fence(self) -> None:
        # Act
        result = normalize_transcript("```text\nUser: hi\nAssistant: hello\n```")

        # Assert
        assert [m.content for m in result.messages] == ["hi", "hello"]

    def test_normalize_same_input_twice_should_give_equal_results(self) -> None:
        # Arrange
        raw = "**User:** plan?\n\nAssistant: ship Friday\nUser: and rollback?\nAI: keep the flag"

        # Act
        first = normalize_transcript(raw)
        second = normalize_transcript(raw)

        # Assert
        assert first == second
        assert first.model_dump() == second.model_dump()

    def test_strip_code_fence_should_leave_unfenced_text_alone(self) -> None:
        assert strip_code_fence("```\nonly opening") == "```\nonly opening"


class TestGenerateAutoTitle:
    """Test suite for generate_auto_title()."""

    def test_title_should_use_first_line_of_first_user_message(self) -> None:
        # Arrange
        text = "Assistant: hello\nUser: Plan the Postgres upgrade\nwith details"
        parsed = parse_transcript(text)

        # Act
        title = generate_auto_title(text, parsed)

        # Assert
        assert title == "Plan the Postgres upgrade"

    def test_title_should_be_clipped_to_sixty_characters(self) -> None:
        # Arrange
        text = "User: " + "x" * 100
        parsed = parse_transcript(text)

        # Act
        title = generate_auto_title(text, parsed)

        # Assert
        assert title == "x" * 60

    def test_title_should_fall_back_to_untitled(self) -> None:
        assert generate_auto_title("", ParsedTranscript()) == UNTITLED


class TestRoleAmbiguity:
    """Test suite for is_role_ambiguous()."""

    def test_empty_conversation_should_not_be_ambiguous(self) -> None:
        assert is_role_ambiguous([]) is False

    def test_single_message_should_be_ambiguous(self) -> None:
        assert is_role_ambiguous(_messages("user")) is True

    def test_one_sided_conversation_should_be_ambiguous(self) -> None:
        assert is_role_ambiguous(_messages("user", "user", "user")) is True

    def test_alternating_conversation_should_not_be_ambiguous(self) -> None:
        assert is_role_ambiguous(_messages("user", "assistant", "user", "assistant")) is False

    def test_long_same_role_run_should_be_ambiguous(self) -> None:
        # Arrange
        roles = ["user"] * 6 + ["assistant", "user", "assistant"]

        # Act / Assert
        assert is_role_ambiguous(_messages(*roles)) is True

    def test_warnings_should_carry_role_ambiguous_code(self) -> None:
        assert role_ambiguity_warnings(_messages("assistant")) == ["role_ambiguous"]
        assert role_ambiguity_warnings(_messages("user", "assistant")) == []
