"""
LLM tagging client.

Extracts semantic tags and an optional project suggestion from a
conversation with a Gemini chat model using structured output. Tagging
is best-effort: any failure yields an empty TaggingResult.

Dependencies: langchain_google_genai, langchain_core
System role: finalize stage provider adapter
"""

import logging
from typing import Protocol, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from convoflow.core.transcript.markers import UNTITLED
from convoflow.models.tagging import ExtractedTag, TaggingResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a semantic tagging assistant. Extract meaningful tags from "
    "conversations. Be specific and avoid generic terms."
)

USER_PROMPT = """Analyze the following conversation and extract semantic tags. Focus on:
- Entities: Specific things mentioned (products, companies, tools, etc.)
- Topics: Main subjects discussed
- People: Names of individuals mentioned
- Projects: Potential project names or work initiatives
- Technologies: Technologies, frameworks, languages mentioned
- Concepts: Abstract ideas or methodologies

Conversation Title: {title}

Conversation Content:
{content}

Extract 5-15 relevant tags. Suggest a project name and short description
only if this conversation looks like a distinct project."""


class TaggingClient(Protocol):
    """Interface consumed by the finalize step."""

    async def extract_tags(
        self,
        title: str | None,
        messages: Sequence[tuple[str, str]],
    ) -> TaggingResult:
        ...


def _clean(result: TaggingResult) -> TaggingResult:
    seen: set[str] = set()
    tags: list[ExtractedTag] = []
    for tag in result.tags:
        name = tag.name.strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        tags.append(tag.model_copy(update={"name": name}))
    return TaggingResult(
        tags=tags,
        suggested_project_name=(result.suggested_project_name or "").strip() or None,
        suggested_project_description=(result.suggested_project_description or "").strip() or None,
    )


class GeminiTaggingClient:
    """TaggingClient backed by a Gemini chat model."""

    def __init__(
        self,
        model: str = "gemini-2.5-flash",
        temperature: float = 0.3,
        max_chars: int = 8000,
        llm: BaseChatModel | None = None,
    ) -> None:
        """
        Initialize tagging client.

        Args:
            model: Chat model ID
            temperature: Sampling temperature
            max_chars: Conversation text sent to the model
            llm: Pre-built chat model (tests inject fakes)
        """
        self._llm = llm or ChatGoogleGenerativeAI(model=model, temperature=temperature)
        self._structured = self._llm.with_structured_output(TaggingResult)
        self._max_chars = max_chars

    async def extract_tags(
        self,
        title: str | None,
        messages: Sequence[tuple[str, str]],
    ) -> TaggingResult:
        """
        Extract tags for one conversation.

        Args:
            title: Conversation title
            messages: (role, content) pairs in order

        Returns:
            TaggingResult, empty on any failure
        """
        content = "\n\n".join(f"{role}: {text}" for role, text in messages)[: self._max_chars]
        prompt = USER_PROMPT.format(title=title or UNTITLED, content=content)

        try:
            result = await self._structured.ainvoke(
                [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)]
            )
        except Exception as e:
            logger.warning(
                f"{__name__}:extract_tags - Tagging failed: {type(e).__name__}: {e}"
            )
            return TaggingResult()

        if not isinstance(result, TaggingResult):
            logger.warning(f"{__name__}:extract_tags - Unexpected structured output type")
            return TaggingResult()
        return _clean(result)


class DisabledTaggingClient:
    """TaggingClient used when tagging is turned off; always returns no tags."""

    async def extract_tags(
        self,
        title: str | None,
        messages: Sequence[tuple[str, str]],
    ) -> TaggingResult:
        return TaggingResult()
