"""
ChatGPT export parser.

Accepts the conversations.json shapes produced by ChatGPT data exports
(a list, an object with a ``conversations`` list, or a single
conversation) and recovers each conversation's active message path.

Dependencies: convoflow.models.transcript
System role: Parse step of bulk imports
"""

import logging
from datetime import datetime, timezone
from typing import Any

from convoflow.core.transcript.markers import UNTITLED
from convoflow.models.transcript import ExportMessage, ParsedConversation

logger = logging.getLogger(__name__)

_ROLES = ("user", "assistant", "system", "tool")


def _conversation_items(data: Any) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if isinstance(data.get("conversations"), list):
            return data["conversations"]
        if any(data.get(key) for key in ("mapping", "title", "id", "conversation_id")):
            return [data]
    return []


def _role_of(message: dict) -> str:
    author = message.get("author")
    raw = author.get("role") if isinstance(author, dict) else None
    raw = raw or message.get("role")
    if isinstance(raw, str) and raw.lower() in _ROLES:
        return raw.lower()
    return "user"


def _content_of(message: dict) -> str:
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, dict):
        parts = content.get("parts")
        if isinstance(parts, list):
            return "\n".join(part for part in parts if isinstance(part, str))
        if isinstance(content.get("text"), str):
            return content["text"]
    return ""


def _timestamp_of(message: dict) -> datetime | None:
    create_time = message.get("create_time")
    if isinstance(create_time, (int, float)) and create_time > 0:
        return datetime.fromtimestamp(create_time, tz=timezone.utc)
    return None


def _root_ids(mapping: dict[str, dict]) -> list[str]:
    return [
        node_id
        for node_id, node in mapping.items()
        if not node.get("parent") or node.get("parent") not in mapping
    ]


def _walk_mapping(conv: dict, mapping: dict[str, dict]) -> list[tuple[str, dict]]:
    """
    Collect (node_id, message) pairs along the conversation's active path.

    Walks parent pointers back from ``current_node``, returning nodes in
    root-to-leaf order. Without a usable current node all nodes are
    visited depth-first from the roots.
    """
    start_id = conv.get("current_node")

    nodes: list[tuple[str, dict]] = []
    if start_id and start_id in mapping:
        visited: set[str] = set()
        node_id = start_id
        while node_id and node_id not in visited and node_id in mapping:
            visited.add(node_id)
            node = mapping[node_id]
            if isinstance(node.get("message"), dict):
                nodes.append((node_id, node["message"]))
            node_id = node.get("parent")
        nodes.reverse()
        return nodes

    visited = set()
    stack = list(reversed(_root_ids(mapping)))
    while stack:
        node_id = stack.pop()
        if node_id in visited or node_id not in mapping:
            continue
        visited.add(node_id)
        node = mapping[node_id]
        if isinstance(node.get("message"), dict):
            nodes.append((node_id, node["message"]))
        children = node.get("children") or []
        stack.extend(reversed([c for c in children if isinstance(c, str)]))
    return nodes


def _parse_single(conv: Any) -> ParsedConversation | None:
    if not isinstance(conv, dict):
        return None

    conversation_id = conv.get("conversation_id") or conv.get("id")
    if not conversation_id:
        return None

    mapping = conv.get("mapping") if isinstance(conv.get("mapping"), dict) else None
    raw_messages = conv.get("messages") if isinstance(conv.get("messages"), list) else None
    if mapping is None and not raw_messages:
        return None

    if mapping is not None:
        mapping = {k: v for k, v in mapping.items() if isinstance(v, dict)}
        if not any(isinstance(node.get("message"), dict) for node in mapping.values()):
            return None
        pairs = _walk_mapping(conv, mapping)
        # Chronological order when every node carries a timestamp; path order otherwise
        if pairs and all(_timestamp_of(message) for _, message in pairs):
            pairs.sort(key=lambda pair: _timestamp_of(pair[1]))
    else:
        pairs = [
            (msg.get("id") or f"msg-{index}", msg)
            for index, msg in enumerate(raw_messages)
            if isinstance(msg, dict)
        ]

    messages: list[ExportMessage] = []
    for node_id, message in pairs:
        content = _content_of(message).strip()
        if not content:
            continue
        messages.append(
            ExportMessage(
                role=_role_of(message),
                content=content,
                timestamp=_timestamp_of(message),
                source_message_id=str(node_id),
            )
        )

    if not messages:
        return None

    timestamps = sorted(m.timestamp for m in messages if m.timestamp is not None)
    if timestamps:
        started_at = timestamps[0]
    else:
        started_at = _timestamp_of(conv) or datetime.now(timezone.utc)

    return ParsedConversation(
        id=str(conversation_id),
        title=conv.get("title") or UNTITLED,
        messages=messages,
        started_at=started_at,
        ended_at=timestamps[-1] if timestamps else None,
    )


def parse_chatgpt_export(data: Any) -> list[ParsedConversation]:
    """
    Parse a ChatGPT export into conversations.

    Invalid entries (no id, no messages, only empty contents) are skipped
    and logged, never raised.

    Args:
        data: Decoded conversations.json content

    Returns:
        Parsed conversations in export order
    """
    items = _conversation_items(data)
    conversations: list[ParsedConversation] = []
    for index, item in enumerate(items):
        parsed = _parse_single(item)
        if parsed is None:
            logger.warning(
                f"{__name__}:parse_chatgpt_export - Skipped conversation",
                extra={
                    "index": index,
                    "keys": sorted(item.keys())[:20] if isinstance(item, dict) else None,
                },
            )
            continue
        conversations.append(parsed)

    logger.info(
        f"{__name__}:parse_chatgpt_export - Parsed {len(conversations)} of {len(items)} conversations"
    )
    return conversations
