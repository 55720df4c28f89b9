"""
Role ambiguity detection.

Flags conversations whose speaker roles are probably wrong (everything
attributed to one side, long same-role runs, a vanishing minority role).
The result is advisory: it is surfaced as a warning and never blocks
ingestion.

Dependencies: convoflow.core.exceptions
System role: Parse-quality diagnostics
"""

from typing import Iterable, Protocol

from convoflow.core.exceptions import RoleAmbiguityWarning

MAX_CONSECUTIVE_SAME_ROLE = 5
MIN_ROLE_SHARE = 0.1


class HasRole(Protocol):
    role: str


def is_role_ambiguous(messages: Iterable[HasRole]) -> bool:
    """
    Decide whether a conversation's roles look unreliable.

    Args:
        messages: Messages in conversation order (anything with a ``role``)

    Returns:
        True if the roles are likely mislabeled
    """
    roles = [message.role for message in messages]
    if not roles:
        return False
    if len(roles) == 1:
        return True
    if all(role == roles[0] for role in roles):
        return True

    has_user = "user" in roles
    has_assistant = "assistant" in roles
    if not (has_user and has_assistant):
        return True

    longest_run = run = 1
    for previous, role in zip(roles, roles[1:]):
        run = run + 1 if role == previous else 1
        longest_run = max(longest_run, run)
    if longest_run > MAX_CONSECUTIVE_SAME_ROLE:
        return True

    total = len(roles)
    user_share = roles.count("user") / total
    assistant_share = roles.count("assistant") / total
    return user_share < MIN_ROLE_SHARE or assistant_share < MIN_ROLE_SHARE


def role_ambiguity_warnings(messages: Iterable[HasRole]) -> list[str]:
    """Warning codes to record for a message list (empty when roles look fine)."""
    return [RoleAmbiguityWarning.code] if is_role_ambiguous(messages) else []
