"""
Deterministic chat channel identifiers.

Any participant can rebuild a channel id locally, so no lookup table is needed
to find the conversation between two users or the group chat of a project.
"""
from typing import Optional

SEPARATOR = "_"
GROUP_PREFIX = "project:"


def _check_user_id(user_id: str) -> None:
    if not user_id:
        raise ValueError("User id must not be empty")
    if SEPARATOR in user_id:
        # "a_b" + "c" and "a" + "b_c" would otherwise produce the same id
        raise ValueError(f"User id must not contain {SEPARATOR!r}: {user_id!r}")


def pair_key(user_a: str, user_b: str) -> str:
    """
    Order-independent identity of a pair of users.

    Ordering is lexicographic over the full id string.

    Raises:
        ValueError: If either id is empty or contains the separator
    """
    _check_user_id(user_a)
    _check_user_id(user_b)
    first, second = sorted((user_a, user_b))
    return f"{first}{SEPARATOR}{second}"


def direct_channel_id(user_a: str, user_b: str) -> str:
    """Id of the direct channel between two users; ``direct_channel_id(a, b) == direct_channel_id(b, a)``."""
    return pair_key(user_a, user_b)


def group_channel_id(project_id: str) -> str:
    if not project_id:
        raise ValueError("Project id must not be empty")
    return f"{GROUP_PREFIX}{project_id}"


def project_id_for_channel(channel_id: str) -> Optional[str]:
    """Project id a group channel belongs to, or None for direct channels."""
    if channel_id.startswith(GROUP_PREFIX):
        return channel_id[len(GROUP_PREFIX):] or None
    return None


def is_group_channel(channel_id: str) -> bool:
    return project_id_for_channel(channel_id) is not None
