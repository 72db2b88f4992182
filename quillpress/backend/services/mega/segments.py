"""Member segments and audience partitioning."""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Iterable

from quillpress.backend.errors import ValidationError

UNSEGMENTED = "unsegmented"
INVALID_SEGMENT_MESSAGE = 'Invalid segment value. Use one of the valid:"status:free" or "status:-free" values.'


class MemberSegment(str, Enum):
    FREE = "status:free"
    NOT_FREE = "status:-free"


def _is_free(row: dict[str, Any]) -> bool:
    return row.get("status") == "free"


def _is_not_free(row: dict[str, Any]) -> bool:
    return row.get("status") != "free"


SEGMENT_PREDICATES: dict[MemberSegment, Callable[[dict[str, Any]], bool]] = {
    MemberSegment.FREE: _is_free,
    MemberSegment.NOT_FREE: _is_not_free,
}


def parse_segment(value: str) -> MemberSegment:
    try:
        return MemberSegment(value)
    except ValueError:
        raise ValidationError(INVALID_SEGMENT_MESSAGE, property="member_segment") from None


def partition_members_by_segment(
    member_rows: Iterable[dict[str, Any]],
    segments: list[str],
) -> dict[str, list[dict[str, Any]]]:
    """Split rows into one bucket per segment, earlier segments taking precedence.

    Rows matched by no segment land in ``unsegmented``, present only when non-empty.
    """
    predicates = [(segment, SEGMENT_PREDICATES[parse_segment(segment)]) for segment in segments]
    remaining = list(member_rows)
    partitions: dict[str, list[dict[str, Any]]] = {}
    for segment, predicate in predicates:
        partitions[segment] = [row for row in remaining if predicate(row)]
        remaining = [row for row in remaining if not predicate(row)]
    if remaining:
        partitions[UNSEGMENTED] = remaining
    return partitions
