# ==============================================
# Data Model
# ==============================================
#
# - StreamRecord: one decoded unit of the live feed. Only the free
#   text is kept; it lives for a single decode iteration.
#
# - VoteEvent: immutable wrapper around one matched option. Created by
#   the StreamReader, owned by the VoteQueue, consumed once by the
#   VotePublisher.
#
# - match_terms(text, terms): every term found in the text,
#   case-insensitively, once per occurrence in `terms`.
#
# ==============================================

from dataclasses import dataclass
from typing import Any, Iterable, List

from votestream.errors import StreamDecodeError


@dataclass(frozen=True)
class StreamRecord:
    """A single status from the stream."""
    text: str = ""

    @classmethod
    def from_json(cls, obj: Any) -> "StreamRecord":
        """
        Build a record from one decoded JSON value.

        Args:
            obj: Decoded JSON unit.

        Returns:
            StreamRecord with the `text` field, or "" when it is absent.

        Raises:
            StreamDecodeError: if the unit is not an object or `text`
                is not a string.
        """
        if not isinstance(obj, dict):
            raise StreamDecodeError(f"expected a JSON object, got {type(obj).__name__}")
        text = obj.get("text")
        if text is None:
            return cls()
        if not isinstance(text, str):
            raise StreamDecodeError(f"'text' must be a string, got {type(text).__name__}")
        return cls(text=text)


@dataclass(frozen=True)
class VoteEvent:
    """A vote for one poll option."""
    term: str


def match_terms(text: str, terms: Iterable[str]) -> List[str]:
    """
    Return every term contained in `text`, ignoring case.

    Duplicate terms each match on their own, so a term listed twice
    yields two entries.
    """
    lowered = text.lower()
    return [term for term in terms if term.lower() in lowered]
