"""Items of a turn-summary playback."""

from dataclasses import dataclass
from enum import Enum


class RevealKind(Enum):
    """Visual role of a reveal item; decides the delay that follows it."""

    HEADER = "header"
    SEPARATOR = "separator"
    EVENT = "event"
    DETAIL = "detail"


@dataclass(frozen=True)
class RevealItem:
    """One line of a turn-summary playback.

    Attributes:
        kind: Header, separator, event or detail
        content: Text to display
        log_type: Combat-log type the line came from, None for headers,
            separators and the empty-turn placeholder
    """

    kind: RevealKind
    content: str
    log_type: str | None = None

    @property
    def is_heading(self) -> bool:
        """Headers and separators get the short delay."""
        return self.kind in (RevealKind.HEADER, RevealKind.SEPARATOR)
