from __future__ import annotations

import abc

from ..types import DrawResult


class DrawResultSource(abc.ABC):
    """Abstract provider of published draw results."""

    @abc.abstractmethod
    def fetch_latest(self) -> DrawResult:
        """Return the most recent published draw.

        Implementations raise ``TransportError`` when the source is
        unreachable and ``ProtocolError`` or ``ParseError`` when the payload
        fails validation.
        """

    def close(self) -> None:
        """Optional hook for sources that hold connections."""
        return None
