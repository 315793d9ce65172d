from __future__ import annotations

from typing import Optional


class MatchRejected(ValueError):
    """Raised when a raw match cannot be used for the tracked player."""

    def __init__(self, reason: str, match_id: Optional[str] = None) -> None:
        self.reason = reason
        self.match_id = match_id
        label = match_id or "<unknown>"
        super().__init__(f"Match {label} rejected: {reason}")


class LookupAPIError(RuntimeError):
    pass


class StoreError(RuntimeError):
    pass
