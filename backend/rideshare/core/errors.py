"""Errors raised by the matching engine and the lookups around it."""


class MatchingError(Exception):
    """Base class for rideshare matching errors."""


class ValidationError(MatchingError):
    """Malformed geometry or a search parameter outside its bounds."""


class NotFoundError(MatchingError):
    """A referenced trip, route or post does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id
