"""Error types raised by room actions.

Every error here is scoped to a single action. The coordinator turns
``GameError`` subclasses into an event sent back to the caller; nothing in
this module is fatal to the process.
"""

from typing import Any, Dict, Optional


class GameError(Exception):
    """Base class for action failures reported to the acting client."""

    event = 'errorMsg'

    def __init__(self, message: str, state: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.state = state

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'message': self.message}
        if self.state is not None:
            payload['state'] = self.state
        return payload


class ValidationError(GameError):
    """Malformed input or an action the caller is not allowed to take."""


class InvalidPickError(ValidationError):
    """A pick that cannot be recorded; carries a snapshot for resync."""

    event = 'invalidPick'


class NotFoundError(GameError):
    """The room id does not resolve to a live room."""


class RateLimitedError(GameError):
    """Room creation throttled for this requester."""

    def __init__(self, retry_after: int) -> None:
        super().__init__(f'Rooms are being created too quickly, retry in {retry_after}s')
        self.retry_after = retry_after

    def to_payload(self) -> Dict[str, Any]:
        return {'message': self.message, 'retryAfter': self.retry_after}
