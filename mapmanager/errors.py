"""Error taxonomy shared by the store, the state machine and the API."""

from typing import Any, Optional


class MapManagerError(Exception):
    """Base class for every categorized map manager failure."""

    status_code = 500

    def __init__(self, message: str, details: Optional[list[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(MapManagerError):
    """Malformed or incomplete payload."""

    status_code = 400


class IntegrityError(MapManagerError):
    """A waypoint references a map that does not exist."""

    status_code = 400


class NotFoundError(MapManagerError):
    """A referenced map or waypoint id is absent."""

    status_code = 404


class TransitionInProgress(MapManagerError):
    """A mode change is already in flight."""

    status_code = 409


class InvalidStateError(MapManagerError):
    """The operation is not legal in the current operating mode."""

    status_code = 409


def error_details(errors: list[dict]) -> list[dict]:
    """Reduce pydantic error dicts to JSON-safe field-level details."""
    return [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in errors
    ]
