# apps/api/errors.py
"""Error taxonomy shared by the catalog reads and the ranking functions.

Routes do not catch these; ``main.py`` maps them onto HTTP responses.
"""

from __future__ import annotations


class ClipwaveError(Exception):
    status_code = 500
    public_message = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class ValidationError(ClipwaveError):
    """Missing or malformed caller input. Never retried."""

    status_code = 400
    public_message = "Invalid request"


class NotFoundError(ClipwaveError):
    """A referenced video or user does not exist."""

    status_code = 404
    public_message = "Not found"


class StoreQueryError(ClipwaveError):
    """A store read failed or timed out; no partial results are returned."""

    status_code = 500
    public_message = "Query failed"

    def __init__(self, operation: str) -> None:
        super().__init__(f"Store query failed: {operation}")
        self.operation = operation
