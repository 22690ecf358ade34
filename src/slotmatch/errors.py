"""Error taxonomy shared by the store, the ranking pipeline and the routes.

Every error carries the HTTP status it maps to and a short ``kind`` string
that is returned to clients alongside the message.  Server-side kinds
(persistence and ranking failures) expose only a generic message; the
original exception is chained and logged for operators.
"""

from __future__ import annotations


class SlotmatchError(Exception):
    status_code = 500
    kind = "error"
    public_message = ""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message

    @property
    def detail(self) -> str:
        """Message safe to show the caller."""
        if self.status_code >= 500 and self.public_message:
            return self.public_message
        return self.message


# ── Client errors ─────────────────────────────────────────────────────────

class ValidationError(SlotmatchError):
    status_code = 400
    kind = "validation_error"


class AuthenticationError(SlotmatchError):
    status_code = 401
    kind = "unauthorized"


class NotFoundError(SlotmatchError):
    status_code = 404
    kind = "not_found"


class ConflictError(SlotmatchError):
    status_code = 400
    kind = "conflict"


# ── Server errors ─────────────────────────────────────────────────────────

class PersistenceError(SlotmatchError):
    kind = "persistence_error"
    public_message = "A storage error occurred."


class RankingError(SlotmatchError):
    kind = "ranking_error"
    public_message = "Failed to rank candidates."


class UpstreamUnavailable(RankingError):
    kind = "upstream_unavailable"
    public_message = "The language model is unavailable."


class NoStructuredOutput(RankingError):
    kind = "no_structured_output"
    public_message = "The language model returned no JSON array."


class MalformedModelOutput(RankingError):
    kind = "malformed_model_output"
    public_message = "The language model returned malformed JSON."

    def __init__(self, message: str = "", decode_error: str = "") -> None:
        super().__init__(message)
        self.decode_error = decode_error
