"""Domain errors raised by the tournament services.

Each error maps to exactly one HTTP status in ``pong_tournament.main``.
"""


class TournamentError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TournamentError):
    """Malformed or missing caller input."""

    status_code = 400


class AuthError(TournamentError):
    """Session token malformed, unverifiable, revoked or expired."""

    status_code = 401


class NotFoundError(TournamentError):
    status_code = 404


class ConflictError(TournamentError):
    """Request is incompatible with the current tournament or match state."""

    status_code = 409


class PersistenceError(TournamentError):
    """Storage failure; the operation was rolled back and may be retried."""

    status_code = 503
