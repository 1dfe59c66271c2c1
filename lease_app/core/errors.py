class LeaseEngineError(Exception):
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LeaseEngineError):
    """Bad numeric/duration input, rejected before any write."""

    status_code = 422


class NotFoundError(LeaseEngineError):
    status_code = 404


class InvalidTransitionError(LeaseEngineError):
    status_code = 409


class ConcurrencyConflict(LeaseEngineError):
    """Another reviewer changed the payment between our read and our write."""

    status_code = 409


class PersistenceError(LeaseEngineError):
    status_code = 503


# Raised by the caller's own input or by a losing race; they say nothing
# about the health of the database.
EXPECTED_ERRORS = (
    ValidationError,
    NotFoundError,
    InvalidTransitionError,
    ConcurrencyConflict,
)
