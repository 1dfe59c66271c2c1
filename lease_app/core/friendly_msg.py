from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

FRIENDLY_MESSAGES = (
    (IntegrityError, "This change conflicts with an existing lease or payment record."),
    (OperationalError, "The lease records are temporarily unavailable. Please try again shortly."),
    (DBAPIError, "Temporary issue while accessing lease data. Please try again shortly."),
    (ConnectionError, "Unable to connect to a required service. Please try again later."),
    (TimeoutError, "The request took too long. Please try again later."),
    (ValueError, "Invalid data received. Please check your input and try again."),
)


def get_friendly_message(error: Exception) -> str:
    for error_type, msg in FRIENDLY_MESSAGES:
        if isinstance(error, error_type):
            return msg
    return "Something went wrong on our end. Please try again."
