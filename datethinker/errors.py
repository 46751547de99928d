# errors.py
# error kinds raised by the core. main.py maps status_code -> HTTP status


class DateThinkerError(Exception):
    """Base for every error the route layer turns into { "error": <message> }."""

    status_code = 500

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidRequest(DateThinkerError):
    """Missing or malformed input. User-correctable."""

    status_code = 400


class Unauthorized(DateThinkerError):
    status_code = 401


class NotFound(DateThinkerError):
    status_code = 404


class ProviderError(DateThinkerError):
    """Outbound places provider failed. Messages never carry credentials."""

    status_code = 500


class ProviderUnavailable(ProviderError):
    pass


class ProviderQuotaExceeded(ProviderError):
    pass


class StoreError(DateThinkerError):
    """Backing store failure, original message preserved."""

    status_code = 500
