"""Exception hierarchy for the calendar feed pipeline."""


class CalendarRSSError(Exception):
    """Base exception for calendar feed operations."""

    pass


class ConfigError(CalendarRSSError):
    """Invalid or missing configuration value."""

    pass


class AuthError(CalendarRSSError):
    """Request credential did not match the configured secret."""

    pass


class SourceFetchError(CalendarRSSError):
    """A calendar source could not be fetched or parsed."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url


class CacheError(CalendarRSSError):
    """Base exception for result cache operations."""

    pass


class CacheReadError(CacheError):
    """Reading the cached feed failed."""

    pass


class CacheWriteError(CacheError):
    """Writing the cached feed failed."""

    pass
