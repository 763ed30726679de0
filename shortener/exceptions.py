"""Exception hierarchy for the URL shortener.

Client-facing rejections (the caller asked for something that cannot be
served, including a short code that is already taken) set
``is_client_error``. Everything else is a server-side failure and is
logged with a traceback by the HTTP layer.

Hierarchy
=========
::
    ShortenerError
    ├─ URLNotFoundError          (client)
    ├─ URLExpiredError           (client)
    ├─ InvalidShortCodeError     (client)
    │  ├─ EmptyInputError
    │  └─ InvalidCharacterError
    ├─ AlreadyExistsError        (client)
    ├─ InvalidMachineIdError
    ├─ CacheUnavailableError
    ├─ ClockMovedBackwardsError
    └─ GenerationCancelledError
"""

__all__ = [
    "ShortenerError",
    "URLNotFoundError",
    "URLExpiredError",
    "InvalidShortCodeError",
    "EmptyInputError",
    "InvalidCharacterError",
    "AlreadyExistsError",
    "InvalidMachineIdError",
    "CacheUnavailableError",
    "ClockMovedBackwardsError",
    "GenerationCancelledError",
]


class ShortenerError(Exception):
    """Base exception for all shortener errors."""

    is_client_error: bool = False


class URLNotFoundError(ShortenerError):
    """No active URL exists for the short code."""

    is_client_error = True

    def __init__(self, short_code: str):
        super().__init__(f"Short URL '{short_code}' not found")
        self.short_code = short_code


class URLExpiredError(ShortenerError):
    """The short code resolved, but its expiration instant has passed."""

    is_client_error = True

    def __init__(self, short_code: str):
        super().__init__(f"Short URL '{short_code}' has expired")
        self.short_code = short_code


class InvalidShortCodeError(ShortenerError):
    """Malformed custom alias or undecodable short code."""

    is_client_error = True


class EmptyInputError(InvalidShortCodeError):
    """Decoding was asked to decode an empty string."""


class InvalidCharacterError(InvalidShortCodeError):
    """A character outside the Base62 alphabet was found."""

    def __init__(self, character: str, position: int):
        super().__init__(f"Invalid character {character!r} at position {position}")
        self.character = character
        self.position = position


class AlreadyExistsError(ShortenerError):
    """The durable store rejected a duplicate short code."""

    is_client_error = True

    def __init__(self, short_code: str):
        super().__init__(f"Short code '{short_code}' already exists")
        self.short_code = short_code


class InvalidMachineIdError(ShortenerError):
    """The configured machine id does not fit in 10 bits."""


class CacheUnavailableError(ShortenerError):
    """The cache could not be reached or returned unreadable data."""


class ClockMovedBackwardsError(ShortenerError):
    """The clock stayed behind the last issued timestamp for too long."""


class GenerationCancelledError(ShortenerError):
    """Id generation was cancelled by the caller."""
