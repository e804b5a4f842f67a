"""Exception hierarchy for freshcache.

All exceptions inherit from :class:`FreshcacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`freshcache.exit_codes`.

The three failure kinds a cache can meet are :class:`TransportError`,
:class:`ParseError` and :class:`StoreError`.  Transport and store adapters
raise them; the caches catch them at their boundary and turn them into a
degraded result (``source=cache`` or an empty value).  Only the CLI entry
point ever reports one to a user, and only for operations outside the caches.

Subclass hierarchy::

    FreshcacheError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- ConfigError         (exit 3)
    +-- StoreError          (exit 4)
    +-- TransportError      (exit 5)
    +-- ParseError          (exit 6)
"""

from freshcache.exit_codes import (
    EXIT_CONFIG_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PARSE_ERROR,
    EXIT_STORE_ERROR,
    EXIT_TRANSPORT_ERROR,
)


class FreshcacheError(Exception):
    """Base exception for all freshcache errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`freshcache.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(FreshcacheError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(FreshcacheError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_CONFIG_ERROR


class StoreError(FreshcacheError):
    """Raised when the key-value store cannot read, write, or remove an entry."""

    exit_code = EXIT_STORE_ERROR


class TransportError(FreshcacheError):
    """Raised on network-level failures (timeout, DNS, refused, platform-blocked).

    Args:
        message: Human-readable error description.
        blocked: ``True`` when the request was refused locally because the
            platform disallows it, without any network I/O.
    """

    exit_code = EXIT_TRANSPORT_ERROR

    def __init__(self, message: str, blocked: bool = False):
        super().__init__(message)
        self.blocked = blocked


class ParseError(FreshcacheError):
    """Raised when a successful response body is not valid JSON or fails the schema."""

    exit_code = EXIT_PARSE_ERROR
