"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~freshcache.exceptions.FreshcacheError` subclass.
The caches themselves never surface these failures to callers; the codes are
only observable when a CLI command cannot complete at all (bad config, a
store that cannot be opened).

Example::

    $ freshcache config set liveness.ttl_seconds soon
    $ echo $?
    2   # EXIT_INVALID_USAGE -- the value could not be coerced
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_CONFIG_ERROR = 3
"""The configuration file is missing, malformed, or fails validation."""

EXIT_STORE_ERROR = 4
"""The local key-value store could not be opened, read, or written."""

EXIT_TRANSPORT_ERROR = 5
"""A network-level error occurred (timeout, DNS failure, blocked request)."""

EXIT_PARSE_ERROR = 6
"""A remote document could not be decoded or failed schema validation."""
