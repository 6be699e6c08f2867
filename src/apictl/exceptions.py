"""Exception hierarchy for apictl.

All exceptions inherit from :class:`ApictlError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`apictl.exit_codes`.
Generated commands catch ``ApictlError``, print the message to stderr and
exit with the appropriate code, while unexpected exceptions produce a crash
log in :func:`apictl.app.main` and exit with :data:`EXIT_GENERIC_FAILURE`.

Several messages are part of the user-facing contract and are reproduced
verbatim by scripts wrapping the CLI (``Argument --<flag> is missing``,
``<Service> returned status code '<code>' and body '<body>'``,
``Error sending request: ...``).

Subclass hierarchy::

    ApictlError (exit 1)
    +-- InvalidUsageError          (exit 2)
    |   +-- MissingArgumentError
    |   +-- BindError
    |   +-- UnknownCommandError
    |   +-- CommandDisabledError
    +-- AuthenticationFailedError  (exit 3)
    +-- FileNotFoundError_         (exit 4)
    +-- UpstreamError              (exit 5)
    +-- ConnectionError_           (exit 6)
    +-- DefinitionParseError       (exit 7)
    +-- PollingTimeoutError        (exit 8)
    +-- PluginError                (exit 10)
    +-- ConfigError                (exit 1)
"""

from apictl.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_DEFINITION_PARSE_ERROR,
    EXIT_FILE_NOT_FOUND,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PLUGIN_ERROR,
    EXIT_TIMEOUT,
    EXIT_UPSTREAM_ERROR,
)

REQUEST_ERROR_PREFIX = "Error sending request: "
"""Stable prefix for every failure that happens while sending a request."""


class ApictlError(Exception):
    """Base exception for all apictl errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`apictl.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ApictlError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class MissingArgumentError(InvalidUsageError):
    """Raised when a required parameter has no value from any source.

    Args:
        flag: The external flag name without dashes (e.g. ``folder-id``).
    """

    def __init__(self, flag: str):
        super().__init__(f"Argument --{flag} is missing")
        self.flag = flag


class BindError(InvalidUsageError):
    """Raised when a raw argument cannot be coerced into its declared type."""


class UnknownCommandError(InvalidUsageError):
    """Raised when no definition, command, or plugin matches an invocation."""


class CommandDisabledError(InvalidUsageError):
    """Raised when a command that a plugin marked unsupported is invoked."""


class AuthenticationFailedError(ApictlError):
    """Raised when an authenticator claimed the request and then failed."""

    exit_code = EXIT_AUTH_FAILURE


class FileNotFoundError_(ApictlError):
    """Raised when a file parameter points at a path that does not exist.

    Only raised while the request body is being produced, never during
    argument binding. Named with a trailing underscore to avoid shadowing
    the built-in ``FileNotFoundError``.

    Args:
        path: The path exactly as the user supplied it.
    """

    exit_code = EXIT_FILE_NOT_FOUND

    def __init__(self, path: str):
        super().__init__(f"{REQUEST_ERROR_PREFIX}File '{path}' not found")
        self.path = path


class UpstreamError(ApictlError):
    """Raised when a remote service answers with a non-2xx status code.

    Args:
        service: Display name of the service (e.g. ``Orchestrator``).
        status_code: The HTTP status code.
        body: The raw response body, reproduced verbatim in the message.
    """

    exit_code = EXIT_UPSTREAM_ERROR

    def __init__(self, service: str, status_code: int, body: str):
        super().__init__(
            f"{service} returned status code '{status_code}' and body '{body}'"
        )
        self.service = service
        self.status_code = status_code
        self.body = body


class ConnectionError_(ApictlError):
    """Raised on network-level failures (DNS resolution, TLS, connection refused).

    The message always starts with ``Error sending request:``. Named with a
    trailing underscore to avoid shadowing the built-in ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR

    def __init__(self, detail: str):
        super().__init__(f"{REQUEST_ERROR_PREFIX}{detail}")


class DefinitionParseError(ApictlError):
    """Raised when a definition document cannot be turned into a command tree.

    Args:
        definition: Name of the offending definition.
        message: What went wrong.
    """

    exit_code = EXIT_DEFINITION_PARSE_ERROR

    def __init__(self, definition: str, message: str):
        super().__init__(f"Error parsing definition '{definition}': {message}")
        self.definition = definition


class PollingTimeoutError(ApictlError):
    """Raised when a polled long-running operation never reaches a terminal state."""

    exit_code = EXIT_TIMEOUT


class PluginError(ApictlError):
    """Raised when a command plugin fails to load or registers a clashing identity."""

    exit_code = EXIT_PLUGIN_ERROR


class ConfigError(ApictlError):
    """Raised for configuration problems (invalid YAML, unknown profile, unset organization)."""

    exit_code = EXIT_GENERIC_FAILURE
