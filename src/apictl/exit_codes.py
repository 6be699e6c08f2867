"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~apictl.exceptions.ApictlError` subclass.
External tooling (CI scripts, shell wrappers) can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ apictl orchestrator buckets download --folder-id 1 --key 2
    $ echo $?
    2   # EXIT_INVALID_USAGE -- Argument --path is missing
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (including configuration problems)."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed in an authenticator that claimed the request."""

EXIT_FILE_NOT_FOUND = 4
"""A local file referenced by a file parameter does not exist."""

EXIT_UPSTREAM_ERROR = 5
"""The remote service answered with a non-2xx status code."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (DNS failure, TLS failure, connection refused)."""

EXIT_DEFINITION_PARSE_ERROR = 7
"""An API definition document could not be parsed into a command tree."""

EXIT_TIMEOUT = 8
"""A long-running operation did not finish within its polling budget."""

EXIT_PLUGIN_ERROR = 10
"""A plugin failed to load or is misconfigured."""
