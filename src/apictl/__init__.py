"""apictl -- a data-driven command-line client for OpenAPI-described services.

Every API surface is described by a definition document (OpenAPI-style JSON
or YAML) dropped into the definitions directory. At startup the documents are
turned into a tree of ``apictl <service> <group> <command>`` sub-commands;
on invocation the raw arguments are bound against the active profile, the
request is authenticated through a chain of strategies, and the result is
either sent as a generic HTTP request or handed to a specialised plugin
command.

Typical workflow::

    apictl orchestrator buckets upload --folder-id 1 --key 2 \\
        --path report.pdf --file ./report.pdf
    apictl du digitization digitize --file invoice.pdf --debug

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration, profile and plugin-config loading.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
