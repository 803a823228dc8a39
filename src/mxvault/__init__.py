"""mxvault -- issue Matrix access tokens from stored login secrets.

mxvault keeps a client-server URL per homeserver domain and a login secret
per Matrix user, and exchanges them for fresh access tokens through the
``io.t2bot.vault`` login type. The secret never leaves the machine; only an
HMAC-SHA256 proof bound to the user ID is sent.

Typical workflow::

    mxvault homeserver set example.org https://matrix.example.org
    mxvault user set alice example.org
    mxvault token get alice example.org

Modules:
    app: Typer application and CLI entry point.
    backend: Wires storage, transport, issuer, and handlers together.
    issuer: The login-flow exchange and token-hash derivation.
    handlers: Request variants, handlers, and secrets-engine path routing.
    store: Typed accessors for homeserver and user records.
    storage: Pluggable key/value storage backends.
    client: JSON-over-HTTP transport built on httpx.
    models: Pydantic models shared across the package.
    config: XDG-aware local configuration.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
