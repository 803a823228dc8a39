"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~mxvault.exceptions.MxVaultError` subclass.
Wrapper scripts can inspect the exit code to determine the failure class
without parsing stderr.

Example::

    $ mxvault token get alice example.org
    $ echo $?
    9   # EXIT_UNSUPPORTED_FLOW -- the homeserver lacks the vault login type
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or an unknown path."""

EXIT_REMOTE_REJECTED = 3
"""The homeserver answered with a structured Matrix error (``errcode``)."""

EXIT_CONFIG_MISSING = 4
"""No homeserver URL or no login secret is registered for the user."""

EXIT_PROTOCOL_MISMATCH = 5
"""The homeserver response did not match the expected shape."""

EXIT_TRANSPORT_ERROR = 6
"""A network-level error occurred, or the body was not a JSON object."""

EXIT_STORAGE_ERROR = 8
"""The secret-storage backend failed to read or write."""

EXIT_UNSUPPORTED_FLOW = 9
"""The homeserver does not advertise the ``io.t2bot.vault`` login flow."""
