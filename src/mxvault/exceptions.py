"""Exception hierarchy for mxvault.

All exceptions inherit from :class:`MxVaultError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`mxvault.exit_codes`.
The top-level error handler in :func:`mxvault.app.main` catches
``MxVaultError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    MxVaultError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- ConfigError                (exit 1)
    +-- StorageError               (exit 8)
    +-- TransportError             (exit 6)
    +-- IssuanceError              (exit 1)
        +-- ConfigMissingError     (exit 4)
        +-- ProtocolMismatchError  (exit 5)
        +-- UnsupportedFlowError   (exit 9)
        +-- RemoteRejectedError    (exit 3)

:class:`StorageError` and :class:`TransportError` propagate through the
issuer unchanged; the issuer records the state they were raised in on the
``state`` attribute without re-wrapping them.
"""

from __future__ import annotations

from typing import Optional

from mxvault.exit_codes import (
    EXIT_CONFIG_MISSING,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PROTOCOL_MISMATCH,
    EXIT_REMOTE_REJECTED,
    EXIT_STORAGE_ERROR,
    EXIT_TRANSPORT_ERROR,
    EXIT_UNSUPPORTED_FLOW,
)


class MxVaultError(Exception):
    """Base exception for all mxvault errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`mxvault.exit_codes`. The entry point catches
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
        # Set by the issuer when the error crosses an issuance step.
        self.state: Optional[str] = None


class InvalidUsageError(MxVaultError):
    """Raised for invalid CLI arguments, unknown paths, or unsupported operations."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(MxVaultError):
    """Raised for local configuration problems (invalid JSON, bad storage settings)."""

    exit_code = EXIT_GENERIC_FAILURE


class StorageError(MxVaultError):
    """Raised when the secret-storage backend cannot be read or written."""

    exit_code = EXIT_STORAGE_ERROR


class TransportError(MxVaultError):
    """Raised on network-level failures or when a body is not a JSON object.

    Covers connection refused, DNS resolution, timeouts, unparseable URLs,
    and malformed response bodies.
    """

    exit_code = EXIT_TRANSPORT_ERROR


class IssuanceError(MxVaultError):
    """Base class for failures detected by the credential issuer itself."""


class ConfigMissingError(IssuanceError):
    """Raised when no homeserver URL or no login secret is registered."""

    exit_code = EXIT_CONFIG_MISSING


class ProtocolMismatchError(IssuanceError):
    """Raised when a homeserver response violates the expected shape."""

    exit_code = EXIT_PROTOCOL_MISMATCH


class UnsupportedFlowError(IssuanceError):
    """Raised when the homeserver does not advertise the vault login flow."""

    exit_code = EXIT_UNSUPPORTED_FLOW


class RemoteRejectedError(IssuanceError):
    """Raised when the homeserver answers with a Matrix error document.

    Args:
        errcode: The Matrix ``errcode`` (e.g. ``M_FORBIDDEN``).
        error: The optional human-readable ``error`` message.
        action: Short description of the call that was rejected.
    """

    exit_code = EXIT_REMOTE_REJECTED

    def __init__(self, errcode: str, error: str = "", action: str = "logging in"):
        message = f"error {action}: {errcode}"
        if error:
            message = f"{message} {error}"
        super().__init__(message)
        self.errcode = errcode
        self.error = error
