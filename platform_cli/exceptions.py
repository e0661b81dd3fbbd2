"""
platform-cli exception hierarchy.

All custom exceptions live here to avoid circular imports.
"""


class CliError(Exception):
    """Exit code 1 — validation, network, parse errors."""

    exit_code = 1


class SetupError(CliError):
    """Exit code 2 — no credential, broken profile."""

    exit_code = 2


class LoginError(SetupError):
    """Raised by a login procedure that could not obtain a token."""


class ContractError(CliError):
    """Exit code 3 — the caller broke the API layer's contract (a bug, not a user error)."""

    exit_code = 3


class TransportError(CliError):
    """Connection, TLS, timeout or cancellation failure. Never retried."""


class ResponseDecodeError(CliError):
    """A successful response whose body is not valid JSON."""


class StatusError(CliError):
    """Normalized error for a non-success HTTP status.

    ``problem`` is set when the body was an RFC 7807 problem document.
    """

    def __init__(self, message, status_code, problem=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.problem = problem

    def __str__(self):
        if self.problem is None:
            return self.message
        return f"{self.message}: {self.problem}"
