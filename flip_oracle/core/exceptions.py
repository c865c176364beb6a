from typing import Dict, Optional


class OracleError(Exception):
    """Base class for failures the HTTP layer reports as {error, message}."""

    error = "Oracle error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Optional[Dict] = None, retryable: Optional[bool] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if retryable is not None:
            self.retryable = retryable

    def to_dict(self) -> Dict:
        body = {"error": self.error, "message": self.message, "retryable": self.retryable}
        body.update(self.details)
        return body


class ConfigurationError(OracleError):
    """Missing or invalid settings, or a signer that the ledger does not trust."""

    error = "Configuration error"
    status_code = 500
    retryable = False


class BetNotFoundError(OracleError):
    """No BetPlaced event for the bet in the searched block range."""

    error = "BetPlaced event not found"
    status_code = 404
    retryable = True


class ChainError(OracleError):
    """RPC failure, reverted transaction or receipt timeout."""

    error = "Chain error"
    status_code = 500
    retryable = True


class SettlementTimeout(OracleError):
    """The bet did not reach Settled before the client gave up polling."""

    error = "Settlement timeout"
    status_code = 504
    retryable = True


class AuthorizationError(OracleError):
    """Missing or wrong bearer token on a protected endpoint."""

    error = "Unauthorized"
    status_code = 401
    retryable = False
