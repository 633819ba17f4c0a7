"""
Error taxonomy for deadswitch.

Every error carries a stable machine-readable code and a message that is
safe to show to the caller. None of them are retried internally.
"""


class DeadSwitchError(Exception):
    """Base class for all deadswitch errors."""
    code = "ERROR"

    def __init__(self, message: str = ""):
        self.message = message or self.code
        super().__init__(self.message)


class NotFoundError(DeadSwitchError):
    """No will record exists for the referenced owner."""
    code = "NOT_FOUND"

    def __init__(self, message: str = "No will found"):
        super().__init__(message)


class UnauthorizedError(DeadSwitchError):
    """Caller is neither owner nor eligible beneficiary for the operation."""
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class StillAliveError(DeadSwitchError):
    """Claim attempted before the owner's heartbeat interval elapsed."""
    code = "STILL_ALIVE"

    def __init__(self, message: str = "Owner is still alive"):
        super().__init__(message)


class AccessDeniedError(DeadSwitchError):
    """Key-derivation gate failed."""
    code = "ACCESS_DENIED"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class ValidationError(DeadSwitchError):
    """Raised when input validation fails."""
    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class ServiceUnavailableError(DeadSwitchError):
    """An external collaborator could not be reached or answered with an error."""
    code = "SERVICE_UNAVAILABLE"


class DerivationServiceUnavailable(ServiceUnavailableError):
    """The key-derivation collaborator failed."""
    code = "DERIVATION_SERVICE_UNAVAILABLE"


class SettlementError(ServiceUnavailableError):
    """A ledger or asset-transfer leg of settlement failed. Never surfaced to callers."""
    code = "SETTLEMENT_FAILED"


class RateLimitedError(DeadSwitchError):
    code = "RATE_LIMIT"

    def __init__(self, retry_after: float = 0.0):
        self.retry_after = retry_after
        super().__init__("Rate limit exceeded")
