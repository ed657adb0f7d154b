"""Domain errors

Every error carries a stable `code`. Use cases translate these into
`libs.result.Error` values; the API maps codes to HTTP statuses.
"""


class CreditsError(Exception):
    code = "CREDITS_ERROR"

    def __init__(self, message: str, reason: str = None):
        super().__init__(message)
        self.message = message
        self.reason = reason


class InvalidRequestError(CreditsError):
    """Malformed input, rejected before any mutation"""
    code = "VALIDATION_ERROR"


class NotFoundError(CreditsError):
    code = "NOT_FOUND"


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"


class CourseNotFoundError(NotFoundError):
    code = "COURSE_NOT_FOUND"


class TransactionNotFoundError(NotFoundError):
    code = "TRANSACTION_NOT_FOUND"


class InsufficientFundsError(CreditsError):
    code = "INSUFFICIENT_CREDIT"

    def __init__(self, user_id: int, required: int, available: int = None):
        available_text = "unknown" if available is None else str(available)
        super().__init__(
            f"Insufficient credits. Required: {required}, Available: {available_text}",
            reason=f"user_id={user_id}, required={required}, balance={available_text}",
        )
        self.user_id = user_id
        self.required = required
        self.available = available


class AlreadyEnrolledError(CreditsError):
    code = "ALREADY_ENROLLED"


class EnrollmentClosedError(CreditsError):
    code = "ENROLLMENT_CLOSED"


class NotEnrolledError(CreditsError):
    code = "NOT_ENROLLED"


class ForbiddenError(CreditsError):
    code = "FORBIDDEN"


class InvalidStatusTransitionError(CreditsError):
    code = "INVALID_STATUS_TRANSITION"


class PlatformAccountMissingError(CreditsError):
    code = "PLATFORM_ACCOUNT_NOT_PROVISIONED"


class SettlementFailureError(CreditsError):
    """Settlement abandoned after an unexpected or repeated database failure"""
    code = "SETTLEMENT_FAILED"


class PaymentReferenceConflictError(CreditsError):
    """Payment reference already settled for another user or amount"""
    code = "PAYMENT_REFERENCE_CONFLICT"


class DuplicateAccountError(CreditsError):
    code = "USERNAME_TAKEN"


class CourseAlreadyCompletedError(CreditsError):
    code = "ALREADY_COMPLETED"
