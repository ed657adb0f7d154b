from .user_account_repository import UserAccountRepository
from .course_repository import CourseRepository
from .credit_transaction_repository import CreditTransactionRepository

__all__ = [
    "UserAccountRepository",
    "CourseRepository",
    "CreditTransactionRepository",
]
