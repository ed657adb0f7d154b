from .user_account_repository import SqlAlchemyUserAccountRepository
from .course_repository import SqlAlchemyCourseRepository
from .credit_transaction_repository import SqlAlchemyCreditTransactionRepository

__all__ = [
    "SqlAlchemyUserAccountRepository",
    "SqlAlchemyCourseRepository",
    "SqlAlchemyCreditTransactionRepository",
]
