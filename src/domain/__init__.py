from .base import BaseModel, ID_TYPE
from .badge import Badge, BadgeLevel, BadgeChange
from .user_account import UserAccount, AccountRole
from .course import Course, CourseStatus, CourseLevel, Enrollment
from .credit_transaction import CreditTransaction, TransactionType, TransactionStatus
from .credit_policy import CreditPolicy

__all__ = [
    "BaseModel",
    "ID_TYPE",
    "Badge",
    "BadgeLevel",
    "BadgeChange",
    "UserAccount",
    "AccountRole",
    "Course",
    "CourseStatus",
    "CourseLevel",
    "Enrollment",
    "CreditTransaction",
    "TransactionType",
    "TransactionStatus",
    "CreditPolicy",
]
