"""Credit Transaction Domain Entity

Immutable append-only ledger of every credit movement.
Each transaction belongs to exactly one account (the one it debits or credits).
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text
from src.domain.base import BaseModel, ID_TYPE
from src.domain.errors import InvalidStatusTransitionError
from src.domain.transaction_meta import TransactionMeta, parse_meta


class TransactionType(str, Enum):
    """Credit transaction types"""
    ENROLL = "enroll"            # Learner paid for a course
    PURCHASE = "purchase"        # Credits bought with fiat
    CASHOUT = "cashout"          # Credits withdrawn to fiat (starts pending)
    ONBOARDING = "onboarding"    # Welcome bonus for new accounts
    BONUS = "bonus"              # Platform fees, badge movements, point awards
    REFUND = "refund"            # Compensation (e.g. failed cashout)
    EARN = "earn"                # Instructor earnings from an enrollment


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Types that move credits out of the owner's balance (by amount_credits)
DEBIT_TYPES = frozenset({TransactionType.ENROLL, TransactionType.CASHOUT})

_ALLOWED_TRANSITIONS = {
    TransactionStatus.PENDING: frozenset({
        TransactionStatus.COMPLETED,
        TransactionStatus.FAILED,
        TransactionStatus.CANCELLED,
    }),
}


class CreditTransaction(BaseModel, table=True):
    """
    Credit Transaction - Immutable record of one account's credit movement

    Domain Rules:
    - amount_credits >= 0, fee_credits >= 0, fee_credits <= amount_credits
    - net_credits == amount_credits - fee_credits
    - Only status may change, and only pending -> completed/failed/cancelled
    - Balance changes happen when the entry is recorded, never on status change
    - idempotency_key is unique when present (retry-safe jobs and settlements)
    - reference_type/reference_id group the legs of one settlement
    """

    __tablename__ = "credit_transactions"
    __table_args__ = (
        CheckConstraint('amount_credits >= 0', name='amount_non_negative'),
        CheckConstraint('fee_credits >= 0', name='fee_non_negative'),
        CheckConstraint('fee_credits <= amount_credits', name='fee_within_amount'),
        CheckConstraint('net_credits = amount_credits - fee_credits', name='net_is_amount_minus_fee'),
        Index('ix_credit_transactions_user_created', 'user_id', 'created_at'),
        Index('ix_credit_transactions_reference', 'reference_type', 'reference_id'),
    )

    id: int = Field(
        default=None,
        sa_column=Column(ID_TYPE, primary_key=True, autoincrement=True),
        description="Unique transaction identifier (auto-increment)"
    )

    user_id: int = Field(
        sa_column=Column(ID_TYPE, ForeignKey("user_accounts.id", ondelete="CASCADE"), nullable=False),
        description="Owning account"
    )

    transaction_type: TransactionType = Field(
        index=True,
        description="Type of transaction"
    )

    amount_credits: int = Field(
        sa_column=Column(Integer, nullable=False),
        description="Gross amount in credits"
    )

    fee_credits: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Fee withheld from the gross amount"
    )

    net_credits: int = Field(
        sa_column=Column(Integer, nullable=False),
        description="amount_credits - fee_credits"
    )

    status: TransactionStatus = Field(
        default=TransactionStatus.COMPLETED,
        index=True,
        description="Lifecycle status"
    )

    description: Optional[str] = Field(
        default=None,
        sa_column=Column(String(200), nullable=True),
        description="Human-readable description"
    )

    meta_json: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="Typed metadata variant serialized as JSON"
    )

    related_user_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ID_TYPE, ForeignKey("user_accounts.id"), nullable=True),
        description="Counterparty account, if any"
    )

    related_course_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ID_TYPE, ForeignKey("courses.id"), nullable=True),
        description="Course the movement relates to, if any"
    )

    reference_type: Optional[str] = Field(
        default=None,
        sa_column=Column(String(50), nullable=True),
        description="Type of reference (e.g., 'enrollment', 'cashout')"
    )

    reference_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="ID of referenced entity (e.g., enrollment id)"
    )

    idempotency_key: Optional[str] = Field(
        default=None,
        unique=True,
        index=True,
        description="Unique key for idempotent operations"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Transaction timestamp (immutable)"
    )

    @property
    def meta(self) -> Optional[TransactionMeta]:
        return parse_meta(self.meta_json)

    @property
    def signed_credits(self) -> int:
        """Effect of this entry on its owner's balance"""
        if self.transaction_type in DEBIT_TYPES:
            return -self.amount_credits
        return self.net_credits

    def can_transition_to(self, new_status: TransactionStatus) -> bool:
        return new_status in _ALLOWED_TRANSITIONS.get(self.status, frozenset())

    def transition_to(self, new_status: TransactionStatus) -> None:
        if not self.can_transition_to(new_status):
            raise InvalidStatusTransitionError(
                f"Cannot move transaction {self.id} from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": 1,
                "user_id": 42,
                "transaction_type": "earn",
                "amount_credits": 170,
                "fee_credits": 3,
                "net_credits": 167,
                "status": "completed",
                "reference_type": "enrollment",
                "reference_id": "7",
                "idempotency_key": "earn:course-3:learner-9",
                "created_at": "2024-01-01T00:00:00Z"
            }
        }
