"""Data Transfer Objects for Credits Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from src.domain.user_account import AccountRole


class OpenAccountCommandDTO(BaseModel):
    """
    Command DTO for opening a user account

    Used as input to OpenAccount use case.
    """

    username: str = Field(
        ...,
        min_length=3,
        max_length=100,
        description="Unique username"
    )

    role: AccountRole = Field(
        default=AccountRole.STUDENT,
        description="Account role (student, instructor, admin)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "username": "ada",
                "role": "student"
            }
        }


class AccountResponseDTO(BaseModel):
    user_id: int
    username: str
    role: str
    credits: int
    performance_points: int
    badge: str
    onboarding_transaction_id: Optional[int] = None
    created_at: datetime


class EnrollCommandDTO(BaseModel):
    """
    Command DTO for enrolling a learner in a paid course

    Used as input to EnrollInCourse use case.
    """

    learner_id: int = Field(
        ...,
        gt=0,
        description="Learner account ID"
    )

    course_id: int = Field(
        ...,
        gt=0,
        description="Course ID"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "learner_id": 9,
                "course_id": 3
            }
        }


class EnrollmentReceiptDTO(BaseModel):
    """
    Settlement receipt

    amount_spent == instructor_earnings + platform_fee always holds.
    """

    enrollment_id: int
    learner_id: int
    course_id: int
    instructor_id: int
    original_price: int
    discount_percent: Decimal
    discount_amount: int
    amount_spent: int
    platform_fee: int
    instructor_earnings: int
    remaining_balance: int
    enroll_transaction_id: int
    earn_transaction_id: int
    platform_fee_transaction_id: int
    enrolled_at: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "enrollment_id": 7,
                "learner_id": 9,
                "course_id": 3,
                "instructor_id": 4,
                "original_price": 200,
                "discount_percent": "15",
                "discount_amount": 30,
                "amount_spent": 170,
                "platform_fee": 3,
                "instructor_earnings": 167,
                "remaining_balance": 30,
                "enroll_transaction_id": 21,
                "earn_transaction_id": 22,
                "platform_fee_transaction_id": 23,
                "enrolled_at": "2024-01-01T00:00:00Z"
            }
        }


class BalanceResponseDTO(BaseModel):
    """
    Response DTO for balance query
    """

    user_id: int = Field(..., description="Account identifier")
    balance: int = Field(..., description="Spendable credits")
    performance_points: int = Field(..., description="Badge progression score")
    badge: str = Field(..., description="Badge display name, e.g. 'Gold 1'")
    badge_level: str
    badge_tier: int
    discount_percent: Decimal = Field(..., description="Purchase discount granted by the badge")
    last_activity: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": 9,
                "balance": 200,
                "performance_points": 1600,
                "badge": "Gold 1",
                "badge_level": "Gold",
                "badge_tier": 1,
                "discount_percent": "15",
                "last_activity": "2024-01-01T00:00:00Z"
            }
        }


class TransactionDTO(BaseModel):
    """
    Single ledger entry in a transaction listing
    """

    id: int
    transaction_type: str
    amount_credits: int
    fee_credits: int
    net_credits: int
    status: str
    description: Optional[str] = None
    related_user_id: Optional[int] = None
    related_course_id: Optional[int] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    created_at: datetime


class ListTransactionsResponseDTO(BaseModel):
    """
    Paginated transaction history, newest first
    """

    transactions: List[TransactionDTO]
    total: int = Field(..., description="Total entries matching the filter")
    limit: int
    offset: int


class CashoutCommandDTO(BaseModel):
    """
    Command DTO for withdrawing credits to fiat

    Used as input to RequestCashout use case.
    """

    user_id: int = Field(..., gt=0, description="Account requesting the cashout")

    amount_credits: int = Field(
        ...,
        gt=0,
        description="Credits to withdraw (gross, before cashout fee)"
    )

    payment_method: str = Field(
        default="Bank Transfer",
        max_length=100,
        description="Payout channel"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": 4,
                "amount_credits": 500,
                "payment_method": "Bank Transfer"
            }
        }


class CashoutResponseDTO(BaseModel):
    transaction_id: int
    user_id: int
    amount_credits: int
    fee_credits: int
    net_credits: int
    fiat_amount: Decimal
    payment_method: str
    status: str
    remaining_balance: int
    created_at: datetime


class CashoutSettlementResponseDTO(BaseModel):
    """
    Outcome of a payout callback

    refund_transaction_id is set only when a failed cashout was compensated.
    """

    transaction_id: int
    user_id: int
    status: str
    refund_transaction_id: Optional[int] = None
    balance: int


class PurchaseCommandDTO(BaseModel):
    """
    Command DTO for buying credits with fiat money
    """

    user_id: int = Field(..., gt=0)

    amount_credits: int = Field(
        ...,
        gt=0,
        description="Credits bought"
    )

    payment_reference: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Payment provider reference, used as idempotency key when present"
    )


class PurchaseResponseDTO(BaseModel):
    transaction_id: int
    user_id: int
    amount_credits: int
    fiat_amount: Decimal
    balance: int
    created_at: datetime


class LedgerDiscrepancyDTO(BaseModel):
    """
    Account whose stored balance disagrees with its ledger entries
    """

    user_id: int
    username: str
    account_balance: int
    calculated_balance: int
    discrepancy: int = Field(..., description="account_balance - calculated_balance")


class SettlementDiscrepancyDTO(BaseModel):
    """
    Enrollment settlement whose legs do not conserve credits
    """

    reference_id: str
    learner_debit: int
    instructor_net: int
    platform_fee: int
    difference: int = Field(..., description="learner_debit - (instructor_net + platform_fee)")
    missing_legs: List[str] = Field(default_factory=list)


class ReconciliationResultDTO(BaseModel):
    """
    Result of ledger reconciliation run
    """

    total_accounts_checked: int
    discrepancies_found: int
    discrepancies: List[LedgerDiscrepancyDTO]
    settlements_checked: int = 0
    settlement_discrepancies: List[SettlementDiscrepancyDTO] = Field(default_factory=list)
    reconciliation_time: datetime
    execution_time_ms: int

    @property
    def is_balanced(self) -> bool:
        return self.discrepancies_found == 0 and not self.settlement_discrepancies


class PlatformAccountDTO(BaseModel):
    """
    The distinguished account collecting platform fees
    """

    user_id: int
    username: str
    created: bool = Field(..., description="False when the account already existed")
