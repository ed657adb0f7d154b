"""Typed transaction metadata

Each ledger entry carries exactly one metadata variant, discriminated by
`kind`. Variants are stored as JSON text on the transaction row and parsed
back with `parse_meta`.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Dict, FrozenSet, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter


class EnrollMeta(BaseModel):
    """Learner side of an enrollment settlement"""
    kind: Literal["enroll"] = "enroll"
    course_id: int
    original_price: int
    discount_percent: Decimal
    discount_amount: int


class EarnMeta(BaseModel):
    """Instructor side of an enrollment settlement"""
    kind: Literal["earn"] = "earn"
    course_id: int
    learner_id: int
    fee_percent: Decimal


class PlatformFeeMeta(BaseModel):
    """Platform fee leg of an enrollment settlement"""
    kind: Literal["platform_fee"] = "platform_fee"
    course_id: int
    learner_id: int
    instructor_id: int
    fee_percent: Decimal


class BonusMeta(BaseModel):
    """Badge movements and point awards (zero-credit bonus entries)"""
    kind: Literal["bonus"] = "bonus"
    reason: str
    old_badge: Optional[str] = None
    new_badge: Optional[str] = None
    points_awarded: Optional[int] = None
    performance_points: Optional[int] = None
    course_id: Optional[int] = None
    awarded_by: Optional[int] = None
    rank: Optional[int] = None
    period: Optional[str] = None
    last_activity: Optional[datetime] = None
    inactivity_weeks: Optional[int] = None


class CashoutMeta(BaseModel):
    kind: Literal["cashout"] = "cashout"
    payment_method: str
    fiat_amount: Decimal
    credit_to_fiat_rate: Decimal


class RefundMeta(BaseModel):
    kind: Literal["refund"] = "refund"
    original_transaction_id: int
    reason: str


class OnboardingMeta(BaseModel):
    kind: Literal["onboarding"] = "onboarding"
    reason: str = "Welcome bonus"


class PurchaseMeta(BaseModel):
    kind: Literal["purchase"] = "purchase"
    payment_reference: Optional[str] = None
    fiat_amount: Optional[Decimal] = None


TransactionMeta = Annotated[
    Union[
        EnrollMeta,
        EarnMeta,
        PlatformFeeMeta,
        BonusMeta,
        CashoutMeta,
        RefundMeta,
        OnboardingMeta,
        PurchaseMeta,
    ],
    Field(discriminator="kind"),
]

_meta_adapter = TypeAdapter(TransactionMeta)

# transaction type value -> allowed meta kinds
ALLOWED_META_KINDS: Dict[str, FrozenSet[str]] = {
    "enroll": frozenset({"enroll"}),
    "earn": frozenset({"earn"}),
    "bonus": frozenset({"bonus", "platform_fee"}),
    "cashout": frozenset({"cashout"}),
    "refund": frozenset({"refund"}),
    "onboarding": frozenset({"onboarding"}),
    "purchase": frozenset({"purchase"}),
}


def dump_meta(meta: TransactionMeta) -> str:
    return _meta_adapter.dump_json(meta).decode("utf-8")


def parse_meta(raw: Optional[str]) -> Optional[TransactionMeta]:
    if not raw:
        return None
    return _meta_adapter.validate_json(raw)
