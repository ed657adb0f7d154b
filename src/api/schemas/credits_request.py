"""Request schemas for Credits API

Pydantic models for validating incoming HTTP requests.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator
from src.domain.user_account import AccountRole


class OpenAccountRequestSchema(BaseModel):
    """
    Request schema for opening an account

    Used for POST /credits/accounts endpoint.
    """

    username: str = Field(
        ...,
        min_length=3,
        max_length=100,
        description="Unique username (3-100 characters)"
    )

    role: AccountRole = Field(
        default=AccountRole.STUDENT,
        description="student, instructor or admin"
    )

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        """Reject blank or padded usernames"""
        if v.strip() != v or not v.strip():
            raise ValueError("Username must not be blank or padded with whitespace")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "username": "ada",
                "role": "student"
            }
        }


class EnrollRequestSchema(BaseModel):
    """
    Request schema for enrolling in a course

    Used for POST /credits/enroll endpoint.
    """

    learner_id: int = Field(..., gt=0, description="Learner paying for the course")
    course_id: int = Field(..., gt=0, description="Course to enroll in")

    class Config:
        json_schema_extra = {
            "example": {
                "learner_id": 9,
                "course_id": 3
            }
        }


class CashoutRequestSchema(BaseModel):
    """
    Request schema for withdrawing credits to fiat

    Used for POST /credits/cashout endpoint.
    """

    user_id: int = Field(..., gt=0)

    amount_credits: int = Field(
        ...,
        gt=0,
        description="Credits to withdraw (subject to the minimum cashout)"
    )

    payment_method: str = Field(
        default="Bank Transfer",
        min_length=1,
        max_length=50,
    )

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": 4,
                "amount_credits": 500,
                "payment_method": "Bank Transfer"
            }
        }


class CashoutFailureRequestSchema(BaseModel):
    """Payout provider callback for a failed payout"""

    reason: Optional[str] = Field(default=None, max_length=255)


class CashoutCancelRequestSchema(BaseModel):
    """Owner withdrawing a pending cashout"""

    user_id: int = Field(..., gt=0)


class PurchaseRequestSchema(BaseModel):
    """
    Request schema for buying credits

    Used for POST /credits/purchase endpoint.
    """

    user_id: int = Field(..., gt=0)

    amount_credits: int = Field(..., gt=0, description="Credits to buy")

    payment_reference: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=255,
        description="Payment provider reference; repeated references are not charged twice"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": 9,
                "amount_credits": 1000,
                "payment_reference": "pi_3Nabc"
            }
        }
