from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Literal
from datetime import datetime


class TransferRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_account: str = Field(
        ...,
        alias="from",
        min_length=1,
        max_length=100,
        description="Account to debit"
    )
    to_account: str = Field(
        ...,
        alias="to",
        min_length=1,
        max_length=100,
        description="Account to credit"
    )
    # Sign is checked by the ledger, not here
    amount: float = Field(
        ...,
        strict=True,
        allow_inf_nan=False,
        description="Amount to move, must be positive"
    )

    @field_validator('from_account', 'to_account')
    @classmethod
    def validate_account(cls, v):
        if not v.strip():
            raise ValueError('Account identifier cannot be blank')
        return v


class TransferResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["ok"] = Field("ok", description="Transfer status")
    from_account: str = Field(..., alias="from", description="Debited account")
    to_account: str = Field(..., alias="to", description="Credited account")
    amount: float = Field(..., description="Amount moved")


class BalanceResponse(BaseModel):
    account: str = Field(..., description="Account identifier")
    balance: float = Field(..., description="Current balance")

    @field_validator('balance')
    @classmethod
    def round_balance(cls, v):
        return round(v, 2)


class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Error description")
    error_code: str = Field(..., description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.now, description="Error timestamp")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service health status")
    timestamp: datetime = Field(default_factory=datetime.now)
    accounts_count: int = Field(..., description="Number of accounts in the ledger")
    total_balance: float = Field(..., description="Sum of all balances")
