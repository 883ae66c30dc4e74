"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordResponse(BaseModel):
    """Fields shared by every persisted record"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime


# Applications


class ApplicationRequest(BaseModel):
    """Request body for POST /v1/applications"""

    name: str
    phone: str
    email: str
    requested_amount: Optional[int] = Field(None, description="Requested amount in minor units")
    interest_rate: Optional[float] = None
    fee: Optional[int] = None
    maturity: Optional[int] = Field(None, description="Maturity in months")


class ApplicationUpdateRequest(BaseModel):
    """Request body for PATCH /v1/applications/{application_id}"""

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    requested_amount: Optional[int] = None
    interest_rate: Optional[float] = None
    fee: Optional[int] = None
    maturity: Optional[int] = None


class ApplicationResponse(RecordResponse):
    name: str
    phone: str
    email: str
    requested_amount: Optional[int] = None
    interest_rate: Optional[float] = None
    fee: Optional[int] = None
    maturity: Optional[int] = None
    applied_at: datetime
    approval_amount: Optional[int] = None
    contracted_at: Optional[datetime] = None


class ApplicationStateResponse(BaseModel):
    application_id: int
    state: str


# Judgments


class JudgmentRequest(BaseModel):
    """Request body for POST /v1/judgments"""

    application_id: int
    name: str
    approval_amount: int
    approval_rate: float
    reason: Optional[str] = None
    status: Optional[str] = Field(None, description="pending | approved | rejected; derived when omitted")


class JudgmentUpdateRequest(BaseModel):
    name: Optional[str] = None
    approval_amount: Optional[int] = None
    approval_rate: Optional[float] = None
    reason: Optional[str] = None
    status: Optional[str] = None


class JudgmentResponse(RecordResponse):
    application_id: int
    name: str
    status: str
    approval_amount: int
    approval_interest_rate: float
    reason: Optional[str] = None


# Contracts


class ContractRequest(BaseModel):
    """Request body for POST /v1/contracts"""

    application_id: int
    judgment_id: int
    amount: int
    interest_rate: float
    term: int = Field(..., description="Duration in months")


class ContractStatusRequest(BaseModel):
    """Request body for PATCH /v1/contracts/{contract_id}/status"""

    status: str
    signed_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None


class ContractResponse(RecordResponse):
    application_id: int
    judgment_id: int
    amount: int
    interest_rate: float
    term: int
    status: str
    signed_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None


# Ledger


class AmountRequest(BaseModel):
    """Request body for entries, repayments and balance corrections"""

    amount: int


class BalanceResponse(RecordResponse):
    application_id: int
    balance: int


class EntryResponse(RecordResponse):
    application_id: int
    amount: int


class RepaymentResponse(RecordResponse):
    application_id: int
    amount: int


class LedgerSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    application_id: int
    entries_total: int
    repayments_total: int
    balance: Optional[int] = None


# Terms and agreements


class TermsRequest(BaseModel):
    """Request body for POST /v1/terms"""

    name: str
    detail_url: str
    content: Optional[str] = None
    version: Optional[str] = None
    is_required: bool = True


class TermsUpdateRequest(BaseModel):
    name: Optional[str] = None
    detail_url: Optional[str] = None
    content: Optional[str] = None
    version: Optional[str] = None
    is_required: Optional[bool] = None


class TermsResponse(RecordResponse):
    name: str
    detail_url: str
    content: Optional[str] = None
    version: Optional[str] = None
    is_required: bool


class TermsIdsRequest(BaseModel):
    terms_ids: List[int]


class TermsAgreementResponse(RecordResponse):
    user_id: str
    terms_id: int


class ApplicationTermsResponse(RecordResponse):
    application_id: int
    terms_id: int


class MissingTermsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    terms_id: int
    name: str


class AgreementStatusResponse(BaseModel):
    """Response for GET /v1/users/{user_id}/agreements/status"""

    model_config = ConfigDict(from_attributes=True)

    complete: bool
    missing: List[MissingTermsSchema]
