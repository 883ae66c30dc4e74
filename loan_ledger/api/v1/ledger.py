"""/v1 balance, entry and repayment endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from loan_ledger.api.dependencies import get_store
from loan_ledger.api.v1.schemas import (
    AmountRequest,
    BalanceResponse,
    EntryResponse,
    LedgerSummaryResponse,
    RepaymentResponse,
)
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.services import balances

router = APIRouter()


@router.get("/applications/{application_id}/balance", response_model=Optional[BalanceResponse])
def get_balance(application_id: int, store: LedgerStore = Depends(get_store)):
    """Current balance, or null before one is opened"""
    return balances.get_balance(store, application_id)


@router.post(
    "/applications/{application_id}/balance",
    response_model=BalanceResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_balance(application_id: int, request_body: AmountRequest, store: LedgerStore = Depends(get_store)):
    return balances.create_balance(store, application_id, request_body.amount)


@router.put("/applications/{application_id}/balance", response_model=BalanceResponse)
def update_balance(application_id: int, request_body: AmountRequest, store: LedgerStore = Depends(get_store)):
    return balances.update_balance(store, application_id, request_body.amount)


@router.delete("/applications/{application_id}/balance", status_code=status.HTTP_204_NO_CONTENT)
def delete_balance(application_id: int, store: LedgerStore = Depends(get_store)):
    balances.delete_balance(store, application_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/applications/{application_id}/entries",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_entry(application_id: int, request_body: AmountRequest, store: LedgerStore = Depends(get_store)):
    return balances.create_entry(store, application_id, request_body.amount)


@router.get("/applications/{application_id}/entries", response_model=List[EntryResponse])
def list_entries(application_id: int, store: LedgerStore = Depends(get_store)):
    return balances.list_entries(store, application_id)


@router.post(
    "/applications/{application_id}/repayments",
    response_model=RepaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_repayment(application_id: int, request_body: AmountRequest, store: LedgerStore = Depends(get_store)):
    """
    Record a repayment against the balance.

    Returns 400 when the amount exceeds the balance; the balance is unchanged.
    """
    return balances.create_repayment(store, application_id, request_body.amount)


@router.get("/applications/{application_id}/repayments", response_model=List[RepaymentResponse])
def list_repayments(application_id: int, store: LedgerStore = Depends(get_store)):
    return balances.list_repayments(store, application_id)


@router.get("/applications/{application_id}/ledger", response_model=LedgerSummaryResponse)
def get_ledger_summary(application_id: int, store: LedgerStore = Depends(get_store)):
    return balances.get_ledger_summary(store, application_id)


@router.get("/entries/{entry_id}", response_model=EntryResponse)
def get_entry(entry_id: int, store: LedgerStore = Depends(get_store)):
    return balances.get_entry(store, entry_id)


@router.get("/repayments/{repayment_id}", response_model=RepaymentResponse)
def get_repayment(repayment_id: int, store: LedgerStore = Depends(get_store)):
    return balances.get_repayment(store, repayment_id)
