"""/v1/contracts - contract creation and status transitions"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from loan_ledger.api.dependencies import get_store
from loan_ledger.api.v1.schemas import ContractRequest, ContractResponse, ContractStatusRequest
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.services import contracts

router = APIRouter()


@router.post("/contracts", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
def create_contract(request_body: ContractRequest, store: LedgerStore = Depends(get_store)):
    return contracts.create_contract(
        store,
        application_id=request_body.application_id,
        judgment_id=request_body.judgment_id,
        amount=request_body.amount,
        rate=request_body.interest_rate,
        term=request_body.term,
    )


@router.get("/contracts", response_model=List[ContractResponse])
def list_contracts(store: LedgerStore = Depends(get_store)):
    return contracts.list_contracts(store)


@router.get("/contracts/{contract_id}", response_model=ContractResponse)
def get_contract(contract_id: int, store: LedgerStore = Depends(get_store)):
    return contracts.get_contract(store, contract_id)


@router.patch("/contracts/{contract_id}/status", response_model=ContractResponse)
def update_contract_status(
    contract_id: int,
    request_body: ContractStatusRequest,
    store: LedgerStore = Depends(get_store),
):
    """
    Move the contract to a new status.

    The first transition to active opens the application's balance at the
    contract amount; repeating it does not.
    """
    return contracts.update_contract_status(
        store,
        contract_id,
        request_body.status,
        signed_at=request_body.signed_at,
        activated_at=request_body.activated_at,
    )


@router.delete("/contracts/{contract_id}", status_code=status.HTTP_204_NO_CONTENT)
def retire_contract(contract_id: int, store: LedgerStore = Depends(get_store)):
    contracts.retire_contract(store, contract_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/applications/{application_id}/contract", response_model=Optional[ContractResponse])
def get_application_contract(application_id: int, store: LedgerStore = Depends(get_store)):
    return contracts.get_contract_for_application(store, application_id)
