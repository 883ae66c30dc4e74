"""/v1/applications - intake and the contracted transition"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from loan_ledger.api.dependencies import get_store
from loan_ledger.api.v1.schemas import (
    ApplicationRequest,
    ApplicationResponse,
    ApplicationStateResponse,
    ApplicationUpdateRequest,
)
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.services import applications

router = APIRouter()


@router.post("/applications", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
def create_application(request_body: ApplicationRequest, store: LedgerStore = Depends(get_store)):
    """Register a new loan application"""
    return applications.create_application(store, **request_body.model_dump())


@router.get("/applications", response_model=List[ApplicationResponse])
def list_applications(store: LedgerStore = Depends(get_store)):
    return applications.list_applications(store)


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
def get_application(application_id: int, store: LedgerStore = Depends(get_store)):
    return applications.get_application(store, application_id)


@router.patch("/applications/{application_id}", response_model=ApplicationResponse)
def update_application(
    application_id: int,
    request_body: ApplicationUpdateRequest,
    store: LedgerStore = Depends(get_store),
):
    return applications.update_application(store, application_id, **request_body.model_dump())


@router.delete("/applications/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
def retire_application(application_id: int, store: LedgerStore = Depends(get_store)):
    applications.retire_application(store, application_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/applications/{application_id}/contract", response_model=ApplicationResponse)
def contract_application(application_id: int, store: LedgerStore = Depends(get_store)):
    """
    Mark the application as contracted.

    Copies the judgment's approval amount onto the application.
    """
    return applications.contract_application(store, application_id)


@router.get("/applications/{application_id}/state", response_model=ApplicationStateResponse)
def get_application_state(application_id: int, store: LedgerStore = Depends(get_store)):
    state = applications.get_application_state(store, application_id)
    return ApplicationStateResponse(application_id=application_id, state=state.value)
