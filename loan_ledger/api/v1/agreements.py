"""/v1 terms catalogue and agreement endpoints"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from loan_ledger.api.dependencies import get_store
from loan_ledger.api.v1.schemas import (
    AgreementStatusResponse,
    ApplicationTermsResponse,
    TermsAgreementResponse,
    TermsIdsRequest,
    TermsRequest,
    TermsResponse,
    TermsUpdateRequest,
)
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.services import agreements

router = APIRouter()


@router.post("/terms", response_model=TermsResponse, status_code=status.HTTP_201_CREATED)
def create_terms(request_body: TermsRequest, store: LedgerStore = Depends(get_store)):
    return agreements.create_terms(store, **request_body.model_dump())


@router.get("/terms", response_model=List[TermsResponse])
def list_terms(store: LedgerStore = Depends(get_store)):
    return agreements.list_terms(store)


@router.get("/terms/{terms_id}", response_model=TermsResponse)
def get_terms(terms_id: int, store: LedgerStore = Depends(get_store)):
    return agreements.get_terms(store, terms_id)


@router.patch("/terms/{terms_id}", response_model=TermsResponse)
def update_terms(terms_id: int, request_body: TermsUpdateRequest, store: LedgerStore = Depends(get_store)):
    return agreements.update_terms(store, terms_id, **request_body.model_dump())


@router.delete("/terms/{terms_id}", status_code=status.HTTP_204_NO_CONTENT)
def retire_terms(terms_id: int, store: LedgerStore = Depends(get_store)):
    agreements.retire_terms(store, terms_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/users/{user_id}/agreements",
    response_model=List[TermsAgreementResponse],
    status_code=status.HTTP_201_CREATED,
)
def record_agreement(user_id: str, request_body: TermsIdsRequest, store: LedgerStore = Depends(get_store)):
    """Replace the user's accepted terms with the given set"""
    return agreements.record_agreement(store, user_id, request_body.terms_ids)


@router.get("/users/{user_id}/agreements", response_model=List[TermsAgreementResponse])
def list_user_agreements(user_id: str, store: LedgerStore = Depends(get_store)):
    return agreements.list_user_agreements(store, user_id)


@router.get("/users/{user_id}/agreements/status", response_model=AgreementStatusResponse)
def check_required_agreements(user_id: str, store: LedgerStore = Depends(get_store)):
    return agreements.check_required_agreements(store, user_id)


@router.post(
    "/applications/{application_id}/terms",
    response_model=List[ApplicationTermsResponse],
    status_code=status.HTTP_201_CREATED,
)
def accept_application_terms(
    application_id: int,
    request_body: TermsIdsRequest,
    store: LedgerStore = Depends(get_store),
):
    return agreements.accept_application_terms(store, application_id, request_body.terms_ids)


@router.get("/applications/{application_id}/terms", response_model=List[ApplicationTermsResponse])
def list_application_terms(application_id: int, store: LedgerStore = Depends(get_store)):
    return agreements.list_application_terms(store, application_id)
