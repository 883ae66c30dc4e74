"""/v1/judgments - underwriting decisions"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from loan_ledger.api.dependencies import get_store
from loan_ledger.api.v1.schemas import JudgmentRequest, JudgmentResponse, JudgmentUpdateRequest
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.services import judgments

router = APIRouter()


@router.post("/judgments", response_model=JudgmentResponse, status_code=status.HTTP_201_CREATED)
def create_judgment(request_body: JudgmentRequest, store: LedgerStore = Depends(get_store)):
    """
    Record the judgment for an application.

    Returns 409 when the application already has one.
    """
    return judgments.create_judgment(store, **request_body.model_dump())


@router.get("/judgments", response_model=List[JudgmentResponse])
def list_judgments(store: LedgerStore = Depends(get_store)):
    return judgments.list_judgments(store)


@router.get("/judgments/{judgment_id}", response_model=JudgmentResponse)
def get_judgment(judgment_id: int, store: LedgerStore = Depends(get_store)):
    return judgments.get_judgment(store, judgment_id)


@router.patch("/judgments/{judgment_id}", response_model=JudgmentResponse)
def update_judgment(
    judgment_id: int,
    request_body: JudgmentUpdateRequest,
    store: LedgerStore = Depends(get_store),
):
    return judgments.update_judgment(store, judgment_id, **request_body.model_dump())


@router.delete("/judgments/{judgment_id}", status_code=status.HTTP_204_NO_CONTENT)
def retire_judgment(judgment_id: int, store: LedgerStore = Depends(get_store)):
    judgments.retire_judgment(store, judgment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/applications/{application_id}/judgment", response_model=Optional[JudgmentResponse])
def get_application_judgment(application_id: int, store: LedgerStore = Depends(get_store)):
    return judgments.get_judgment_for_application(store, application_id)
