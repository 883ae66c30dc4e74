"""Underwriting judgments - one live judgment per application"""

from typing import List, Optional

from sqlalchemy.orm import Session

from loan_ledger.domain.exceptions import NotFoundError, UnprocessableEntityError, ValidationError
from loan_ledger.domain.lifecycle import resolve_judgment_status
from loan_ledger.domain.models import JudgmentStatus
from loan_ledger.infrastructure.database.models import Judgment
from loan_ledger.infrastructure.database.repositories import ContractRepository, JudgmentRepository
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.infrastructure.observability.logging import log_ledger_event
from loan_ledger.infrastructure.observability.metrics import record_lifecycle
from loan_ledger.services.applications import require_application


def require_judgment(db: Session, judgment_id: int) -> Judgment:
    judgment = JudgmentRepository(db).get(judgment_id)
    if judgment is None:
        raise NotFoundError("Judgment not found")
    return judgment


def _require_uncontracted(db: Session, judgment: Judgment, action: str) -> None:
    """A judgment backing a live contract is frozen"""
    if ContractRepository(db).get_for_application(judgment.application_id) is not None:
        raise UnprocessableEntityError(f"Cannot {action} a judgment while its application has a contract")


def _validate_terms(approval_amount: Optional[int], approval_rate: Optional[float]) -> None:
    if approval_amount is not None and approval_amount < 0:
        raise ValidationError("Approval amount cannot be negative")
    if approval_rate is not None and approval_rate < 0:
        raise ValidationError("Approval interest rate cannot be negative")


def create_judgment(
    store: LedgerStore,
    application_id: int,
    name: str,
    approval_amount: int,
    approval_rate: float,
    reason: Optional[str] = None,
    status: str | JudgmentStatus | None = None,
) -> Judgment:
    """
    Record the underwriting decision for an application.

    The status is stored explicitly next to the amount; see
    resolve_judgment_status for how it is derived when omitted.

    Raises:
        ValidationError: missing name, negative amount/rate, approved without amount
        NotFoundError: application missing or retired
        ConflictError: application already has a live judgment
    """
    if not name or not name.strip():
        raise ValidationError("name required")
    if approval_amount is None or approval_rate is None:
        raise ValidationError("approval_amount and approval_rate required")
    _validate_terms(approval_amount, approval_rate)
    resolved = resolve_judgment_status(approval_amount, reason, status)

    def _create(db: Session) -> Judgment:
        require_application(db, application_id)
        return JudgmentRepository(db).create(
            application_id=application_id,
            name=name.strip(),
            status=resolved.value,
            approval_amount=approval_amount,
            approval_interest_rate=approval_rate,
            reason=reason,
        )

    judgment = store.run_transaction(_create)
    record_lifecycle("judgment", resolved.value)
    log_ledger_event(
        "judgment_created",
        application_id,
        judgment_id=judgment.id,
        status=resolved.value,
        approval_amount=approval_amount,
    )
    return judgment


def get_judgment(store: LedgerStore, judgment_id: int) -> Judgment:
    return store.run_transaction(lambda db: require_judgment(db, judgment_id))


def get_judgment_for_application(store: LedgerStore, application_id: int) -> Optional[Judgment]:
    def _get(db: Session) -> Optional[Judgment]:
        require_application(db, application_id)
        return JudgmentRepository(db).get_for_application(application_id)

    return store.run_transaction(_get)


def list_judgments(store: LedgerStore) -> List[Judgment]:
    return store.run_transaction(lambda db: JudgmentRepository(db).list())


def update_judgment(
    store: LedgerStore,
    judgment_id: int,
    name: Optional[str] = None,
    approval_amount: Optional[int] = None,
    approval_rate: Optional[float] = None,
    reason: Optional[str] = None,
    status: str | JudgmentStatus | None = None,
) -> Judgment:
    """
    Amend a judgment; the status is re-derived unless given explicitly.

    Raises:
        UnprocessableEntityError: status or amount changed while the application has a live contract
    """
    if name is not None and not name.strip():
        raise ValidationError("name cannot be blank")
    _validate_terms(approval_amount, approval_rate)

    def _update(db: Session) -> Judgment:
        judgment = require_judgment(db, judgment_id)
        amount = approval_amount if approval_amount is not None else judgment.approval_amount
        new_reason = reason if reason is not None else judgment.reason
        resolved = resolve_judgment_status(amount, new_reason, status)
        if resolved.value != judgment.status or amount != judgment.approval_amount:
            _require_uncontracted(db, judgment, "change the outcome of")
        return JudgmentRepository(db).update(
            judgment,
            name=name,
            approval_amount=approval_amount,
            approval_interest_rate=approval_rate,
            reason=reason,
            status=resolved.value,
        )

    judgment = store.run_transaction(_update)
    log_ledger_event("judgment_updated", judgment.application_id, judgment_id=judgment_id, status=judgment.status)
    return judgment


def retire_judgment(store: LedgerStore, judgment_id: int) -> None:
    def _retire(db: Session) -> Judgment:
        judgment = require_judgment(db, judgment_id)
        _require_uncontracted(db, judgment, "retire")
        JudgmentRepository(db).retire(judgment)
        return judgment

    judgment = store.run_transaction(_retire)
    log_ledger_event("judgment_retired", judgment.application_id, judgment_id=judgment_id)
