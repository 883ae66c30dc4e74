"""Application intake and the contracted transition"""

from typing import List, Optional

from sqlalchemy.orm import Session

from loan_ledger.domain.exceptions import ConflictError, NotFoundError, UnprocessableEntityError, ValidationError
from loan_ledger.domain.lifecycle import derive_application_state
from loan_ledger.domain.models import ApplicationState
from loan_ledger.infrastructure.database.models import Application
from loan_ledger.infrastructure.database.repositories import (
    ApplicationRepository,
    ContractRepository,
    JudgmentRepository,
)
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.infrastructure.observability.logging import log_ledger_event
from loan_ledger.infrastructure.observability.metrics import record_lifecycle
from loan_ledger.utils.time_utils import utcnow


def require_application(db: Session, application_id: int) -> Application:
    """Live application or NotFoundError"""
    application = ApplicationRepository(db).get(application_id)
    if application is None:
        raise NotFoundError("Application not found")
    return application


def _require_text(**fields: Optional[str]) -> None:
    missing = [name for name, value in fields.items() if value is None or not str(value).strip()]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required")


def _require_non_negative(**fields: Optional[float]) -> None:
    for name, value in fields.items():
        if value is not None and value < 0:
            raise ValidationError(f"{name} cannot be negative")


def create_application(
    store: LedgerStore,
    name: str,
    phone: str,
    email: str,
    requested_amount: Optional[int] = None,
    interest_rate: Optional[float] = None,
    fee: Optional[int] = None,
    maturity: Optional[int] = None,
) -> Application:
    """
    Register a loan application.

    Raises:
        ValidationError: name, phone or email missing, or a negative optional value
    """
    _require_text(name=name, phone=phone, email=email)
    _require_non_negative(requested_amount=requested_amount, interest_rate=interest_rate, fee=fee, maturity=maturity)

    def _create(db: Session) -> Application:
        return ApplicationRepository(db).create(
            name=name.strip(),
            phone=phone.strip(),
            email=email.strip(),
            requested_amount=requested_amount,
            interest_rate=interest_rate,
            fee=fee,
            maturity=maturity,
            applied_at=utcnow(),
        )

    application = store.run_transaction(_create)
    record_lifecycle("application", "submitted")
    log_ledger_event("application_created", application.id, requested_amount=requested_amount)
    return application


def get_application(store: LedgerStore, application_id: int) -> Application:
    return store.run_transaction(lambda db: require_application(db, application_id))


def list_applications(store: LedgerStore) -> List[Application]:
    return store.run_transaction(lambda db: ApplicationRepository(db).list())


def update_application(
    store: LedgerStore,
    application_id: int,
    name: Optional[str] = None,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    requested_amount: Optional[int] = None,
    interest_rate: Optional[float] = None,
    fee: Optional[int] = None,
    maturity: Optional[int] = None,
) -> Application:
    """Edit contact and pre-approval fields; lifecycle fields are owned by judgment/contract operations"""
    for field_name, value in (("name", name), ("phone", phone), ("email", email)):
        if value is not None and not value.strip():
            raise ValidationError(f"{field_name} cannot be blank")
    _require_non_negative(requested_amount=requested_amount, interest_rate=interest_rate, fee=fee, maturity=maturity)

    def _update(db: Session) -> Application:
        application = require_application(db, application_id)
        return ApplicationRepository(db).update(
            application,
            name=name,
            phone=phone,
            email=email,
            requested_amount=requested_amount,
            interest_rate=interest_rate,
            fee=fee,
            maturity=maturity,
        )

    return store.run_transaction(_update)


def retire_application(store: LedgerStore, application_id: int) -> None:
    def _retire(db: Session) -> None:
        ApplicationRepository(db).retire(require_application(db, application_id))

    store.run_transaction(_retire)
    log_ledger_event("application_retired", application_id)


def contract_application(store: LedgerStore, application_id: int) -> Application:
    """
    Mark an application as contracted.

    Copies the judgment's approval amount onto the application and stamps
    contracted_at.

    Raises:
        NotFoundError: application missing or retired
        ConflictError: application already contracted
        UnprocessableEntityError: no judgment yet
    """

    def _contract(db: Session) -> Application:
        application = require_application(db, application_id)
        if application.contracted_at is not None:
            raise ConflictError("Application has already been contracted")

        judgment = JudgmentRepository(db).get_for_application(application_id)
        if judgment is None:
            raise UnprocessableEntityError("Application has not been judged yet")

        application.approval_amount = judgment.approval_amount
        application.contracted_at = utcnow()
        db.flush()
        return application

    application = store.run_transaction(_contract)
    record_lifecycle("application", "contracted")
    log_ledger_event("application_contracted", application_id, approval_amount=application.approval_amount)
    return application


def get_application_state(store: LedgerStore, application_id: int) -> ApplicationState:
    """Current lifecycle state of an application"""

    def _state(db: Session) -> ApplicationState:
        application = require_application(db, application_id)
        judgment = JudgmentRepository(db).get_for_application(application_id)
        contract = ContractRepository(db).get_for_application(application_id)
        return derive_application_state(
            has_judgment=judgment is not None,
            contracted=application.contracted_at is not None,
            contract_status=contract.status if contract else None,
        )

    return store.run_transaction(_state)
