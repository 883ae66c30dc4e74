"""Contracts and their signing/activation state machine"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from loan_ledger.domain.exceptions import NotFoundError, UnprocessableEntityError, ValidationError
from loan_ledger.domain.lifecycle import is_activation, validate_contract_transition
from loan_ledger.domain.models import ContractStatus, JudgmentStatus
from loan_ledger.infrastructure.database.models import Contract
from loan_ledger.infrastructure.database.repositories import ContractRepository
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.infrastructure.observability.logging import log_ledger_event
from loan_ledger.infrastructure.observability.metrics import record_balance_movement, record_lifecycle
from loan_ledger.services.applications import require_application
from loan_ledger.services.balances import ensure_balance
from loan_ledger.services.judgments import require_judgment
from loan_ledger.utils.time_utils import utcnow


def require_contract(db: Session, contract_id: int) -> Contract:
    contract = ContractRepository(db).get(contract_id)
    if contract is None:
        raise NotFoundError("Contract not found")
    return contract


def create_contract(
    store: LedgerStore,
    application_id: int,
    judgment_id: int,
    amount: int,
    rate: float,
    term: int,
) -> Contract:
    """
    Create the contract for an application from its approved judgment.

    Raises:
        ValidationError: non-positive amount or term, negative rate
        NotFoundError: application or judgment missing
        ConflictError: application already has a live contract
        UnprocessableEntityError: judgment belongs to another application or isn't approved
    """
    if amount is None or amount <= 0:
        raise ValidationError("Contract amount must be greater than 0")
    if term is None or term <= 0:
        raise ValidationError("Contract term must be greater than 0")
    if rate is None or rate < 0:
        raise ValidationError("Contract interest rate cannot be negative")

    def _create(db: Session) -> Contract:
        require_application(db, application_id)
        judgment = require_judgment(db, judgment_id)
        if judgment.application_id != application_id:
            raise UnprocessableEntityError("Judgment belongs to a different application")
        if judgment.status != JudgmentStatus.APPROVED.value:
            raise UnprocessableEntityError(f"Judgment is {judgment.status}, not approved")

        return ContractRepository(db).create(
            application_id=application_id,
            judgment_id=judgment_id,
            amount=amount,
            interest_rate=rate,
            term=term,
            status=ContractStatus.PENDING.value,
        )

    contract = store.run_transaction(_create)
    record_lifecycle("contract", ContractStatus.PENDING.value)
    log_ledger_event("contract_created", application_id, contract_id=contract.id, amount=amount, term=term)
    return contract


def update_contract_status(
    store: LedgerStore,
    contract_id: int,
    status: str | ContractStatus,
    signed_at: Optional[datetime] = None,
    activated_at: Optional[datetime] = None,
) -> Contract:
    """
    Move a contract to a new status.

    Entering active, in the same transaction:
    - stamps activated_at (defaults to now; an earlier stamp is kept)
    - stamps the application's contracted_at if it isn't set
    - opens the balance at the contract amount unless one already exists

    Raises:
        NotFoundError: contract missing
        ValidationError: unknown status
        UnprocessableEntityError: transition not allowed from the current status
    """

    def _transition(db: Session) -> Tuple[Contract, str, Optional[int]]:
        contract = require_contract(db, contract_id)
        previous = contract.status
        target = validate_contract_transition(previous, status)
        opened_balance = None

        if target == ContractStatus.SIGNED:
            contract.signed_at = contract.signed_at or signed_at or utcnow()

        # Re-entering active changes nothing
        if is_activation(previous, target):
            application = require_application(db, contract.application_id)
            stamp = activated_at or utcnow()
            if contract.signed_at is None:
                contract.signed_at = signed_at or stamp
            if contract.activated_at is None:
                contract.activated_at = stamp
            if application.contracted_at is None:
                application.contracted_at = contract.activated_at

            balance, opened = ensure_balance(db, contract.application_id, contract.amount)
            if opened:
                opened_balance = balance.balance
            else:
                log_ledger_event("balance_kept", contract.application_id, balance=balance.balance)

        contract.status = target.value
        db.flush()
        return contract, previous, opened_balance

    contract, previous, opened_balance = store.run_transaction(_transition)
    record_lifecycle("contract", contract.status)
    log_ledger_event(
        "contract_status_changed",
        contract.application_id,
        contract_id=contract_id,
        previous=previous,
        status=contract.status,
    )
    if opened_balance is not None:
        record_balance_movement("activation", opened_balance)
    return contract


def get_contract(store: LedgerStore, contract_id: int) -> Contract:
    return store.run_transaction(lambda db: require_contract(db, contract_id))


def get_contract_for_application(store: LedgerStore, application_id: int) -> Optional[Contract]:
    def _get(db: Session) -> Optional[Contract]:
        require_application(db, application_id)
        return ContractRepository(db).get_for_application(application_id)

    return store.run_transaction(_get)


def list_contracts(store: LedgerStore) -> List[Contract]:
    return store.run_transaction(lambda db: ContractRepository(db).list())


def retire_contract(store: LedgerStore, contract_id: int) -> None:
    """Soft delete a contract; its balance and records are not touched"""

    def _retire(db: Session) -> Contract:
        contract = require_contract(db, contract_id)
        ContractRepository(db).retire(contract)
        return contract

    contract = store.run_transaction(_retire)
    log_ledger_event("contract_retired", contract.application_id, contract_id=contract_id)
