"""
Balance ledger - the running balance per application and the records that move it.

Rules:
- One live Balance per application, created only through ensure_balance
  (contract activation and the first entry both go through it)
- Entries add to the balance, repayments subtract from it; each record and
  its balance change commit in the same transaction
- The balance never goes below zero: a repayment larger than the balance is
  rejected and leaves it unchanged
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from loan_ledger.domain.exceptions import NotFoundError, UnprocessableEntityError, ValidationError
from loan_ledger.domain.models import LedgerSummary
from loan_ledger.infrastructure.database.models import Application, Balance, Entry, Repayment
from loan_ledger.infrastructure.database.repositories import (
    BalanceRepository,
    EntryRepository,
    RepaymentRepository,
)
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.infrastructure.observability.logging import log_ledger_event, log_rejection
from loan_ledger.infrastructure.observability.metrics import record_balance_movement, repayment_rejected_counter
from loan_ledger.services.applications import require_application


def ensure_balance(db: Session, application_id: int, initial_amount: int = 0) -> Tuple[Balance, bool]:
    """
    Return the application's live balance, creating it with initial_amount if absent.

    An existing balance is returned untouched, so calling this again (for
    example when a contract re-enters active) never funds the borrower twice.

    Returns:
        (balance, opened) where opened is True when this call created it
    """
    if initial_amount < 0:
        raise ValidationError("Balance cannot be negative")

    repo = BalanceRepository(db)
    balance = repo.get_for_application(application_id, for_update=True)
    if balance is not None:
        return balance, False

    balance = repo.create(application_id=application_id, balance=initial_amount)
    logging.info(
        "Balance opened",
        extra={"step": "balance_opened", "application_id": application_id, "balance": initial_amount},
    )
    return balance, True


def _require_contracted(application: Application) -> None:
    if application.contracted_at is None:
        raise UnprocessableEntityError("Application has not been contracted yet")


def _require_positive(amount: int, label: str) -> None:
    if amount is None or amount <= 0:
        raise ValidationError(f"{label} amount must be greater than 0")


def get_balance(store: LedgerStore, application_id: int) -> Optional[Balance]:
    """Live balance for the application, or None before one is opened"""

    def _get(db: Session) -> Optional[Balance]:
        require_application(db, application_id)
        return BalanceRepository(db).get_for_application(application_id)

    return store.run_transaction(_get)


def create_balance(store: LedgerStore, application_id: int, amount: int) -> Balance:
    """
    Open a balance directly (administrative correction).

    Raises:
        ValidationError: negative amount
        NotFoundError: application missing
        ConflictError: balance already exists
    """
    if amount is None or amount < 0:
        raise ValidationError("Balance cannot be negative")

    def _create(db: Session) -> Balance:
        require_application(db, application_id)
        return BalanceRepository(db).create(application_id=application_id, balance=amount)

    balance = store.run_transaction(_create)
    log_ledger_event("balance_created", application_id, balance_id=balance.id, balance=amount)
    return balance


def update_balance(store: LedgerStore, application_id: int, amount: int) -> Balance:
    """Overwrite the balance (administrative correction)"""
    if amount is None or amount < 0:
        raise ValidationError("Balance cannot be negative")

    def _update(db: Session) -> Balance:
        require_application(db, application_id)
        repo = BalanceRepository(db)
        balance = repo.get_for_application(application_id, for_update=True)
        if balance is None:
            raise NotFoundError("Balance not found for this application")
        previous = balance.balance
        repo.update(balance, balance=amount)
        log_ledger_event("balance_overridden", application_id, previous=previous, balance=amount)
        return balance

    return store.run_transaction(_update)


def delete_balance(store: LedgerStore, application_id: int) -> None:
    """Soft delete the balance; entries, repayments and the application are left as they are"""

    def _delete(db: Session) -> None:
        require_application(db, application_id)
        repo = BalanceRepository(db)
        balance = repo.get_for_application(application_id, for_update=True)
        if balance is None:
            raise NotFoundError("Balance not found for this application")
        repo.retire(balance)

    store.run_transaction(_delete)
    log_ledger_event("balance_retired", application_id)


def create_entry(store: LedgerStore, application_id: int, amount: int) -> Entry:
    """
    Credit the application's balance.

    Raises:
        ValidationError: amount <= 0
        NotFoundError: application missing
        UnprocessableEntityError: application not contracted
    """
    _require_positive(amount, "Entry")

    def _credit(db: Session) -> Tuple[Entry, int]:
        application = require_application(db, application_id)
        _require_contracted(application)

        balance, _ = ensure_balance(db, application_id)
        BalanceRepository(db).increment(balance, amount)
        entry = EntryRepository(db).create(application_id=application_id, amount=amount)
        return entry, balance.balance

    entry, balance_after = store.run_transaction(_credit)
    record_balance_movement("entry", amount)
    log_ledger_event("entry_created", application_id, entry_id=entry.id, amount=amount, balance=balance_after)
    return entry


def create_repayment(store: LedgerStore, application_id: int, amount: int) -> Repayment:
    """
    Debit the application's balance.

    Raises:
        ValidationError: amount <= 0, or amount greater than the current balance
        NotFoundError: application missing
        UnprocessableEntityError: application not contracted, or no balance yet
    """
    _require_positive(amount, "Repayment")

    def _debit(db: Session) -> Tuple[Repayment, int]:
        application = require_application(db, application_id)
        if application.contracted_at is None:
            repayment_rejected_counter.labels(reason="not_contracted").inc()
            raise UnprocessableEntityError("Application has not been contracted yet")

        repo = BalanceRepository(db)
        balance = repo.get_for_application(application_id, for_update=True)
        if balance is None:
            repayment_rejected_counter.labels(reason="no_balance").inc()
            raise UnprocessableEntityError("No balance found for this application")

        if not repo.decrement_if_sufficient(balance, amount):
            repayment_rejected_counter.labels(reason="insufficient_balance").inc()
            log_rejection("repayment", "insufficient balance", application_id, amount=amount, balance=balance.balance)
            raise ValidationError("Insufficient balance for repayment")

        repayment = RepaymentRepository(db).create(application_id=application_id, amount=amount)
        return repayment, balance.balance

    repayment, balance_after = store.run_transaction(_debit)
    record_balance_movement("repayment", amount)
    log_ledger_event("repayment_created", application_id, repayment_id=repayment.id, amount=amount, balance=balance_after)
    return repayment


def list_entries(store: LedgerStore, application_id: int) -> List[Entry]:
    def _list(db: Session) -> List[Entry]:
        require_application(db, application_id)
        return EntryRepository(db).list_for_application(application_id)

    return store.run_transaction(_list)


def get_entry(store: LedgerStore, entry_id: int) -> Entry:
    def _get(db: Session) -> Entry:
        entry = EntryRepository(db).get(entry_id)
        if entry is None:
            raise NotFoundError("Entry not found")
        return entry

    return store.run_transaction(_get)


def list_repayments(store: LedgerStore, application_id: int) -> List[Repayment]:
    def _list(db: Session) -> List[Repayment]:
        require_application(db, application_id)
        return RepaymentRepository(db).list_for_application(application_id)

    return store.run_transaction(_list)


def get_repayment(store: LedgerStore, repayment_id: int) -> Repayment:
    def _get(db: Session) -> Repayment:
        repayment = RepaymentRepository(db).get(repayment_id)
        if repayment is None:
            raise NotFoundError("Repayment not found")
        return repayment

    return store.run_transaction(_get)


def get_ledger_summary(store: LedgerStore, application_id: int) -> LedgerSummary:
    """Entry and repayment totals next to the current balance"""

    def _summary(db: Session) -> LedgerSummary:
        require_application(db, application_id)
        entries_total = (
            db.query(func.coalesce(func.sum(Entry.amount), 0))
            .filter(Entry.application_id == application_id, Entry.retired.is_(False))
            .scalar()
        )
        repayments_total = (
            db.query(func.coalesce(func.sum(Repayment.amount), 0))
            .filter(Repayment.application_id == application_id, Repayment.retired.is_(False))
            .scalar()
        )
        balance = BalanceRepository(db).get_for_application(application_id)
        return LedgerSummary(
            application_id=application_id,
            entries_total=int(entries_total),
            repayments_total=int(repayments_total),
            balance=balance.balance if balance else None,
        )

    return store.run_transaction(_summary)
