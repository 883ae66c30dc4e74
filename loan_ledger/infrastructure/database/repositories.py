"""Data access layer for ledger entities"""

from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from loan_ledger.domain.exceptions import ConflictError
from loan_ledger.infrastructure.database.models import (
    Application,
    ApplicationTermsAcceptance,
    Balance,
    Contract,
    Entry,
    Judgment,
    Repayment,
    Terms,
    TermsAgreement,
)
from loan_ledger.infrastructure.database.sequence import SequenceAllocator

ModelT = TypeVar("ModelT")


class SoftDeleteRepository(Generic[ModelT]):
    """
    Repository for one collection that never sees retired rows.

    Every read goes through _live(), so the retired filter lives in one place;
    every insert takes its id from the sequence allocator.
    """

    model: Type[ModelT]

    def __init__(self, db: Session):
        self.db = db
        self.sequence = SequenceAllocator(db)

    def _live(self) -> Query:
        return self.db.query(self.model).filter(self.model.retired.is_(False))

    def get(self, entity_id: int) -> Optional[ModelT]:
        """Fetch a live record by id"""
        return self._live().filter(self.model.id == entity_id).first()

    def list(self) -> List[ModelT]:
        """All live records, newest first"""
        return self._live().order_by(self.model.id.desc()).all()

    def create(self, **fields) -> ModelT:
        """Insert a record with a freshly allocated id"""
        record = self.model(id=self.sequence.next_id(self.model), **fields)
        self.db.add(record)
        self.db.flush()
        return record

    def update(self, record: ModelT, **fields) -> ModelT:
        """Apply field changes, skipping values left as None"""
        for key, value in fields.items():
            if value is not None:
                setattr(record, key, value)
        self.db.flush()
        return record

    def retire(self, record: ModelT) -> None:
        """Soft delete: the row keeps its id and stays for audit"""
        record.retired = True
        self.db.flush()


class ApplicationScopedRepository(SoftDeleteRepository[ModelT]):
    """Collections whose rows belong to an application"""

    def get_for_application(self, application_id: int, for_update: bool = False) -> Optional[ModelT]:
        query = self._live().filter(self.model.application_id == application_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def list_for_application(self, application_id: int) -> List[ModelT]:
        return (
            self._live()
            .filter(self.model.application_id == application_id)
            .order_by(self.model.id.desc())
            .all()
        )


class SingletonRepository(ApplicationScopedRepository[ModelT]):
    """Collections allowing at most one live row per application"""

    label: str = "Record"

    def create(self, **fields) -> ModelT:
        if self.get_for_application(fields["application_id"]) is not None:
            raise ConflictError(f"{self.label} already exists for this application")
        try:
            return super().create(**fields)
        except IntegrityError:
            # Partial unique index caught a concurrent insert
            raise ConflictError(f"{self.label} already exists for this application")


class ApplicationRepository(SoftDeleteRepository[Application]):
    """Repository for loan applications"""

    model = Application


class JudgmentRepository(SingletonRepository[Judgment]):
    """Repository for underwriting judgments"""

    model = Judgment
    label = "Judgment"


class ContractRepository(SingletonRepository[Contract]):
    """Repository for loan contracts"""

    model = Contract
    label = "Contract"


class BalanceRepository(SingletonRepository[Balance]):
    """Repository for running balances with atomic adjustments"""

    model = Balance
    label = "Balance"

    def increment(self, balance: Balance, amount: int) -> Balance:
        """Add amount to the balance in a single UPDATE statement"""
        self.db.execute(
            update(Balance)
            .where(Balance.id == balance.id)
            .values(balance=Balance.balance + amount)
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(balance)
        return balance

    def decrement_if_sufficient(self, balance: Balance, amount: int) -> bool:
        """
        Subtract amount only while the result stays non-negative.

        The sufficiency check is part of the UPDATE's WHERE clause, so two
        concurrent debits can't both pass it against the same starting value.

        Returns:
            False when the balance was too small and nothing changed
        """
        result = self.db.execute(
            update(Balance)
            .where(Balance.id == balance.id, Balance.balance >= amount)
            .values(balance=Balance.balance - amount)
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(balance)
        return result.rowcount == 1


class EntryRepository(ApplicationScopedRepository[Entry]):
    """Repository for credit entries"""

    model = Entry


class RepaymentRepository(ApplicationScopedRepository[Repayment]):
    """Repository for repayments"""

    model = Repayment


class TermsRepository(SoftDeleteRepository[Terms]):
    """Repository for terms documents"""

    model = Terms

    def list(self) -> List[Terms]:
        return self._live().order_by(Terms.id.asc()).all()

    def list_required(self) -> List[Terms]:
        return self._live().filter(Terms.is_required.is_(True)).order_by(Terms.id.asc()).all()

    def get_many(self, terms_ids: List[int]) -> List[Terms]:
        return self._live().filter(Terms.id.in_(terms_ids)).order_by(Terms.id.asc()).all()


class TermsAgreementRepository(SoftDeleteRepository[TermsAgreement]):
    """Repository for per-user terms agreements"""

    model = TermsAgreement

    def list_for_user(self, user_id: str) -> List[TermsAgreement]:
        return (
            self._live()
            .filter(TermsAgreement.user_id == user_id)
            .order_by(TermsAgreement.id.asc())
            .all()
        )


class ApplicationTermsRepository(ApplicationScopedRepository[ApplicationTermsAcceptance]):
    """Repository for per-application terms acceptance"""

    model = ApplicationTermsAcceptance
