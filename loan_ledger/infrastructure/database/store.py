"""Ledger store - transactional access to the ledger database"""

import logging
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from loan_ledger.domain.exceptions import DomainException, TransactionTimeoutError
from loan_ledger.infrastructure.database.models import Base
from loan_ledger.infrastructure.database.session import build_engine, build_session_factory
from loan_ledger.infrastructure.observability.metrics import transaction_failure_counter

T = TypeVar("T")


def statement_timeout_ms(deadline: float) -> int:
    """PostgreSQL statement_timeout for a deadline; 0 would disable the limit"""
    return max(1, int(deadline * 1000))


class LedgerStore:
    """
    Handle to the ledger database, passed explicitly to every operation.

    All reads and writes of an operation go through run_transaction so that
    balance mutations and their audit records commit or roll back together.
    """

    def __init__(self, session_factory: sessionmaker, timeout_seconds: Optional[float] = None):
        self.session_factory = session_factory
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_url(cls, database_url: str, timeout_seconds: Optional[float] = None, echo: bool = False) -> "LedgerStore":
        """Build a store with its own engine"""
        engine = build_engine(database_url, echo=echo, lock_timeout_seconds=timeout_seconds)
        return cls(build_session_factory(engine), timeout_seconds=timeout_seconds)

    @property
    def engine(self):
        return self.session_factory.kw["bind"]

    def create_schema(self) -> None:
        """Create all ledger tables that don't exist yet"""
        Base.metadata.create_all(bind=self.engine)

    def drop_schema(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def run_transaction(self, fn: Callable[[Session], T], timeout: Optional[float] = None) -> T:
        """
        Execute fn inside a single database transaction.

        - Commits when fn returns
        - Any exception rolls back every write and propagates unchanged
        - When a deadline applies and is exceeded, the transaction is rolled
          back and TransactionTimeoutError raised; PostgreSQL also enforces it
          per statement

        Args:
            fn: Callable receiving the transactional session
            timeout: Deadline in seconds, overriding the store default

        Returns:
            Whatever fn returns
        """
        deadline = timeout if timeout is not None else self.timeout_seconds
        started = time.monotonic()

        try:
            with self.session_factory() as db:
                with db.begin():
                    if deadline is not None and db.get_bind().dialect.name == "postgresql":
                        db.execute(text(f"SET LOCAL statement_timeout = {statement_timeout_ms(deadline)}"))

                    result = fn(db)
                    db.flush()

                    elapsed = time.monotonic() - started
                    if deadline is not None and elapsed > deadline:
                        raise TransactionTimeoutError(
                            f"Transaction exceeded deadline of {deadline:.3f}s ({elapsed:.3f}s elapsed)"
                        )
                return result
        except Exception as e:
            # Domain rejections are expected outcomes, not store failures
            if not isinstance(e, DomainException) or isinstance(e, TransactionTimeoutError):
                transaction_failure_counter.labels(error=type(e).__name__).inc()
            logging.debug(f"Ledger transaction rolled back: {e}", extra={"error_type": type(e).__name__})
            raise
