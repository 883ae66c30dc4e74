"""SQLAlchemy ORM models for the loan ledger collections"""

from sqlalchemy import Column, String, BigInteger, Boolean, Float, DateTime, Integer, ForeignKey, Text, Index, text
from sqlalchemy.orm import declarative_base

from loan_ledger.domain.models import ContractStatus, JudgmentStatus
from loan_ledger.utils.time_utils import utcnow

Base = declarative_base()


def live_singleton_index(table_name: str) -> Index:
    """Unique index allowing one non-retired row per application"""
    return Index(
        f"uq_{table_name}_live_application",
        "application_id",
        unique=True,
        postgresql_where=text("retired = false"),
        sqlite_where=text("retired = 0"),
    )


class LedgerRecordMixin:
    """Columns shared by every collection: allocated id, timestamps, soft-delete flag"""

    # Ids come from SequenceAllocator, never from the database
    id = Column(Integer, primary_key=True, autoincrement=False)
    retired = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class SequenceCounter(Base):
    """Current value of the identifier sequence for one collection"""

    __tablename__ = "sequence_counters"

    name = Column(String(64), primary_key=True)
    current_value = Column(BigInteger, nullable=False, default=0)


class Application(LedgerRecordMixin, Base):
    """Borrower's loan request; anchor of the lifecycle"""

    __tablename__ = "applications"

    name = Column(Text, nullable=False)
    phone = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    requested_amount = Column(BigInteger, nullable=True)
    interest_rate = Column(Float, nullable=True)
    fee = Column(BigInteger, nullable=True)
    maturity = Column(Integer, nullable=True)
    applied_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    approval_amount = Column(BigInteger, nullable=True)
    contracted_at = Column(DateTime(timezone=True), nullable=True)


class Judgment(LedgerRecordMixin, Base):
    """Underwriting decision for an application"""

    __tablename__ = "judgments"
    __table_args__ = (live_singleton_index("judgments"),)

    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False)
    name = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, default=JudgmentStatus.PENDING.value)
    approval_amount = Column(BigInteger, nullable=False, default=0)
    approval_interest_rate = Column(Float, nullable=False, default=0.0)
    reason = Column(Text, nullable=True)


class Contract(LedgerRecordMixin, Base):
    """Binding agreement instantiated from an approved judgment"""

    __tablename__ = "contracts"
    __table_args__ = (live_singleton_index("contracts"),)

    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False)
    judgment_id = Column(Integer, ForeignKey("judgments.id"), nullable=False)
    amount = Column(BigInteger, nullable=False)
    interest_rate = Column(Float, nullable=False)
    term = Column(Integer, nullable=False)
    status = Column(String(16), nullable=False, default=ContractStatus.PENDING.value)
    signed_at = Column(DateTime(timezone=True), nullable=True)
    activated_at = Column(DateTime(timezone=True), nullable=True)


class Balance(LedgerRecordMixin, Base):
    """Outstanding principal for an application"""

    __tablename__ = "balances"
    __table_args__ = (live_singleton_index("balances"),)

    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False)
    balance = Column(BigInteger, nullable=False, default=0)


class Entry(LedgerRecordMixin, Base):
    """Credit event: funds added to the application's balance"""

    __tablename__ = "entries"

    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)


class Repayment(LedgerRecordMixin, Base):
    """Debit event: funds repaid against the application's balance"""

    __tablename__ = "repayments"

    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)


class Terms(LedgerRecordMixin, Base):
    """Versioned agreement document"""

    __tablename__ = "terms"

    name = Column(Text, nullable=False)
    detail_url = Column(Text, nullable=False)
    content = Column(Text, nullable=True)
    version = Column(String(32), nullable=True)
    is_required = Column(Boolean, nullable=False, default=True)


class TermsAgreement(LedgerRecordMixin, Base):
    """Terms accepted by a user; superseded as a set"""

    __tablename__ = "terms_agreements"

    user_id = Column(Text, nullable=False, index=True)
    terms_id = Column(Integer, ForeignKey("terms.id"), nullable=False)


class ApplicationTermsAcceptance(LedgerRecordMixin, Base):
    """Terms accepted as part of a specific application"""

    __tablename__ = "application_terms_acceptances"

    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)
    terms_id = Column(Integer, ForeignKey("terms.id"), nullable=False)
