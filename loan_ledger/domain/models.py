"""Domain models - enums and plain dataclasses describing lifecycle state"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class JudgmentStatus(str, Enum):
    """Underwriting outcome carried next to the approval amount"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ContractStatus(str, Enum):
    """Signing/activation state of a contract"""

    PENDING = "pending"
    SIGNED = "signed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ApplicationState(str, Enum):
    """Application lifecycle state, derived from related records"""

    SUBMITTED = "submitted"
    JUDGED = "judged"
    CONTRACTED = "contracted"
    ACTIVE = "active"


@dataclass
class MissingTerms:
    """Required terms the user has not accepted"""

    terms_id: int
    name: str


@dataclass
class AgreementStatus:
    """Outcome of checking a user's accepted terms against required terms"""

    complete: bool
    missing: List[MissingTerms] = field(default_factory=list)


@dataclass
class LedgerSummary:
    """Totals of the append-only records next to the running balance"""

    application_id: int
    entries_total: int
    repayments_total: int
    balance: int | None
