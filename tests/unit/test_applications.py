"""Unit tests for applications and judgments"""

import pytest
from loan_ledger.domain.exceptions import ConflictError, NotFoundError, UnprocessableEntityError, ValidationError
from loan_ledger.domain.models import ApplicationState, JudgmentStatus
from loan_ledger.infrastructure.database.models import Application, Judgment
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.services import applications, judgments


def test_create_application(store: LedgerStore):
    """Test a valid application is stored with an allocated id"""
    created = applications.create_application(
        store, name="  Ana  ", phone="555-0100", email="ana@example.com", requested_amount=5000
    )

    assert created.id == 1
    assert created.name == "Ana"
    assert created.applied_at is not None
    assert created.contracted_at is None
    assert applications.get_application(store, created.id).requested_amount == 5000


@pytest.mark.parametrize(
    "fields",
    [
        {"name": "", "phone": "1", "email": "x@example.com"},
        {"name": "Ana", "phone": "   ", "email": "x@example.com"},
        {"name": "Ana", "phone": "1", "email": None},
    ],
)
def test_create_application_requires_contact_fields(store: LedgerStore, fields):
    """Test missing name, phone or email is a validation error"""
    with pytest.raises(ValidationError, match="required"):
        applications.create_application(store, **fields)


def test_create_application_rejects_negative_amount(store: LedgerStore):
    """Test negative optional values"""
    with pytest.raises(ValidationError, match="requested_amount cannot be negative"):
        applications.create_application(store, "Ana", "1", "a@example.com", requested_amount=-1)


def test_update_and_retire_application(store: LedgerStore, application: Application):
    """Test edits and soft delete"""
    updated = applications.update_application(store, application.id, phone="555-0199")
    assert updated.phone == "555-0199"
    assert updated.email == application.email

    applications.retire_application(store, application.id)

    with pytest.raises(NotFoundError, match="Application not found"):
        applications.get_application(store, application.id)
    assert applications.list_applications(store) == []


def test_contract_application(store: LedgerStore, application: Application, approved_judgment: Judgment):
    """Test contracting copies the approval amount and stamps the time"""
    contracted = applications.contract_application(store, application.id)

    assert contracted.approval_amount == 8000
    assert contracted.contracted_at is not None


def test_contract_application_twice(store: LedgerStore, application: Application, approved_judgment: Judgment):
    """Test contracting an already contracted application is a conflict"""
    applications.contract_application(store, application.id)

    with pytest.raises(ConflictError, match="already been contracted"):
        applications.contract_application(store, application.id)


def test_contract_application_without_judgment(store: LedgerStore, application: Application):
    """Test contracting before judgment"""
    with pytest.raises(UnprocessableEntityError, match="not been judged"):
        applications.contract_application(store, application.id)


def test_contract_missing_application(store: LedgerStore):
    """Test contracting an unknown application"""
    with pytest.raises(NotFoundError):
        applications.contract_application(store, 42)


def test_application_state_progression(store: LedgerStore, application: Application):
    """Test submitted -> judged -> contracted"""
    assert applications.get_application_state(store, application.id) == ApplicationState.SUBMITTED

    judgments.create_judgment(store, application.id, "Review", 8000, 5.0)
    assert applications.get_application_state(store, application.id) == ApplicationState.JUDGED

    applications.contract_application(store, application.id)
    assert applications.get_application_state(store, application.id) == ApplicationState.CONTRACTED


def test_create_judgment_approved(store: LedgerStore, application: Application):
    """Test a positive amount is approved"""
    judgment = judgments.create_judgment(store, application.id, "Review", 8000, 5.0)

    assert judgment.status == JudgmentStatus.APPROVED.value
    assert judgment.approval_interest_rate == 5.0
    assert judgments.get_judgment_for_application(store, application.id).id == judgment.id


def test_create_judgment_rejected_and_pending(store: LedgerStore):
    """Test zero amount is rejected with a reason and pending without one"""
    first = applications.create_application(store, "A", "1", "a@example.com")
    second = applications.create_application(store, "B", "2", "b@example.com")

    rejected = judgments.create_judgment(store, first.id, "Review", 0, 0.0, reason="Income not verified")
    pending = judgments.create_judgment(store, second.id, "Review", 0, 0.0)

    assert rejected.status == JudgmentStatus.REJECTED.value
    assert pending.status == JudgmentStatus.PENDING.value


def test_create_judgment_twice_conflicts(store: LedgerStore, application: Application):
    """Test only one live judgment per application"""
    judgments.create_judgment(store, application.id, "First", 8000, 5.0)

    with pytest.raises(ConflictError, match="Judgment already exists"):
        judgments.create_judgment(store, application.id, "Second", 9000, 4.0)

    assert len(judgments.list_judgments(store)) == 1


def test_judgment_after_retire(store: LedgerStore, application: Application, approved_judgment: Judgment):
    """Test a retired judgment frees the slot"""
    judgments.retire_judgment(store, approved_judgment.id)

    replacement = judgments.create_judgment(store, application.id, "Second look", 6000, 6.0)

    assert replacement.id > approved_judgment.id
    assert judgments.get_judgment_for_application(store, application.id).approval_amount == 6000


def test_create_judgment_validation(store: LedgerStore, application: Application):
    """Test judgment field validation"""
    with pytest.raises(ValidationError):
        judgments.create_judgment(store, application.id, "", 100, 1.0)
    with pytest.raises(ValidationError, match="cannot be negative"):
        judgments.create_judgment(store, application.id, "Review", -1, 1.0)
    with pytest.raises(ValidationError, match="positive approval amount"):
        judgments.create_judgment(store, application.id, "Review", 0, 1.0, status="approved")
    with pytest.raises(NotFoundError):
        judgments.create_judgment(store, 999, "Review", 100, 1.0)


def test_update_judgment_rederives_status(store: LedgerStore, application: Application):
    """Test changing the amount updates the status"""
    judgment = judgments.create_judgment(store, application.id, "Review", 0, 0.0)
    assert judgment.status == JudgmentStatus.PENDING.value

    approved = judgments.update_judgment(store, judgment.id, approval_amount=3000, approval_rate=7.5)

    assert approved.status == JudgmentStatus.APPROVED.value
    assert approved.approval_amount == 3000
    assert approved.approval_interest_rate == 7.5


def test_contracted_judgment_outcome_is_frozen(store: LedgerStore, active_contract):
    """Test a judgment backing a contract can't be turned into a rejection"""
    with pytest.raises(UnprocessableEntityError, match="has a contract"):
        judgments.update_judgment(
            store, active_contract.judgment_id, approval_amount=0, reason="Fraud suspected", status="rejected"
        )
    with pytest.raises(UnprocessableEntityError):
        judgments.update_judgment(store, active_contract.judgment_id, approval_amount=9000)

    judgment = judgments.get_judgment(store, active_contract.judgment_id)
    assert judgment.status == JudgmentStatus.APPROVED.value
    assert judgment.approval_amount == 8000


def test_contracted_judgment_cosmetic_edit(store: LedgerStore, active_contract):
    """Test fields that don't change the outcome can still be edited"""
    renamed = judgments.update_judgment(store, active_contract.judgment_id, name="Senior review")

    assert renamed.name == "Senior review"
    assert renamed.status == JudgmentStatus.APPROVED.value


def test_contracted_judgment_cannot_be_retired(store: LedgerStore, active_contract):
    """Test retiring the judgment behind a contract is refused and no replacement slips in"""
    with pytest.raises(UnprocessableEntityError, match="Cannot retire"):
        judgments.retire_judgment(store, active_contract.judgment_id)

    with pytest.raises(ConflictError):
        judgments.create_judgment(store, active_contract.application_id, "Second", 0, 0.0, reason="Fraud suspected")

    live = judgments.get_judgment_for_application(store, active_contract.application_id)
    assert live.id == active_contract.judgment_id
    assert live.status == JudgmentStatus.APPROVED.value
