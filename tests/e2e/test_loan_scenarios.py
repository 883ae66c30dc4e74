"""
E2E tests walking whole loan lifecycles through the service layer.

Scenarios:
- activation: application -> judgment -> contract -> active funds the balance
- repayment: partial repayment, then an overdraft that changes nothing
- duplicate judgment: the second one conflicts
- agreement replacement: the newest set is the only accepted one
- concurrency: parallel repayments and entries keep the ledger consistent
"""

from concurrent.futures import ThreadPoolExecutor

import pytest
from loan_ledger.domain.exceptions import ConflictError, ValidationError
from loan_ledger.domain.models import ApplicationState
from loan_ledger.infrastructure.database.models import Judgment
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.services import agreements, applications, balances, contracts, judgments


def _activated_loan(store: LedgerStore, amount: int = 8000) -> int:
    application = applications.create_application(
        store, name="Jane Doe", phone="010-1234-5678", email="jane@example.com", requested_amount=10000
    )
    judgment = judgments.create_judgment(store, application.id, "Standard review", amount, 5.0)
    contract = contracts.create_contract(store, application.id, judgment.id, amount, 5.0, 36)
    contracts.update_contract_status(store, contract.id, "active")
    return application.id


def test_activation_funds_balance(store: LedgerStore):
    """Application asking 10000, approved and contracted at 8000, activates with balance 8000"""
    application_id = _activated_loan(store)

    assert balances.get_balance(store, application_id).balance == 8000
    assert applications.get_application_state(store, application_id) == ApplicationState.ACTIVE


def test_repayment_then_overdraft(store: LedgerStore):
    """Repaying 3000 leaves 5000; a following 6000 repayment is refused"""
    application_id = _activated_loan(store)

    balances.create_repayment(store, application_id, 3000)
    assert balances.get_balance(store, application_id).balance == 5000

    with pytest.raises(ValidationError):
        balances.create_repayment(store, application_id, 6000)

    assert balances.get_balance(store, application_id).balance == 5000
    assert [r.amount for r in balances.list_repayments(store, application_id)] == [3000]


def test_duplicate_judgment(store: LedgerStore):
    """Second judgment for the same application conflicts and only one persists"""
    application = applications.create_application(store, "Jane Doe", "010-1234-5678", "jane@example.com")
    judgments.create_judgment(store, application.id, "First", 8000, 5.0)

    with pytest.raises(ConflictError):
        judgments.create_judgment(store, application.id, "Second", 8000, 5.0)

    count = store.run_transaction(lambda db: db.query(Judgment).filter(Judgment.application_id == application.id).count())
    assert count == 1


def test_agreement_replacement(store: LedgerStore):
    """Agreeing to [1, 2] then [1] leaves only terms 1 accepted"""
    first = agreements.create_terms(store, "Loan agreement", "https://example.com/terms/1")
    second = agreements.create_terms(store, "Privacy policy", "https://example.com/terms/2")
    assert (first.id, second.id) == (1, 2)

    agreements.record_agreement(store, "user-1", [1, 2])
    agreements.record_agreement(store, "user-1", [1])

    status = agreements.check_required_agreements(store, "user-1")
    assert status.complete is False
    assert [m.terms_id for m in status.missing] == [2]
    assert [a.terms_id for a in agreements.list_user_agreements(store, "user-1")] == [1]


def test_balance_matches_records(store: LedgerStore):
    """Balance equals activation amount plus entries minus repayments"""
    application_id = _activated_loan(store, amount=5000)

    for amount in (1200, 300):
        balances.create_entry(store, application_id, amount)
    for amount in (2000, 4500):
        balances.create_repayment(store, application_id, amount)
    with pytest.raises(ValidationError):
        balances.create_repayment(store, application_id, 1)

    summary = balances.get_ledger_summary(store, application_id)
    assert summary.balance == 5000 + summary.entries_total - summary.repayments_total == 0


def _attempt_repayment(store: LedgerStore, application_id: int, amount: int) -> bool:
    try:
        balances.create_repayment(store, application_id, amount)
        return True
    except ValidationError:
        return False


def test_concurrent_repayments_never_overdraw(store: LedgerStore):
    """Twelve parallel 1000 repayments against 8000: exactly eight succeed"""
    application_id = _activated_loan(store)

    with ThreadPoolExecutor(max_workers=6) as pool:
        outcomes = list(pool.map(lambda _: _attempt_repayment(store, application_id, 1000), range(12)))

    assert outcomes.count(True) == 8
    assert balances.get_balance(store, application_id).balance == 0
    assert len(balances.list_repayments(store, application_id)) == 8


def test_concurrent_entries_and_repayments(store: LedgerStore):
    """Interleaved credits and debits conserve the balance and get unique ids"""
    application_id = _activated_loan(store, amount=1000)

    def _move(index: int) -> bool:
        if index % 2 == 0:
            balances.create_entry(store, application_id, 100)
            return True
        return _attempt_repayment(store, application_id, 150)

    with ThreadPoolExecutor(max_workers=6) as pool:
        list(pool.map(_move, range(20)))

    summary = balances.get_ledger_summary(store, application_id)
    assert summary.balance == 1000 + summary.entries_total - summary.repayments_total
    assert summary.balance >= 0

    entries = balances.list_entries(store, application_id)
    repayments = balances.list_repayments(store, application_id)
    assert len({e.id for e in entries}) == len(entries) == 10
    assert len({r.id for r in repayments}) == len(repayments)


def test_concurrent_activation_opens_one_balance(store: LedgerStore):
    """Racing activations of the same contract fund the balance once"""
    application = applications.create_application(store, "Jane Doe", "010-1234-5678", "jane@example.com")
    judgment = judgments.create_judgment(store, application.id, "Review", 8000, 5.0)
    contract = contracts.create_contract(store, application.id, judgment.id, 8000, 5.0, 36)

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(lambda _: contracts.update_contract_status(store, contract.id, "active"), range(4)))

    assert balances.get_balance(store, application.id).balance == 8000
    assert balances.get_ledger_summary(store, application.id).entries_total == 0
