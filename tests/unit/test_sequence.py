"""Unit tests for id allocation"""

import pytest
from loan_ledger.infrastructure.database.models import Application, Entry
from loan_ledger.infrastructure.database.repositories import ApplicationRepository
from loan_ledger.infrastructure.database.sequence import SequenceAllocator
from loan_ledger.infrastructure.database.store import LedgerStore


def _new_application(db, **extra):
    return ApplicationRepository(db).create(name="Applicant", phone="010-0000-0000", email="a@example.com", **extra)


def test_first_id_is_one(store: LedgerStore):
    """Test an empty collection starts at 1"""
    assert store.run_transaction(lambda db: SequenceAllocator(db).next_id(Application)) == 1


def test_ids_strictly_increase(store: LedgerStore):
    """Test consecutive allocations across transactions"""
    ids = [store.run_transaction(lambda db: _new_application(db).id) for _ in range(5)]

    assert ids == [1, 2, 3, 4, 5]


def test_collections_are_independent(store: LedgerStore):
    """Test each table has its own counter"""

    def _allocate(db):
        allocator = SequenceAllocator(db)
        return allocator.next_id(Application), allocator.next_id(Application), allocator.next_id(Entry)

    assert store.run_transaction(_allocate) == (1, 2, 1)


def test_seed_skips_existing_and_retired_rows(store: LedgerStore):
    """Test a missing counter is seeded above every stored id, retired rows included"""

    def _insert_legacy_rows(db):
        db.add(Application(id=3, name="Old", phone="1", email="old@example.com"))
        db.add(Application(id=7, name="Gone", phone="2", email="gone@example.com", retired=True))

    store.run_transaction(_insert_legacy_rows)

    assert store.run_transaction(lambda db: _new_application(db).id) == 8


def test_retired_ids_not_reused(store: LedgerStore):
    """Test retiring the newest row does not free its id"""
    first = store.run_transaction(lambda db: _new_application(db))
    store.run_transaction(lambda db: ApplicationRepository(db).retire(ApplicationRepository(db).get(first.id)))

    assert store.run_transaction(lambda db: _new_application(db).id) == first.id + 1


def test_rollback_returns_the_value(store: LedgerStore):
    """Test an allocation inside a failed transaction is not consumed"""
    store.run_transaction(lambda db: _new_application(db))

    def _fail(db):
        _new_application(db)
        raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        store.run_transaction(_fail)

    assert store.run_transaction(lambda db: SequenceAllocator(db).current_id(Application)) == 1
    assert store.run_transaction(lambda db: _new_application(db).id) == 2


def test_current_id_without_counter(store: LedgerStore):
    """Test current_id is 0 before anything was allocated"""
    assert store.run_transaction(lambda db: SequenceAllocator(db).current_id(Entry)) == 0
