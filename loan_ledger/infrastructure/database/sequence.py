"""
Sequence allocator - integer identifiers per collection via counter rows.

Each collection has one row in sequence_counters. Allocation is a single
atomic UPDATE ... SET current_value = current_value + 1 inside the caller's
transaction: the row stays locked until commit, so concurrent allocators for
the same collection are serialized, and a rollback gives the value back.
The max(id)+1 scan is used only once, to seed a missing counter so ids of
existing (including retired) rows are never reused.
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from loan_ledger.infrastructure.database.models import SequenceCounter


class SequenceAllocator:
    """Allocates strictly increasing ids for ledger collections"""

    def __init__(self, db: Session):
        self.db = db

    def next_id(self, model) -> int:
        """
        Allocate the next id for the model's collection.

        Args:
            model: ORM class with an integer id column

        Returns:
            An id greater than any id previously allocated or stored for the collection
        """
        name = model.__tablename__

        if not self._increment(name):
            self._create_counter(model)

        value = self.db.execute(
            select(SequenceCounter.current_value).where(SequenceCounter.name == name)
        ).scalar_one()
        logging.debug("Sequence allocated", extra={"sequence": name, "value": value})
        return value

    def current_id(self, model) -> int:
        """Last allocated id for the collection, 0 if none"""
        value = self.db.execute(
            select(SequenceCounter.current_value).where(SequenceCounter.name == model.__tablename__)
        ).scalar_one_or_none()
        return value or 0

    def _increment(self, name: str) -> bool:
        result = self.db.execute(
            update(SequenceCounter)
            .where(SequenceCounter.name == name)
            .values(current_value=SequenceCounter.current_value + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _create_counter(self, model) -> None:
        name = model.__tablename__
        highest = self.db.execute(select(func.max(model.id))).scalar() or 0

        # Another transaction may create the counter first; retry the increment then
        savepoint = self.db.begin_nested()
        try:
            self.db.add(SequenceCounter(name=name, current_value=highest + 1))
            self.db.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            logging.debug("Sequence counter race, retrying", extra={"sequence": name})
            if not self._increment(name):
                raise
