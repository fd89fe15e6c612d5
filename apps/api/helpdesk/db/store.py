"""Atomic multi-statement writes.

`execute_batch` runs an ordered list of Core statements inside the session's
transaction and commits once. Any failure rolls the whole batch back, so a
ticket mutation and its audit interaction are applied together or not at all.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.base import Executable

from helpdesk.core.errors import ConflictError, HelpdeskError, StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    """Per-statement outcome of an atomic batch."""
    rowcount: int
    inserted_id: int | None = None


# A statement built from the results of the statements before it
# (e.g. an INSERT that references a freshly generated ticket id).
StatementFactory = Callable[[list[BatchResult]], Executable]


@dataclass(frozen=True)
class BatchStatement:
    """
    One statement of an atomic batch.

    expect_rowcount: when set, a different affected-row count aborts the
    batch with ConflictError (used for version-checked UPDATEs).
    """
    statement: Executable | StatementFactory
    params: dict[str, Any] | None = None
    expect_rowcount: int | None = None
    conflict_message: str = "Row was modified concurrently"


def _resolve(item: BatchStatement, results: list[BatchResult]) -> Executable:
    if isinstance(item.statement, Executable):
        return item.statement
    return item.statement(results)


def execute_batch(db: Session, statements: Sequence[BatchStatement]) -> list[BatchResult]:
    """
    Apply all statements or none.

    Returns one BatchResult per statement, in order.

    Raises:
        ConflictError: an expect_rowcount guard did not match
        StoreError: the database rejected a statement or the commit
    """
    results: list[BatchResult] = []
    try:
        for item in statements:
            stmt = _resolve(item, results)
            if item.params:
                result = db.execute(stmt, item.params)
            else:
                result = db.execute(stmt)

            inserted_id = None
            if getattr(result, "is_insert", False):
                inserted_id = result.inserted_primary_key[0]
            rowcount = result.rowcount

            if item.expect_rowcount is not None and rowcount != item.expect_rowcount:
                raise ConflictError(item.conflict_message)

            results.append(BatchResult(rowcount=rowcount, inserted_id=inserted_id))
        db.commit()
    except HelpdeskError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Atomic batch failed at statement %d of %d",
            len(results) + 1,
            len(statements),
            exc_info=True,
        )
        raise StoreError("Atomic write failed; no changes were applied") from exc

    return results
