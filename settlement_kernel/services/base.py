"""
BaseService -- abstract base for every service that writes entity status.

Responsibility:
    Provides the common constructor (session + clock) and the one sanctioned
    way to move an entity between statuses: a status-guarded UPDATE.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Extended by the
    lifecycle services in ``settlement_modules/`` and by the payment
    processor in ``settlement_services/``.

Invariants enforced:
    - Every transition is ``UPDATE ... WHERE id = :id AND status = :expected``.
      Zero affected rows means a concurrent actor moved the entity first;
      the session is rolled back and ConcurrentTransitionError is raised.
    - Status, timestamp and reason land in a single UPDATE, so a review
      never partially applies.
    - Public service methods own their transaction: they commit on success
      and roll back on failure.  Helpers here never commit.

Failure modes:
    - ConcurrentTransitionError when the guarded UPDATE matches no row.
"""

from __future__ import annotations

from abc import ABC
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from settlement_kernel.db.base import Base
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.exceptions import ConcurrentTransitionError
from settlement_kernel.logging_config import get_logger

ModelType = TypeVar("ModelType", bound=Base)

logger = get_logger("services.base")


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for status-writing services.

    Guarantees:
        - ``session`` and ``clock`` are public attributes for subclasses.
        - ``_guarded_update`` re-reads the written row into the session,
          so callers can build a DTO from the in-session object.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _guarded_update(
        self,
        model: type[ModelType],
        entity_id: UUID,
        expected_status: str,
        values: dict[str, Any],
        extra_criteria: tuple[Any, ...] = (),
    ) -> None:
        """
        Apply ``values`` to one row iff it is still in ``expected_status``.

        ``extra_criteria`` are additional WHERE clauses that must also hold
        at write time (for example, a NOT EXISTS over child rows).

        Raises:
            ConcurrentTransitionError: If the row left ``expected_status``
                since it was read.  The session has been rolled back.
        """
        stmt = (
            update(model)
            .where(model.id == entity_id, model.status == expected_status, *extra_criteria)
            .values(updated_at=self.clock.now(), **values)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        if result.rowcount == 0:
            self.session.rollback()
            logger.warning(
                "concurrent_transition_detected",
                extra={
                    "entity_type": model.__name__,
                    "entity_id": str(entity_id),
                    "expected_status": expected_status,
                },
            )
            raise ConcurrentTransitionError(
                model.__name__, str(entity_id), expected_status,
            )
        # Every written column, not only those fetch-sync evaluated.
        self.session.get(model, entity_id, populate_existing=True)
