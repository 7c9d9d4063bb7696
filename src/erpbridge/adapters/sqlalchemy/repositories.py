"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select, update

from erpbridge.adapters.sqlalchemy.mappings import TABLE_BY_CLASS
from erpbridge.domain.errors import EntityNotFoundError
from erpbridge.domain.model import Customer, Entity, Invoice, Membership, Plan

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence

    from sqlalchemy import CursorResult
    from sqlalchemy.orm import Session


class SqlAlchemyBillingRepository[TEntity: Entity]:
    """Shared persistence for entities that carry a remote identifier."""

    def __init__(self, session: Session, entity_cls: type[TEntity]) -> None:
        self.session = session
        self._entity_cls = entity_cls
        self._table = TABLE_BY_CLASS[entity_cls]

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def get(self, entity_id: uuid.UUID) -> TEntity | None:
        return self.session.get(self._entity_cls, entity_id)

    def list_for_tenant(self, tenant_id: str) -> Sequence[TEntity]:
        stmt = (
            select(self._entity_cls)
            .where(self._table.c.tenant_id == tenant_id)
            .order_by(self._table.c.id)
        )
        return self.session.execute(stmt).scalars().all()

    def set_remote_id(self, entity_id: uuid.UUID, remote_id: int) -> None:
        column = self._entity_cls.REMOTE_ID_FIELD
        stmt = (
            update(self._table)
            .where(self._table.c.id == entity_id)
            .values({column: remote_id})
        )
        result: CursorResult[tuple[()]] = self.session.execute(stmt)  # pyright: ignore[reportAssignmentType]
        if result.rowcount == 0:
            raise EntityNotFoundError(self._entity_cls.KIND, entity_id)


class SqlAlchemyCustomerRepository(SqlAlchemyBillingRepository[Customer]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Customer)


class SqlAlchemyPlanRepository(SqlAlchemyBillingRepository[Plan]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Plan)


class SqlAlchemyMembershipRepository(SqlAlchemyBillingRepository[Membership]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Membership)


class SqlAlchemyInvoiceRepository(SqlAlchemyBillingRepository[Invoice]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Invoice)
