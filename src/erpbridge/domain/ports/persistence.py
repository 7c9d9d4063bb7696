"""Ports for persisting locally-owned billing entities."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from erpbridge.domain.model import Customer, Entity, Invoice, Membership, Plan

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID


@runtime_checkable
class BillingRepository[TEntity: Entity](Protocol):
    """Read-by-id and remote-id write-back for one entity kind."""

    def add(self, entity: TEntity) -> None: ...

    def get(self, entity_id: UUID) -> TEntity | None: ...

    def list_for_tenant(self, tenant_id: str) -> Sequence[TEntity]: ...

    def set_remote_id(self, entity_id: UUID, remote_id: int) -> None:
        """Store the remote identifier; raises ``EntityNotFoundError`` for unknown ids."""
        ...


@runtime_checkable
class CustomerRepository(BillingRepository[Customer], Protocol):
    """Repository contract for customers."""


@runtime_checkable
class PlanRepository(BillingRepository[Plan], Protocol):
    """Repository contract for plans."""


@runtime_checkable
class MembershipRepository(BillingRepository[Membership], Protocol):
    """Repository contract for memberships."""


@runtime_checkable
class InvoiceRepository(BillingRepository[Invoice], Protocol):
    """Repository contract for invoices."""
