"""Ports towards the remote ERP used by the sync orchestrator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from erpbridge.domain.model import Customer, Invoice, Membership, Plan


@runtime_checkable
class RemoteReconciler(Protocol):
    """Idempotent find-or-create of remote counterparts for local entities.

    Every method returns the remote identifier. None of them persist anything
    locally; writing the id back is the caller's job.
    """

    async def ensure_partner(self, customer: Customer) -> int: ...

    async def ensure_product(self, plan: Plan) -> int: ...

    async def ensure_subscription(
        self,
        membership: Membership,
        *,
        partner_id: int,
        product_id: int,
    ) -> int: ...

    async def ensure_invoice(self, invoice: Invoice, *, partner_id: int) -> int: ...
