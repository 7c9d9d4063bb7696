"""Transaction boundary around the billing repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from erpbridge.domain.ports.persistence import (
        CustomerRepository,
        InvoiceRepository,
        MembershipRepository,
        PlanRepository,
    )


@dataclass(slots=True)
class BillingRepositories:
    """Repositories holding the entities mirrored into the ERP."""

    customers: CustomerRepository
    plans: PlanRepository
    memberships: MembershipRepository
    invoices: InvoiceRepository


@runtime_checkable
class BillingUnitOfWork(Protocol):
    """Context manager that owns one local transaction.

    Leaving the block with an exception rolls back; changes are only kept
    after an explicit :meth:`commit`.
    """

    @property
    def repositories(self) -> BillingRepositories: ...

    def __enter__(self) -> Self: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool | None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
