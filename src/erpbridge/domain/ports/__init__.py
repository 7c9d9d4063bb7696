"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    BillingRepository,
    CustomerRepository,
    InvoiceRepository,
    MembershipRepository,
    PlanRepository,
)
from .remote import RemoteReconciler
from .unit_of_work import (
    BillingRepositories,
    BillingUnitOfWork,
)

__all__ = [
    "BillingRepositories",
    "BillingRepository",
    "BillingUnitOfWork",
    "CustomerRepository",
    "InvoiceRepository",
    "MembershipRepository",
    "PlanRepository",
    "RemoteReconciler",
]
