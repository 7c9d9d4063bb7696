"""Public domain model surface."""

from __future__ import annotations

from erpbridge.domain.model.billing import Customer, Entity, Invoice, Membership, Plan, new_id
from erpbridge.domain.model.enums import (
    AcquirerState,
    BillingCadence,
    DocumentType,
    EntityKind,
    PaymentState,
)
from erpbridge.domain.model.payments import Acquirer, PaymentLink, TransactionStatus

__all__ = [  # noqa: RUF022
    # billing
    "Entity",
    "Customer",
    "Plan",
    "Membership",
    "Invoice",
    "new_id",
    # enums
    "EntityKind",
    "BillingCadence",
    "DocumentType",
    "AcquirerState",
    "PaymentState",
    # payments
    "Acquirer",
    "PaymentLink",
    "TransactionStatus",
]
