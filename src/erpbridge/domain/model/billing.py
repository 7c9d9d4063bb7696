"""Locally-owned billing entities mirrored into the remote ERP.

Each entity carries a nullable remote id. It is ``None`` until the first
successful reconciliation and is never cleared by this package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar
from uuid import UUID, uuid4

from erpbridge.domain.model.enums import BillingCadence, EntityKind

if TYPE_CHECKING:
    from decimal import Decimal


def new_id() -> UUID:
    return uuid4()


@dataclass(eq=False, kw_only=True)
class Entity:
    id: UUID = field(default_factory=new_id)
    tenant_id: str

    # class-level discriminator; subclasses must override
    KIND: ClassVar[EntityKind]
    REMOTE_ID_FIELD: ClassVar[str]

    @property
    def kind(self) -> EntityKind:
        return self.KIND

    @property
    def external_ref(self) -> str:
        """Value stored in the remote record's external-reference field."""
        return str(self.id)

    @property
    def remote_id(self) -> int | None:
        return getattr(self, self.REMOTE_ID_FIELD)

    @property
    def is_synced(self) -> bool:
        return self.remote_id is not None


@dataclass(eq=False, kw_only=True)
class Customer(Entity):
    KIND: ClassVar[EntityKind] = EntityKind.CUSTOMER
    REMOTE_ID_FIELD: ClassVar[str] = "remote_customer_id"

    email: str
    name: str | None = None
    phone: str | None = None
    remote_customer_id: int | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email


@dataclass(eq=False, kw_only=True)
class Plan(Entity):
    KIND: ClassVar[EntityKind] = EntityKind.PLAN
    REMOTE_ID_FIELD: ClassVar[str] = "remote_product_id"

    name: str
    price: Decimal
    cadence: BillingCadence = BillingCadence.MONTHLY
    remote_product_id: int | None = None


@dataclass(eq=False, kw_only=True)
class Membership(Entity):
    KIND: ClassVar[EntityKind] = EntityKind.MEMBERSHIP
    REMOTE_ID_FIELD: ClassVar[str] = "remote_subscription_id"

    customer_id: UUID
    plan_id: UUID
    remote_subscription_id: int | None = None


@dataclass(eq=False, kw_only=True)
class Invoice(Entity):
    KIND: ClassVar[EntityKind] = EntityKind.INVOICE
    REMOTE_ID_FIELD: ClassVar[str] = "remote_invoice_id"

    customer_id: UUID
    amount: Decimal
    description: str
    remote_invoice_id: int | None = None
