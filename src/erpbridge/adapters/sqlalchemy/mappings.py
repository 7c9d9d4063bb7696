"""SQLAlchemy mapping metadata for the billing entities."""

from __future__ import annotations

import logging
import uuid
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    Enum,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from erpbridge.domain.model import BillingCadence, Customer, Invoice, Membership, Plan

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]
MoneyColumnType = Numeric(12, 2, asdecimal=True)

mapper_registry = orm.registry(
    metadata=MetaData(
        naming_convention={
            "ix": "ix_%(table_name)s_%(column_0_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s",
            "pk": "pk_%(table_name)s",
        }
    )
)

customer_table = Table(
    "customer",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", String, nullable=False, index=True),
    Column("email", String, nullable=False),
    Column("name", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("remote_customer_id", Integer, nullable=True),
)

plan_table = Table(
    "plan",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", String, nullable=False, index=True),
    Column("name", String, nullable=False),
    Column("price", MoneyColumnType, nullable=False),
    Column(
        "cadence",
        Enum(BillingCadence, native_enum=False, length=16),
        nullable=False,
        default=BillingCadence.MONTHLY,
    ),
    Column("remote_product_id", Integer, nullable=True),
)

membership_table = Table(
    "membership",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", String, nullable=False, index=True),
    Column("customer_id", UUIDColumnType, ForeignKey("customer.id"), nullable=False),
    Column("plan_id", UUIDColumnType, ForeignKey("plan.id"), nullable=False),
    Column("remote_subscription_id", Integer, nullable=True),
)

invoice_table = Table(
    "invoice",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", String, nullable=False, index=True),
    Column("customer_id", UUIDColumnType, ForeignKey("customer.id"), nullable=False),
    Column("amount", MoneyColumnType, nullable=False),
    Column("description", String, nullable=False),
    Column("remote_invoice_id", Integer, nullable=True),
)

TABLE_BY_CLASS: dict[type, Table] = {
    Customer: customer_table,
    Plan: plan_table,
    Membership: membership_table,
    Invoice: invoice_table,
}


@cache
def start_mappers() -> orm.registry:
    """Map the domain dataclasses onto their tables; safe to call repeatedly."""

    for entity_cls, table in TABLE_BY_CLASS.items():
        log.debug("Mapping %s onto table %s", entity_cls.__name__, table.name)
        mapper_registry.map_imperatively(entity_cls, table)
    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    # checkfirst: existing tables are left untouched, there are no migrations
    mapper_registry.metadata.create_all(engine, checkfirst=True)
    log.info("Local tables ready on %s", engine.url)
