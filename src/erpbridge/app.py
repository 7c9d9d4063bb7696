"""Application entry points for admin tooling and checkout flows.

Every function here is synchronous: it resolves the tenant's ERP
configuration, opens one transport inside a fresh event loop, runs the
operation and closes the transport again.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from logging import getLogger
from typing import TYPE_CHECKING, TypedDict, Unpack

from erpbridge.adapters.odoo import OdooReconciler, OdooTransport, PaymentBroker
from erpbridge.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyBillingUnitOfWork,
    is_started,
    startup,
)
from erpbridge.config import get_erp_config_provider, get_sync_config
from erpbridge.domain.errors import EntityNotFoundError
from erpbridge.domain.model import EntityKind
from erpbridge.domain.sync import BatchSyncResult, SyncService

if TYPE_CHECKING:
    from collections.abc import Collection
    from decimal import Decimal
    from uuid import UUID

    from erpbridge.adapters.http_resilience import ResilientClient
    from erpbridge.config import ErpConfigProvider, ResilienceConfig, SyncConfig
    from erpbridge.domain.model import (
        Acquirer,
        DocumentType,
        Entity,
        PaymentLink,
        TransactionStatus,
    )
    from erpbridge.domain.ports.persistence import BillingRepository
    from erpbridge.domain.ports.unit_of_work import BillingRepositories, BillingUnitOfWork

type UnitOfWorkFactory = Callable[[], BillingUnitOfWork]
type ClientFactory = Callable[[ResilienceConfig], ResilientClient]

log = getLogger(__name__)


class BridgeOptions(TypedDict, total=False):
    config_provider: ErpConfigProvider
    unit_of_work_factory: UnitOfWorkFactory
    client_factory: ClientFactory
    sync_config: SyncConfig


def sync_plan_to_remote(tenant_id: str, plan_id: UUID, **options: Unpack[BridgeOptions]) -> int:
    """Ensure one plan exists as a remote product and store its id."""

    uow_factory = _unit_of_work_factory(options)
    plan = _load(uow_factory, lambda repos: repos.plans, EntityKind.PLAN, tenant_id, plan_id)
    return _run_sync(tenant_id, options, uow_factory, lambda service: service.sync_plan(plan))


def sync_customer_to_remote(
    tenant_id: str,
    customer_id: UUID,
    **options: Unpack[BridgeOptions],
) -> int:
    """Ensure one customer exists as a remote partner and store its id."""

    uow_factory = _unit_of_work_factory(options)
    customer = _load(
        uow_factory, lambda repos: repos.customers, EntityKind.CUSTOMER, tenant_id, customer_id
    )
    return _run_sync(
        tenant_id, options, uow_factory, lambda service: service.sync_customer(customer)
    )


def sync_membership_to_remote(
    tenant_id: str,
    membership_id: UUID,
    **options: Unpack[BridgeOptions],
) -> int:
    """Ensure customer, plan and subscription for one membership, in that order."""

    uow_factory = _unit_of_work_factory(options)
    membership = _load(
        uow_factory,
        lambda repos: repos.memberships,
        EntityKind.MEMBERSHIP,
        tenant_id,
        membership_id,
    )
    return _run_sync(
        tenant_id, options, uow_factory, lambda service: service.sync_membership(membership)
    )


def sync_invoice_to_remote(
    tenant_id: str,
    invoice_id: UUID,
    **options: Unpack[BridgeOptions],
) -> int:
    uow_factory = _unit_of_work_factory(options)
    invoice = _load(
        uow_factory, lambda repos: repos.invoices, EntityKind.INVOICE, tenant_id, invoice_id
    )
    return _run_sync(
        tenant_id, options, uow_factory, lambda service: service.sync_invoice(invoice)
    )


def sync_all_plans(
    tenant_id: str,
    *,
    entity_ids: Collection[UUID] | None = None,
    **options: Unpack[BridgeOptions],
) -> BatchSyncResult:
    uow_factory = _unit_of_work_factory(options)
    return _run_sync(
        tenant_id,
        options,
        uow_factory,
        lambda service: service.sync_all_plans(tenant_id, entity_ids=entity_ids),
    )


def sync_all_customers(
    tenant_id: str,
    *,
    entity_ids: Collection[UUID] | None = None,
    **options: Unpack[BridgeOptions],
) -> BatchSyncResult:
    uow_factory = _unit_of_work_factory(options)
    return _run_sync(
        tenant_id,
        options,
        uow_factory,
        lambda service: service.sync_all_customers(tenant_id, entity_ids=entity_ids),
    )


def create_payment_link(  # noqa: PLR0913
    tenant_id: str,
    *,
    doc_type: DocumentType,
    doc_id: int,
    amount: Decimal,
    currency: str,
    external_ref: str,
    return_url: str,
    cancel_url: str,
    acquirer_id: int | None = None,
    **options: Unpack[BridgeOptions],
) -> PaymentLink:
    return _run_payments(
        tenant_id,
        options,
        lambda broker: broker.create_payment_link(
            doc_type=doc_type,
            doc_id=doc_id,
            amount=amount,
            currency=currency,
            external_ref=external_ref,
            return_url=return_url,
            cancel_url=cancel_url,
            acquirer_id=acquirer_id,
        ),
    )


def get_transaction_status(
    tenant_id: str,
    external_ref: str,
    **options: Unpack[BridgeOptions],
) -> TransactionStatus | None:
    return _run_payments(
        tenant_id, options, lambda broker: broker.get_transaction_status(external_ref)
    )


def list_active_acquirers(tenant_id: str, **options: Unpack[BridgeOptions]) -> list[Acquirer]:
    return _run_payments(tenant_id, options, lambda broker: broker.list_active_acquirers())


def check_connection(tenant_id: str, **options: Unpack[BridgeOptions]) -> int:
    """Log in and run a trivial query; returns the remote user id."""

    async def run() -> int:
        async with _open_transport(tenant_id, options) as transport:
            return await transport.ping()

    return asyncio.run(run())


def _unit_of_work_factory(options: BridgeOptions) -> UnitOfWorkFactory:
    factory = options.get("unit_of_work_factory")
    if factory is not None:
        return factory
    if not is_started():
        startup()
    return SqlAlchemyBillingUnitOfWork


def _open_transport(tenant_id: str, options: BridgeOptions) -> OdooTransport:
    provider = options.get("config_provider") or get_erp_config_provider()
    return OdooTransport(provider(tenant_id), client_factory=options.get("client_factory"))


def _load[TEntity: Entity](
    uow_factory: UnitOfWorkFactory,
    select: Callable[[BillingRepositories], BillingRepository[TEntity]],
    kind: EntityKind,
    tenant_id: str,
    entity_id: UUID,
) -> TEntity:
    with uow_factory() as uow:
        entity = select(uow.repositories).get(entity_id)
    if entity is None or entity.tenant_id != tenant_id:
        raise EntityNotFoundError(kind, entity_id)
    return entity


def _run_sync[T](
    tenant_id: str,
    options: BridgeOptions,
    uow_factory: UnitOfWorkFactory,
    operation: Callable[[SyncService], Awaitable[T]],
) -> T:
    sync_config = options.get("sync_config") or get_sync_config()

    async def run() -> T:
        async with _open_transport(tenant_id, options) as transport:
            service = SyncService(
                reconciler=OdooReconciler(transport),
                unit_of_work_factory=uow_factory,
                config=sync_config,
            )
            return await operation(service)

    log.debug("Running sync operation for tenant %s", tenant_id)
    return asyncio.run(run())


def _run_payments[T](
    tenant_id: str,
    options: BridgeOptions,
    operation: Callable[[PaymentBroker], Awaitable[T]],
) -> T:
    async def run() -> T:
        async with _open_transport(tenant_id, options) as transport:
            return await operation(PaymentBroker(transport))

    return asyncio.run(run())
