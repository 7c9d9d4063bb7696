"""Sync orchestration: dependency ordering and tenant-wide batch runs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from erpbridge.config.sync import SyncConfig
from erpbridge.domain.errors import DependencyResolutionError, EntityNotFoundError
from erpbridge.domain.model import Customer, Entity, EntityKind, Invoice, Membership, Plan

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Collection, Iterable, Sequence
    from uuid import UUID

    from erpbridge.domain.ports.persistence import BillingRepository
    from erpbridge.domain.ports.remote import RemoteReconciler
    from erpbridge.domain.ports.unit_of_work import BillingRepositories, BillingUnitOfWork

log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], BillingUnitOfWork]
type Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class SyncedItem:
    kind: EntityKind
    local_id: UUID
    remote_id: int


@dataclass(frozen=True, slots=True)
class FailedItem:
    kind: EntityKind
    local_id: UUID
    error: str
    exception: Exception = field(repr=False, compare=False)


@dataclass(slots=True)
class BatchSyncResult:
    """Outcome of a tenant-wide batch sync.

    ``failed`` holds the items that still failed after the last pass, so a
    follow-up run can target exactly ``failed_ids``.
    """

    kind: EntityKind
    tenant_id: str
    synced: list[SyncedItem] = field(default_factory=list[SyncedItem])
    failed: list[FailedItem] = field(default_factory=list[FailedItem])
    passes: int = 0

    @property
    def attempted(self) -> int:
        return len(self.synced) + len(self.failed)

    @property
    def failed_ids(self) -> tuple[UUID, ...]:
        return tuple(item.local_id for item in self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed


class SyncService:
    """Drives local-to-remote reconciliation for one ERP connection."""

    def __init__(
        self,
        *,
        reconciler: RemoteReconciler,
        unit_of_work_factory: UnitOfWorkFactory,
        config: SyncConfig | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._reconciler = reconciler
        self._uow_factory = unit_of_work_factory
        self._config = config or SyncConfig()
        self._sleep = sleep

    async def sync_customer(self, customer: Customer) -> int:
        remote_id = await self._reconciler.ensure_partner(customer)
        self._write_back(customer, remote_id)
        return remote_id

    async def sync_plan(self, plan: Plan) -> int:
        remote_id = await self._reconciler.ensure_product(plan)
        self._write_back(plan, remote_id)
        return remote_id

    async def sync_membership(self, membership: Membership) -> int:
        """Ensure customer and plan, then the subscription that links them."""

        with self._uow_factory() as uow:
            customer = _require(
                uow.repositories.customers,
                EntityKind.CUSTOMER,
                membership.customer_id,
                tenant_id=membership.tenant_id,
            )
            plan = _require(
                uow.repositories.plans,
                EntityKind.PLAN,
                membership.plan_id,
                tenant_id=membership.tenant_id,
            )

        if customer.remote_customer_id is None:
            await self.sync_customer(customer)
        if plan.remote_product_id is None:
            await self.sync_plan(plan)

        # re-read: the prerequisite ids must come from the store, not from memory
        with self._uow_factory() as uow:
            partner_id = _stored_remote_id(uow.repositories.customers, membership.customer_id)
            product_id = _stored_remote_id(uow.repositories.plans, membership.plan_id)

        missing = [
            kind
            for kind, value in ((EntityKind.CUSTOMER, partner_id), (EntityKind.PLAN, product_id))
            if value is None
        ]
        if partner_id is None or product_id is None:
            raise DependencyResolutionError(EntityKind.MEMBERSHIP, membership.id, missing=missing)

        remote_id = await self._reconciler.ensure_subscription(
            membership,
            partner_id=partner_id,
            product_id=product_id,
        )
        self._write_back(membership, remote_id)
        return remote_id

    async def sync_invoice(self, invoice: Invoice) -> int:
        """Ensure the owning customer, then create and post the invoice if needed."""

        with self._uow_factory() as uow:
            customer = _require(
                uow.repositories.customers,
                EntityKind.CUSTOMER,
                invoice.customer_id,
                tenant_id=invoice.tenant_id,
            )

        if customer.remote_customer_id is None:
            await self.sync_customer(customer)

        with self._uow_factory() as uow:
            partner_id = _stored_remote_id(uow.repositories.customers, invoice.customer_id)
        if partner_id is None:
            raise DependencyResolutionError(
                EntityKind.INVOICE, invoice.id, missing=[EntityKind.CUSTOMER]
            )

        remote_id = await self._reconciler.ensure_invoice(invoice, partner_id=partner_id)
        self._write_back(invoice, remote_id)
        return remote_id

    async def sync_all_plans(
        self,
        tenant_id: str,
        *,
        entity_ids: Collection[UUID] | None = None,
    ) -> BatchSyncResult:
        with self._uow_factory() as uow:
            plans = _select(uow.repositories.plans.list_for_tenant(tenant_id), entity_ids)
        return await self._run_batch(EntityKind.PLAN, tenant_id, plans, self.sync_plan)

    async def sync_all_customers(
        self,
        tenant_id: str,
        *,
        entity_ids: Collection[UUID] | None = None,
    ) -> BatchSyncResult:
        with self._uow_factory() as uow:
            customers = _select(uow.repositories.customers.list_for_tenant(tenant_id), entity_ids)
        return await self._run_batch(EntityKind.CUSTOMER, tenant_id, customers, self.sync_customer)

    def _write_back(self, entity: Entity, remote_id: int) -> None:
        with self._uow_factory() as uow:
            _repository_for(uow.repositories, entity.kind).set_remote_id(entity.id, remote_id)
            uow.commit()
        setattr(entity, entity.REMOTE_ID_FIELD, remote_id)
        log.debug("Stored remote id %s on %s %s", remote_id, entity.kind, entity.id)

    async def _run_batch[TEntity: Entity](
        self,
        kind: EntityKind,
        tenant_id: str,
        entities: Sequence[TEntity],
        sync_one: Callable[[TEntity], Awaitable[int]],
    ) -> BatchSyncResult:
        result = BatchSyncResult(kind=kind, tenant_id=tenant_id)
        log.info("Starting %s batch sync for tenant %s: %s item(s)", kind, tenant_id, len(entities))

        pending: Sequence[TEntity] = entities
        failures: list[tuple[TEntity, Exception]] = []
        for attempt in range(self._config.batch_retry_attempts + 1):
            if attempt:
                delay = self._config.retry_delay(attempt - 1)
                log.info(
                    "Retrying %s failed %s item(s) in %.1fs (pass %s)",
                    len(pending),
                    kind,
                    delay,
                    attempt + 1,
                )
                await self._sleep(delay)
            failures = await self._run_pass(kind, pending, sync_one, result)
            result.passes += 1
            if not failures:
                break
            pending = [entity for entity, _ in failures]

        result.failed = [
            FailedItem(kind=kind, local_id=entity.id, error=str(exc), exception=exc)
            for entity, exc in failures
        ]
        log.info(
            "Finished %s batch sync for tenant %s: synced=%s, failed=%s, passes=%s",
            kind,
            tenant_id,
            len(result.synced),
            len(result.failed),
            result.passes,
        )
        return result

    async def _run_pass[TEntity: Entity](
        self,
        kind: EntityKind,
        entities: Iterable[TEntity],
        sync_one: Callable[[TEntity], Awaitable[int]],
        result: BatchSyncResult,
    ) -> list[tuple[TEntity, Exception]]:
        semaphore = asyncio.Semaphore(self._config.batch_concurrency)

        async def attempt(entity: TEntity) -> Exception | None:
            async with semaphore:
                try:
                    remote_id = await sync_one(entity)
                except Exception as exc:  # noqa: BLE001
                    log.warning("Failed to sync %s %s: %s", kind, entity.id, exc)
                    return exc
            result.synced.append(SyncedItem(kind=kind, local_id=entity.id, remote_id=remote_id))
            return None

        ordered = list(entities)
        outcomes = await asyncio.gather(*(attempt(entity) for entity in ordered))
        return [
            (entity, exc) for entity, exc in zip(ordered, outcomes, strict=True) if exc is not None
        ]


def _require[TEntity: Entity](
    repository: BillingRepository[TEntity],
    kind: EntityKind,
    entity_id: UUID,
    *,
    tenant_id: str,
) -> TEntity:
    entity = repository.get(entity_id)
    # an entity owned by another tenant is invisible, never synced into this ERP
    if entity is None or entity.tenant_id != tenant_id:
        raise EntityNotFoundError(kind, entity_id)
    return entity


def _stored_remote_id[TEntity: Entity](
    repository: BillingRepository[TEntity],
    entity_id: UUID,
) -> int | None:
    entity = repository.get(entity_id)
    return None if entity is None else entity.remote_id


def _repository_for(
    repositories: BillingRepositories,
    kind: EntityKind,
) -> BillingRepository[Entity]:
    match kind:
        case EntityKind.CUSTOMER:
            return repositories.customers
        case EntityKind.PLAN:
            return repositories.plans
        case EntityKind.MEMBERSHIP:
            return repositories.memberships
        case EntityKind.INVOICE:
            return repositories.invoices


def _select[TEntity: Entity](
    entities: Sequence[TEntity],
    entity_ids: Collection[UUID] | None,
) -> list[TEntity]:
    if entity_ids is None:
        return list(entities)
    wanted = set(entity_ids)
    return [entity for entity in entities if entity.id in wanted]
