from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from erpbridge import app
from erpbridge.config import MissingConfigurationError, StaticErpConfigProvider, SyncConfig
from erpbridge.domain.errors import EntityNotFoundError
from erpbridge.domain.model import (
    Customer,
    DocumentType,
    Invoice,
    Membership,
    PaymentState,
    Plan,
)
from tests.helpers.billing import TENANT, make_customer, make_membership, make_plan
from tests.helpers.odoo import OdooStub, make_client_factory, make_config

if TYPE_CHECKING:
    from collections.abc import Callable

    from erpbridge.adapters.sqlalchemy import SqlAlchemyBillingUnitOfWork
    from erpbridge.app import BridgeOptions
    from erpbridge.domain.model import Entity

type UowFactory = Callable[[], SqlAlchemyBillingUnitOfWork]


@pytest.fixture
def options(odoo: OdooStub, sqlite_unit_of_work: UowFactory) -> BridgeOptions:
    return {
        "config_provider": StaticErpConfigProvider({TENANT: make_config()}),
        "client_factory": make_client_factory(odoo),
        "unit_of_work_factory": sqlite_unit_of_work,
        "sync_config": SyncConfig(),
    }


def _store(uow_factory: UowFactory, *entities: Entity) -> None:
    with uow_factory() as uow:
        repos = uow.repositories
        for entity in entities:
            match entity:
                case Customer():
                    repos.customers.add(entity)
                case Plan():
                    repos.plans.add(entity)
                case Membership():
                    repos.memberships.add(entity)
                case Invoice():
                    repos.invoices.add(entity)
                case _:
                    raise TypeError(f"Unsupported entity {entity!r}")
        uow.commit()


def test_sync_membership_persists_every_remote_id(
    odoo: OdooStub,
    sqlite_unit_of_work: UowFactory,
    options: BridgeOptions,
) -> None:
    customer = make_customer()
    plan = make_plan()
    membership = make_membership(customer, plan)
    _store(sqlite_unit_of_work, customer, plan, membership)

    subscription_id = app.sync_membership_to_remote(TENANT, membership.id, **options)

    with sqlite_unit_of_work() as uow:
        stored_customer = uow.repositories.customers.get(customer.id)
        stored_plan = uow.repositories.plans.get(plan.id)
        stored_membership = uow.repositories.memberships.get(membership.id)
        assert stored_customer is not None
        assert stored_plan is not None
        assert stored_membership is not None
        assert stored_customer.remote_customer_id == odoo.records["res.partner"][0]["id"]
        assert stored_plan.remote_product_id == odoo.records["product.product"][0]["id"]
        assert stored_membership.remote_subscription_id == subscription_id
    assert odoo.auth_requests == 1


def test_sync_is_idempotent_across_runs(
    odoo: OdooStub,
    sqlite_unit_of_work: UowFactory,
    options: BridgeOptions,
) -> None:
    plan = make_plan()
    _store(sqlite_unit_of_work, plan)

    first = app.sync_plan_to_remote(TENANT, plan.id, **options)
    second = app.sync_plan_to_remote(TENANT, plan.id, **options)

    assert first == second
    assert odoo.count("product.product", "create") == 1


def test_entity_of_another_tenant_is_not_found(
    odoo: OdooStub,
    sqlite_unit_of_work: UowFactory,
    options: BridgeOptions,
) -> None:
    customer = make_customer(tenant_id="academy-2")
    _store(sqlite_unit_of_work, customer)

    with pytest.raises(EntityNotFoundError):
        app.sync_customer_to_remote(TENANT, customer.id, **options)

    assert odoo.auth_requests == 0


def test_unknown_tenant_configuration_fails_before_any_request(
    odoo: OdooStub,
    options: BridgeOptions,
) -> None:
    with pytest.raises(MissingConfigurationError):
        app.check_connection("unknown-tenant", **options)

    assert odoo.auth_requests == 0


def test_batch_sync_reports_failures_and_can_be_rerun(
    odoo: OdooStub,
    sqlite_unit_of_work: UowFactory,
    options: BridgeOptions,
) -> None:
    plans = [make_plan(f"Plan {index}") for index in range(3)]
    _store(sqlite_unit_of_work, *plans)
    odoo.failing_refs.add(str(plans[0].id))

    first = app.sync_all_plans(TENANT, **options)

    assert first.failed_ids == (plans[0].id,)
    assert len(first.synced) == 2

    odoo.failing_refs.clear()
    second = app.sync_all_plans(TENANT, entity_ids=first.failed_ids, **options)

    assert second.ok
    assert [item.local_id for item in second.synced] == [plans[0].id]
    with sqlite_unit_of_work() as uow:
        assert all(plan.is_synced for plan in uow.repositories.plans.list_for_tenant(TENANT))


def test_payment_flow_through_the_facade(odoo: OdooStub, options: BridgeOptions) -> None:
    odoo.seed("res.currency", id=1, name="EUR")
    odoo.seed("payment.acquirer", id=2, name="Stripe", provider="stripe", state="enabled")
    odoo.seed("account.move", id=80, partner_id=[50, "Ada"])

    acquirers = app.list_active_acquirers(TENANT, **options)
    link = app.create_payment_link(
        TENANT,
        doc_type=DocumentType.INVOICE,
        doc_id=80,
        amount=Decimal("49.00"),
        currency="EUR",
        external_ref="invoice-80-1",
        return_url="https://academy.example.com/paid",
        cancel_url="https://academy.example.com/cancelled",
        **options,
    )
    odoo.find("payment.transaction", id=link.transaction_id)[0]["state"] = "done"
    status = app.get_transaction_status(TENANT, "invoice-80-1", **options)

    assert [acquirer.id for acquirer in acquirers] == [2]
    assert link.checkout_url.endswith(f"tx={link.transaction_id}")
    assert status is not None
    assert status.state is PaymentState.DONE
    assert status.is_terminal


def test_check_connection_returns_uid(odoo: OdooStub, options: BridgeOptions) -> None:
    assert app.check_connection(TENANT, **options) == odoo.uid
