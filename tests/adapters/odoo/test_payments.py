from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from erpbridge.adapters.odoo import PaymentBroker
from erpbridge.domain.errors import NoAcquirerConfiguredError, RemoteRecordNotFoundError
from erpbridge.domain.model import AcquirerState, DocumentType, PaymentState
from tests.helpers.odoo import BASE_URL, OdooStub, make_transport

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from erpbridge.domain.model import PaymentLink


def _run_with_broker[T](odoo: OdooStub, action: Callable[[PaymentBroker], Awaitable[T]]) -> T:
    async def scenario() -> T:
        async with make_transport(odoo) as transport:
            return await action(PaymentBroker(transport))

    return asyncio.run(scenario())


def _seed_payment_setup(odoo: OdooStub) -> None:
    odoo.seed("res.currency", id=1, name="EUR")
    odoo.seed("payment.acquirer", id=1, name="Wire", provider="transfer", state="disabled")
    odoo.seed("payment.acquirer", id=2, name="Stripe", provider="stripe", state="enabled")
    odoo.seed("payment.acquirer", id=3, name="Sandbox", provider="adyen", state="test")
    odoo.seed("res.partner", id=50, name="Ada")
    odoo.seed("sale.subscription", id=70, partner_id=[50, "Ada"])
    odoo.seed("account.move", id=80, partner_id=[50, "Ada"])


def _link(
    broker: PaymentBroker,
    *,
    doc_type: DocumentType = DocumentType.SUBSCRIPTION,
    doc_id: int = 70,
    currency: str = "EUR",
    acquirer_id: int | None = None,
) -> Awaitable[PaymentLink]:
    return broker.create_payment_link(
        doc_type=doc_type,
        doc_id=doc_id,
        amount=Decimal("29.90"),
        currency=currency,
        external_ref="membership-renewal-1",
        return_url="https://academy.example.com/paid",
        cancel_url="https://academy.example.com/cancelled",
        acquirer_id=acquirer_id,
    )


def test_list_active_acquirers_skips_disabled(odoo: OdooStub) -> None:
    _seed_payment_setup(odoo)

    acquirers = _run_with_broker(odoo, lambda broker: broker.list_active_acquirers())

    assert [acquirer.id for acquirer in acquirers] == [2, 3]
    assert acquirers[1].state is AcquirerState.TEST


def test_subscription_link_uses_first_usable_acquirer(odoo: OdooStub) -> None:
    _seed_payment_setup(odoo)

    link = _run_with_broker(odoo, _link)

    (transaction,) = odoo.records["payment.transaction"]
    assert transaction["acquirer_id"] == 2
    assert transaction["partner_id"] == 50
    assert transaction["currency_id"] == 1
    assert transaction["amount"] == 29.9
    assert transaction["subscription_id"] == 70
    assert transaction["reference"] == "membership-renewal-1"
    assert transaction["return_url"] == "https://academy.example.com/paid"
    assert link.transaction_id == transaction["id"]
    assert link.external_ref == "membership-renewal-1"
    assert link.checkout_url == f"{BASE_URL}/payment/pay?tx={transaction['id']}"


def test_invoice_link_attaches_invoice(odoo: OdooStub) -> None:
    _seed_payment_setup(odoo)

    _run_with_broker(
        odoo, lambda broker: _link(broker, doc_type=DocumentType.INVOICE, doc_id=80)
    )

    (transaction,) = odoo.records["payment.transaction"]
    assert transaction["invoice_ids"] == [[6, 0, [80]]]
    assert "subscription_id" not in transaction


def test_explicit_acquirer_skips_default_lookup(odoo: OdooStub) -> None:
    _seed_payment_setup(odoo)

    _run_with_broker(odoo, lambda broker: _link(broker, acquirer_id=3))

    assert odoo.records["payment.transaction"][0]["acquirer_id"] == 3
    assert odoo.count("payment.acquirer", "search_read") == 0


def test_only_disabled_acquirers_is_an_error(odoo: OdooStub) -> None:
    odoo.seed("res.currency", id=1, name="EUR")
    odoo.seed("payment.acquirer", id=1, name="Wire", provider="transfer", state="disabled")
    odoo.seed("sale.subscription", id=70, partner_id=[50, "Ada"])

    with pytest.raises(NoAcquirerConfiguredError):
        _run_with_broker(odoo, _link)

    assert odoo.count("payment.transaction", "create") == 0


def test_unknown_currency_is_reported(odoo: OdooStub) -> None:
    _seed_payment_setup(odoo)

    with pytest.raises(RemoteRecordNotFoundError, match="Currency CHF"):
        _run_with_broker(odoo, lambda broker: _link(broker, currency="CHF"))


def test_missing_document_is_reported(odoo: OdooStub) -> None:
    _seed_payment_setup(odoo)

    with pytest.raises(RemoteRecordNotFoundError, match="account.move #999"):
        _run_with_broker(
            odoo, lambda broker: _link(broker, doc_type=DocumentType.INVOICE, doc_id=999)
        )


def test_transaction_status_unknown_reference_is_none(odoo: OdooStub) -> None:
    status = _run_with_broker(odoo, lambda broker: broker.get_transaction_status("nope"))

    assert status is None


def test_transaction_status_reads_remote_state(odoo: OdooStub) -> None:
    odoo.seed(
        "payment.transaction",
        id=91,
        reference="membership-renewal-1",
        state="authorized",
        amount=29.9,
        currency_id=[1, "EUR"],
        partner_id=[50, "Ada"],
        acquirer_id=[2, "Stripe"],
        payment_token_id=False,
    )

    status = _run_with_broker(
        odoo, lambda broker: broker.get_transaction_status("membership-renewal-1")
    )

    assert status is not None
    assert status.transaction_id == 91
    assert status.state is PaymentState.AUTHORIZED
    assert float(status.amount) == 29.9
    assert (status.currency_id, status.partner_id, status.acquirer_id) == (1, 50, 2)
    assert status.payment_token_id is None
    assert not status.is_terminal
