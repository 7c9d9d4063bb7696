"""Hosted payment links and transaction status lookups."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from erpbridge.domain.errors import NoAcquirerConfiguredError, RemoteRecordNotFoundError, RpcError
from erpbridge.domain.model import (
    Acquirer,
    AcquirerState,
    DocumentType,
    PaymentLink,
    TransactionStatus,
)

from .schema import (
    AcquirerPayload,
    CurrencyPayload,
    DocumentPartnerPayload,
    OdooBaseModel,
    TransactionPayload,
)

if TYPE_CHECKING:
    from decimal import Decimal

    from .transport import OdooTransport

log = getLogger(__name__)

ACQUIRER_MODEL = "payment.acquirer"
TRANSACTION_MODEL = "payment.transaction"
CURRENCY_MODEL = "res.currency"

_DOCUMENT_MODELS: dict[DocumentType, str] = {
    DocumentType.SUBSCRIPTION: "sale.subscription",
    DocumentType.INVOICE: "account.move",
}
_TRANSACTION_FIELDS = (
    "reference",
    "state",
    "amount",
    "currency_id",
    "partner_id",
    "acquirer_id",
    "payment_token_id",
)
_USABLE_ACQUIRER_STATES = [state.value for state in AcquirerState if state.is_usable]


class PaymentBroker:
    def __init__(self, transport: OdooTransport) -> None:
        self._transport = transport

    async def list_active_acquirers(self) -> list[Acquirer]:
        records = await self._transport.search_read(
            ACQUIRER_MODEL,
            [["state", "in", _USABLE_ACQUIRER_STATES]],
            fields=["name", "provider", "state"],
        )
        acquirers = [
            Acquirer(
                id=payload.id,
                name=payload.name,
                provider=payload.provider,
                state=payload.state,
            )
            for payload in _validate_all(AcquirerPayload, records)
        ]
        # the server filter is advisory; keep only usable ones in server order
        return [acquirer for acquirer in acquirers if acquirer.state.is_usable]

    async def create_payment_link(  # noqa: PLR0913
        self,
        *,
        doc_type: DocumentType,
        doc_id: int,
        amount: Decimal,
        currency: str,
        external_ref: str,
        return_url: str,
        cancel_url: str,
        acquirer_id: int | None = None,
    ) -> PaymentLink:
        """Create a payment transaction for a remote document and return its checkout URL."""

        currency_id = await self._currency_id(currency)
        partner_id = await self._document_partner_id(doc_type, doc_id)
        if acquirer_id is None:
            acquirer_id = await self._default_acquirer_id()

        values: dict[str, Any] = {
            "reference": external_ref,
            "amount": float(amount),
            "currency_id": currency_id,
            "partner_id": partner_id,
            "acquirer_id": acquirer_id,
            "return_url": return_url,
            "cancel_url": cancel_url,
        }
        match doc_type:
            case DocumentType.SUBSCRIPTION:
                values["subscription_id"] = doc_id
            case DocumentType.INVOICE:
                values["invoice_ids"] = [[6, 0, [doc_id]]]

        transaction_id = await self._transport.create(TRANSACTION_MODEL, values)
        checkout_url = await self._transport.call(
            TRANSACTION_MODEL, "get_portal_url", [[transaction_id]]
        )
        if not isinstance(checkout_url, str) or not checkout_url:
            raise RpcError(f"No checkout URL returned for transaction #{transaction_id}")

        log.info(
            "Created payment transaction #%s (%s) for %s #%s via acquirer #%s",
            transaction_id,
            external_ref,
            doc_type,
            doc_id,
            acquirer_id,
        )
        return PaymentLink(
            checkout_url=checkout_url,
            external_ref=external_ref,
            transaction_id=transaction_id,
        )

    async def get_transaction_status(self, external_ref: str) -> TransactionStatus | None:
        """Current state of the transaction with ``external_ref``; ``None`` if none exists yet."""

        records = await self._transport.search_read(
            TRANSACTION_MODEL,
            [["reference", "=", external_ref]],
            fields=list(_TRANSACTION_FIELDS),
        )
        if not records:
            log.debug("No payment transaction with reference %s", external_ref)
            return None

        payload = _validate(TransactionPayload, records[0])
        return TransactionStatus(
            transaction_id=payload.id,
            reference=payload.reference,
            state=payload.state,
            amount=payload.amount,
            currency_id=payload.currency_id,
            partner_id=payload.partner_id,
            acquirer_id=payload.acquirer_id,
            payment_token_id=payload.payment_token_id,
        )

    async def _currency_id(self, code: str) -> int:
        records = await self._transport.search_read(
            CURRENCY_MODEL,
            [["name", "=", code]],
            fields=["id"],
        )
        if not records:
            raise RemoteRecordNotFoundError(f"Currency {code} not found")
        return _validate(CurrencyPayload, records[0]).id

    async def _document_partner_id(self, doc_type: DocumentType, doc_id: int) -> int:
        model = _DOCUMENT_MODELS[doc_type]
        records = await self._transport.read(model, [doc_id], fields=["partner_id"])
        if not records:
            raise RemoteRecordNotFoundError(f"{model} #{doc_id} not found")
        partner_id = _validate(DocumentPartnerPayload, records[0]).partner_id
        if partner_id is None:
            raise RemoteRecordNotFoundError(f"{model} #{doc_id} has no partner")
        return partner_id

    async def _default_acquirer_id(self) -> int:
        acquirers = await self.list_active_acquirers()
        if not acquirers:
            raise NoAcquirerConfiguredError("No payment acquirer is enabled")
        selected = acquirers[0]
        log.info("Selected acquirer #%s (%s, %s)", selected.id, selected.name, selected.state)
        return selected.id


def _validate[TModel: OdooBaseModel](
    model: type[TModel],
    record: object,
) -> TModel:
    try:
        return model.model_validate(record)
    except ValidationError as exc:
        raise RpcError(f"Unexpected {model.__name__} record: {exc}") from exc


def _validate_all[TModel: OdooBaseModel](
    model: type[TModel],
    records: list[dict[str, Any]],
) -> list[TModel]:
    return [_validate(model, record) for record in records]

