"""Idempotent find-or-create of Odoo records keyed by the local entity id."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from erpbridge.domain.errors import ReconciliationError, RemoteError
from erpbridge.domain.model import EntityKind

from .schema import RecordIdPayload

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from erpbridge.domain.model import Customer, Entity, Invoice, Membership, Plan
    from erpbridge.domain.ports.remote import RemoteReconciler

    from .transport import OdooTransport

log = getLogger(__name__)

EXTERNAL_REF_FIELD = "x_external_id"

type AfterCreateHook = Callable[[OdooTransport, int], Awaitable[None]]


async def _post_invoice(transport: OdooTransport, invoice_id: int) -> None:
    await transport.call("account.move", "action_post", [[invoice_id]])
    log.info("Posted account.move #%s", invoice_id)


@dataclass(frozen=True, slots=True)
class EnsureTarget:
    """How one entity kind maps onto a remote model."""

    kind: EntityKind
    model: str
    external_ref_field: str = EXTERNAL_REF_FIELD
    # runs only when the record was created by this call, never on a lookup hit
    after_create: AfterCreateHook | None = None


PARTNER = EnsureTarget(kind=EntityKind.CUSTOMER, model="res.partner")
PRODUCT = EnsureTarget(kind=EntityKind.PLAN, model="product.product")
SUBSCRIPTION = EnsureTarget(kind=EntityKind.MEMBERSHIP, model="sale.subscription")
INVOICE = EnsureTarget(kind=EntityKind.INVOICE, model="account.move", after_create=_post_invoice)


class OdooReconciler:
    def __init__(self, transport: OdooTransport) -> None:
        self._transport = transport

    async def ensure_partner(self, customer: Customer) -> int:
        return await self.ensure(
            PARTNER,
            customer,
            {
                "name": customer.display_name,
                "email": customer.email,
                "phone": customer.phone or False,
                "is_company": False,
            },
        )

    async def ensure_product(self, plan: Plan) -> int:
        return await self.ensure(
            PRODUCT,
            plan,
            {
                "name": plan.name,
                "list_price": float(plan.price),
                "recurring_rule_type": plan.cadence.recurring_rule_type,
                "is_subscription": True,
            },
        )

    async def ensure_subscription(
        self,
        membership: Membership,
        *,
        partner_id: int,
        product_id: int,
    ) -> int:
        return await self.ensure(
            SUBSCRIPTION,
            membership,
            {"partner_id": partner_id, "template_id": product_id},
        )

    async def ensure_invoice(self, invoice: Invoice, *, partner_id: int) -> int:
        line = {
            "name": invoice.description,
            "price_unit": float(invoice.amount),
            "quantity": 1,
        }
        return await self.ensure(
            INVOICE,
            invoice,
            {
                "partner_id": partner_id,
                "move_type": "out_invoice",
                "invoice_line_ids": [[0, 0, line]],
            },
        )

    async def ensure(self, target: EnsureTarget, entity: Entity, values: Mapping[str, Any]) -> int:
        """Return the remote id for ``entity``, creating the record if none carries its ref."""

        external_ref = entity.external_ref
        try:
            existing = await self._transport.search_read(
                target.model,
                [[target.external_ref_field, "=", external_ref]],
                fields=["id"],
            )
            if len(existing) > 1:
                log.warning(
                    "%s records share external ref %s; using the first",
                    target.model,
                    external_ref,
                )
            if existing:
                remote_id = RecordIdPayload.model_validate(existing[0]).id
                log.info("Found %s %s as %s #%s", target.kind, entity.id, target.model, remote_id)
                return remote_id

            remote_id = await self._transport.create(
                target.model,
                {**values, target.external_ref_field: external_ref},
            )
            log.info("Created %s #%s for %s %s", target.model, remote_id, target.kind, entity.id)
            if target.after_create is not None:
                await target.after_create(self._transport, remote_id)
        except (RemoteError, ValidationError) as exc:
            log.error("Failed to ensure %s %s: %s", target.kind, entity.id, exc)
            raise ReconciliationError(target.kind, entity.id, str(exc)) from exc
        return remote_id


if TYPE_CHECKING:

    def _reconciler_check(transport: OdooTransport) -> RemoteReconciler:
        return OdooReconciler(transport)
