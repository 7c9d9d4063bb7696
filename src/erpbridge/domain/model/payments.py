"""Value objects describing remote payment records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from decimal import Decimal

    from erpbridge.domain.model.enums import AcquirerState, PaymentState


@dataclass(frozen=True, slots=True)
class Acquirer:
    id: int
    name: str
    provider: str
    state: AcquirerState


@dataclass(frozen=True, slots=True)
class PaymentLink:
    checkout_url: str
    external_ref: str
    transaction_id: int


@dataclass(frozen=True, slots=True)
class TransactionStatus:
    """Snapshot of a remote payment transaction."""

    transaction_id: int
    reference: str
    state: PaymentState
    amount: Decimal
    currency_id: int | None = None
    partner_id: int | None = None
    acquirer_id: int | None = None
    payment_token_id: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal
