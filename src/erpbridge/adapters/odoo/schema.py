"""Pydantic schemas for Odoo JSON-RPC envelopes and the records we read back."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Annotated, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from erpbridge.domain.model import AcquirerState, PaymentState

log = logging.getLogger(__name__)


def _many2one_id(value: object) -> object:
    # many2one fields come back as ``[id, display_name]`` or ``False`` when unset
    if value is False or value is None:
        return None
    if isinstance(value, list | tuple) and value:
        return value[0]  # pyright: ignore[reportUnknownVariableType]
    return value


def _false_to_none(value: object) -> object:
    return None if value is False else value


type Many2One = Annotated[int | None, BeforeValidator(_many2one_id)]
type OptionalText = Annotated[str | None, BeforeValidator(_false_to_none)]


class OdooBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "Odoo %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class JsonRpcErrorData(OdooBaseModel):
    name: str | None = None
    message: str | None = None
    debug: str | None = None


class JsonRpcErrorPayload(OdooBaseModel):
    code: int | None = None
    message: str = "Unknown JSON-RPC error"
    data: JsonRpcErrorData | None = None

    @property
    def remote_name(self) -> str | None:
        return self.data.name if self.data else None

    @property
    def detail(self) -> str:
        if self.data and self.data.message:
            return self.data.message
        return self.message


class JsonRpcResponse(OdooBaseModel):
    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: object = None
    error: JsonRpcErrorPayload | None = None


class SessionInfo(OdooBaseModel):
    uid: int | None = None
    session_id: OptionalText = None
    db: OptionalText = None
    username: OptionalText = None


class RecordIdPayload(OdooBaseModel):
    id: int


class AcquirerPayload(OdooBaseModel):
    id: int
    name: str
    provider: str
    state: AcquirerState


class DocumentPartnerPayload(OdooBaseModel):
    id: int
    partner_id: Many2One = None


class CurrencyPayload(OdooBaseModel):
    id: int
    name: str | None = None


class TransactionPayload(OdooBaseModel):
    id: int
    reference: str
    state: PaymentState
    amount: Decimal = Field(default=Decimal(0))
    currency_id: Many2One = None
    partner_id: Many2One = None
    acquirer_id: Many2One = None
    payment_token_id: Many2One = None
