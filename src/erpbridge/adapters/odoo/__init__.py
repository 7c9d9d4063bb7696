"""Odoo JSON-RPC adapter."""

from __future__ import annotations

from .payments import PaymentBroker
from .reconciler import EXTERNAL_REF_FIELD, EnsureTarget, OdooReconciler
from .schema import JsonRpcResponse, TransactionPayload
from .transport import OdooTransport

__all__ = [
    "EXTERNAL_REF_FIELD",
    "EnsureTarget",
    "JsonRpcResponse",
    "OdooReconciler",
    "OdooTransport",
    "PaymentBroker",
    "TransactionPayload",
]
