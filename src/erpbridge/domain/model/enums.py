"""Enumerations shared by the domain model."""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    CUSTOMER = "customer"
    PLAN = "plan"
    MEMBERSHIP = "membership"
    INVOICE = "invoice"


class BillingCadence(StrEnum):
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"

    @property
    def recurring_rule_type(self) -> str:
        return self.value.lower()


class DocumentType(StrEnum):
    """Remote documents a payment transaction can settle."""

    SUBSCRIPTION = "subscription"
    INVOICE = "invoice"


class AcquirerState(StrEnum):
    ENABLED = "enabled"
    TEST = "test"
    DISABLED = "disabled"

    @property
    def is_usable(self) -> bool:
        return self in {AcquirerState.ENABLED, AcquirerState.TEST}


class PaymentState(StrEnum):
    """Payment transaction states as reported by the remote system.

    The happy path is ``draft -> pending -> authorized -> done``. ``cancel`` and
    ``error`` can be reached from any non-terminal state; ``done`` and ``cancel``
    are terminal. The remote system drives every transition.
    """

    DRAFT = "draft"
    PENDING = "pending"
    AUTHORIZED = "authorized"
    DONE = "done"
    CANCEL = "cancel"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in {PaymentState.DONE, PaymentState.CANCEL}

    def can_transition_to(self, target: PaymentState) -> bool:
        if self.is_terminal or target is self:
            return False
        if target in {PaymentState.CANCEL, PaymentState.ERROR}:
            return True
        return target in _FORWARD_TRANSITIONS.get(self, frozenset())


_FORWARD_TRANSITIONS: dict[PaymentState, frozenset[PaymentState]] = {
    PaymentState.DRAFT: frozenset({PaymentState.PENDING}),
    PaymentState.PENDING: frozenset({PaymentState.AUTHORIZED}),
    PaymentState.AUTHORIZED: frozenset({PaymentState.DONE}),
}
