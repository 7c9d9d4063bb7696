"""Error taxonomy shared by the transport, reconciliation and payment layers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from erpbridge.domain.model import EntityKind


class ErpBridgeError(RuntimeError):
    """Base class for every error raised by erpbridge."""


class RemoteError(ErpBridgeError):
    """Raised by the transport layer when a remote call cannot be completed."""


class AuthenticationError(RemoteError):
    """Credentials were rejected, the session expired, or login was impossible."""


class UnsupportedAuthenticationError(AuthenticationError, NotImplementedError):
    """The configured credential mode has no implementation yet."""


class TransportError(RemoteError):
    """Network-level failure: unreachable host, timeout, or a non-JSON-RPC response."""


class RpcError(RemoteError):
    """The remote system answered with an application-level error."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        remote_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.remote_name = remote_name


class RemoteRecordNotFoundError(RpcError):
    """A remote lookup that must find a record returned nothing."""


class ReconciliationError(ErpBridgeError):
    """An ensure call failed; whether the remote record exists is unknown until retried."""

    def __init__(self, kind: EntityKind, local_id: UUID | str, message: str) -> None:
        super().__init__(f"Failed to ensure {kind} {local_id}: {message}")
        self.kind = kind
        self.local_id = local_id


class DependencyResolutionError(ErpBridgeError):
    """A prerequisite ensure did not leave a usable remote id on the local entity."""

    def __init__(
        self,
        kind: EntityKind,
        local_id: UUID | str,
        *,
        missing: Iterable[str],
    ) -> None:
        self.kind = kind
        self.local_id = local_id
        self.missing = tuple(missing)
        super().__init__(
            f"Cannot sync {kind} {local_id}: missing remote ids for {', '.join(self.missing)}"
        )


class NoAcquirerConfiguredError(ErpBridgeError):
    """No payment acquirer is enabled on the remote system."""


class EntityNotFoundError(ErpBridgeError):
    """The local store has no entity with the requested id."""

    def __init__(self, kind: EntityKind, local_id: UUID | str) -> None:
        super().__init__(f"{kind} {local_id} not found")
        self.kind = kind
        self.local_id = local_id
