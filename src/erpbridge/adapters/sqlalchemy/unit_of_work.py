"""Process-wide database handle and the unit of work built on it.

:func:`startup` must run once before any :class:`SqlAlchemyBillingUnitOfWork`
is created; the CLI and :mod:`erpbridge.app` do this on first use.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from erpbridge.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from erpbridge.adapters.sqlalchemy.repositories import (
    SqlAlchemyCustomerRepository,
    SqlAlchemyInvoiceRepository,
    SqlAlchemyMembershipRepository,
    SqlAlchemyPlanRepository,
)
from erpbridge.config.storage import DatabaseConfig, get_database_config
from erpbridge.domain.ports.unit_of_work import BillingRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """The database is not configured, or a unit of work is used outside ``with``."""


class _Database:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the mappers to ``engine`` (or a new one) and create missing tables."""

    if _Database.engine is not None and not force:
        raise StartupError("Database already started; pass force=True to rebind it")
    if engine is None:
        config = DatabaseConfig(uri=database_uri) if database_uri else get_database_config()
        engine = create_engine(config.uri, echo=config.echo)
    start_mappers()
    create_all_tables(engine)
    if _Database.engine is not None and _Database.engine is not engine:
        _Database.engine.dispose()
    _Database.engine = engine
    _Database.sessions = sessionmaker(bind=engine, expire_on_commit=False)
    log.debug("Local database bound to %s", engine.url)


def configured_engine() -> Engine | None:
    return _Database.engine


def is_started() -> bool:
    return _Database.engine is not None


def shutdown() -> None:
    """Dispose the engine; :func:`startup` may be called again afterwards."""

    if _Database.engine is not None:
        _Database.engine.dispose()
    _Database.engine = None
    _Database.sessions = None


class SqlAlchemyBillingUnitOfWork:
    """One session, and the billing repositories bound to it, per ``with`` block."""

    def __init__(self) -> None:
        if _Database.sessions is None:
            raise StartupError(
                "Database not started; call erpbridge.adapters.sqlalchemy.startup() first"
            )
        self._sessions = _Database.sessions
        self._session: Session | None = None
        self._repositories: BillingRepositories | None = None

    def __enter__(self) -> SqlAlchemyBillingUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already in use")
        session = self._sessions()
        self._session = session
        self._repositories = BillingRepositories(
            customers=SqlAlchemyCustomerRepository(session),
            plans=SqlAlchemyPlanRepository(session),
            memberships=SqlAlchemyMembershipRepository(session),
            invoices=SqlAlchemyInvoiceRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self._active_session()
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    def _active_session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work used outside of its with-block")
        return self._session

    @property
    def repositories(self) -> BillingRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work used outside of its with-block")
        return self._repositories

    def commit(self) -> None:
        self._active_session().commit()

    def rollback(self) -> None:
        self._active_session().rollback()


if TYPE_CHECKING:
    from erpbridge.domain.ports.unit_of_work import BillingUnitOfWork

    _uow_check: BillingUnitOfWork = SqlAlchemyBillingUnitOfWork()
