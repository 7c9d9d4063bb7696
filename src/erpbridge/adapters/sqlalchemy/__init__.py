"""SQLAlchemy adapter package for erpbridge."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyBillingRepository,
    SqlAlchemyCustomerRepository,
    SqlAlchemyInvoiceRepository,
    SqlAlchemyMembershipRepository,
    SqlAlchemyPlanRepository,
)
from .unit_of_work import SqlAlchemyBillingUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyBillingRepository",
    "SqlAlchemyBillingUnitOfWork",
    "SqlAlchemyCustomerRepository",
    "SqlAlchemyInvoiceRepository",
    "SqlAlchemyMembershipRepository",
    "SqlAlchemyPlanRepository",
    "StartupError",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
