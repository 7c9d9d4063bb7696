# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from decimal import Decimal, InvalidOperation
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from erpbridge.app import (
    check_connection,
    create_payment_link,
    get_transaction_status,
    list_active_acquirers,
    sync_all_customers,
    sync_all_plans,
    sync_customer_to_remote,
    sync_invoice_to_remote,
    sync_membership_to_remote,
    sync_plan_to_remote,
)
from erpbridge.config import configure_logging
from erpbridge.domain.model import DocumentType

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from erpbridge.domain.sync import BatchSyncResult

log = logging.getLogger(__name__)


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid UUID: {value}") from exc


def _parse_amount(value: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"Invalid amount: {value}") from exc
    if not amount.is_finite() or amount <= 0:
        raise argparse.ArgumentTypeError(f"Amount must be positive: {value}")
    return amount


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synchronise billing data with Odoo")
    parser.add_argument(
        "--tenant",
        type=str,
        required=True,
        help="Tenant whose ERP configuration and data to use",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("ping", help="Check ERP credentials and connectivity")

    for name, help_text in (
        ("sync-plans", "Sync every plan of the tenant"),
        ("sync-customers", "Sync every customer of the tenant"),
    ):
        batch = subparsers.add_parser(name, help=help_text)
        batch.add_argument(
            "--only",
            type=_parse_uuid,
            nargs="+",
            metavar="ID",
            help="Restrict the batch to these ids (e.g. the failures of a previous run)",
        )

    for name, help_text in (
        ("sync-plan", "Sync one plan"),
        ("sync-customer", "Sync one customer"),
        ("sync-membership", "Sync one membership with its customer and plan"),
        ("sync-invoice", "Sync and post one invoice"),
    ):
        single = subparsers.add_parser(name, help=help_text)
        single.add_argument("entity_id", type=_parse_uuid, help="Local entity id")

    subparsers.add_parser("acquirers", help="List enabled payment acquirers")

    link = subparsers.add_parser("payment-link", help="Create a hosted payment link")
    link.add_argument(
        "--doc-type",
        type=DocumentType,
        choices=list(DocumentType),
        required=True,
        help="Remote document the payment settles",
    )
    link.add_argument("--doc-id", type=int, required=True, help="Remote document id")
    link.add_argument("--amount", type=_parse_amount, required=True, help="Amount to charge")
    link.add_argument("--currency", type=str, required=True, help="ISO currency code, e.g. EUR")
    link.add_argument("--reference", type=str, required=True, help="External transaction reference")
    link.add_argument("--return-url", type=str, required=True, help="URL after a completed payment")
    link.add_argument("--cancel-url", type=str, required=True, help="URL after a cancelled payment")
    link.add_argument("--acquirer-id", type=int, help="Acquirer to use (defaults to first enabled)")

    status = subparsers.add_parser("transaction-status", help="Show a transaction's state")
    status.add_argument("reference", type=str, help="External transaction reference")

    return parser.parse_args(list(argv))


def _report_batch(result: BatchSyncResult) -> int:
    for item in result.synced:
        print(f"synced {item.kind} {item.local_id} -> #{item.remote_id}")
    for item in result.failed:
        print(f"failed {item.kind} {item.local_id}: {item.error}", file=sys.stderr)
    if result.failed:
        failed = " ".join(str(local_id) for local_id in result.failed_ids)
        log.warning("%s item(s) failed; retry with: --only %s", len(result.failed), failed)
        return 1
    return 0


def _run(args: argparse.Namespace) -> int:  # noqa: C901
    tenant = args.tenant
    match args.command:
        case "ping":
            uid = check_connection(tenant)
            print(f"connected as uid {uid}")
        case "sync-plans":
            return _report_batch(sync_all_plans(tenant, entity_ids=args.only))
        case "sync-customers":
            return _report_batch(sync_all_customers(tenant, entity_ids=args.only))
        case "sync-plan":
            print(sync_plan_to_remote(tenant, args.entity_id))
        case "sync-customer":
            print(sync_customer_to_remote(tenant, args.entity_id))
        case "sync-membership":
            print(sync_membership_to_remote(tenant, args.entity_id))
        case "sync-invoice":
            print(sync_invoice_to_remote(tenant, args.entity_id))
        case "acquirers":
            for acquirer in list_active_acquirers(tenant):
                print(f"{acquirer.id}\t{acquirer.name}\t{acquirer.provider}\t{acquirer.state}")
        case "payment-link":
            link = create_payment_link(
                tenant,
                doc_type=args.doc_type,
                doc_id=args.doc_id,
                amount=args.amount,
                currency=args.currency,
                external_ref=args.reference,
                return_url=args.return_url,
                cancel_url=args.cancel_url,
                acquirer_id=args.acquirer_id,
            )
            print(link.checkout_url)
        case "transaction-status":
            status = get_transaction_status(tenant, args.reference)
            if status is None:
                print(f"no transaction with reference {args.reference}")
            else:
                print(f"{status.reference}\t{status.state}\t{status.amount}")
        case _:
            raise ValueError(f"Unsupported command: {args.command}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        exit_code = _run(parsed_args)
    except Exception:
        log.exception("Command %s failed", parsed_args.command)
        sys.exit(1)
    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
