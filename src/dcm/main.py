from __future__ import annotations

import argparse
import logging
from datetime import date
from typing import Sequence

from dcm.application.container import AppContainer, build_container
from dcm.config import get_app_paths, load_settings
from dcm.domain.models import SessionFilter
from dcm.domain.payments import format_currency, format_less_add
from dcm.logging_config import setup_logging

log = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dcm", description="Dairy collection center reports and bills")
    parser.add_argument("--db", help="SQLite database path (defaults to the per-user data directory)")
    sub = parser.add_subparsers(dest="command", required=True)

    report = sub.add_parser("report", help="Export one page of the collection report to Excel")
    report.add_argument("--date", type=date.fromisoformat, help="Only entries collected on this day (YYYY-MM-DD)")
    report.add_argument("--session", choices=[s.value for s in SessionFilter], default=SessionFilter.BOTH.value)
    report.add_argument("--page", type=int, default=0)
    report.add_argument("--output", "-o", required=True)

    bill = sub.add_parser("bill", help="Export a farmer bill for a date range to Excel")
    bill.add_argument("--farmer", type=int, required=True)
    bill.add_argument("--from", dest="from_date", type=date.fromisoformat, required=True)
    bill.add_argument("--to", dest="to_date", type=date.fromisoformat, required=True)
    bill.add_argument("--output", "-o", required=True)

    statement = sub.add_parser("statement", help="Export a farmer's full transaction history to Excel")
    statement.add_argument("--farmer", type=int, required=True)
    statement.add_argument("--output", "-o", required=True)

    rates = sub.add_parser("rates", help="Show or change milk rates")
    rates.add_argument("--vlc", type=float)
    rates.add_argument("--thekadari", type=float)
    return parser


def run(container: AppContainer, args: argparse.Namespace) -> str:
    if args.command == "report":
        report = container.reporting.session_report(args.date, args.session, args.page)
        container.reporting.export_session_report_excel(args.output, report)
        totals = report.totals
        return (
            f"{totals.count} entries written to {args.output} "
            f"(amount {format_currency(totals.amount)}, less/add {format_less_add(totals.less_add)})"
        )

    if args.command == "bill":
        bill = container.reporting.farmer_bill(args.farmer, args.from_date, args.to_date)
        container.reporting.export_bill_excel(args.output, bill)
        return f"Bill for {bill.farmer.name}: {format_currency(bill.totals.amount)} over {bill.totals.count} entries"

    if args.command == "statement":
        statement = container.reporting.transaction_statement(args.farmer)
        container.reporting.export_statement_excel(args.output, statement)
        return f"{len(statement.transactions)} transactions written to {args.output}"

    current = container.rates.get_rates()
    if args.vlc is not None or args.thekadari is not None:
        vlc = args.vlc if args.vlc is not None else current.vlc
        thekadari = args.thekadari if args.thekadari is not None else current.thekadari
        container.rates.update_rates(vlc, thekadari)
        current = container.rates.get_rates()
    return f"VLC {current.vlc:.2f} | Thekadari {current.thekadari:.2f}"


def main(argv: Sequence[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    container = build_container(args.db or paths.db_path, load_settings())
    try:
        print(run(container, args))
    except Exception:
        log.exception("command_failed command=%s", args.command)
        raise


if __name__ == "__main__":
    main()
