"""Command-line entry point."""
import argparse
import json
import sys
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

from mpesa_ledger.config.settings import AppSettings, get_settings
from mpesa_ledger.orchestrator.processor import LedgerPipeline
from mpesa_ledger.parser.builder import TransactionBuilder
from mpesa_ledger.parser.classifier import MessageClassifier
from mpesa_ledger.parser.models import ParsedTransaction, parse_timestamp
from mpesa_ledger.report.filters import DateRange, filter_by_date_range, search
from mpesa_ledger.report.summary import summarize
from mpesa_ledger.sources.inbox import JsonlInboxSource, default_inbox_sources, default_queries
from mpesa_ledger.utils.exceptions import ConfigError, LedgerError
from mpesa_ledger.utils.logger import configure_logging, get_logger
from mpesa_ledger.utils.retry import RetryPolicy

logger = get_logger()

PERIODS = {
    "week": DateRange.this_week,
    "last-week": DateRange.last_week,
    "month": DateRange.this_month,
}


def _parse_day(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM-DD, got {value!r}")


def _resolve_date_range(args) -> Optional[DateRange]:
    """Date range from --period or --from/--to; None means no filtering."""
    if args.period:
        return PERIODS[args.period](date.today())
    if args.date_from or args.date_to:
        start = args.date_from or date.min
        end = args.date_to or date.max
        return DateRange(start, end)
    return None


def _print_transaction_table(transactions: List[ParsedTransaction]) -> None:
    """Print formatted table of transactions."""
    print(
        f"{'Transaction ID':<12} {'Date':<17} {'Type':<9} {'Amount (KSh)':>14} "
        f"{'Sender':<24} {'Phone':<13} {'Account':<16} {'Balance':>12}"
    )
    print("-" * 124)

    for txn in transactions:
        balance = "N/A" if txn.balance is None else f"{txn.balance:,}"
        print(
            f"{txn.transaction_id:<12} {txn.date.strftime('%d/%m/%Y %H:%M'):<17} "
            f"{txn.transaction_type.value:<9} {txn.amount:>14,} {txn.sender[:24]:<24} "
            f"{txn.phone_number:<13} {(txn.account or 'N/A')[:16]:<16} {balance:>12}"
        )


def parse_command(args, settings: AppSettings) -> int:
    """Run the pipeline over an exported inbox file."""
    inbox = Path(args.inbox)
    if args.sender:
        retry = RetryPolicy.from_settings(settings)
        sources = [
            JsonlInboxSource(inbox, query, retry=retry)
            for query in default_queries(args.sender, settings.keyword_regex)
        ]
    else:
        sources = default_inbox_sources(inbox, settings)

    result = LedgerPipeline(sources, settings=settings).run()
    if result.failed_sources and len(result.failed_sources) == len(sources):
        logger.error(f"Every source failed for {inbox}")
        return 1

    transactions = result.transactions
    date_range = _resolve_date_range(args)
    if date_range is not None:
        transactions = filter_by_date_range(transactions, date_range)
    if args.search:
        transactions = search(transactions, args.search)

    if args.json:
        for txn in transactions:
            print(json.dumps(txn.to_dict(), ensure_ascii=False))
        return 0

    if date_range is not None:
        print(f"\nTransactions for {date_range}")
    if not transactions:
        print("No transactions found.")
        return 0

    _print_transaction_table(transactions)
    summary = summarize(transactions)
    print(f"\nTotal: {summary.count} transactions, KSh {summary.total_amount:,}")
    for transaction_type, amount in sorted(summary.by_type.items()):
        print(f"  {transaction_type:<9} {summary.count_by_type[transaction_type]:>5}  KSh {amount:,}")
    return 0


def check_command(args, settings: AppSettings) -> int:
    """Parse a single message and print the record."""
    timestamp = parse_timestamp(args.date) if args.date else datetime.now()
    builder = TransactionBuilder(MessageClassifier(settings.classifier_keywords))
    transaction = builder.build(args.message, timestamp)
    if transaction is None:
        print("Not a transaction message.")
        return 1
    print(json.dumps(transaction.to_dict(), indent=2, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Turn M-Pesa confirmation messages into a transaction ledger")
    parser.add_argument("--config", help="Path to config.yaml")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parse = subparsers.add_parser("parse", help="Parse an exported SMS inbox (JSON Lines)")
    parse.add_argument("inbox", help="Inbox export, one JSON record per line")
    parse.add_argument("--sender", action="append", help="Sender id to query (repeatable)")
    period = parse.add_mutually_exclusive_group()
    period.add_argument("--period", choices=sorted(PERIODS), help="Preset date range")
    period.add_argument("--from", dest="date_from", type=_parse_day, help="First day (YYYY-MM-DD)")
    parse.add_argument("--to", dest="date_to", type=_parse_day, help="Last day (YYYY-MM-DD)")
    parse.add_argument("--search", help="Filter by sender, id, phone, account or amount")
    parse.add_argument("--json", action="store_true", help="Print JSON lines instead of a table")

    check = subparsers.add_parser("check", help="Parse a single message")
    check.add_argument("message", help="Message text")
    check.add_argument("--date", help="Message timestamp (ISO-8601), defaults to now")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for M-Pesa Ledger."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if getattr(args, "period", None) and args.date_to:
        parser.error("--to cannot be combined with --period")

    try:
        settings = get_settings(args.config)
    except (ConfigError, FileNotFoundError) as e:
        logger.critical(f"Invalid configuration: {e}")
        return 1

    configure_logging(
        settings.log_level,
        Path(settings.log_dir) if settings.log_dir else None,
        settings.log_max_file_size_mb,
        settings.log_backup_count
    )

    try:
        if args.command == "parse":
            return parse_command(args, settings)
        return check_command(args, settings)
    except LedgerError as e:
        logger.critical(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
