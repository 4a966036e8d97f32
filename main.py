import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from expiry_tracker import categorize, data_handler, expiries, pricing, reminders, settings, snapshot, utils
from expiry_tracker.errors import EntryNotFoundError, ExpiryTrackerError, NothingToUndoError
from expiry_tracker.logger import setup_logger
from expiry_tracker.schemas import PricingRule, reference_date
from expiry_tracker.pipelines.master import MasterImportPipeline
from expiry_tracker.pipelines.stock import StockUpdatePipeline

logger = logging.getLogger("expiry_tracker")


def _resolve_input(file_arg: str | None, prefix: str) -> Path | None:
    """Uses the given file, or the newest file in INPUT_DIR with the given prefix."""
    if file_arg:
        return Path(file_arg)
    found = utils.find_latest_report(settings.INPUT_DIR, prefix)
    if not found:
        logger.error(f"❌ No file given and none found in {settings.INPUT_DIR} with prefix '{prefix}'.")
        return None
    path, report_date = found
    logger.info(f"  > Found: {path.name} (Date: {report_date})")
    return path


def cmd_import_master(args) -> int:
    path = _resolve_input(args.file, settings.MASTER_FILENAME_PREFIX)
    if path is None:
        return 1
    summary = MasterImportPipeline(db_path=args.db, dry_run=args.dry_run).run(path)
    return 0 if summary is not None else 1


def cmd_update_stock(args) -> int:
    path = _resolve_input(args.file, settings.BALANCE_FILENAME_PREFIX)
    if path is None:
        return 1
    summary = StockUpdatePipeline(db_path=args.db, dry_run=args.dry_run).run(path)
    return 0 if summary is not None else 1


def cmd_undo(args) -> int:
    document = data_handler.load_document(args.db)
    try:
        snapshot.undo(document, args.token)
    except NothingToUndoError as e:
        # Expected when no stock update has run since the last undo.
        logger.info(f"ℹ️ {e}")
        return 0
    data_handler.save_document(document, args.db)
    logger.info("✅ Last stock update undone.")
    return 0


def cmd_report(args) -> int:
    document = data_handler.load_document(args.db)
    as_of = args.as_of or reference_date()
    categorized = categorize.categorize(document.items, as_of)

    logger.info(f"\n--- Expiry Overview ({as_of.isoformat()}) ---")
    for band, count in categorize.band_counts(categorized).items():
        logger.info(f"{band:>16}: {count}")

    if args.csv:
        data_handler.save_expiry_report(categorize.categorized_frame(categorized))
    return 0


def cmd_remind(args) -> int:
    document = data_handler.load_document(args.db)
    sweep = reminders.ReminderSweep(notifier=data_handler.post_to_webhook)
    if sweep.run(document) is not None:
        data_handler.save_document(document, args.db)
    return 0


def cmd_mark_read(args) -> int:
    document = data_handler.load_document(args.db)
    reminders.mark_read(document, args.notification_id)
    data_handler.save_document(document, args.db)
    return 0


def _parse_entry(text: str) -> expiries.NewExpiry:
    """ITEMCODE:YYYY-MM-DD[:QTY]"""
    parts = text.split(":")
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(f"Expected ITEMCODE:YYYY-MM-DD[:QTY], got {text!r}")
    try:
        expiry_date = date.fromisoformat(parts[1])
        quantity = int(parts[2]) if len(parts) == 3 else None
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e
    return expiries.NewExpiry(item_id=parts[0].strip(), date=expiry_date, quantity=quantity)


def cmd_add_expiry(args) -> int:
    document = data_handler.load_document(args.db)
    document.items, added = expiries.add_expiries(document.items, args.entries)
    if not added:
        logger.warning("No valid entries to save.")
        return 1
    data_handler.save_document(document, args.db)
    logger.info(f"✅ {added} new entries saved.")
    return 0


def cmd_clear_pending(args) -> int:
    document = data_handler.load_document(args.db)
    pending = len(expiries.pending_items(document.items))
    document.items = expiries.clear_pending_updates(document.items)
    data_handler.save_document(document, args.db)
    logger.info(f"✅ Cleared {pending} pending update(s).")
    return 0


def _parse_manual(text: str) -> tuple[str, float]:
    code, _, pct = text.partition("=")
    try:
        return code.strip(), float(pct)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Expected ITEMCODE=PERCENT, got {text!r}") from e


def cmd_price(args) -> int:
    document = data_handler.load_document(args.db)
    manual = dict(args.manual or [])
    document.items, changed = pricing.apply_pricing(
        document.items, document.pricing_rules, manual, includes_vat=not args.ex_vat
    )
    logger.info(f"✅ Repriced {changed} item(s).")
    if changed and not args.dry_run:
        data_handler.save_document(document, args.db)
    return 0


def cmd_rules(args) -> int:
    document = data_handler.load_document(args.db)
    grouped = pricing.rules_by_supplier(document.pricing_rules)
    if not grouped:
        logger.info("No pricing rules saved.")
    for supplier, rules in grouped.items():
        logger.info(f"\n--- {supplier} ---")
        for rule in rules:
            scope = " / ".join(part or "-" for part in (rule.category, rule.sub_category, rule.brand))
            logger.info(f"  {scope}: {rule.percentage:g}%  [{rule.id}]")
    return 0


def cmd_add_rule(args) -> int:
    document = data_handler.load_document(args.db)
    rule = PricingRule(
        supplier=args.supplier,
        category=args.category,
        sub_category=args.sub_category,
        brand=args.brand,
        percentage=args.percent,
    )
    document.pricing_rules = pricing.add_rule(document.pricing_rules, rule)
    data_handler.save_document(document, args.db)
    logger.info(f"✅ Rule saved: {rule.label()} [{rule.id}]")
    return 0


def cmd_remove_rule(args) -> int:
    document = data_handler.load_document(args.db)
    document.pricing_rules = pricing.remove_rule(document.pricing_rules, args.rule_id)
    data_handler.save_document(document, args.db)
    logger.info(f"✅ Rule {args.rule_id} removed.")
    return 0


def cmd_settings(args) -> int:
    document = data_handler.load_document(args.db)
    changed = args.days is not None or args.add_email or args.remove_email
    if changed:
        reminders.update_settings(
            document,
            reminder_days=args.days,
            add_emails=args.add_email or [],
            remove_emails=args.remove_email or [],
        )
        data_handler.save_document(document, args.db)
    current = document.settings
    logger.info(f"Reminder window: {current.reminder_days} day(s)")
    logger.info(f"Recipients: {', '.join(current.recipient_emails) or '(none)'}")
    return 0


def cmd_show(args) -> int:
    document = data_handler.load_document(args.db)
    _, item = expiries.find_item(document.items, args.item_id)
    logger.info(f"\n--- {item.id}: {item.description} ---")
    if item.notes:
        logger.info(f"Notes: {item.notes}")
    if item.is_update:
        logger.info(f"Awaiting expiry dates: {item.pending_stock_qty} unit(s)")
    for entry in item.expiry_entries:
        logger.info(f"  {entry.date.isoformat()}  qty {entry.quantity:>5}  [{entry.added_at}]")
    return 0


def _edit_item(args, edit) -> int:
    document = data_handler.load_document(args.db)
    index, item = expiries.find_item(document.items, args.item_id)
    document.items[index] = edit(item)
    data_handler.save_document(document, args.db)
    logger.info(f"✅ {item.id} updated.")
    return 0


def cmd_set_lot(args) -> int:
    return _edit_item(args, lambda item: expiries.update_entry_quantity(item, args.added_at, args.quantity))


def cmd_remove_lot(args) -> int:
    def edit(item):
        updated = expiries.remove_entry(item, args.added_at)
        if updated is item:
            raise EntryNotFoundError(item.id, args.added_at)
        return updated

    return _edit_item(args, edit)


def cmd_set_notes(args) -> int:
    return _edit_item(args, lambda item: expiries.set_notes(item, args.notes))


def _count(minimum: int):
    def parse(text: str) -> int:
        try:
            value = int(text)
        except ValueError as e:
            raise argparse.ArgumentTypeError(f"Expected a whole number, got {text!r}") from e
        if value < minimum:
            raise argparse.ArgumentTypeError(f"Must be at least {minimum}, got {value}")
        return value

    return parse


def _percent(text: str) -> float:
    try:
        value = float(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Expected a percentage, got {text!r}") from e
    if not value:
        raise argparse.ArgumentTypeError("Percentage must be non-zero")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Perishable inventory and expiry tracker.")
    parser.add_argument("--db", type=Path, default=settings.DB_FILE_PATH, help="Inventory store (JSON).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("import-master", help="Merge a POS master list into the catalog.")
    p.add_argument("file", nargs="?")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(func=cmd_import_master)

    p = sub.add_parser("update-stock", help="Reconcile lots against a stock balance file.")
    p.add_argument("file", nargs="?")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(func=cmd_update_stock)

    p = sub.add_parser("undo", help="Undo the last stock update.")
    p.add_argument("--token", help="Only undo if the stored snapshot has this token.")
    p.set_defaults(func=cmd_undo)

    p = sub.add_parser("report", help="Show lots per expiry band.")
    p.add_argument("--as-of", type=date.fromisoformat)
    p.add_argument("--csv", action="store_true", help="Also save the report as CSV.")
    p.set_defaults(func=cmd_report)

    p = sub.add_parser("remind", help="Raise an expiry reminder if one is due.")
    p.set_defaults(func=cmd_remind)

    p = sub.add_parser("mark-read", help="Mark a notification as read.")
    p.add_argument("notification_id")
    p.set_defaults(func=cmd_mark_read)

    p = sub.add_parser("add-expiry", help="Date pending stock: ITEMCODE:YYYY-MM-DD[:QTY] ...")
    p.add_argument("entries", nargs="+", type=_parse_entry)
    p.set_defaults(func=cmd_add_expiry)

    p = sub.add_parser("clear-pending", help="Clear all pending-update flags.")
    p.set_defaults(func=cmd_clear_pending)

    p = sub.add_parser("price", help="Reprice items using the saved pricing rules.")
    p.add_argument("--manual", action="append", type=_parse_manual, help="ITEMCODE=PERCENT override.")
    p.add_argument("--ex-vat", action="store_true", help="Compute prices excluding VAT.")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(func=cmd_price)

    p = sub.add_parser("rules", help="List saved pricing rules by supplier.")
    p.set_defaults(func=cmd_rules)

    p = sub.add_parser("add-rule", help="Save a markup rule. Omitted selectors match anything.")
    p.add_argument("--percent", type=_percent, required=True)
    p.add_argument("--supplier")
    p.add_argument("--category")
    p.add_argument("--sub-category")
    p.add_argument("--brand")
    p.set_defaults(func=cmd_add_rule)

    p = sub.add_parser("remove-rule", help="Delete a pricing rule by id.")
    p.add_argument("rule_id")
    p.set_defaults(func=cmd_remove_rule)

    p = sub.add_parser("settings", help="Show or edit reminder settings.")
    p.add_argument("--days", type=_count(1), help="Reminder window in days.")
    p.add_argument("--add-email", action="append")
    p.add_argument("--remove-email", action="append")
    p.set_defaults(func=cmd_settings)

    p = sub.add_parser("show", help="Show an item's lots and notes.")
    p.add_argument("item_id")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("set-lot", help="Correct a lot's quantity (0 deletes it).")
    p.add_argument("item_id")
    p.add_argument("added_at")
    p.add_argument("quantity", type=_count(0))
    p.set_defaults(func=cmd_set_lot)

    p = sub.add_parser("remove-lot", help="Delete a lot.")
    p.add_argument("item_id")
    p.add_argument("added_at")
    p.set_defaults(func=cmd_remove_lot)

    p = sub.add_parser("set-notes", help="Replace an item's notes.")
    p.add_argument("item_id")
    p.add_argument("notes")
    p.set_defaults(func=cmd_set_notes)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger("expiry_tracker", logging.DEBUG if args.verbose else logging.INFO)
    try:
        return args.func(args)
    except ExpiryTrackerError as e:
        logger.error(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
