"""Command-line entry points for the pharmacy ledger.

All orchestration in this module is limited to argparse wiring and translating
command-line arguments into the drafts and command objects consumed by the
business layer. The store persists every commit itself, so no command needs a
separate save step.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Tuple

from . import core_logic, log
from .constants import PaymentMethod
from .errors import BusinessRuleViolation
from .models import PurchaseDraft, purchase_draft_from_record


@dataclass(frozen=True)
class CommandSpec:
    """Describe how a CLI sub-command is configured and executed."""

    name: str
    help_text: str
    register: Callable[[argparse._SubParsersAction[argparse.ArgumentParser]], argparse.ArgumentParser]
    execute: Callable[[core_logic.RuntimeContext, argparse.Namespace], int]


def build_parser() -> argparse.ArgumentParser:
    """Construct the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="pharma-cli",
        description="Command-line tools for the pharmacy stock ledger.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional path to config.ini (defaults to ./config.ini).",
    )
    return parser


def configure_subcommands(
    parser: argparse.ArgumentParser,
) -> Mapping[str, CommandSpec]:
    """Wire all CLI sub-commands onto the supplied parser."""
    subparsers = parser.add_subparsers(dest="command", required=True, title="commands")
    write_specs = register_write_commands(subparsers)
    read_specs = register_read_commands(subparsers)
    return build_command_table([*write_specs.values(), *read_specs.values()])


def _spec(
    name: str,
    help_text: str,
    arguments: Callable[[argparse.ArgumentParser], None],
    execute: Callable[[core_logic.RuntimeContext, argparse.Namespace], int],
) -> CommandSpec:
    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        arguments(parser)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=execute)


def register_write_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> Dict[str, CommandSpec]:
    """Declare mutating CLI commands such as bills and purchases."""
    specs = {
        "add-product": _spec("add-product", "Register a product with its first batch.", _product_arguments, run_add_product),
        "add-batch": _spec("add-batch", "Add a batch to an existing product.", _add_batch_arguments, run_add_batch),
        "delete-batch": _spec("delete-batch", "Delete an unreferenced batch.", _delete_batch_arguments, run_delete_batch),
        "add-supplier": _spec("add-supplier", "Register a supplier.", _supplier_arguments, run_add_supplier),
        "bill": _spec("bill", "Generate a sales bill.", _bill_arguments, run_bill),
        "edit-bill": _spec("edit-bill", "Replace the items of a bill.", _edit_bill_arguments, run_edit_bill),
        "delete-bill": _spec("delete-bill", "Delete a bill and return its stock.", _bill_number_argument, run_delete_bill),
        "purchase": _spec("purchase", "Record a purchase invoice from a JSON file.", _purchase_arguments, run_purchase),
        "edit-purchase": _spec("edit-purchase", "Replace a purchase from a JSON file.", _edit_purchase_arguments, run_edit_purchase),
        "delete-purchase": _spec("delete-purchase", "Delete a purchase and subtract its stock.", _purchase_id_argument, run_delete_purchase),
        "pay": _spec("pay", "Record a payment to a supplier.", _payment_arguments, run_pay),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def register_read_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> Dict[str, CommandSpec]:
    """Declare read-only CLI commands such as reports."""
    specs = {
        "stock": _spec("stock", "Display stock per batch.", _no_arguments, run_stock_report),
        "bills": _spec("bills", "List bills.", _no_arguments, run_bills_report),
        "purchases": _spec("purchases", "List purchases.", _no_arguments, run_purchases_report),
        "balances": _spec("balances", "Display outstanding supplier balances.", _no_arguments, run_balances_report),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def parse_item(text: str) -> Tuple[str, str, int]:
    """Parse ``PRODUCT_ID:BATCH_ID:QTY`` into its parts."""
    parts = text.rsplit(":", 2)
    if len(parts) != 3 or not all(parts):
        raise argparse.ArgumentTypeError(f"Expected PRODUCT_ID:BATCH_ID:QTY, got '{text}'")
    product_id, batch_id, quantity = parts
    try:
        return product_id, batch_id, int(quantity)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Quantity must be an integer in '{text}'") from exc


def _no_arguments(parser: argparse.ArgumentParser) -> None:
    return None


def _batch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--batch-number", required=True)
    parser.add_argument("--expiry", required=True, help="Expiry month as YYYY-MM.")
    parser.add_argument("--stock", type=int, required=True)
    parser.add_argument("--mrp", required=True)
    parser.add_argument("--purchase-price", required=True)


def _product_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--name", required=True)
    parser.add_argument("--company", required=True)
    parser.add_argument("--hsn-code", default="")
    parser.add_argument("--gst", required=True, help="GST percentage, e.g. 12.")
    parser.add_argument("--composition", default=None)
    _batch_arguments(parser)


def _add_batch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--product-id", required=True)
    _batch_arguments(parser)


def _delete_batch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--product-id", required=True)
    parser.add_argument("--batch-id", required=True)


def _supplier_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--name", required=True)
    parser.add_argument("--address", default="")
    parser.add_argument("--phone", default="")
    parser.add_argument("--gstin", default="")
    parser.add_argument("--opening-balance", default="0")


def _bill_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--customer", default="")
    parser.add_argument(
        "--item",
        dest="items",
        action="append",
        type=parse_item,
        required=True,
        metavar="PRODUCT_ID:BATCH_ID:QTY",
    )
    parser.add_argument("--date", default=None)


def _bill_number_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--bill-number", required=True)


def _edit_bill_arguments(parser: argparse.ArgumentParser) -> None:
    _bill_number_argument(parser)
    _bill_arguments(parser)


def _purchase_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--file", type=Path, required=True, help="Purchase invoice as JSON.")


def _purchase_id_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--purchase-id", required=True)


def _edit_purchase_arguments(parser: argparse.ArgumentParser) -> None:
    _purchase_id_argument(parser)
    _purchase_arguments(parser)


def _payment_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--supplier", required=True)
    parser.add_argument("--amount", required=True)
    parser.add_argument(
        "--method",
        choices=[member.value for member in PaymentMethod],
        default=PaymentMethod.CASH.value,
    )
    parser.add_argument("--date", default=None)
    parser.add_argument("--remarks", default=None)


def load_runtime_context(config_path: Optional[Path] = None) -> core_logic.RuntimeContext:
    """Resolve the runtime context for CLI operations."""
    target = Path(config_path) if config_path is not None else Path.cwd() / "config.ini"
    return core_logic.load_runtime_context(target)


def dispatch_command(
    context: core_logic.RuntimeContext,
    args: argparse.Namespace,
    command_table: Mapping[str, CommandSpec],
) -> int:
    """Dispatch the parsed arguments to the configured executor."""
    if not hasattr(args, "command") or args.command is None:
        raise KeyError("No command specified")
    spec = command_table.get(args.command)
    if spec is None:
        raise KeyError(f"Unknown command: {args.command}")
    return spec.execute(context, args)


def build_command_table(
    specs: Iterable[CommandSpec],
) -> MutableMapping[str, CommandSpec]:
    """Build an index of command specifications keyed by command name."""
    table: Dict[str, CommandSpec] = {}
    for spec in specs:
        if spec.name in table:
            raise ValueError(f"Duplicate command name: {spec.name}")
        table[spec.name] = spec
    return table


def translate_product(args: argparse.Namespace) -> core_logic.ProductCommand:
    """Translate CLI args into a product command object."""
    return core_logic.ProductCommand(
        name=args.name,
        company=args.company,
        hsn_code=args.hsn_code,
        gst=Decimal(args.gst),
        composition=args.composition,
    )


def translate_batch(args: argparse.Namespace) -> core_logic.BatchCommand:
    """Translate CLI args into a batch command object."""
    return core_logic.BatchCommand(
        batch_number=args.batch_number,
        expiry_date=args.expiry,
        stock=args.stock,
        mrp=Decimal(args.mrp),
        purchase_price=Decimal(args.purchase_price),
    )


def translate_supplier(args: argparse.Namespace) -> core_logic.SupplierCommand:
    return core_logic.SupplierCommand(
        name=args.name,
        address=args.address,
        phone=args.phone,
        gstin=args.gstin,
        opening_balance=Decimal(args.opening_balance),
    )


def translate_payment(args: argparse.Namespace) -> core_logic.PaymentCommand:
    """Translate CLI args into a payment command object."""
    return core_logic.PaymentCommand(
        supplier_name=args.supplier,
        amount=Decimal(args.amount),
        method=PaymentMethod(args.method),
        date=args.date,
        remarks=args.remarks,
    )


def translate_purchase(args: argparse.Namespace) -> PurchaseDraft:
    """Read the purchase JSON document named by ``--file``.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(args.file).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Purchase file not found: {path}")
    payload: Dict[str, Any] = json.loads(path.read_text(encoding="utf-8"), parse_float=Decimal)
    return purchase_draft_from_record(payload)


def _print_warnings(result: core_logic.TransactionResult) -> None:
    for warning in result.warnings:
        print(f"Warning: {warning}")


def run_add_product(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the add-product workflow in the BLL."""
    product = core_logic.add_product(context, translate_product(args), translate_batch(args))
    print(f"Added product {product.id} with batch {product.batches[0].id}")
    return 0


def run_add_batch(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    batch = core_logic.add_batch(context, args.product_id, translate_batch(args))
    print(f"Added batch {batch.id} ({batch.batch_number})")
    return 0


def run_delete_batch(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    core_logic.delete_batch(context, args.product_id, args.batch_id)
    print(f"Deleted batch {args.batch_id}")
    return 0


def run_add_supplier(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    supplier = core_logic.add_supplier(context, translate_supplier(args))
    print(f"Added supplier {supplier.id} ({supplier.name})")
    return 0


def run_bill(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the bill generation workflow via the BLL."""
    draft = core_logic.draft_bill(context, args.customer, args.items, date=args.date)
    result = core_logic.generate_bill(context, draft)
    print(f"Generated bill {result.record.bill_number} (grand total {result.record.grand_total:.2f})")
    _print_warnings(result)
    return 0


def run_edit_bill(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the bill edit workflow via the BLL."""
    bill = core_logic.find_bill_by_number(context, args.bill_number)
    draft = core_logic.draft_bill(context, args.customer or bill.customer_name, args.items, date=args.date)
    result = core_logic.update_bill(context, bill.id, draft)
    print(f"Updated bill {result.record.bill_number} (grand total {result.record.grand_total:.2f})")
    _print_warnings(result)
    return 0


def run_delete_bill(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    bill = core_logic.find_bill_by_number(context, args.bill_number)
    result = core_logic.delete_bill(context, bill.id)
    print(f"Deleted bill {bill.bill_number}")
    _print_warnings(result)
    return 0


def run_purchase(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the purchase workflow via the BLL."""
    result = core_logic.add_purchase(context, translate_purchase(args))
    print(f"Recorded purchase {result.record.id} (invoice {result.record.invoice_number})")
    _print_warnings(result)
    return 0


def run_edit_purchase(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    result = core_logic.update_purchase(context, args.purchase_id, translate_purchase(args))
    print(f"Updated purchase {result.record.id} (invoice {result.record.invoice_number})")
    _print_warnings(result)
    return 0


def run_delete_purchase(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    result = core_logic.delete_purchase(context, args.purchase_id)
    print(f"Deleted purchase {args.purchase_id}")
    _print_warnings(result)
    return 0


def run_pay(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the supplier payment workflow via the BLL."""
    payment = core_logic.add_payment(context, translate_payment(args))
    print(f"Recorded payment {payment.voucher_number} to {payment.supplier_name}")
    return 0


def run_stock_report(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the stock reporting workflow."""
    rows: List[core_logic.StockRow] = core_logic.calculate_stock(context)
    for row in rows:
        print(
            f"{row.product_name}\t{row.batch_number}\t{row.expiry_date}\t{row.stock}\t{row.mrp}"
        )
    return 0


def run_bills_report(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    for bill in core_logic.list_bills(context):
        print(f"{bill.bill_number}\t{bill.date}\t{bill.customer_name}\t{bill.grand_total:.2f}")
    return 0


def run_purchases_report(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    for purchase in core_logic.list_purchases(context):
        print(f"{purchase.invoice_number}\t{purchase.invoice_date}\t{purchase.supplier}\t{purchase.total_amount:.2f}")
    return 0


def run_balances_report(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the outstanding balances reporting workflow."""
    for name, balance in core_logic.calculate_outstanding_balances(context).items():
        print(f"{name}\t{balance:.2f}")
    return 0


def handle_cli_error(error: Exception) -> int:
    """Convert raised exceptions into user-friendly exit codes."""
    if isinstance(error, BusinessRuleViolation):
        log.error("%s", error)
        return 2
    if isinstance(error, FileNotFoundError):
        log.error("%s", error)
        return 3
    log.error("%s", error)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point that orchestrates parsing and execution."""
    parser = build_parser()
    command_table = configure_subcommands(parser)
    args = parser.parse_args(argv)
    try:
        context = load_runtime_context(getattr(args, "config", None))
        core_logic.ensure_schema_version(context)
        return dispatch_command(context, args, command_table)
    except Exception as error:  # pragma: no cover - centralised error handler tested separately
        return handle_cli_error(error)
