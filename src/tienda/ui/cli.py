# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from tienda.adapters.sqlalchemy import StartupError
from tienda.app import build_gateway, init_database
from tienda.config import ConfigurationError, configure_logging
from tienda.domain.errors import CallerInputError, FallbackStepError, StoreError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from tienda.domain.model import Product, Promotion
    from tienda.domain.mutations import MutationOutcome, TransactionalMutationGateway

log = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_USAGE = 2


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage tienda promotions and products")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create the local database schema")
    init_db.add_argument("--database-uri", type=str, help="Override DATABASE_URI")

    promotion = subparsers.add_parser("promotion", help="Promotion commands")
    promotion_sub = promotion.add_subparsers(dest="promotion_command", required=True)
    save = promotion_sub.add_parser("save", help="Create or update a promotion")
    save.add_argument("--id", type=int, help="Existing promotion id (omit to create)")
    save.add_argument("--name", type=str, required=True, help="Promotion name")
    save.add_argument("--price", type=str, help="Bundle price override")
    save.add_argument("--inactive", action="store_true", help="Save the promotion as inactive")
    save.add_argument(
        "--item",
        dest="items",
        action="append",
        default=[],
        metavar="PRODUCT_ID:QUANTITY",
        help="Line item; repeat for each product",
    )
    items = promotion_sub.add_parser("items", help="List a promotion's line items")
    items.add_argument("promotion_id", type=int)
    for name, help_text in (("activate", "Reactivate a promotion"), ("deactivate", "Soft delete")):
        toggle = promotion_sub.add_parser(name, help=help_text)
        toggle.add_argument("promotion_id", type=int)

    product = subparsers.add_parser("product", help="Product commands")
    product_sub = product.add_subparsers(dest="product_command", required=True)
    stock = product_sub.add_parser("stock", help="Set a product's absolute stock")
    stock.add_argument("product_id", type=int)
    stock.add_argument("stock", type=int)
    update = product_sub.add_parser("update", help="Update product fields")
    update.add_argument("product_id", type=int)
    update.add_argument(
        "--set",
        dest="changes",
        action="append",
        default=[],
        metavar="FIELD=VALUE",
        help="Field assignment; repeat for each field",
    )
    for name in ("activate", "deactivate"):
        toggle = product_sub.add_parser(name, help=f"{name.capitalize()} a product")
        toggle.add_argument("product_id", type=int)

    return parser.parse_args(list(argv))


def _parse_item(value: str) -> tuple[int, int]:
    product_id, sep, quantity = value.partition(":")
    try:
        if not sep:
            raise ValueError(value)
        return int(product_id), int(quantity)
    except ValueError:
        raise CallerInputError(f"Invalid line item {value!r}, expected PRODUCT_ID:QUANTITY") from None


def _parse_value(raw: str) -> object:
    lowered = raw.strip().lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    try:
        return int(raw)
    except ValueError:
        return raw


def _parse_changes(assignments: Sequence[str]) -> dict[str, object]:
    changes: dict[str, object] = {}
    for assignment in assignments:
        name, sep, raw = assignment.partition("=")
        if not sep or not name.strip():
            raise CallerInputError(f"Invalid assignment {assignment!r}, expected FIELD=VALUE")
        changes[name.strip()] = _parse_value(raw)
    return changes


def _print_promotion(promotion: Promotion) -> None:
    price = "-" if promotion.price is None else str(promotion.price)
    state = "active" if promotion.active else "inactive"
    print(f"Promotion #{promotion.id} {promotion.name!r} price={price} {state}")
    for item in promotion.line_items:
        print(f"  product #{item.product_id} x{item.quantity} (line {item.id})")


def _print_product(product: Product) -> None:
    state = "active" if product.active else "inactive"
    print(f"{product.label} stock={product.stock} price={product.price} {state}")


def _print_outcome(outcome: MutationOutcome[Promotion] | MutationOutcome[Product]) -> None:
    entity = outcome.entity
    if hasattr(entity, "line_items"):
        _print_promotion(entity)  # type: ignore[arg-type]
    else:
        _print_product(entity)  # type: ignore[arg-type]
    print(f"(saved via {outcome.path} path)")


def _run_promotion(gateway: TransactionalMutationGateway, args: argparse.Namespace) -> None:
    if args.promotion_command == "save":
        outcome = gateway.create_or_update_promotion(
            args.id,
            name=args.name,
            price=args.price,
            line_items=[_parse_item(item) for item in args.items],
            active=not args.inactive,
        )
        _print_outcome(outcome)
    elif args.promotion_command == "items":
        for item in gateway.promotion_line_items(args.promotion_id):
            print(f"line {item.id}: product #{item.product_id} x{item.quantity}")
    else:
        promotion = gateway.set_promotion_active(
            args.promotion_id, args.promotion_command == "activate"
        )
        _print_promotion(promotion)


def _run_product(gateway: TransactionalMutationGateway, args: argparse.Namespace) -> None:
    if args.product_command == "stock":
        outcome = gateway.adjust_product_stock(args.product_id, args.stock)
    elif args.product_command == "update":
        outcome = gateway.update_product_fields(args.product_id, _parse_changes(args.changes))
    else:
        outcome = gateway.set_product_active(args.product_id, args.product_command == "activate")
    _print_outcome(outcome)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "init-db":
            init_database(database_uri=parsed_args.database_uri)
            print("Database ready")
        elif parsed_args.command == "promotion":
            _run_promotion(build_gateway(), parsed_args)
        elif parsed_args.command == "product":
            _run_product(build_gateway(), parsed_args)
        else:
            raise CallerInputError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (CallerInputError, ConfigurationError) as exc:
        log.error("Invalid input: %s", exc)
        sys.exit(EXIT_USAGE)
    except FallbackStepError as exc:
        log.error("Fallback failed; the entity may be partially updated")
        print(exc.describe(), file=sys.stderr)
        sys.exit(EXIT_FAILURE)
    except (StoreError, StartupError) as exc:
        log.error("Store error: %s", exc)
        sys.exit(EXIT_FAILURE)


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
