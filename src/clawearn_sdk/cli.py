"""Command-line interface.

Usage:
    clawearn wallet create [--private-key KEY] [--force]
    clawearn wallet show
    clawearn hyperliquid order --symbol BTC --side buy --size 0.01 --price 65000
    clawearn hyperliquid cancel --symbol BTC --order-id 123
    clawearn hyperliquid withdraw --amount 1000000 --recipient 0x...
    clawearn hyperliquid sign '{"type": "cancel", "cancels": [{"a": 1, "o": 42}]}'

Output goes to stdout, errors to stderr; the exit code is 1 on any failure.
"""

import argparse
import asyncio
import json
import sys
from decimal import Decimal
from typing import List, Optional

from dotenv import load_dotenv

from .exchange import (
    Accepted,
    HyperliquidExchange,
    HyperliquidInfo,
    exchange_config_from_env,
)
from .keystore import FileKeyStore, KeyStore, SigningKey, StaticKeyStore
from .log import get_logger, setup_logging
from .signing import (
    CancelAction,
    ClawearnError,
    InvalidActionError,
    OrderAction,
    TransferAction,
    calculate_notional,
    format_price,
    format_signature,
)
from .signing.types import TIME_IN_FORCE_VALUES

logger = get_logger(__name__)

MIN_ORDER_NOTIONAL = Decimal(10)
MAX_LEVERAGE = 20


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clawearn", description="Trading client for Hyperliquid")
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--json-logs", action="store_true")
    commands = parser.add_subparsers(dest="command", required=True)

    wallet = commands.add_parser("wallet", help="Manage the local signing key")
    wallet_commands = wallet.add_subparsers(dest="wallet_command", required=True)
    create = wallet_commands.add_parser("create", help="Create or import a wallet")
    create.add_argument("--private-key")
    create.add_argument("--force", action="store_true", help="Overwrite an existing wallet")
    wallet_commands.add_parser("show", help="Show the wallet address")

    hl = commands.add_parser("hyperliquid", aliases=["hl"], help="Hyperliquid trading")
    hl_commands = hl.add_subparsers(dest="hl_command", required=True)

    def add_common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--private-key", help="Sign with this key instead of the stored wallet")
        sub.add_argument("--vault-address", help="Act on behalf of this address")
        sub.add_argument("--nonce", type=int, help="Explicit nonce (default: current time in ms)")
        sub.add_argument("--dry-run", action="store_true", help="Print the signed request, don't send")

    def add_asset(sub: argparse.ArgumentParser) -> None:
        group = sub.add_mutually_exclusive_group(required=True)
        group.add_argument("--symbol", "--coin", dest="symbol")
        group.add_argument("--asset", type=int, help="Venue asset index (skips the lookup)")

    order = hl_commands.add_parser("order", help="Place a limit order")
    add_asset(order)
    order.add_argument("--side", choices=["buy", "sell"], required=True)
    order.add_argument("--size", required=True)
    order.add_argument("--price", required=True)
    order.add_argument("--tif", choices=TIME_IN_FORCE_VALUES, default="Gtc")
    order.add_argument("--reduce-only", action="store_true")
    order.add_argument(
        "--leverage", type=int, help="Checked against the 1-20 limit only; not sent to the venue"
    )
    order.add_argument("--cloid", help="Client order id")
    add_common(order)

    cancel = hl_commands.add_parser("cancel", help="Cancel a resting order")
    add_asset(cancel)
    cancel.add_argument("--order-id", type=int, required=True)
    add_common(cancel)

    withdraw = hl_commands.add_parser("withdraw", help="Withdraw to an address")
    withdraw.add_argument("--amount", required=True, help="Amount in base units")
    withdraw.add_argument("--recipient", required=True)
    add_common(withdraw)

    sign = hl_commands.add_parser("sign", help="Sign a raw action and print the request")
    sign.add_argument("action", help="Action as a JSON object")
    sign.add_argument("--private-key", help="Sign with this key instead of the stored wallet")
    sign.add_argument("--vault-address", help="Act on behalf of this address")
    sign.add_argument("--nonce", type=int, help="Explicit nonce (default: current time in ms)")

    return parser


def validate_order_args(size: str, price: str, leverage: Optional[int]) -> None:
    """Reject orders the venue would refuse anyway.

    Raises:
        InvalidActionError: On a non-positive size/price, a notional under
            $10, or leverage outside 1-20
    """
    try:
        notional = calculate_notional(size, price)
    except ValueError as e:
        raise InvalidActionError(str(e)) from None
    if Decimal(size) <= 0:
        raise InvalidActionError("Size must be positive")
    if Decimal(price) <= 0:
        raise InvalidActionError("Price must be positive")
    if notional < MIN_ORDER_NOTIONAL:
        raise InvalidActionError(f"Order notional must be at least ${MIN_ORDER_NOTIONAL}")
    if leverage is not None and not 1 <= leverage <= MAX_LEVERAGE:
        raise InvalidActionError(f"Leverage must be between 1 and {MAX_LEVERAGE}")


def _key_store(args: argparse.Namespace) -> KeyStore:
    if args.private_key:
        return StaticKeyStore(args.private_key)
    return FileKeyStore()


def _parse_action(text: str) -> dict:
    try:
        action = json.loads(text)
    except ValueError as e:
        raise InvalidActionError(f"Action is not valid JSON: {e}") from None
    if not isinstance(action, dict):
        raise InvalidActionError("Action must be a JSON object")
    return action


async def _resolve_asset(args: argparse.Namespace, exchange: HyperliquidExchange) -> int:
    if args.asset is not None:
        return args.asset
    info = HyperliquidInfo(base_url=exchange.get_config().base_url)
    try:
        return await info.get_asset_index(args.symbol)
    finally:
        await info.aclose()


async def run_hyperliquid(args: argparse.Namespace, exchange: HyperliquidExchange) -> int:
    exchange.require_signing_key()

    if args.hl_command == "order":
        validate_order_args(args.size, args.price, args.leverage)
        action = OrderAction(
            asset=await _resolve_asset(args, exchange),
            is_buy=args.side == "buy",
            limit_px=args.price,
            sz=args.size,
            reduce_only=args.reduce_only,
            tif=args.tif,
            cloid=args.cloid,
        )
    elif args.hl_command == "sign":
        action = _parse_action(args.action)
    elif args.hl_command == "cancel":
        action = CancelAction(asset=await _resolve_asset(args, exchange), oid=args.order_id)
    else:
        action = TransferAction(destination=args.recipient, amount=args.amount)

    signed = exchange.build_signed_action(action, args.nonce, args.vault_address)

    if args.hl_command == "sign" or args.dry_run:
        print(json.dumps(signed.to_envelope(), indent=2))
        return 0

    result = (await exchange.submit(signed)).unwrap()
    print(f"✅ {args.hl_command.capitalize()} accepted")
    if args.hl_command == "order":
        print(f"{args.side.capitalize()} {args.size} @ ${format_price(args.price)}")
    if isinstance(result, Accepted) and result.order_id is not None:
        print(f"Order ID: {result.order_id}")
    print(f"Signature: {json.dumps(format_signature(signed.signature))}")
    return 0


def run_wallet(args: argparse.Namespace) -> int:
    store = FileKeyStore()
    if args.wallet_command == "create":
        key = SigningKey.from_private_key(args.private_key) if args.private_key else SigningKey.generate()
        try:
            store.save(key, overwrite=args.force)
        except FileExistsError:
            existing = store.get_signing_key()
            print("⚠️  Wallet already exists!", file=sys.stderr)
            if existing is not None:
                print(f"Address: {existing.address}", file=sys.stderr)
            print("Use --force to overwrite (THIS WILL DELETE YOUR EXISTING WALLET!)", file=sys.stderr)
            return 1
        print(f"Address: {key.address}")
        print(f"Stored at: {store.path}")
        return 0

    key = store.get_signing_key()
    if key is None:
        print("No wallet found. Run: clawearn wallet create", file=sys.stderr)
        return 1
    print(key.address)
    return 0


async def _run(args: argparse.Namespace) -> int:
    async with HyperliquidExchange(
        config=exchange_config_from_env(), key_store=_key_store(args)
    ) as exchange:
        return await run_hyperliquid(args, exchange)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, json=args.json_logs)

    try:
        if args.command == "wallet":
            return run_wallet(args)
        return asyncio.run(_run(args))
    except ClawearnError as e:
        logger.debug("cli.failed", error_type=type(e).__name__)
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
