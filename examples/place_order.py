"""Hyperliquid Order Placement Example.

This example signs a limit order locally and submits it to the exchange.
The signature never leaves the process except inside the request:
- the action is encoded (MessagePack) and hashed (Keccak-256)
- a phantom agent binding that hash to your address is signed (EIP-712)
- {action, nonce, signature} is posted to /exchange

Prerequisites:
1. pip install clawearn-sdk
2. Set HYPERLIQUID_PRIVATE_KEY (or create a wallet: clawearn wallet create)
3. Fund the account on Hyperliquid

Usage:
    python place_order.py [--dry-run]
"""

import asyncio
import json
import os
import sys

from dotenv import load_dotenv

load_dotenv()


async def main(dry_run: bool):
    from clawearn_sdk import (
        Accepted,
        FileKeyStore,
        HyperliquidExchange,
        HyperliquidInfo,
        NetworkFailure,
        OrderAction,
        StaticKeyStore,
        exchange_config_from_env,
    )
    from clawearn_sdk.log import setup_logging

    setup_logging("INFO")

    private_key = os.environ.get("HYPERLIQUID_PRIVATE_KEY")
    key_store = StaticKeyStore(private_key) if private_key else FileKeyStore()

    print("=" * 60)
    print("  HYPERLIQUID SIGNED ORDER")
    print("=" * 60)

    async with HyperliquidExchange(
        config=exchange_config_from_env(), key_store=key_store
    ) as exchange:
        key = exchange.require_signing_key()
        print(f"\n[1] Signer: {key.address}")

        info = HyperliquidInfo(base_url=exchange.get_config().base_url)
        try:
            asset = await info.get_asset_index("ETH")
        finally:
            await info.aclose()
        print(f"[2] ETH asset index: {asset}")

        # Post-only bid far below the market so it rests
        order = OrderAction(asset=asset, is_buy=True, limit_px="1000", sz="0.01", tif="Alo")
        signed = exchange.build_signed_action(order)
        print(f"[3] Signed with nonce {signed.nonce}")

        if dry_run:
            print(json.dumps(signed.to_envelope(), indent=2))
            return

        result = await exchange.submit(signed, timeout=15)
        if isinstance(result, Accepted):
            print(f"[4] Accepted. Order ID: {result.order_id or 'N/A'}")
        elif isinstance(result, NetworkFailure):
            print(f"[4] Network failure: {result.message} (re-sign with a fresh nonce to retry)")
        else:
            print(f"[4] Rejected: {result.message}")


if __name__ == "__main__":
    asyncio.run(main("--dry-run" in sys.argv))
