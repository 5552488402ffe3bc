"""Tests for the exchange submission pipeline."""

import asyncio
import json

import httpx
import pytest
from eth_account import Account

from clawearn_sdk.exchange import (
    Accepted,
    HyperliquidExchange,
    HyperliquidInfo,
    NetworkFailure,
    Rejected,
    exchange_config_from_env,
    interpret_response,
    resolve_exchange_config,
)
from clawearn_sdk.keystore import StaticKeyStore
from clawearn_sdk.signing import (
    CancelAction,
    InvalidNonceError,
    MetadataUnavailableError,
    MissingSigningKeyError,
    NetworkFailureError,
    NonceGenerator,
    OrderAction,
    Signature,
    SignatureValidationError,
    VenueRejection,
    parse_signature,
    sign_l1_action,
    verify_l1_action_signature,
)
from clawearn_sdk.signing import encoding


# Test wallet (DO NOT use in production)
TEST_PRIVATE_KEY = "0x" + "ab" * 32
TEST_ADDRESS = Account.from_key(TEST_PRIVATE_KEY).address

NONCE = 1700000000000

ORDER = OrderAction(asset=1, is_buy=True, limit_px="3000", sz="0.1")

RESTING = {
    "status": "ok",
    "response": {"type": "order", "data": {"statuses": [{"resting": {"oid": 77738308}}]}},
}


class MockVenue:
    """Records requests and answers with a canned reply."""

    def __init__(self, handler):
        self.requests = []
        self._handler = handler

    async def __call__(self, request: httpx.Request):
        self.requests.append(request)
        result = self._handler(request)
        if asyncio.iscoroutine(result):
            result = await result
        return result

    def bodies(self):
        return [json.loads(request.content) for request in self.requests]


def reply(body, status_code=200):
    return lambda request: httpx.Response(status_code, json=body)


def make_exchange(venue, **kwargs):
    kwargs.setdefault("private_key", TEST_PRIVATE_KEY)
    client = httpx.AsyncClient(transport=httpx.MockTransport(venue))
    return HyperliquidExchange(http_client=client, **kwargs)


class TestConfig:
    """Tests for configuration resolution."""

    def test_defaults(self):
        """Test defaults point at mainnet with the L1 domain."""
        config = resolve_exchange_config()

        assert config.base_url == "https://api.hyperliquid.xyz"
        assert config.chain_id == 1337
        assert config.timeout == 10.0
        assert config.domain["name"] == "Exchange"

    def test_from_env(self):
        """Test environment overrides."""
        config = exchange_config_from_env(
            {"HYPERLIQUID_API_URL": "http://localhost:3001/", "HYPERLIQUID_CHAIN_ID": "1338"}
        )

        resolved = resolve_exchange_config(config)

        assert resolved.base_url == "http://localhost:3001"
        assert resolved.chain_id == 1338
        assert exchange_config_from_env({}) == {}


class TestBuildSignedAction:
    """Tests for building signed envelopes."""

    def test_envelope_fields(self):
        """Test the envelope has exactly action, nonce and signature."""
        exchange = make_exchange(MockVenue(reply(RESTING)))

        signed = exchange.build_signed_action(ORDER, NONCE)
        envelope = signed.to_envelope()

        assert set(envelope) == {"action", "nonce", "signature"}
        assert envelope["action"] == ORDER.to_wire()
        assert envelope["nonce"] == NONCE
        assert set(envelope["signature"]) == {"r", "s", "v"}
        assert len(signed.action_hash) == 32

    def test_signature_verifies(self):
        """Test the envelope signature recovers to the signer."""
        exchange = make_exchange(MockVenue(reply(RESTING)))

        signed = exchange.build_signed_action(ORDER, NONCE)
        signature = parse_signature(signed.to_envelope()["signature"])

        assert verify_l1_action_signature(ORDER, NONCE, signature, TEST_ADDRESS)

    def test_vault_address_only_when_different(self):
        """Test vaultAddress is sent only for another account."""
        exchange = make_exchange(MockVenue(reply(RESTING)))
        vault = Account.create().address

        own = exchange.build_signed_action(ORDER, NONCE, TEST_ADDRESS.lower())
        other = exchange.build_signed_action(ORDER, NONCE, vault)

        assert "vaultAddress" not in own.to_envelope()
        assert other.to_envelope()["vaultAddress"] == vault
        assert other.signature != own.signature
        assert own.signature == exchange.build_signed_action(ORDER, NONCE).signature
        assert own.signature == sign_l1_action(TEST_PRIVATE_KEY, ORDER, NONCE, TEST_ADDRESS.lower())

    def test_nonce_from_generator(self):
        """Test nonces come from the generator when not given."""
        exchange = make_exchange(
            MockVenue(reply(RESTING)), nonce_generator=NonceGenerator(clock=lambda: NONCE)
        )

        first = exchange.build_signed_action(ORDER)
        second = exchange.build_signed_action(ORDER)

        assert (first.nonce, second.nonce) == (NONCE, NONCE + 1)

    def test_custom_domain(self):
        """Test the configured chain id is used for signing."""
        default = make_exchange(MockVenue(reply(RESTING)))
        testnet = make_exchange(MockVenue(reply(RESTING)), config={"chain_id": 1338})

        assert (
            default.build_signed_action(ORDER, NONCE).signature
            != testnet.build_signed_action(ORDER, NONCE).signature
        )


class TestSubmission:
    """Tests for submitting and classifying replies."""

    @pytest.mark.asyncio
    async def test_accepted_with_order_id(self):
        """Test an accepted order returns the resting order id."""
        venue = MockVenue(reply(RESTING))
        exchange = make_exchange(venue)

        result = await exchange.place_order(ORDER, nonce=NONCE)

        assert isinstance(result, Accepted)
        assert result.order_id == "77738308"
        assert result.unwrap() is result
        assert len(venue.requests) == 1
        assert venue.requests[0].url == "https://api.hyperliquid.xyz/exchange"
        assert venue.bodies()[0]["action"] == ORDER.to_wire()
        assert venue.bodies()[0]["nonce"] == NONCE

    @pytest.mark.asyncio
    async def test_accepted_without_order_id(self):
        """Test a cancel is accepted without an order id."""
        venue = MockVenue(
            reply({"status": "ok", "response": {"type": "cancel", "data": {"statuses": ["success"]}}})
        )
        exchange = make_exchange(venue)

        result = await exchange.cancel_order(asset=1, oid=77738308, nonce=NONCE)

        assert isinstance(result, Accepted)
        assert result.order_id is None
        assert venue.bodies()[0]["action"] == CancelAction(asset=1, oid=77738308).to_wire()

    @pytest.mark.asyncio
    async def test_rejection_surfaces_reason(self):
        """Test the venue's reason is passed through verbatim."""
        venue = MockVenue(reply({"status": "err", "response": "Order has invalid price"}))
        exchange = make_exchange(venue)

        result = await exchange.place_order(ORDER, nonce=NONCE)

        assert isinstance(result, Rejected)
        assert result.message == "Order has invalid price"
        with pytest.raises(VenueRejection, match="Order has invalid price") as excinfo:
            result.unwrap()
        assert excinfo.value.reason == "Order has invalid price"

    @pytest.mark.asyncio
    async def test_per_order_error_is_rejection(self):
        """Test an ok reply carrying an order error is a rejection."""
        venue = MockVenue(
            reply(
                {
                    "status": "ok",
                    "response": {
                        "type": "order",
                        "data": {"statuses": [{"error": "Order must have minimum value of $10."}]},
                    },
                }
            )
        )
        exchange = make_exchange(venue)

        result = await exchange.place_order(ORDER, nonce=NONCE)

        assert isinstance(result, Rejected)
        assert result.message == "Order must have minimum value of $10."

    @pytest.mark.asyncio
    async def test_connect_error_is_network_failure(self):
        """Test transport errors are network failures."""

        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        exchange = make_exchange(MockVenue(refuse))

        result = await exchange.place_order(ORDER, nonce=NONCE)

        assert isinstance(result, NetworkFailure)
        assert result.retryable is True
        assert "connection refused" in result.message
        with pytest.raises(NetworkFailureError):
            result.unwrap()

    @pytest.mark.asyncio
    async def test_server_error_without_body(self):
        """Test a non-2xx reply without a venue body is a network failure."""
        venue = MockVenue(lambda request: httpx.Response(502, text="Bad Gateway"))
        exchange = make_exchange(venue)

        result = await exchange.place_order(ORDER, nonce=NONCE)

        assert isinstance(result, NetworkFailure)
        assert "502" in result.message

    @pytest.mark.asyncio
    async def test_timeout_is_network_failure(self):
        """Test the caller's deadline turns into a network failure."""

        async def slow(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json=RESTING)

        exchange = make_exchange(MockVenue(slow))

        result = await exchange.place_order(ORDER, nonce=NONCE, timeout=0.01)

        assert isinstance(result, NetworkFailure)
        assert "timed out" in result.message

    @pytest.mark.asyncio
    async def test_cancelled_submit_propagates(self):
        """Test cancelling the caller's task is not turned into a result."""
        started = asyncio.Event()

        async def hang(request):
            started.set()
            await asyncio.sleep(10)
            return httpx.Response(200, json=RESTING)

        venue = MockVenue(hang)
        exchange = make_exchange(venue)

        task = asyncio.ensure_future(exchange.place_order(ORDER, nonce=NONCE))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(venue.requests) == 1

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_calls(self):
        """Test a missing key fails before any network activity."""
        venue = MockVenue(reply(RESTING))
        exchange = make_exchange(venue, private_key=None, key_store=StaticKeyStore())

        with pytest.raises(MissingSigningKeyError):
            await exchange.place_order(ORDER, nonce=NONCE)

        assert len(venue.requests) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("nonce", [0, -5])
    async def test_invalid_nonce_makes_no_calls(self, nonce, monkeypatch):
        """Test malformed nonces fail before encoding or I/O."""

        def fail(*args, **kwargs):
            raise AssertionError("encoding should not be attempted")

        monkeypatch.setattr(encoding.msgpack, "packb", fail)
        venue = MockVenue(reply(RESTING))
        exchange = make_exchange(venue)

        with pytest.raises(InvalidNonceError):
            await exchange.place_order(ORDER, nonce=nonce)

        assert len(venue.requests) == 0

    @pytest.mark.asyncio
    async def test_malformed_signature_not_sent(self):
        """Test a signature with a bad recovery id is never submitted."""
        venue = MockVenue(reply(RESTING))
        exchange = make_exchange(venue)
        signed = exchange.build_signed_action(ORDER, NONCE)
        signed.signature = Signature(r=signed.signature.r, s=signed.signature.s, v=29)

        with pytest.raises(SignatureValidationError):
            await exchange.submit(signed)

        assert len(venue.requests) == 0

    @pytest.mark.asyncio
    async def test_withdraw(self):
        """Test a withdrawal is signed and sent as a transfer action."""
        venue = MockVenue(reply({"status": "ok", "response": {"type": "default"}}))
        exchange = make_exchange(venue)
        destination = Account.create().address

        result = await exchange.withdraw(destination, "1000000", nonce=NONCE)

        assert isinstance(result, Accepted)
        assert venue.bodies()[0]["action"] == {
            "type": "withdraw3",
            "destination": destination,
            "amount": "1000000",
        }


class TestInterpretResponse:
    """Tests for reply classification."""

    def test_filled_order_id(self):
        """Test filled orders also report an id."""
        result = interpret_response(
            {
                "status": "ok",
                "response": {"data": {"statuses": [{"filled": {"oid": 5, "totalSz": "0.1"}}]}},
            }
        )

        assert result == Accepted(order_id="5", response=result.response, order_ids=["5"])

    def test_partial_bulk_order_is_accepted(self):
        """Test a bulk order with some placed orders keeps their ids and the errors."""
        result = interpret_response(
            {
                "status": "ok",
                "response": {
                    "data": {
                        "statuses": [
                            {"resting": {"oid": 1}},
                            {"error": "Order has invalid price"},
                            {"filled": {"oid": 3, "totalSz": "0.1"}},
                        ]
                    }
                },
            }
        )

        assert isinstance(result, Accepted)
        assert result.order_id == "1"
        assert result.order_ids == ["1", "3"]
        assert result.errors == ["Order has invalid price"]
        assert result.unwrap() is result

    def test_bulk_order_all_errors_is_rejection(self):
        """Test a bulk order where every order failed is rejected."""
        result = interpret_response(
            {
                "status": "ok",
                "response": {"data": {"statuses": [{"error": "first"}, {"error": "second"}]}},
            }
        )

        assert isinstance(result, Rejected)
        assert result.message == "first; second"

    def test_err_with_statuses(self):
        """Test sub-status errors are joined in order."""
        result = interpret_response(
            {
                "status": "err",
                "response": {"data": {"statuses": [{"error": "first"}, {"error": "second"}]}},
            }
        )

        assert isinstance(result, Rejected)
        assert result.message == "first; second"

    def test_unknown_status(self):
        """Test unknown statuses are rejections."""
        assert isinstance(interpret_response({"status": "weird"}), Rejected)


class TestInfo:
    """Tests for venue metadata lookups."""

    META = {"universe": [{"name": "BTC"}, {"name": "ETH"}]}
    SPOT_META = {"tokens": [{"name": "USDC", "index": 0}, {"name": "PURR", "index": 1}]}

    def make_info(self, venue):
        client = httpx.AsyncClient(transport=httpx.MockTransport(venue))
        return HyperliquidInfo(base_url="https://api.hyperliquid.xyz", http_client=client)

    def answer(self, request):
        body = json.loads(request.content)
        return httpx.Response(200, json=self.META if body["type"] == "meta" else self.SPOT_META)

    @pytest.mark.asyncio
    async def test_perp_index(self):
        """Test perpetual indices come from the universe position."""
        venue = MockVenue(self.answer)

        assert await self.make_info(venue).get_asset_index("ETH") == 1
        assert len(venue.requests) == 1

    @pytest.mark.asyncio
    async def test_spot_index(self):
        """Test spot indices are offset by 10000."""
        assert await self.make_info(MockVenue(self.answer)).get_asset_index("PURR") == 10001

    @pytest.mark.asyncio
    async def test_unknown_symbol(self):
        """Test unknown symbols fail closed."""
        with pytest.raises(MetadataUnavailableError, match="not found"):
            await self.make_info(MockVenue(self.answer)).get_asset_index("NOPE")

    @pytest.mark.asyncio
    async def test_malformed_spot_entry(self):
        """Test a spot token without an index fails closed."""
        self.SPOT_META = {"tokens": [{"name": "PURR"}]}

        with pytest.raises(MetadataUnavailableError, match="Malformed"):
            await self.make_info(MockVenue(self.answer)).get_asset_index("PURR")

    @pytest.mark.asyncio
    async def test_metadata_unavailable(self):
        """Test a failed metadata fetch fails closed instead of guessing."""
        venue = MockVenue(lambda request: httpx.Response(500, text="oops"))

        with pytest.raises(MetadataUnavailableError, match="meta"):
            await self.make_info(venue).get_asset_index("BTC")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
