"""Hyperliquid Exchange submission pipeline.

Turns an action into a signed envelope and posts it to ``/exchange``:

1. Load the signing key (fails before any network activity if there is none)
2. Encode, hash and sign the action as an L1 action (EIP-712)
3. Validate the signature components
4. POST ``{action, nonce, signature[, vaultAddress]}`` and classify the reply

Nothing is retried here. A network failure may still have consumed the
nonce server-side, so callers that retry must sign again with a fresh nonce.
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, TypedDict, Union

import httpx
from eth_utils import to_checksum_address

from ..keystore import KeyStore, SigningKey, StaticKeyStore
from ..log import get_logger
from ..signing import (
    HYPERLIQUID_API_MAINNET,
    HYPERLIQUID_L1_CHAIN_ID,
    ZERO_ADDRESS,
    ActionLike,
    BulkOrderAction,
    CancelAction,
    MissingSigningKeyError,
    NetworkFailureError,
    NonceGenerator,
    OrderAction,
    SignedAction,
    TransferAction,
    VenueRejection,
    action_hash,
    action_to_wire,
    construct_phantom_agent,
    create_exchange_domain,
    ensure_valid_signature,
    resolve_vault_address,
    sign_phantom_agent,
    validate_nonce,
)
from ..signing.signing import EIP712Domain
from ..signing.utils import HYPERLIQUID_DOMAIN_NAME, HYPERLIQUID_DOMAIN_VERSION

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


class ExchangeConfig(TypedDict, total=False):
    """Exchange configuration."""

    base_url: str
    """REST base URL. Default: Hyperliquid mainnet"""

    chain_id: int
    """Chain ID of the signing domain. Default: 1337"""

    verifying_contract: str
    """Verifying contract of the signing domain. Default: zero address"""

    domain_name: str
    """Signing domain name. Default: "Exchange" """

    domain_version: str
    """Signing domain version. Default: "1" """

    timeout: float
    """HTTP timeout in seconds. Default: 10"""


@dataclass
class ResolvedExchangeConfig:
    """Resolved exchange configuration with all defaults applied."""

    base_url: str
    chain_id: int
    verifying_contract: str
    domain_name: str
    domain_version: str
    timeout: float

    @property
    def domain(self) -> EIP712Domain:
        return create_exchange_domain(
            chain_id=self.chain_id,
            verifying_contract=self.verifying_contract,
            name=self.domain_name,
            version=self.domain_version,
        )


def resolve_exchange_config(config: Optional[ExchangeConfig] = None) -> ResolvedExchangeConfig:
    """Apply defaults to an exchange configuration."""
    config = config or {}
    return ResolvedExchangeConfig(
        base_url=config.get("base_url", HYPERLIQUID_API_MAINNET).rstrip("/"),
        chain_id=config.get("chain_id", HYPERLIQUID_L1_CHAIN_ID),
        verifying_contract=config.get("verifying_contract", ZERO_ADDRESS),
        domain_name=config.get("domain_name", HYPERLIQUID_DOMAIN_NAME),
        domain_version=config.get("domain_version", HYPERLIQUID_DOMAIN_VERSION),
        timeout=config.get("timeout", DEFAULT_TIMEOUT),
    )


def exchange_config_from_env(environ: Optional[Mapping[str, str]] = None) -> ExchangeConfig:
    """Read exchange settings from HYPERLIQUID_* environment variables."""
    environ = os.environ if environ is None else environ
    config: ExchangeConfig = {}
    if environ.get("HYPERLIQUID_API_URL"):
        config["base_url"] = environ["HYPERLIQUID_API_URL"]
    if environ.get("HYPERLIQUID_CHAIN_ID"):
        config["chain_id"] = int(environ["HYPERLIQUID_CHAIN_ID"])
    if environ.get("HYPERLIQUID_TIMEOUT"):
        config["timeout"] = float(environ["HYPERLIQUID_TIMEOUT"])
    return config


@dataclass
class Accepted:
    """The venue accepted the action."""

    order_id: Optional[str]
    """Venue order id, when the action produced one."""

    response: Dict[str, Any] = field(default_factory=dict)

    order_ids: List[str] = field(default_factory=list)
    """Every order id in the reply, in request order."""

    errors: List[str] = field(default_factory=list)
    """Per-order errors of a partially accepted bulk order."""

    def unwrap(self) -> "Accepted":
        return self


@dataclass
class Rejected:
    """The venue rejected the action. Not retryable with the same nonce."""

    message: str
    """Venue reason, verbatim."""

    response: Dict[str, Any] = field(default_factory=dict)

    def unwrap(self) -> "Accepted":
        raise VenueRejection(self.message)


@dataclass
class NetworkFailure:
    """The request did not get a venue verdict."""

    message: str
    retryable: bool = True
    """Retryable only with a fresh nonce and a new signature."""

    def unwrap(self) -> "Accepted":
        raise NetworkFailureError(self.message)


SubmissionResult = Union[Accepted, Rejected, NetworkFailure]


def _statuses(response: Any) -> list:
    if not isinstance(response, Mapping):
        return []
    data = response.get("data")
    if not isinstance(data, Mapping):
        return []
    statuses = data.get("statuses")
    return statuses if isinstance(statuses, list) else []


def _status_errors(response: Any) -> list:
    return [
        str(entry["error"])
        for entry in _statuses(response)
        if isinstance(entry, Mapping) and entry.get("error")
    ]


def _order_ids(response: Any) -> List[str]:
    ids = []
    for entry in _statuses(response):
        if not isinstance(entry, Mapping):
            continue
        for key in ("resting", "filled"):
            inner = entry.get(key)
            if isinstance(inner, Mapping) and inner.get("oid") is not None:
                ids.append(str(inner["oid"]))
                break
    return ids


def interpret_response(body: Mapping[str, Any]) -> Union[Accepted, Rejected]:
    """Classify a venue reply.

    ``{"status": "ok"}`` is accepted unless every per-order status carries an
    error; a partially failed bulk order is accepted with its errors attached.
    ``{"status": "err", "response": "..."}`` is rejected with the
    response text as the reason.
    """
    status = body.get("status")
    response = body.get("response")
    errors = _status_errors(response)

    if status == "ok":
        if errors and len(errors) == len(_statuses(response)):
            return Rejected(message="; ".join(errors), response=dict(body))
        ids = _order_ids(response)
        return Accepted(
            order_id=ids[0] if ids else None,
            response=dict(body),
            order_ids=ids,
            errors=errors,
        )

    if status == "err":
        if isinstance(response, str):
            message = response
        elif errors:
            message = "; ".join(errors)
        elif isinstance(response, Mapping) and response.get("error"):
            message = str(response["error"])
        else:
            message = "Unknown error"
        return Rejected(message=message, response=dict(body))

    return Rejected(message=f"Unexpected venue status: {status!r}", response=dict(body))


class HyperliquidExchange:
    """Signs and submits L1 actions to the Hyperliquid exchange endpoint.

    Example:
        ```python
        exchange = HyperliquidExchange(private_key="0x...")

        result = await exchange.place_order(
            OrderAction(asset=1, is_buy=True, limit_px="3000", sz="0.1")
        )
        if isinstance(result, Accepted):
            print(result.order_id)
        ```
    """

    def __init__(
        self,
        config: Optional[ExchangeConfig] = None,
        key_store: Optional[KeyStore] = None,
        private_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        nonce_generator: Optional[NonceGenerator] = None,
    ):
        """Initialize the exchange client.

        Args:
            config: Optional configuration (defaults to mainnet)
            key_store: Where the signing key comes from
            private_key: Shortcut for a StaticKeyStore holding this key
            http_client: Optional client (tests inject a mock transport)
            nonce_generator: Optional nonce source (default: clock-seeded counter)
        """
        self._config = resolve_exchange_config(config)
        self._domain = self._config.domain
        if key_store is None:
            key_store = StaticKeyStore(private_key)
        self._key_store = key_store
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.timeout)
        )
        self._nonces = nonce_generator or NonceGenerator()

    async def __aenter__(self) -> "HyperliquidExchange":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    def get_config(self) -> ResolvedExchangeConfig:
        """Get the exchange configuration."""
        return self._config

    def require_signing_key(self) -> SigningKey:
        """Return the signing key or raise MissingSigningKeyError."""
        key = self._key_store.get_signing_key()
        if key is None:
            raise MissingSigningKeyError(
                "No signing key available. Create a wallet or pass --private-key."
            )
        return key

    def build_signed_action(
        self,
        action: ActionLike,
        nonce: Optional[int] = None,
        vault_address: Optional[str] = None,
    ) -> SignedAction:
        """Sign an action and validate the result, without sending it.

        Args:
            action: Action variant or raw mapping
            nonce: Positive nonce (default: next value from the nonce generator)
            vault_address: Address acted for (default: the signer)

        Returns:
            SignedAction ready for submission

        Raises:
            MissingSigningKeyError: If the key store has no key
            InvalidActionError, InvalidNonceError, EncodingError, SigningError,
            SchemaError, SignatureValidationError: on local failures
        """
        key = self.require_signing_key()

        if nonce is None:
            nonce = self._nonces.next()
        validate_nonce(nonce)

        hashed_vault = resolve_vault_address(vault_address, key.address)
        on_behalf = hashed_vault != to_checksum_address(key.address)
        wire = action_to_wire(action)
        hashed = action_hash(wire, nonce, hashed_vault)
        agent = construct_phantom_agent(hashed, key.address)
        signature = ensure_valid_signature(
            sign_phantom_agent(key.private_key, agent, self._domain)
        )

        return SignedAction(
            action=wire,
            nonce=nonce,
            signature=signature,
            signer=key.address,
            vault_address=vault_address if on_behalf else None,
            action_hash=hashed,
        )

    async def submit(
        self, signed: SignedAction, timeout: Optional[float] = None
    ) -> SubmissionResult:
        """Post a signed action and classify the venue's reply.

        Args:
            signed: Signed action from build_signed_action
            timeout: Overall deadline in seconds; expiry is a NetworkFailure

        Cancelling the calling task propagates ``CancelledError`` instead of
        returning a NetworkFailure. The request may already have reached the
        venue, so the nonce counts as spent either way.

        Returns:
            Accepted, Rejected or NetworkFailure
        """
        ensure_valid_signature(signed.signature)
        url = f"{self._config.base_url}/exchange"
        log = logger.bind(nonce=signed.nonce, action_type=signed.action.get("type", "order"))
        log.info("exchange.submit", url=url, signer=signed.signer)

        try:
            response = await asyncio.wait_for(
                self._http_client.post(
                    url,
                    headers={"Content-Type": "application/json"},
                    json=signed.to_envelope(),
                ),
                timeout,
            )
        except asyncio.TimeoutError:
            log.warning("exchange.timeout", timeout=timeout)
            return NetworkFailure(message=f"Request timed out after {timeout}s")
        except httpx.HTTPError as e:
            log.warning("exchange.network_failure", error=str(e))
            return NetworkFailure(message=f"{type(e).__name__}: {e}")

        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, Mapping) and "status" in body:
            result = interpret_response(body)
        elif not response.is_success:
            log.warning("exchange.http_error", status_code=response.status_code)
            return NetworkFailure(
                message=f"Exchange error: {response.status_code} {response.text}".strip()
            )
        else:
            result = Rejected(message=response.text or "Empty response from exchange")

        if isinstance(result, Accepted):
            log.info("exchange.accepted", order_id=result.order_id)
            if result.errors:
                log.warning("exchange.partial_rejection", errors=result.errors)
        else:
            log.warning("exchange.rejected", reason=result.message)
        return result

    async def execute(
        self,
        action: ActionLike,
        nonce: Optional[int] = None,
        vault_address: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> SubmissionResult:
        """Sign and submit an action. Local errors raise before any I/O."""
        signed = self.build_signed_action(action, nonce, vault_address)
        return await self.submit(signed, timeout)

    async def place_order(
        self,
        order: Union[OrderAction, BulkOrderAction],
        nonce: Optional[int] = None,
        vault_address: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> SubmissionResult:
        """Places an order (single or bulk)."""
        return await self.execute(order, nonce, vault_address, timeout)

    async def cancel_order(
        self,
        asset: int,
        oid: int,
        nonce: Optional[int] = None,
        vault_address: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> SubmissionResult:
        """Cancels a resting order by venue order id."""
        return await self.execute(CancelAction(asset=asset, oid=oid), nonce, vault_address, timeout)

    async def withdraw(
        self,
        destination: str,
        amount: str,
        nonce: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> SubmissionResult:
        """Withdraws ``amount`` base units to ``destination``."""
        return await self.execute(
            TransferAction(destination=destination, amount=amount), nonce, timeout=timeout
        )
