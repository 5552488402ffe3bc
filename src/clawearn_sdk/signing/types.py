"""L1 Action Types for Hyperliquid signing.

User-facing types for actions, phantom agents and signatures.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union

from eth_utils import is_address

from .errors import InvalidActionError
from .utils import DecimalLike, decimal_to_wire

TimeInForce = Literal["Gtc", "Alo", "Ioc"]
Grouping = Literal["na", "normalTpsl", "positionTpsl"]

TIME_IN_FORCE_VALUES: Tuple[str, ...] = ("Gtc", "Alo", "Ioc")
GROUPING_VALUES: Tuple[str, ...] = ("na", "normalTpsl", "positionTpsl")

_UNITS_PATTERN = re.compile(r"^[0-9]+$")


def _positive_amount(name: str, value: DecimalLike) -> str:
    try:
        wire = decimal_to_wire(value)
    except ValueError as e:
        raise InvalidActionError(f"Invalid {name}: {e}") from None
    if wire.startswith("-") or wire == "0":
        raise InvalidActionError(f"Invalid {name}: {wire}. Must be positive")
    return wire


def _index(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidActionError(f"Invalid {name}: {value!r}. Must be a non-negative integer")
    return value


@dataclass(frozen=True)
class OrderAction:
    """A single limit order."""

    asset: int
    """Venue asset index (not the human symbol)."""

    is_buy: bool
    """True for buy, False for sell."""

    limit_px: DecimalLike
    """Limit price; signed as a decimal string."""

    sz: DecimalLike
    """Order size; signed as a decimal string."""

    reduce_only: bool = False

    tif: TimeInForce = "Gtc"
    """Gtc (good-til-canceled), Alo (post-only) or Ioc (immediate-or-cancel)."""

    cloid: Optional[str] = None
    """Optional client order id; omitted from the wire when unset."""

    def __post_init__(self):
        _index("asset", self.asset)
        if not isinstance(self.is_buy, bool):
            raise InvalidActionError(f"Invalid is_buy: {self.is_buy!r}")
        if not isinstance(self.reduce_only, bool):
            raise InvalidActionError(f"Invalid reduce_only: {self.reduce_only!r}")
        if self.tif not in TIME_IN_FORCE_VALUES:
            raise InvalidActionError(
                f"Time-in-force must be one of: {', '.join(TIME_IN_FORCE_VALUES)}"
            )
        if self.cloid is not None and (not isinstance(self.cloid, str) or not self.cloid):
            raise InvalidActionError(f"Invalid cloid: {self.cloid!r}")
        _positive_amount("limit_px", self.limit_px)
        _positive_amount("sz", self.sz)

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {
            "a": self.asset,
            "b": self.is_buy,
            "p": decimal_to_wire(self.limit_px),
            "s": decimal_to_wire(self.sz),
            "r": self.reduce_only,
            "t": {"limit": {"tif": self.tif}},
        }
        if self.cloid is not None:
            wire["c"] = self.cloid
        return wire


@dataclass(frozen=True)
class BulkOrderAction:
    """One or more orders submitted as a single ``order`` action."""

    orders: Tuple[OrderAction, ...]
    grouping: Grouping = "na"

    def __post_init__(self):
        object.__setattr__(self, "orders", tuple(self.orders))
        if not self.orders:
            raise InvalidActionError("Bulk order action needs at least one order")
        if not all(isinstance(order, OrderAction) for order in self.orders):
            raise InvalidActionError("Bulk order action only accepts OrderAction items")
        if self.grouping not in GROUPING_VALUES:
            raise InvalidActionError(
                f"Grouping must be one of: {', '.join(GROUPING_VALUES)}"
            )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "type": "order",
            "orders": [order.to_wire() for order in self.orders],
            "grouping": self.grouping,
        }


@dataclass(frozen=True)
class CancelAction:
    """Cancel a resting order by venue order id."""

    asset: int
    oid: int

    def __post_init__(self):
        _index("asset", self.asset)
        _index("oid", self.oid)

    def to_wire(self) -> Dict[str, Any]:
        return {"type": "cancel", "cancels": [{"a": self.asset, "o": self.oid}]}


@dataclass(frozen=True)
class TransferAction:
    """Move funds to a destination address."""

    destination: str
    amount: str
    """Integer string in the asset's smallest unit."""

    kind: str = "withdraw3"
    """Action type tag sent to the venue."""

    def __post_init__(self):
        if not isinstance(self.destination, str) or not is_address(self.destination):
            raise InvalidActionError(f"Invalid destination address: {self.destination}")
        if not isinstance(self.amount, str) or not _UNITS_PATTERN.match(self.amount):
            raise InvalidActionError(
                f"Invalid amount: {self.amount!r}. Must be an integer string in base units"
            )
        if int(self.amount) == 0:
            raise InvalidActionError("Invalid amount: 0. Must be positive")
        if not isinstance(self.kind, str) or not self.kind:
            raise InvalidActionError(f"Invalid transfer kind: {self.kind!r}")

    def to_wire(self) -> Dict[str, Any]:
        return {"type": self.kind, "destination": self.destination, "amount": self.amount}


Action = Union[OrderAction, BulkOrderAction, CancelAction, TransferAction]
ActionLike = Union[Action, Mapping[str, Any]]

ACTION_TYPES = (OrderAction, BulkOrderAction, CancelAction, TransferAction)


def action_to_wire(action: ActionLike) -> Dict[str, Any]:
    """Return the wire mapping of an action variant or raw mapping.

    Raises:
        InvalidActionError: If the action is absent, empty or of an unknown type
    """
    if action is None:
        raise InvalidActionError("Action must be a non-empty mapping")
    if isinstance(action, ACTION_TYPES):
        return action.to_wire()
    if isinstance(action, Mapping):
        if not action:
            raise InvalidActionError("Action must be a non-empty mapping")
        return dict(action)
    raise InvalidActionError(f"Unsupported action type: {type(action).__name__}")


@dataclass(frozen=True)
class PhantomAgent:
    """The record that is actually signed for an L1 action."""

    connection_id: bytes
    """Keccak-256 hash of the canonical action encoding."""

    agent_address: str
    """Signer address, lowercase."""

    def to_message(self) -> Dict[str, Any]:
        return {"connectionId": self.connection_id, "agentAddress": self.agent_address}


@dataclass(frozen=True)
class Signature:
    """Signature components as sent on the wire."""

    r: str
    """0x-prefixed hex."""

    s: str
    """0x-prefixed hex."""

    v: int
    """Recovery id, 27 or 28."""


@dataclass
class SignedAction:
    """An action with everything needed to submit it."""

    action: Dict[str, Any]
    nonce: int
    signature: Signature
    signer: str
    vault_address: Optional[str] = None
    """Set only when acting on behalf of an address other than the signer."""

    action_hash: bytes = field(default=b"", repr=False)

    def to_envelope(self) -> Dict[str, Any]:
        envelope: Dict[str, Any] = {
            "action": self.action,
            "nonce": self.nonce,
            "signature": {
                "r": self.signature.r,
                "s": self.signature.s,
                "v": self.signature.v,
            },
        }
        if self.vault_address is not None:
            envelope["vaultAddress"] = self.vault_address
        return envelope


# EIP-712 domain fields, in signing order
EIP712_DOMAIN_FIELDS: List[Dict[str, str]] = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

# EIP-712 types for the phantom agent; changing this requires a new domain version
AGENT_TYPES = {
    "Agent": [
        {"name": "connectionId", "type": "bytes32"},
        {"name": "agentAddress", "type": "address"},
    ],
}
