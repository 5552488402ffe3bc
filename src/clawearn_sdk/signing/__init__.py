"""Hyperliquid L1 Signing Module.

This module provides off-chain authorization of trading actions.

Key components:
- Canonical action encoding (MessagePack, deterministic) and Keccak-256 hashing
- Phantom agent construction and signing (EIP-712)
- Signature validation and wire formatting

Example usage:
    ```python
    from clawearn_sdk.signing import (
        OrderAction,
        sign_l1_action,
        validate_signature,
        format_signature,
    )
    import time

    # Build an order (asset index comes from venue metadata)
    order = OrderAction(asset=1, is_buy=True, limit_px="3000", sz="0.1")

    # Sign with private key
    nonce = int(time.time() * 1000)
    signature = sign_l1_action("0x...", order, nonce)

    # Validate before submitting
    assert validate_signature(signature) is None
    payload = {
        "action": order.to_wire(),
        "nonce": nonce,
        "signature": format_signature(signature),
    }
    ```
"""

from .types import (
    OrderAction,
    BulkOrderAction,
    CancelAction,
    TransferAction,
    Action,
    ActionLike,
    PhantomAgent,
    Signature,
    SignedAction,
    TimeInForce,
    AGENT_TYPES,
    action_to_wire,
)
from .errors import (
    ClawearnError,
    InvalidActionError,
    InvalidNonceError,
    EncodingError,
    SigningError,
    MissingSigningKeyError,
    SchemaError,
    SignatureValidationError,
    NetworkFailureError,
    VenueRejection,
    MetadataUnavailableError,
)
from .encoding import encode_action, hash_action, action_hash, validate_nonce
from .agent import construct_phantom_agent
from .signing import (
    EIP712Domain,
    create_exchange_domain,
    validate_domain,
    validate_agent_types,
    sign_phantom_agent,
    sign_l1_action,
    sign_l1_action_with_signer,
    recover_l1_action_signer,
    resolve_vault_address,
    verify_l1_action_signature,
    TypedDataSigner,
)
from .signature import (
    validate_signature,
    ensure_valid_signature,
    format_signature,
    parse_signature,
    split_signature,
)
from .utils import (
    HYPERLIQUID_L1_CHAIN_ID,
    HYPERLIQUID_API_MAINNET,
    ZERO_ADDRESS,
    NonceGenerator,
    decimal_to_wire,
    format_price,
    calculate_notional,
)

__all__ = [
    # Types
    "OrderAction",
    "BulkOrderAction",
    "CancelAction",
    "TransferAction",
    "Action",
    "ActionLike",
    "PhantomAgent",
    "Signature",
    "SignedAction",
    "TimeInForce",
    "AGENT_TYPES",
    "action_to_wire",
    "TypedDataSigner",
    "EIP712Domain",
    # Errors
    "ClawearnError",
    "InvalidActionError",
    "InvalidNonceError",
    "EncodingError",
    "SigningError",
    "MissingSigningKeyError",
    "SchemaError",
    "SignatureValidationError",
    "NetworkFailureError",
    "VenueRejection",
    "MetadataUnavailableError",
    # Encoding
    "encode_action",
    "hash_action",
    "action_hash",
    "validate_nonce",
    "construct_phantom_agent",
    # Signing
    "create_exchange_domain",
    "validate_domain",
    "validate_agent_types",
    "sign_phantom_agent",
    "sign_l1_action",
    "sign_l1_action_with_signer",
    "recover_l1_action_signer",
    "verify_l1_action_signature",
    "resolve_vault_address",
    # Signature
    "validate_signature",
    "ensure_valid_signature",
    "format_signature",
    "parse_signature",
    "split_signature",
    # Utils
    "HYPERLIQUID_L1_CHAIN_ID",
    "HYPERLIQUID_API_MAINNET",
    "ZERO_ADDRESS",
    "NonceGenerator",
    "decimal_to_wire",
    "format_price",
    "calculate_notional",
]
