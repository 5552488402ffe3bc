"""Canonical encoding and hashing of L1 actions.

The hash of ``[action, nonce, vaultAddress]`` is what a signature authorizes,
so the encoding has to be byte-identical for the same logical input:

- MessagePack, maps in insertion order (keys are never sorted)
- integers in their smallest representation
- strings as UTF-8 str, bytes as bin (``use_bin_type=True``)
- absent optional fields are left out, not encoded as nil
- floats are refused; amounts travel as decimal strings
"""

from collections.abc import Mapping
from typing import Any, Union

import msgpack
from eth_utils import keccak

from .errors import EncodingError, InvalidNonceError
from .types import ActionLike, action_to_wire


def validate_nonce(nonce: int) -> int:
    """Check that a nonce is a positive integer.

    Raises:
        InvalidNonceError: If nonce is not an int, is a bool, or is <= 0
    """
    if isinstance(nonce, bool) or not isinstance(nonce, int):
        raise InvalidNonceError(f"Nonce must be an integer, got {type(nonce).__name__}")
    if nonce <= 0:
        raise InvalidNonceError(f"Nonce must be positive, got {nonce}")
    return nonce


def _check_wire_value(value: Any, path: str) -> None:
    if value is None or isinstance(value, (bool, int, str, bytes)):
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"{path}: map keys must be strings, got {type(key).__name__}")
            _check_wire_value(item, f"{path}.{key}")
        return
    if isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check_wire_value(item, f"{path}[{i}]")
        return
    raise TypeError(f"{path}: unsupported type {type(value).__name__}")


def encode_action(action: ActionLike, nonce: int, vault_address: str) -> bytes:
    """Serialize an action for signing.

    Args:
        action: Action variant or raw non-empty mapping
        nonce: Positive integer nonce
        vault_address: Address the action is taken for (usually the signer)

    Returns:
        MessagePack bytes of ``[action, nonce, vault_address]``

    Raises:
        InvalidActionError: If the action is empty or absent
        InvalidNonceError: If the nonce is not a positive integer
        EncodingError: If a field cannot be serialized
    """
    validate_nonce(nonce)
    wire = action_to_wire(action)

    try:
        _check_wire_value(wire, "action")
        _check_wire_value(vault_address, "vaultAddress")
        return msgpack.packb([wire, nonce, vault_address], use_bin_type=True)
    except (TypeError, ValueError, OverflowError) as e:
        raise EncodingError(f"Failed to serialize action: {e}") from e


def hash_action(encoded: Union[bytes, bytearray, memoryview]) -> bytes:
    """Return the Keccak-256 digest (32 bytes) of encoded action bytes."""
    if not isinstance(encoded, (bytes, bytearray, memoryview)):
        raise TypeError(f"Expected bytes, got {type(encoded).__name__}")
    return keccak(bytes(encoded))


def action_hash(action: ActionLike, nonce: int, vault_address: str) -> bytes:
    """Encode and hash an action in one step."""
    return hash_action(encode_action(action, nonce, vault_address))
