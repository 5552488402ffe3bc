"""Signature validation and wire formatting."""

from typing import Any, Dict, Mapping, Optional, Union

from eth_utils import is_hex, to_bytes, to_hex

from .errors import SignatureValidationError
from .types import Signature

VALID_RECOVERY_IDS = (27, 28)

_MAX_COMPONENT = 2**256 - 1


def _valid_component(value: Any) -> bool:
    if not isinstance(value, str) or len(value) < 2:
        return False
    if not is_hex(value):
        return False
    digits = value[2:] if value[:2].lower() == "0x" else value
    return bool(digits) and int(digits, 16) <= _MAX_COMPONENT


def validate_signature(sig: Signature) -> Optional[str]:
    """Validate signature format for the exchange endpoint.

    Returns:
        None when well-formed, otherwise a description of the first problem
    """
    if not _valid_component(getattr(sig, "r", None)):
        return "Invalid r component"

    if not _valid_component(getattr(sig, "s", None)):
        return "Invalid s component"

    v = getattr(sig, "v", None)
    if isinstance(v, bool) or not isinstance(v, int) or v not in VALID_RECOVERY_IDS:
        return "Invalid v component (must be 27 or 28)"

    return None


def ensure_valid_signature(sig: Signature) -> Signature:
    """Raise SignatureValidationError unless the signature is well-formed."""
    error = validate_signature(sig)
    if error is not None:
        raise SignatureValidationError(error)
    return sig


def format_signature(sig: Signature) -> Dict[str, Any]:
    """Format signature for API submission."""
    return {"r": sig.r, "s": sig.s, "v": sig.v}


def parse_signature(wire: Mapping[str, Any]) -> Signature:
    """Rebuild a Signature from its wire form.

    Raises:
        SignatureValidationError: If a component is missing or malformed
    """
    missing = [key for key in ("r", "s", "v") if key not in wire]
    if missing:
        raise SignatureValidationError(f"Signature is missing {', '.join(missing)}")
    return ensure_valid_signature(Signature(r=wire["r"], s=wire["s"], v=wire["v"]))


def split_signature(signature: Union[str, bytes]) -> Signature:
    """Split a 65-byte packed signature (r || s || v) into components.

    Recovery ids 0/1 are shifted to 27/28.

    Raises:
        SignatureValidationError: If the signature is not 65 bytes
    """
    if isinstance(signature, str):
        if not is_hex(signature):
            raise SignatureValidationError("Signature is not valid hex")
        signature = to_bytes(hexstr=signature)

    if len(signature) != 65:
        raise SignatureValidationError(f"Expected a 65-byte signature, got {len(signature)} bytes")

    v = signature[64]
    if v < 27:
        v += 27

    return ensure_valid_signature(
        Signature(
            r=to_hex(int.from_bytes(signature[:32], "big")),
            s=to_hex(int.from_bytes(signature[32:64], "big")),
            v=v,
        )
    )
