"""Phantom agent construction.

The venue never sees the action inside the signature: the signer approves a
fixed-shape ``Agent`` record binding the action hash to its own address.
"""

from typing import Union

from eth_utils import is_hex, is_hex_address, to_bytes

from .errors import InvalidActionError
from .types import PhantomAgent


def construct_phantom_agent(action_hash: Union[bytes, str], agent_address: str) -> PhantomAgent:
    """Build the phantom agent for an action hash.

    Args:
        action_hash: 32-byte hash, as bytes or 0x-prefixed hex
        agent_address: Signer address in any case

    Returns:
        PhantomAgent with the address lowercased

    Raises:
        InvalidActionError: If the hash is not 32 bytes or the address is invalid
    """
    if isinstance(action_hash, str):
        if not is_hex(action_hash):
            raise InvalidActionError(f"Invalid action hash: {action_hash}")
        action_hash = to_bytes(hexstr=action_hash)

    if not isinstance(action_hash, (bytes, bytearray)) or len(action_hash) != 32:
        raise InvalidActionError("Action hash must be exactly 32 bytes")

    if not isinstance(agent_address, str) or not is_hex_address(agent_address):
        raise InvalidActionError(f"Invalid agent address: {agent_address}")

    return PhantomAgent(connection_id=bytes(action_hash), agent_address=agent_address.lower())
