"""L1 Action Signing for Hyperliquid.

Provides EIP-712 signing functions that work with various wallet types:
- eth_account.Account (direct signing with a private key)
- any async TypedDataSigner (hardware/remote wallets)
"""

from typing import Any, Dict, List, Mapping, Optional, Protocol, TypedDict, Union

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import is_address, to_checksum_address, to_hex

from ..log import get_logger
from .agent import construct_phantom_agent
from .encoding import action_hash
from .errors import MissingSigningKeyError, SchemaError, SigningError
from .signature import split_signature
from .types import AGENT_TYPES, ActionLike, PhantomAgent, Signature
from .utils import (
    HYPERLIQUID_DOMAIN_NAME,
    HYPERLIQUID_DOMAIN_VERSION,
    HYPERLIQUID_L1_CHAIN_ID,
    ZERO_ADDRESS,
)

logger = get_logger(__name__)

PrivateKey = Union[str, bytes]


class EIP712Domain(TypedDict):
    """EIP-712 domain separator."""

    name: str
    version: str
    chainId: int
    verifyingContract: str


def create_exchange_domain(
    chain_id: int = HYPERLIQUID_L1_CHAIN_ID,
    verifying_contract: str = ZERO_ADDRESS,
    name: str = HYPERLIQUID_DOMAIN_NAME,
    version: str = HYPERLIQUID_DOMAIN_VERSION,
) -> EIP712Domain:
    """Create EIP-712 domain for L1 actions.

    Args:
        chain_id: Chain ID (1337 for Hyperliquid L1 actions)
        verifying_contract: Verifying contract (zero address by convention)
        name: Domain name
        version: Domain version

    Returns:
        EIP-712 domain dictionary

    Raises:
        SchemaError: If the verifying contract is not an address
    """
    if not is_address(verifying_contract):
        raise SchemaError(f"Invalid verifying contract: {verifying_contract}")

    return {
        "name": name,
        "version": version,
        "chainId": chain_id,
        "verifyingContract": to_checksum_address(verifying_contract),
    }


def validate_domain(domain: Mapping[str, Any]) -> None:
    """Check an EIP-712 domain has every field with the right type.

    Raises:
        SchemaError: If a field is missing or malformed
    """
    for key in ("name", "version", "chainId", "verifyingContract"):
        if key not in domain or domain[key] in (None, ""):
            raise SchemaError(f"EIP-712 domain is missing '{key}'")
    if not isinstance(domain["name"], str) or not isinstance(domain["version"], str):
        raise SchemaError("EIP-712 domain name and version must be strings")
    chain_id = domain["chainId"]
    if isinstance(chain_id, bool) or not isinstance(chain_id, int) or chain_id <= 0:
        raise SchemaError(f"Invalid EIP-712 chainId: {chain_id!r}")
    if not is_address(domain["verifyingContract"]):
        raise SchemaError(f"Invalid verifyingContract: {domain['verifyingContract']}")


def validate_agent_types(types: Mapping[str, List[Mapping[str, str]]]) -> None:
    """Check the typed-data schema is exactly the Agent schema.

    Raises:
        SchemaError: If a type, field name or field order differs
    """
    if set(types) != set(AGENT_TYPES):
        raise SchemaError(f"Expected types {sorted(AGENT_TYPES)}, got {sorted(types)}")
    fields = [dict(f) for f in types["Agent"]]
    if fields != AGENT_TYPES["Agent"]:
        raise SchemaError(f"Agent schema mismatch: {fields}")


def load_account(private_key: Optional[PrivateKey]):
    """Load an eth_account LocalAccount without leaking the key in errors."""
    if private_key is None or (isinstance(private_key, (str, bytes)) and not private_key):
        raise MissingSigningKeyError("No signing key available")
    try:
        return Account.from_key(private_key)
    except Exception:
        raise SigningError("Signing key is malformed") from None


def resolve_vault_address(vault_address: Optional[str], signer_address: str) -> str:
    """Return the address that goes into the action hash.

    Acting for yourself (no vault, or the signer in any case) hashes the
    checksummed signer address; any other vault is hashed verbatim.
    """
    signer = to_checksum_address(signer_address)
    if not vault_address or vault_address.lower() == signer.lower():
        return signer
    return vault_address


def sign_phantom_agent(
    private_key: PrivateKey,
    agent: PhantomAgent,
    domain: Optional[Mapping[str, Any]] = None,
    types: Mapping[str, List[Mapping[str, str]]] = AGENT_TYPES,
) -> Signature:
    """Sign a phantom agent with EIP-712.

    Args:
        private_key: Private key (hex string with or without 0x prefix)
        agent: Phantom agent to sign
        domain: EIP-712 domain (default: Hyperliquid L1 domain)
        types: Typed-data schema; must be the Agent schema

    Returns:
        Signature with r, s as hex and v as 27/28

    Raises:
        SchemaError: If domain or schema is malformed (checked before signing)
        SigningError: If the key is missing or malformed
    """
    domain = dict(domain) if domain is not None else create_exchange_domain()
    validate_domain(domain)
    validate_agent_types(types)

    account = load_account(private_key)
    try:
        signed_message = account.sign_typed_data(
            domain_data=domain,
            message_types={name: [dict(f) for f in fields] for name, fields in types.items()},
            message_data=agent.to_message(),
        )
    except (TypeError, ValueError) as e:
        raise SigningError(f"Failed to sign phantom agent: {type(e).__name__}") from None

    return Signature(r=to_hex(signed_message.r), s=to_hex(signed_message.s), v=signed_message.v)


def sign_l1_action(
    private_key: PrivateKey,
    action: ActionLike,
    nonce: int,
    vault_address: Optional[str] = None,
    domain: Optional[Mapping[str, Any]] = None,
) -> Signature:
    """Sign an L1 action (trading operation) using a private key.

    Runs the whole chain: canonical encoding, Keccak-256 hash, phantom agent
    and EIP-712 signature.

    Args:
        private_key: Private key (hex string with or without 0x prefix)
        action: Action variant or raw mapping
        nonce: Positive integer nonce
        vault_address: Address acted for (default: the signer)
        domain: EIP-712 domain (default: Hyperliquid L1 domain)

    Returns:
        Signature
    """
    account = load_account(private_key)
    hashed = action_hash(action, nonce, resolve_vault_address(vault_address, account.address))
    agent = construct_phantom_agent(hashed, account.address)

    logger.debug("signing.l1_action", nonce=nonce, action_hash=to_hex(hashed))
    return sign_phantom_agent(private_key, agent, domain)


class TypedDataSigner(Protocol):
    """Protocol for signers that can sign EIP-712 typed data."""

    async def get_address(self) -> str:
        """Get the signer's address."""
        ...

    async def sign_typed_data(self, params: Dict[str, Any]) -> str:
        """Sign EIP-712 typed data.

        Args:
            params: Dict with domain, types, primaryType, and message

        Returns:
            Signature as hex string
        """
        ...


async def sign_l1_action_with_signer(
    signer: TypedDataSigner,
    action: ActionLike,
    nonce: int,
    vault_address: Optional[str] = None,
    domain: Optional[Mapping[str, Any]] = None,
) -> Signature:
    """Sign an L1 action with EIP-712 using any compatible signer.

    Use this when the key lives outside the process (hardware or remote
    wallets implementing the TypedDataSigner protocol).

    Args:
        signer: Signer that implements TypedDataSigner protocol
        action: Action variant or raw mapping
        nonce: Positive integer nonce
        vault_address: Address acted for (default: the signer)
        domain: EIP-712 domain (default: Hyperliquid L1 domain)

    Returns:
        Signature
    """
    domain = dict(domain) if domain is not None else create_exchange_domain()
    validate_domain(domain)

    signer_address = await signer.get_address()
    hashed = action_hash(action, nonce, resolve_vault_address(vault_address, signer_address))
    agent = construct_phantom_agent(hashed, signer_address)

    signature = await signer.sign_typed_data(
        {
            "domain": domain,
            "types": AGENT_TYPES,
            "primaryType": "Agent",
            "message": {
                "connectionId": to_hex(agent.connection_id),
                "agentAddress": agent.agent_address,
            },
        }
    )

    return split_signature(signature)


def recover_l1_action_signer(
    action: ActionLike,
    nonce: int,
    signature: Signature,
    agent_address: str,
    vault_address: Optional[str] = None,
    domain: Optional[Mapping[str, Any]] = None,
) -> str:
    """Recover the address that produced a signature for an L1 action.

    The agent address is part of the signed message, so the claimed signer
    has to be supplied; a forged claim recovers to some other address.

    Returns:
        Checksummed recovered address
    """
    domain = dict(domain) if domain is not None else create_exchange_domain()
    validate_domain(domain)

    hashed = action_hash(action, nonce, resolve_vault_address(vault_address, agent_address))
    agent = construct_phantom_agent(hashed, agent_address)
    signable_message = encode_typed_data(
        domain_data=domain,
        message_types=AGENT_TYPES,
        message_data=agent.to_message(),
    )
    return Account.recover_message(
        signable_message,
        vrs=(signature.v, int(signature.r, 16), int(signature.s, 16)),
    )


def verify_l1_action_signature(
    action: ActionLike,
    nonce: int,
    signature: Signature,
    expected_signer: str,
    vault_address: Optional[str] = None,
    domain: Optional[Mapping[str, Any]] = None,
) -> bool:
    """Verify an L1 action signature locally (for EOA signatures).

    Args:
        action: Action that was signed
        nonce: Nonce that was signed
        signature: Signature to check
        expected_signer: Expected signer address
        vault_address: Vault address used when signing (default: the signer)
        domain: EIP-712 domain used when signing

    Returns:
        True if signature is valid and from expected signer
    """
    try:
        recovered = recover_l1_action_signer(
            action, nonce, signature, expected_signer, vault_address, domain
        )
    except (BadSignature, ValidationError, ValueError, TypeError) as e:
        logger.debug("signing.verify_failed", error=str(e))
        return False
    return recovered.lower() == expected_signer.lower()
