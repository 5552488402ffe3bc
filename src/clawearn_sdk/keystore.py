"""Signing key storage.

Keys are stored as ``{"address", "privateKey", "createdAt"}`` JSON at
``~/.config/clawearn/wallet.json`` (directory mode 0700, file mode 0600).
"""

import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol, Union

from eth_account import Account
from eth_utils import to_hex

from .log import get_logger
from .signing.errors import SigningError

logger = get_logger(__name__)

WALLET_DIR = Path.home() / ".config" / "clawearn"
WALLET_FILE = WALLET_DIR / "wallet.json"


@dataclass(frozen=True)
class SigningKey:
    """A private key and the address derived from it."""

    private_key: str = field(repr=False)
    address: str

    @classmethod
    def from_private_key(cls, private_key: Union[str, bytes]) -> "SigningKey":
        """Derive the address for a private key.

        Raises:
            SigningError: If the key is malformed (the key is not echoed)
        """
        try:
            account = Account.from_key(private_key)
        except Exception:
            raise SigningError("Invalid private key provided") from None
        return cls(private_key=to_hex(account.key), address=account.address)

    @classmethod
    def generate(cls) -> "SigningKey":
        account = Account.create()
        return cls(private_key=to_hex(account.key), address=account.address)


class KeyStore(Protocol):
    """Anything that can hand out the current signing key."""

    def get_signing_key(self) -> Optional[SigningKey]:
        ...


class StaticKeyStore:
    """Key store holding a single in-memory key (e.g. from ``--private-key``)."""

    def __init__(self, key: Optional[Union[SigningKey, str]] = None):
        if isinstance(key, str):
            key = SigningKey.from_private_key(key)
        self._key = key

    def get_signing_key(self) -> Optional[SigningKey]:
        return self._key


class FileKeyStore:
    """Key store backed by the wallet JSON file."""

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path is not None else WALLET_FILE

    def exists(self) -> bool:
        return self.path.exists()

    def get_signing_key(self) -> Optional[SigningKey]:
        """Load the stored key.

        Returns:
            The key, or None when no wallet file exists

        Raises:
            SigningError: If the file is unreadable or the key does not match its address
        """
        if not self.path.exists():
            return None

        try:
            content = json.loads(self.path.read_text(encoding="utf-8"))
            private_key = content["privateKey"]
        except (OSError, ValueError, KeyError, TypeError):
            raise SigningError(f"Wallet file is unreadable: {self.path}") from None

        key = SigningKey.from_private_key(private_key)
        stored_address = content.get("address")
        if stored_address and stored_address.lower() != key.address.lower():
            raise SigningError(f"Wallet file address does not match its key: {self.path}")
        return key

    def save(self, key: SigningKey, overwrite: bool = False) -> Path:
        """Write a key to the wallet file.

        Raises:
            FileExistsError: If a wallet exists and ``overwrite`` is False
        """
        if self.path.exists() and not overwrite:
            raise FileExistsError(f"Wallet already exists: {self.path}")

        self.path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        payload = {
            "address": key.address,
            "privateKey": key.private_key,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)

        logger.info("keystore.saved", path=str(self.path), address=key.address)
        return self.path
