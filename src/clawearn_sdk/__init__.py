"""clawearn SDK: signed trading actions for Hyperliquid."""

from .signing import *  # noqa: F401,F403
from .signing import __all__ as _signing_all
from .exchange import *  # noqa: F401,F403
from .exchange import __all__ as _exchange_all
from .keystore import FileKeyStore, KeyStore, SigningKey, StaticKeyStore

__version__ = "0.1.0"

__all__ = [
    *_signing_all,
    *_exchange_all,
    "FileKeyStore",
    "KeyStore",
    "SigningKey",
    "StaticKeyStore",
]
