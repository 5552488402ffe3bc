"""Exchange modules for the clawearn SDK."""

from .hyperliquid import (
    HyperliquidExchange,
    ExchangeConfig,
    ResolvedExchangeConfig,
    Accepted,
    Rejected,
    NetworkFailure,
    SubmissionResult,
    interpret_response,
    resolve_exchange_config,
    exchange_config_from_env,
)
from .info import HyperliquidInfo

__all__ = [
    "HyperliquidExchange",
    "ExchangeConfig",
    "ResolvedExchangeConfig",
    "Accepted",
    "Rejected",
    "NetworkFailure",
    "SubmissionResult",
    "interpret_response",
    "resolve_exchange_config",
    "exchange_config_from_env",
    "HyperliquidInfo",
]
