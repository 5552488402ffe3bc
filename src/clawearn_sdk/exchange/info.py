"""Read-only venue metadata needed to build actions."""

from typing import Any, Dict, Optional

import httpx

from ..log import get_logger
from ..signing import HYPERLIQUID_API_MAINNET, MetadataUnavailableError
from ..signing.utils import SPOT_ASSET_OFFSET

logger = get_logger(__name__)


class HyperliquidInfo:
    """Client for the ``/info`` endpoint.

    Lookups fail closed: when metadata cannot be fetched the caller gets a
    MetadataUnavailableError, never a placeholder index.
    """

    def __init__(
        self,
        base_url: str = HYPERLIQUID_API_MAINNET,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    async def _post(self, payload: Dict[str, Any]) -> Any:
        try:
            response = await self._http_client.post(
                f"{self.base_url}/info",
                headers={"Content-Type": "application/json"},
                json=payload,
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("info.request_failed", request_type=payload.get("type"), error=str(e))
            raise MetadataUnavailableError(
                f"Failed to fetch {payload.get('type')} metadata: {e}"
            ) from e

    async def get_asset_index(self, symbol: str) -> int:
        """Convert a symbol to its venue asset index.

        Perpetuals use their position in ``meta.universe``; spot tokens use
        ``10000 + index`` from ``spotMeta``.

        Raises:
            MetadataUnavailableError: If metadata can't be fetched or the symbol is unknown
        """
        if not symbol:
            raise MetadataUnavailableError("Symbol is required")

        meta = await self._post({"type": "meta"})
        for index, asset in enumerate(meta.get("universe", []) if isinstance(meta, dict) else []):
            if isinstance(asset, dict) and asset.get("name") == symbol:
                return index

        spot_meta = await self._post({"type": "spotMeta"})
        tokens = spot_meta.get("tokens", []) if isinstance(spot_meta, dict) else []
        for token in tokens:
            if isinstance(token, dict) and token.get("name") == symbol:
                try:
                    return SPOT_ASSET_OFFSET + int(token["index"])
                except (KeyError, TypeError, ValueError) as e:
                    raise MetadataUnavailableError(
                        f"Malformed spot metadata for symbol: {symbol}"
                    ) from e

        raise MetadataUnavailableError(f"Asset index not found for symbol: {symbol}")
