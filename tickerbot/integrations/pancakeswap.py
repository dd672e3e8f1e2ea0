from __future__ import annotations

from typing import Any, Optional

import requests


class PancakeSwapClient:
    """PancakeSwap info API; prices come back denominated in BNB."""

    _BASE_URL = "https://api.pancakeswap.info/api/v2"

    def __init__(self, session: Optional[Any] = None, base_url: Optional[str] = None) -> None:
        self.base_url = base_url or self._BASE_URL
        self.session = session or requests

    def get_token_price(self, contract: str) -> str:
        response = self.session.get(f"{self.base_url}/tokens/{contract}", timeout=5)
        response.raise_for_status()
        data = response.json().get("data") or {}
        price = data.get("price_BNB")
        if price is None:
            raise ValueError(f"missing price_BNB for {contract}")
        return str(price)
