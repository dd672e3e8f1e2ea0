from __future__ import annotations

from typing import Any, Dict, Optional

import requests


class CoinGeckoClient:
    _BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(self, session: Optional[Any] = None, base_url: Optional[str] = None) -> None:
        self.base_url = base_url or self._BASE_URL
        self.session = session or requests

    def get_coin(self, coin_id: str) -> Dict[str, Any]:
        response = self.session.get(
            f"{self.base_url}/coins/{coin_id}",
            params={
                "localization": "false",
                "tickers": "false",
                "community_data": "false",
                "developer_data": "false",
            },
            timeout=5,
        )
        response.raise_for_status()
        return response.json()

    def get_usd_price(self, coin_id: str) -> float:
        payload = self.get_coin(coin_id)
        return float(payload["market_data"]["current_price"]["usd"])
