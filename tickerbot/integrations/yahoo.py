from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests


class YahooFinanceClient:
    """Yahoo quoteSummary client returning the raw ``price`` module."""

    _BASE_URL = "https://query1.finance.yahoo.com"

    def __init__(self, session: Optional[Any] = None, base_url: Optional[str] = None) -> None:
        self.base_url = base_url or self._BASE_URL
        self.session = session or requests

    def get_price_results(self, ticker: str) -> List[Dict[str, Any]]:
        response = self.session.get(
            f"{self.base_url}/v10/finance/quoteSummary/{ticker}",
            headers={"user-agent": "Mozilla/5.0"},
            params={"modules": "price"},
            timeout=5,
        )
        response.raise_for_status()
        payload = response.json()
        results = (payload.get("quoteSummary") or {}).get("result") or []
        return [row.get("price", {}) for row in results if isinstance(row, dict)]
