from __future__ import annotations

from typing import Any, Optional

import requests

# network name -> (chain id, USDC contract)
_NETWORKS = {
    "ethereum": (1, "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"),
    "binance-smart-chain": (56, "0x8ac76a51cc950d9822d68b83fe1ad97b32cd580d"),
    "polygon": (137, "0x2791bca1f2de4661ed88a30c99a7a9449aa84174"),
}
SUPPORTED_NETWORKS = tuple(_NETWORKS)

# 10 whole tokens at 18 decimals; the USDC amount (6 decimals) for ten tokens
# divided by 10**7 is the USD price of one token.
QUOTE_AMOUNT = str(10 * 10**18)


class OneInchClient:
    """1inch aggregator quote client pricing a token against USDC."""

    _BASE_URL = "https://api.1inch.exchange/v3.0"

    def __init__(self, session: Optional[Any] = None, base_url: Optional[str] = None) -> None:
        self.base_url = base_url or self._BASE_URL
        self.session = session or requests

    @staticmethod
    def resolve_network(network: str) -> tuple[int, str]:
        value = (network or "ethereum").strip().lower()
        if value not in _NETWORKS:
            raise ValueError(f"unsupported network: {network!r}")
        return _NETWORKS[value]

    def get_token_price(self, network: str, contract: str) -> str:
        chain_id, usdc = self.resolve_network(network)
        response = self.session.get(
            f"{self.base_url}/{chain_id}/quote",
            params={
                "fromTokenAddress": contract,
                "toTokenAddress": usdc,
                "amount": QUOTE_AMOUNT,
            },
            timeout=5,
        )
        response.raise_for_status()
        amount = response.json().get("toTokenAmount")
        if amount is None:
            raise ValueError(f"missing toTokenAmount for {contract}")
        return str(amount)
