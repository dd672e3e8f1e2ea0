from typing import Literal

from pydantic import BaseModel


class Quote(BaseModel):
    symbol: str
    price: float
    change: float = 0.0
    change_pct: float = 0.0
    # provider-formatted text, percent without the trailing "%"
    price_fmt: str | None = None
    change_fmt: str | None = None
    change_pct_fmt: str | None = None
    market_session: Literal["PRE", "REGULAR", "POST"] | None = None
    pair_price: float | None = None
    pair_change: float | None = None
    market_cap: str | None = None
    circulating_supply: str | None = None
    volume_24h: str | None = None
    session_open: str | None = None
    source: str
    ts: int
