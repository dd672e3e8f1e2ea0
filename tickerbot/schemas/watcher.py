from typing import Literal

from pydantic import BaseModel, Field


class WatcherRuntimeState(BaseModel):
    key: str
    kind: str
    name: str
    status: Literal["STARTING", "POLLING", "STOPPED"] = "STARTING"
    frequency: float
    last_price: float | None = None
    fx_rate: float = 0.0
    nickname_enabled: bool = False
    ticks: int = 0
    failed_ticks: int = 0
    last_error: str | None = None
    last_nickname: str | None = None
    last_activity: str | None = None
    rotation_index: int = 0
    rotation_parity: int = 0


class _WatcherRequestBase(BaseModel):
    discord_bot_token: str = Field(min_length=1)
    name: str = ""
    nickname: bool = False
    color: bool = False
    decorator: str = ""
    frequency: float | None = Field(default=None, gt=0)
    activity: str | list[str] | None = None


class StockWatcherRequest(_WatcherRequestBase):
    ticker: str = Field(min_length=1)
    currency: str = "USD"
    extended_activity: bool = False


class CryptoWatcherRequest(_WatcherRequestBase):
    crypto_id: str = Field(min_length=1)
    currency: str = "USD"
    bitcoin: bool = False


class TokenWatcherRequest(_WatcherRequestBase):
    network: str = "ethereum"
    contract: str = Field(min_length=1)
    decimals: int = 4
    source: str = "1inch"
