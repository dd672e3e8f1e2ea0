from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tickerbot.integrations.oneinch import SUPPORTED_NETWORKS

DEFAULT_TOKEN_DECIMALS = 4
MAX_TOKEN_DECIMALS = 11


class InstrumentConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["equity", "crypto", "token"]
    symbol: str = ""
    name: str = ""
    currency: str = "USD"
    frequency: float = Field(gt=0)
    nickname: bool = False
    color: bool = False
    extended_activity: bool = False
    decorator: str = ""
    activity: tuple[str, ...] = ()
    bitcoin: bool = False

    # token only
    network: str = ""
    contract: str = ""
    decimals: int = DEFAULT_TOKEN_DECIMALS
    source: Literal["1inch", "pancakeswap"] = "1inch"

    @field_validator("currency", mode="before")
    @classmethod
    def _upper_currency(cls, value):
        text = str(value or "").strip().upper()
        return text or "USD"

    @field_validator("activity", mode="before")
    @classmethod
    def _split_activity(cls, value):
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(";")
        return tuple(str(v).strip() for v in value if str(v).strip())

    @model_validator(mode="after")
    def _check_identity(self) -> "InstrumentConfig":
        if self.kind == "token":
            if not self.contract:
                raise ValueError("token instrument requires a contract address")
            network = (self.network or "ethereum").strip().lower()
            if self.source == "1inch" and network not in SUPPORTED_NETWORKS:
                raise ValueError(f"unsupported network for 1inch: {self.network!r}")
        elif not self.symbol:
            raise ValueError(f"{self.kind} instrument requires a symbol")
        return self

    @property
    def key(self) -> str:
        if self.kind == "equity":
            return f"equity:{self.symbol.upper()}"
        if self.kind == "crypto":
            return f"crypto:{self.symbol.lower()}"
        return f"token:{self.network.lower()}:{self.contract.lower()}"

    @property
    def label(self) -> str:
        return self.name or self.symbol or self.contract

    @property
    def token_decimals(self) -> int:
        if 1 <= self.decimals <= MAX_TOKEN_DECIMALS:
            return self.decimals
        return DEFAULT_TOKEN_DECIMALS
