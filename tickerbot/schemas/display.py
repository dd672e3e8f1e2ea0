from pydantic import BaseModel


class DisplaySet(BaseModel):
    price: float
    price_text: str
    change_text: str
    pct_text: str
    increase: bool
    decorator: str
    nickname: str | None = None
    activity: str
    extended: list[str] = []
