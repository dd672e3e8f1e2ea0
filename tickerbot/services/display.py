"""Pure formatting of a quote into the nickname and activity strings.

Nothing here performs I/O; the watcher passes in the previous price and the
FX rate it resolved at startup.
"""
from __future__ import annotations

from tickerbot.schemas.display import DisplaySet
from tickerbot.schemas.instrument import InstrumentConfig
from tickerbot.schemas.quote import Quote

UP_DECORATOR = "⬈"
DOWN_DECORATOR = "⬊"

CENT_THRESHOLD = 0.01
DOLLAR_THRESHOLD = 1.0
# unscaled USD price below which cent values get 8 decimals instead of 6
MICRO_CENT_THRESHOLD = 0.00001

TOKEN_SOURCE_LABELS = {
    "1inch": "Using USDC on 1inch",
    "pancakeswap": "Using BNB on PancakeSwap",
}


def is_increase(change_text: str) -> bool:
    return not change_text or not change_text.startswith("-")


def is_token_increase(price: float, previous_price: float | None) -> bool:
    if previous_price is None:
        return True
    return price >= previous_price


def select_decorator(config: InstrumentConfig, increase: bool) -> str:
    if config.decorator:
        return config.decorator
    return UP_DECORATOR if increase else DOWN_DECORATOR


def format_crypto_price(price: float) -> str:
    if price < CENT_THRESHOLD:
        cents = price * 100
        if price < MICRO_CENT_THRESHOLD:
            return f"{cents:.8f}¢"
        return f"{cents:.6f}¢"
    if price < DOLLAR_THRESHOLD:
        return f"${price:.3f}"
    return f"${price:.2f}"


def format_token_price(price: float, decimals: int) -> str:
    return f"${price:.{decimals}f}"


def render_template(template: str, display: DisplaySet, name: str = "") -> str:
    """Fill ``{name}``, ``{price}``, ``{change}``, ``{percent}`` and ``{decorator}``."""
    values = {
        "{name}": name,
        "{price}": display.price_text,
        "{change}": display.change_text,
        "{percent}": display.pct_text,
        "{decorator}": display.decorator,
    }
    out = template
    for placeholder, value in values.items():
        out = out.replace(placeholder, value)
    return out


def _equity_display(quote: Quote, config: InstrumentConfig, fx_rate: float) -> DisplaySet:
    price = quote.price
    price_text = quote.price_fmt or f"{quote.price:.2f}"
    change_text = quote.change_fmt or ""
    if fx_rate:
        price = fx_rate * quote.price
        price_text = f"{price:.2f}"
        change_text = f"{fx_rate * quote.change:.2f}"
    pct_text = quote.change_pct_fmt or f"{quote.change_pct:.2f}"

    increase = is_increase(change_text)
    decorator = select_decorator(config, increase)

    nickname = None
    extended: list[str] = []
    if config.nickname:
        nickname = f"{config.label.upper()} {decorator} ${price_text}"
        activity = f"${change_text} ({pct_text}%)"
        if config.extended_activity:
            extended = [
                f"Market Cap: {quote.market_cap or 'N/A'}",
                f"Circulating: {quote.circulating_supply or 'N/A'}",
                f"Volume: {quote.volume_24h or 'N/A'}",
                f"Open: {quote.session_open or 'N/A'}",
            ]
    else:
        activity = f"{price_text} {decorator} {pct_text}%"

    return DisplaySet(
        price=price,
        price_text=price_text,
        change_text=change_text,
        pct_text=pct_text,
        increase=increase,
        decorator=decorator,
        nickname=nickname,
        activity=activity,
        extended=extended,
    )


def _crypto_display(quote: Quote, config: InstrumentConfig, fx_rate: float) -> DisplaySet:
    price = quote.price
    change = quote.change
    if fx_rate:
        price = fx_rate * price
        change = fx_rate * change
    pct_text = f"{quote.change_pct:.2f}"

    if config.bitcoin:
        header = "₿"
        price_text = f"₿{(quote.pair_price or 0.0):.6f}"
        change_text = f"{(quote.pair_change or 0.0):.2f}"
    else:
        header = "$"
        price_text = format_crypto_price(price)
        change_text = f"{change:.2f}"

    increase = is_increase(change_text)
    decorator = select_decorator(config, increase)

    nickname = None
    if config.nickname:
        display_name = config.name or quote.symbol.upper()
        nickname = f"{display_name} {decorator} {price_text}"
        activity = f"{header}{change_text} ({pct_text}%)"
    else:
        activity = f"{price_text} {decorator} {pct_text}%"

    return DisplaySet(
        price=price,
        price_text=price_text,
        change_text=change_text,
        pct_text=pct_text,
        increase=increase,
        decorator=decorator,
        nickname=nickname,
        activity=activity,
    )


def _token_display(
    quote: Quote,
    config: InstrumentConfig,
    previous_price: float | None,
    fx_rate: float,
) -> DisplaySet:
    price = fx_rate * quote.price if fx_rate else quote.price
    increase = is_token_increase(price, previous_price)
    decorator = select_decorator(config, increase)
    price_text = format_token_price(price, config.token_decimals)

    # no server-side change figure on this path
    if previous_price is None:
        change = 0.0
    else:
        change = price - previous_price
    change_text = f"{change:.{config.token_decimals}f}"
    pct_text = f"{(change / previous_price * 100) if previous_price else 0.0:.2f}"

    label = config.label
    nickname = None
    if config.nickname:
        nickname = f"{label} {decorator} {price_text}"
        activity = TOKEN_SOURCE_LABELS[config.source]
    else:
        activity = f"{label} {decorator} {price_text}"

    return DisplaySet(
        price=price,
        price_text=price_text,
        change_text=change_text,
        pct_text=pct_text,
        increase=increase,
        decorator=decorator,
        nickname=nickname,
        activity=activity,
    )


def compute_display(
    quote: Quote,
    config: InstrumentConfig,
    previous_price: float | None = None,
    fx_rate: float = 0.0,
) -> DisplaySet:
    if config.kind == "equity":
        return _equity_display(quote, config, fx_rate)
    if config.kind == "crypto":
        return _crypto_display(quote, config, fx_rate)
    return _token_display(quote, config, previous_price, fx_rate)
