from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from tickerbot.errors import WatcherExistsError
from tickerbot.schemas.instrument import InstrumentConfig
from tickerbot.schemas.watcher import CryptoWatcherRequest, StockWatcherRequest, TokenWatcherRequest

router = APIRouter()


def _frequency(request: Request, value: float | None) -> float:
    if value is not None:
        return value
    return request.app.state.get_settings().TICKER_DEFAULT_FREQUENCY_SEC


def _create(request: Request, config_data: dict, token: str) -> dict:
    try:
        config = InstrumentConfig.model_validate(config_data)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc

    supervisor = request.app.state.supervisor
    try:
        state = supervisor.create(config, token)
    except WatcherExistsError as exc:
        raise HTTPException(status_code=409, detail='WATCHER_ALREADY_EXISTS') from exc
    return state.model_dump()


@router.get('/watchers')
def list_watchers(request: Request):
    return [row.model_dump() for row in request.app.state.supervisor.list()]


@router.get('/watchers/{key}')
def get_watcher(key: str, request: Request):
    row = request.app.state.supervisor.get(key)
    if row is None:
        raise HTTPException(status_code=404, detail='WATCHER_NOT_FOUND')
    return row.model_dump()


@router.delete('/watchers/{key}')
def delete_watcher(key: str, request: Request):
    if not request.app.state.supervisor.remove(key):
        raise HTTPException(status_code=404, detail='WATCHER_NOT_FOUND')
    return {'removed': True, 'key': key}


@router.post('/stocks', status_code=201)
def create_stock(req: StockWatcherRequest, request: Request):
    return _create(
        request,
        {
            'kind': 'equity',
            'symbol': req.ticker.upper(),
            'name': req.name or req.ticker,
            'currency': req.currency,
            'frequency': _frequency(request, req.frequency),
            'nickname': req.nickname,
            'color': req.color,
            'extended_activity': req.extended_activity,
            'decorator': req.decorator,
            'activity': req.activity,
        },
        req.discord_bot_token,
    )


@router.post('/cryptos', status_code=201)
def create_crypto(req: CryptoWatcherRequest, request: Request):
    return _create(
        request,
        {
            'kind': 'crypto',
            'symbol': req.crypto_id.lower(),
            'name': req.name,
            'currency': req.currency,
            'frequency': _frequency(request, req.frequency),
            'nickname': req.nickname,
            'color': req.color,
            'decorator': req.decorator,
            'activity': req.activity,
            'bitcoin': req.bitcoin,
        },
        req.discord_bot_token,
    )


@router.post('/tokens', status_code=201)
def create_token(req: TokenWatcherRequest, request: Request):
    return _create(
        request,
        {
            'kind': 'token',
            'name': req.name,
            'network': req.network,
            'contract': req.contract,
            'decimals': req.decimals,
            'source': req.source,
            'frequency': _frequency(request, req.frequency),
            'nickname': req.nickname,
            'color': req.color,
            'decorator': req.decorator,
            'activity': req.activity,
        },
        req.discord_bot_token,
    )
