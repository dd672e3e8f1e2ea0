import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from tickerbot.errors import WatcherExistsError
from tickerbot.main import app
from tickerbot.schemas.watcher import WatcherRuntimeState


def _state(config) -> WatcherRuntimeState:
    return WatcherRuntimeState(key=config.key, kind=config.kind, name=config.label, frequency=config.frequency)


class FakeSupervisor:
    def __init__(self):
        self.created = {}
        self.tokens = {}
        self.shutdown_called = False

    def create(self, config, token):
        if config.key in self.created:
            raise WatcherExistsError(config.key)
        self.created[config.key] = config
        self.tokens[config.key] = token
        return _state(config)

    def get(self, key):
        config = self.created.get(key)
        return _state(config) if config else None

    def list(self):
        return [_state(c) for c in self.created.values()]

    def remove(self, key):
        return self.created.pop(key, None) is not None

    def shutdown_all(self):
        self.shutdown_called = True


class WatcherApiTest(unittest.TestCase):
    def setUp(self):
        self.supervisor = FakeSupervisor()
        self.settings = MagicMock(
            TICKER_LOG_LEVEL="INFO",
            TICKER_CACHE_BACKEND="none",
            TICKER_DEFAULT_FREQUENCY_SEC=30.0,
        )
        self._orig_settings = app.state.get_settings
        app.state.get_settings = lambda: self.settings
        app.state.supervisor = self.supervisor

    def tearDown(self):
        app.state.get_settings = self._orig_settings
        app.state.supervisor = None

    def test_create_stock_watcher(self):
        with TestClient(app) as client:
            res = client.post(
                "/v1/stocks",
                json={"discord_bot_token": "tok", "ticker": "aapl", "nickname": True, "activity": "a;b"},
            )

        self.assertEqual(res.status_code, 201)
        body = res.json()
        self.assertEqual(body["key"], "equity:AAPL")
        self.assertEqual(body["status"], "STARTING")
        self.assertEqual(body["frequency"], 30.0)
        config = self.supervisor.created["equity:AAPL"]
        self.assertEqual(config.activity, ("a", "b"))
        self.assertEqual(self.supervisor.tokens["equity:AAPL"], "tok")
        self.assertTrue(self.supervisor.shutdown_called)

    def test_duplicate_watcher_conflict(self):
        payload = {"discord_bot_token": "tok", "crypto_id": "Bitcoin", "frequency": 5}
        with TestClient(app) as client:
            first = client.post("/v1/cryptos", json=payload)
            second = client.post("/v1/cryptos", json=payload)

        self.assertEqual(first.status_code, 201)
        self.assertEqual(first.json()["key"], "crypto:bitcoin")
        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.json()["detail"], "WATCHER_ALREADY_EXISTS")

    def test_create_token_watcher(self):
        with TestClient(app) as client:
            res = client.post(
                "/v1/tokens",
                json={
                    "discord_bot_token": "tok",
                    "contract": "0xABC",
                    "name": "TKN",
                    "source": "pancakeswap",
                    "decimals": 6,
                },
            )

        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.json()["key"], "token:ethereum:0xabc")
        config = self.supervisor.created["token:ethereum:0xabc"]
        self.assertEqual((config.source, config.token_decimals), ("pancakeswap", 6))

    def test_list_get_and_delete(self):
        with TestClient(app) as client:
            client.post("/v1/stocks", json={"discord_bot_token": "tok", "ticker": "MSFT"})

            listed = client.get("/v1/watchers")
            found = client.get("/v1/watchers/equity:MSFT")
            deleted = client.delete("/v1/watchers/equity:MSFT")
            missing = client.get("/v1/watchers/equity:MSFT")
            deleted_again = client.delete("/v1/watchers/equity:MSFT")

        self.assertEqual([row["key"] for row in listed.json()], ["equity:MSFT"])
        self.assertEqual(found.json()["name"], "MSFT")
        self.assertEqual(deleted.json(), {"removed": True, "key": "equity:MSFT"})
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(deleted_again.status_code, 404)

    def test_invalid_requests_rejected(self):
        with TestClient(app) as client:
            zero_freq = client.post("/v1/stocks", json={"discord_bot_token": "tok", "ticker": "AAPL", "frequency": 0})
            no_token = client.post("/v1/stocks", json={"discord_bot_token": "", "ticker": "AAPL"})
            no_contract = client.post("/v1/tokens", json={"discord_bot_token": "tok"})
            bad_source = client.post(
                "/v1/tokens",
                json={"discord_bot_token": "tok", "contract": "0xabc", "source": "uniswap"},
            )
            bad_network = client.post(
                "/v1/tokens",
                json={"discord_bot_token": "tok", "contract": "0xabc", "network": "solana"},
            )

        self.assertEqual(zero_freq.status_code, 422)
        self.assertEqual(no_token.status_code, 422)
        self.assertEqual(no_contract.status_code, 422)
        self.assertEqual(bad_source.status_code, 422)
        self.assertEqual(bad_network.status_code, 422)
        self.assertEqual(self.supervisor.created, {})


if __name__ == "__main__":
    unittest.main()
