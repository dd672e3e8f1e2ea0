import asyncio
import unittest
from unittest.mock import MagicMock

import requests

from tickerbot.errors import PublishError
from tickerbot.integrations.discord_rest import DiscordRestClient
from tickerbot.integrations.discord_session import DiscordSession


class _FakePresenceClient:
    """Stands in for discord.Client: start() blocks on the session loop until close()."""

    def __init__(self, ready, *, login_error=None, announce_ready=True, drops=0):
        self.ready = ready
        self.login_error = login_error
        self.announce_ready = announce_ready
        self.drops = drops
        self.activities = []
        self.token = None
        self.closed = False
        self._stop = asyncio.Event()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def start(self, token):
        self.token = token
        if self.login_error is not None:
            raise self.login_error
        if self.announce_ready:
            self.ready.set()
        await self._stop.wait()

    async def change_presence(self, *, activity=None):
        if self.drops:
            self.drops -= 1
            raise ConnectionResetError("gateway connection reset")
        self.activities.append(activity.name)

    async def close(self):
        self.closed = True
        self._stop.set()


def _session_with(clients, **client_kwargs):
    def factory(ready):
        client = _FakePresenceClient(ready, **client_kwargs)
        clients.append(client)
        return client

    return factory


class DiscordRestClientTest(unittest.TestCase):
    def test_set_nickname_patches_own_member(self):
        session = MagicMock()
        response = MagicMock()
        response.status_code = 200
        response.json.return_value = {"nick": "AAPL"}
        session.request.return_value = response
        client = DiscordRestClient("secret", session=session, base_url="https://example.test")

        client.set_nickname("g1", "AAPL ⬈ $1.00")

        session.request.assert_called_once_with(
            "PATCH",
            "https://example.test/guilds/g1/members/@me",
            headers={"authorization": "Bot secret", "content-type": "application/json"},
            timeout=5,
            json={"nick": "AAPL ⬈ $1.00"},
        )

    def test_role_changes_accept_no_content(self):
        session = MagicMock()
        response = MagicMock()
        response.status_code = 204
        session.request.return_value = response
        client = DiscordRestClient("secret", session=session)

        self.assertIsNone(client.add_role("g1", "u1", "r1"))
        response.json.assert_not_called()
        self.assertTrue(session.request.call_args[0][1].endswith("/guilds/g1/members/u1/roles/r1"))

    def test_token_required(self):
        with self.assertRaises(ValueError):
            DiscordRestClient("")


class DiscordSessionTest(unittest.TestCase):
    def test_rest_rejection_becomes_publish_error(self):
        rest = MagicMock()
        rest.set_nickname.side_effect = requests.HTTPError("403 Forbidden")
        rest.add_role.side_effect = requests.HTTPError("403 Forbidden")
        session = DiscordSession("secret", rest_client=rest)

        with self.assertRaises(PublishError):
            session.set_nickname("g1", "u1", "AAPL")
        with self.assertRaises(PublishError):
            session.add_role("g1", "u1", "r1")

    def test_identity_and_memberships(self):
        rest = MagicMock()
        rest.get_current_user.return_value = {"id": 42}
        rest.list_guilds.return_value = [{"id": "g1", "name": "one"}, {"id": 2}]
        rest.list_roles.return_value = [{"id": "r1", "name": "tickers-red"}]
        session = DiscordSession("secret", rest_client=rest)

        self.assertEqual(session.current_user(), "42")
        guilds = session.list_memberships()
        self.assertEqual([(g.id, g.name) for g in guilds], [("g1", "one"), ("2", "")])
        self.assertEqual(session.list_roles("g1")[0].name, "tickers-red")


class DiscordSessionGatewayTest(unittest.TestCase):
    def test_open_publishes_activity_and_close_stops_client(self):
        clients = []
        session = DiscordSession("secret", rest_client=MagicMock(), client_factory=_session_with(clients))

        session.open()
        try:
            session.set_activity("$-1.20 (-0.96%)")
        finally:
            session.close()

        client = clients[0]
        self.assertEqual(client.token, "secret")
        self.assertEqual(client.activities, ["$-1.20 (-0.96%)"])
        self.assertTrue(client.closed)

    def test_dropped_connection_does_not_disable_later_updates(self):
        clients = []
        session = DiscordSession(
            "secret", rest_client=MagicMock(), client_factory=_session_with(clients, drops=1)
        )
        session.open()
        try:
            with self.assertRaises(PublishError):
                session.set_activity("a")
            session.set_activity("b")
            session.set_activity("c")
        finally:
            session.close()

        self.assertEqual(len(clients), 1)
        self.assertEqual(clients[0].activities, ["b", "c"])

    def test_activity_is_truncated_to_discord_limit(self):
        clients = []
        session = DiscordSession("secret", rest_client=MagicMock(), client_factory=_session_with(clients))
        session.open()
        try:
            session.set_activity("x" * 200)
        finally:
            session.close()

        self.assertEqual(clients[0].activities, ["x" * 128])

    def test_login_failure_fails_open(self):
        clients = []
        session = DiscordSession(
            "bad",
            rest_client=MagicMock(),
            client_factory=_session_with(clients, login_error=RuntimeError("401 Unauthorized")),
        )

        with self.assertLogs("tickerbot.integrations.discord_session", level="ERROR"):
            with self.assertRaises(RuntimeError):
                session.open()
        with self.assertRaises(PublishError):
            session.set_activity("a")

    def test_ready_timeout_fails_open_and_closes_client(self):
        clients = []
        session = DiscordSession(
            "secret",
            rest_client=MagicMock(),
            client_factory=_session_with(clients, announce_ready=False),
            ready_timeout=0.05,
        )

        with self.assertRaises(RuntimeError):
            session.open()

        self.assertTrue(clients[0].closed)

    def test_activity_before_open_and_repeated_close(self):
        session = DiscordSession("secret", rest_client=MagicMock(), client_factory=_session_with([]))

        with self.assertRaises(PublishError):
            session.set_activity("a")
        session.close()
        session.close()


if __name__ == "__main__":
    unittest.main()
