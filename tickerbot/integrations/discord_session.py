from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Optional

import discord
import requests

from tickerbot.errors import PublishError
from tickerbot.integrations.discord_rest import DiscordRestClient
from tickerbot.schemas.chat import Guild, Role

logger = logging.getLogger(__name__)

READY_TIMEOUT_SEC = 30.0
CALL_TIMEOUT_SEC = 5.0
ACTIVITY_MAX_LEN = 128


class PresenceClient(discord.Client):
    """Gateway connection used only to publish the bot's activity.

    discord.py owns heartbeats, session resume and reconnects; the client
    only reports readiness back to the thread that opened it.
    """

    def __init__(self, ready: threading.Event, **kwargs: Any) -> None:
        super().__init__(intents=discord.Intents.none(), **kwargs)
        self.ready = ready

    async def on_ready(self) -> None:
        logger.info("[DISCORD][ready] user=%s", self.user)
        self.ready.set()

    async def on_resumed(self) -> None:
        logger.info("[DISCORD][resumed] user=%s", self.user)


class DiscordSession:
    """ChatSession adapter: REST for identity/nickname/roles, discord.py for activity.

    The discord.py client runs on its own event loop in a daemon thread;
    calls from the watcher thread are submitted to that loop.
    """

    def __init__(
        self,
        token: str,
        *,
        rest_client: Optional[DiscordRestClient] = None,
        client_factory: Callable[[threading.Event], Any] = PresenceClient,
        ready_timeout: float = READY_TIMEOUT_SEC,
    ) -> None:
        self.token = token
        self.rest = rest_client or DiscordRestClient(token)
        self.client_factory = client_factory
        self.ready_timeout = ready_timeout
        self._client: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._ready = threading.Event()
        self._stopped = threading.Event()
        self._start_error: BaseException | None = None

    async def _serve(self) -> None:
        async with self._client:
            await self._client.start(self.token)

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._serve())
        except Exception as exc:
            self._start_error = exc
            logger.error("[DISCORD][gateway_error] error=%s", exc)
        finally:
            self._stopped.set()
            self._ready.set()
            self._loop.close()

    def open(self) -> None:
        if self._thread is not None:
            return
        self._ready = threading.Event()
        self._stopped = threading.Event()
        self._start_error = None
        self._client = self.client_factory(self._ready)
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, daemon=True, name="discord-presence")
        self._thread.start()

        if not self._ready.wait(self.ready_timeout):
            self.close()
            raise RuntimeError("discord gateway did not become ready")
        if self._stopped.is_set():
            error = self._start_error
            self.close()
            raise RuntimeError(f"discord gateway stopped during login: {error}")

    def _call(self, make_call: Callable[[Any], Awaitable[Any]]) -> Any:
        loop = self._loop
        if self._client is None or loop is None or self._stopped.is_set():
            raise RuntimeError("discord gateway is not running")
        future = asyncio.run_coroutine_threadsafe(make_call(self._client), loop)
        return future.result(timeout=CALL_TIMEOUT_SEC)

    def close(self) -> None:
        thread = self._thread
        if thread is None:
            return
        if not self._stopped.is_set():
            try:
                self._call(lambda client: client.close())
            except Exception as exc:
                logger.error("[DISCORD][close_error] error=%s", exc)
        if thread is not threading.current_thread():
            thread.join(timeout=CALL_TIMEOUT_SEC)
        self._thread = None
        self._client = None
        self._loop = None

    def current_user(self) -> str:
        return str(self.rest.get_current_user()["id"])

    def list_memberships(self) -> list[Guild]:
        return [Guild(id=str(g["id"]), name=str(g.get("name") or "")) for g in self.rest.list_guilds()]

    def list_roles(self, guild_id: str) -> list[Role]:
        return [Role(id=str(r["id"]), name=str(r.get("name") or "")) for r in self.rest.list_roles(guild_id)]

    def set_nickname(self, guild_id: str, user_id: str, nickname: str) -> None:
        # Discord only lets a bot rename itself through the @me member route
        try:
            self.rest.set_nickname(guild_id, nickname)
        except requests.RequestException as exc:
            raise PublishError(f"nickname rejected in {guild_id}: {exc}") from exc

    def set_activity(self, text: str) -> None:
        activity = discord.Game(name=text[:ACTIVITY_MAX_LEN])
        try:
            self._call(lambda client: client.change_presence(activity=activity))
        except Exception as exc:
            raise PublishError(f"activity rejected: {exc}") from exc

    def add_role(self, guild_id: str, user_id: str, role_id: str) -> None:
        try:
            self.rest.add_role(guild_id, user_id, role_id)
        except requests.RequestException as exc:
            raise PublishError(f"role add rejected in {guild_id}: {exc}") from exc

    def remove_role(self, guild_id: str, user_id: str, role_id: str) -> None:
        try:
            self.rest.remove_role(guild_id, user_id, role_id)
        except requests.RequestException as exc:
            raise PublishError(f"role remove rejected in {guild_id}: {exc}") from exc
