from __future__ import annotations

import logging
from typing import Callable, Protocol, Sequence

from tickerbot.errors import PublishError
from tickerbot.schemas.chat import Guild, Role

RED_ROLE_NAME = "tickers-red"
GREEN_ROLE_NAME = "tickers-green"


class ChatSession(Protocol):
    def open(self) -> None: ...

    def close(self) -> None: ...

    def current_user(self) -> str: ...

    def list_memberships(self) -> list[Guild]: ...

    def set_nickname(self, guild_id: str, user_id: str, nickname: str) -> None: ...

    def set_activity(self, text: str) -> None: ...

    def list_roles(self, guild_id: str) -> list[Role]: ...

    def add_role(self, guild_id: str, user_id: str, role_id: str) -> None: ...

    def remove_role(self, guild_id: str, user_id: str, role_id: str) -> None: ...


def find_color_roles(roles: Sequence[Role]) -> tuple[str, str] | None:
    red = next((r.id for r in roles if r.name == RED_ROLE_NAME), None)
    green = next((r.id for r in roles if r.name == GREEN_ROLE_NAME), None)
    if not red or not green:
        return None
    return red, green


class PresenceUpdater:
    """Publishes one display update: nickname and color per guild, then activity."""

    def __init__(
        self,
        session: ChatSession,
        *,
        user_id: str,
        guilds: Sequence[Guild] = (),
        color_roles: dict[str, tuple[str, str]] | None = None,
        logger: logging.Logger | None = None,
        is_cancelled: Callable[[], bool] = lambda: False,
    ) -> None:
        self.session = session
        self.user_id = user_id
        self.guilds = list(guilds)
        self.color_roles = dict(color_roles or {})
        self.logger = logger or logging.getLogger(__name__)
        self.is_cancelled = is_cancelled

    @classmethod
    def resolve_color_roles(
        cls,
        session: ChatSession,
        guilds: Sequence[Guild],
        logger: logging.Logger,
    ) -> dict[str, tuple[str, str]]:
        out: dict[str, tuple[str, str]] = {}
        for guild in guilds:
            try:
                roles = session.list_roles(guild.id)
            except Exception as exc:
                logger.error("[PRESENCE][roles_error] guild=%s error=%s", guild.id, exc)
                continue
            pair = find_color_roles(roles)
            if pair is None:
                logger.error(
                    "[PRESENCE][roles_missing] guild=%s need=%s,%s",
                    guild.id,
                    RED_ROLE_NAME,
                    GREEN_ROLE_NAME,
                )
                continue
            out[guild.id] = pair
        return out

    def _color_pair(self, guild: Guild) -> tuple[str, str] | None:
        pair = self.color_roles.get(guild.id)
        if pair is not None:
            return pair
        # roles may have been created after setup
        try:
            pair = find_color_roles(self.session.list_roles(guild.id))
        except Exception as exc:
            self.logger.debug("[PRESENCE][roles_retry_error] guild=%s error=%s", guild.id, exc)
            return None
        if pair is not None:
            self.color_roles[guild.id] = pair
            self.logger.info("[PRESENCE][roles_found] guild=%s", guild.id)
        return pair

    def _apply_color(self, guild: Guild, increase: bool) -> None:
        pair = self._color_pair(guild)
        if pair is None:
            return
        red, green = pair
        remove_id, add_id = (red, green) if increase else (green, red)
        try:
            self.session.remove_role(guild.id, self.user_id, remove_id)
        except PublishError as exc:
            self.logger.error("[PRESENCE][role_remove_error] guild=%s error=%s", guild.id, exc)
        try:
            self.session.add_role(guild.id, self.user_id, add_id)
        except PublishError as exc:
            self.logger.error("[PRESENCE][role_add_error] guild=%s error=%s", guild.id, exc)

    def apply(self, *, nickname: str | None, activity: str, increase: bool | None = None) -> bool:
        """Publish the update; returns False when cancelled before finishing."""
        if nickname is not None:
            for guild in self.guilds:
                if self.is_cancelled():
                    return False
                try:
                    self.session.set_nickname(guild.id, self.user_id, nickname)
                except PublishError as exc:
                    self.logger.error("[PRESENCE][nickname_error] guild=%s error=%s", guild.id, exc)
                    continue
                self.logger.debug("[PRESENCE][nickname_set] guild=%s nickname=%s", guild.name or guild.id, nickname)

                if increase is not None and not self.is_cancelled():
                    self._apply_color(guild, increase)

        if self.is_cancelled():
            return False
        try:
            self.session.set_activity(activity)
        except PublishError as exc:
            self.logger.error("[PRESENCE][activity_error] error=%s", exc)
        else:
            self.logger.debug("[PRESENCE][activity_set] activity=%s", activity)
        return True
