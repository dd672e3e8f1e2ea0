from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests


class DiscordRestClient:
    """Minimal Discord REST client for the bot's own member and roles."""

    _BASE_URL = "https://discord.com/api/v10"

    def __init__(self, token: str, session: Optional[Any] = None, base_url: Optional[str] = None) -> None:
        if not token:
            raise ValueError("discord bot token is required")
        self.token = token
        self.base_url = base_url or self._BASE_URL
        self.session = session or requests

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "authorization": f"Bot {self.token}",
            "content-type": "application/json",
        }

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self.session.request(
            method,
            f"{self.base_url}{path}",
            headers=self.headers,
            timeout=5,
            **kwargs,
        )
        response.raise_for_status()
        if response.status_code == 204:
            return None
        return response.json()

    def get_current_user(self) -> Dict[str, Any]:
        return self._request("GET", "/users/@me")

    def list_guilds(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/users/@me/guilds", params={"limit": 100})

    def set_nickname(self, guild_id: str, nickname: str) -> None:
        self._request("PATCH", f"/guilds/{guild_id}/members/@me", json={"nick": nickname})

    def list_roles(self, guild_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/guilds/{guild_id}/roles")

    def add_role(self, guild_id: str, user_id: str, role_id: str) -> None:
        self._request("PUT", f"/guilds/{guild_id}/members/{user_id}/roles/{role_id}")

    def remove_role(self, guild_id: str, user_id: str, role_id: str) -> None:
        self._request("DELETE", f"/guilds/{guild_id}/members/{user_id}/roles/{role_id}")
