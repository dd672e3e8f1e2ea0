from __future__ import annotations

import logging
import threading
from typing import Callable

from tickerbot.errors import FormatError, SetupError, TransientFetchError
from tickerbot.schemas.instrument import InstrumentConfig
from tickerbot.schemas.watcher import WatcherRuntimeState
from tickerbot.services.activity import ActivityRotator
from tickerbot.services.display import compute_display, render_template
from tickerbot.services.presence import ChatSession, PresenceUpdater
from tickerbot.services.quote_sources import QuoteSource

EXTENDED_ACTIVITY_SLOTS = 4


class InstrumentWatcher:
    """Polls one instrument and publishes its price to the bot's presence.

    Lifecycle is ``STARTING -> POLLING -> STOPPED``. The loop waits on the
    stop event with the polling interval as timeout, so a shutdown request
    always wins over a pending tick.
    """

    def __init__(
        self,
        config: InstrumentConfig,
        *,
        source: QuoteSource,
        session: ChatSession,
        fx_resolver: Callable[[str], float] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.source = source
        self.session = session
        self.fx_resolver = fx_resolver
        self.logger = logger or logging.getLogger(f"tickerbot.watcher.{config.key}")

        self._display_config = config
        self.rotator = ActivityRotator(
            config.activity,
            extended_slots=EXTENDED_ACTIVITY_SLOTS if config.kind == "equity" and config.extended_activity else 0,
            smoothing=config.kind == "equity",
        )
        self._presence: PresenceUpdater | None = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._state = WatcherRuntimeState(
            key=config.key,
            kind=config.kind,
            name=config.label,
            frequency=config.frequency,
            nickname_enabled=config.nickname,
        )

    @property
    def key(self) -> str:
        return self.config.key

    def _update_state(self, **changes) -> None:
        with self._lock:
            for field, value in changes.items():
                setattr(self._state, field, value)

    def status(self) -> WatcherRuntimeState:
        with self._lock:
            return self._state.model_copy(deep=True)

    def setup(self) -> None:
        name = self.config.label
        try:
            self.session.open()
        except Exception as exc:
            raise SetupError(f"opening chat session for {name}: {exc}") from exc

        try:
            user_id = self.session.current_user()
        except Exception as exc:
            raise SetupError(f"getting bot id for {name}: {exc}") from exc

        nickname_enabled = self.config.nickname
        guilds = []
        try:
            guilds = self.session.list_memberships()
        except Exception as exc:
            self.logger.error("[WATCH][guilds_error] name=%s error=%s", name, exc)
            nickname_enabled = False

        color_roles: dict[str, tuple[str, str]] = {}
        if nickname_enabled and self.config.color:
            color_roles = PresenceUpdater.resolve_color_roles(self.session, guilds, self.logger)

        fx_rate = 0.0
        if self.config.currency != "USD" and self.fx_resolver is not None:
            try:
                fx_rate = float(self.fx_resolver(self.config.currency))
            except Exception as exc:
                self.logger.error(
                    "[WATCH][fx_error] name=%s currency=%s error=%s default=USD",
                    name,
                    self.config.currency,
                    exc,
                )
                fx_rate = 0.0

        if nickname_enabled != self.config.nickname:
            self._display_config = self.config.model_copy(update={"nickname": nickname_enabled})

        self._presence = PresenceUpdater(
            self.session,
            user_id=user_id,
            guilds=guilds,
            color_roles=color_roles,
            logger=self.logger,
            is_cancelled=self._stop_event.is_set,
        )
        self._update_state(fx_rate=fx_rate, nickname_enabled=nickname_enabled)

    def tick(self) -> bool:
        """Run one fetch/format/rotate/publish pass. Returns False when skipped."""
        if self._presence is None:
            raise RuntimeError("watcher setup has not completed")
        if self._stop_event.is_set():
            return False

        state = self.status()
        config = self._display_config
        self.logger.debug("[WATCH][tick] name=%s", config.label)

        try:
            quote = self.source.fetch()
            display = compute_display(
                quote,
                config,
                previous_price=state.last_price,
                fx_rate=state.fx_rate,
            )
        except (TransientFetchError, FormatError) as exc:
            self.logger.error("[WATCH][tick_skip] name=%s reason=%s", config.label, exc)
            self._update_state(failed_ticks=state.failed_ticks + 1, last_error=str(exc))
            return False

        if config.nickname:
            activity = self.rotator.next(
                display.activity,
                display.extended,
                render=lambda template: render_template(template, display, config.label),
            )
            increase = display.increase if config.color else None
        else:
            activity = display.activity
            increase = None

        published = self._presence.apply(nickname=display.nickname, activity=activity, increase=increase)
        self._update_state(
            last_price=display.price,
            ticks=state.ticks + 1,
            last_nickname=display.nickname if published else state.last_nickname,
            last_activity=activity if published else state.last_activity,
            rotation_index=self.rotator.index,
            rotation_parity=self.rotator.parity,
        )
        return published

    def _close_session(self) -> None:
        try:
            self.session.close()
        except Exception as exc:
            self.logger.error("[WATCH][session_close_error] name=%s error=%s", self.config.label, exc)

    def _run(self) -> None:
        name = self.config.label
        try:
            self.setup()
        except SetupError as exc:
            self.logger.error("[WATCH][setup_failed] name=%s error=%s", name, exc)
            self._update_state(status="STOPPED", last_error=str(exc))
            self._close_session()
            return

        self._update_state(status="POLLING")
        self.logger.info("[WATCH][start] kind=%s name=%s frequency=%s", self.config.kind, name, self.config.frequency)
        try:
            while not self._stop_event.wait(self.config.frequency):
                try:
                    self.tick()
                except Exception:
                    self.logger.exception("[WATCH][tick_error] name=%s", name)
                    continue
        finally:
            self._update_state(status="STOPPED")
            self._close_session()
            self.logger.info("[WATCH][stop] name=%s", name)

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                return
            self._thread = threading.Thread(
                target=self._run,
                daemon=True,
                name=f"watcher-{self.config.key}",
            )
        self._thread.start()

    def shutdown(self, wait: bool = False, timeout: float = 1.0) -> None:
        self._stop_event.set()
        if wait:
            self.join(timeout=timeout)

    def join(self, timeout: float | None = None) -> None:
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())
