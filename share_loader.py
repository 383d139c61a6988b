"""
Load-time reconciliation of shared state with the scanning engine.

Two things finish independently on page entry: decoding the URL fragment and
the engine's own asynchronous load. Decoded state is parked in a PendingState
slot; engine readiness is the only trigger that consumes it. Consumption moves
the value out of the slot, so a second readiness signal finds nothing to apply.

    IDLE --begin()--> AWAITING_ENGINE --reconcile()--> RECONCILED

`overlay_visible` runs alongside: raised on entry when the URL has a fragment,
dropped when there turns out to be nothing to wait for, or at reconciliation.
"""

import asyncio
from enum import Enum
from typing import Dict, Optional

from share_codec import decompress
from share_errors import DecodeError, EngineUnavailableError
from share_fragment import decode_fragments
from share_interfaces import ConfigSource, NotificationSurface, PresentationSink
from share_schema import (
    DEFAULT_FLAG_VALUE,
    EXAMPLE_INPUT,
    FRAGMENT_CONF,
    FRAGMENT_CONTENT,
    FRAGMENT_DEFAULT,
    PendingState,
    content_from_payload,
    settings_from_flags,
    settings_from_payload,
)

MSG_SETTINGS_FAILED = "Failed to load shared configuration."
MSG_CONTENT_FAILED = "Failed to load shared content."
MSG_LOADED = "Shared configuration loaded successfully!"


class LoadPhase(str, Enum):
    IDLE = "IDLE"
    AWAITING_ENGINE = "AWAITING_ENGINE"
    RECONCILED = "RECONCILED"


class LoadReconciler:
    def __init__(
        self,
        sink: PresentationSink,
        surface: NotificationSurface,
        engine: ConfigSource,
        example_input: str = EXAMPLE_INPUT,
    ):
        self.sink = sink
        self.surface = surface
        self.engine = engine
        self.example_input = example_input
        self.phase = LoadPhase.IDLE
        self.overlay_visible = False
        self._pending: Optional[PendingState] = None
        self._ready = asyncio.Event()

    @property
    def pending(self) -> Optional[PendingState]:
        return self._pending

    # --- Entry: decode & stage ---

    def begin(self, fragment: str) -> None:
        """Decodes the URL fragment into the pending slot. Never raises."""
        if self.phase is not LoadPhase.IDLE:
            print("[Loader] begin() called twice; ignoring.")
            return

        fragment = (fragment or "").lstrip("#")
        if fragment:
            # Optimistic: assume there is something to load
            self._show_overlay()

        params = decode_fragments(fragment)
        if not any(k in params for k in (FRAGMENT_DEFAULT, FRAGMENT_CONF, FRAGMENT_CONTENT)):
            # Cold start: nothing shared, show the built-in example
            self._hide_overlay(fade=False)
            self.sink.set_input_text(self.example_input)
        else:
            self._pending = self._stage(params)
            if self._pending.is_empty():
                # Everything failed to decode; don't keep the user waiting on the engine
                self._pending = None
                self._hide_overlay(fade=False)

        self.phase = LoadPhase.AWAITING_ENGINE

    def _stage(self, params: Dict[str, str]) -> PendingState:
        pending = PendingState()

        # 1. Settings: literal default flag wins over a conf blob
        if params.get(FRAGMENT_DEFAULT) == DEFAULT_FLAG_VALUE:
            pending.settings = settings_from_flags(params)
        elif FRAGMENT_CONF in params:
            try:
                pending.settings = settings_from_payload(decompress(params[FRAGMENT_CONF]))
            except DecodeError as e:
                self._report(FRAGMENT_CONF, e, MSG_SETTINGS_FAILED)

        # 2. Content, independently of how settings fared
        if FRAGMENT_CONTENT in params:
            try:
                pending.input_text = content_from_payload(decompress(params[FRAGMENT_CONTENT]))
            except DecodeError as e:
                self._report(FRAGMENT_CONTENT, e, MSG_CONTENT_FAILED)

        return pending

    # --- Readiness & consumption ---

    def on_engine_ready(self) -> None:
        """Engine finished loading (or gave up). Safe to call any number of times."""
        self._ready.set()

    async def run(self, fragment: str) -> bool:
        """Stages `fragment`, waits for the engine, applies once."""
        self.begin(fragment)
        await self._ready.wait()
        return self.reconcile()

    def reconcile(self) -> bool:
        """
        Applies whatever is staged to the sink, at most once per page load.
        Returns True when shared state was applied.
        """
        if self.phase is not LoadPhase.AWAITING_ENGINE:
            return False

        pending, self._pending = self._pending, None
        self.phase = LoadPhase.RECONCILED

        if pending is None or pending.is_empty():
            self._seed_default_config()
            self._hide_overlay(fade=False)
            return False

        applied = self._apply(pending)
        self._hide_overlay(fade=True)
        if applied:
            self.surface.notify(MSG_LOADED)
        print(f"[Loader] Reconciled (applied={applied}).")
        return applied

    def _apply(self, pending: PendingState) -> bool:
        applied = False
        settings = pending.settings

        # Order: config, log level, tab, then input text
        if settings is not None:
            if settings.uses_default_config:
                try:
                    self.sink.set_config_text(self.engine.get_default_config())
                    applied = True
                except EngineUnavailableError as e:
                    self._report(FRAGMENT_DEFAULT, e, MSG_SETTINGS_FAILED)
            elif settings.config:
                self.sink.set_config_text(settings.config)
                applied = True
            else:
                # Shared before the sender's engine was up; an empty config means "default"
                self._seed_default_config()
                applied = True
            self.sink.set_log_level(settings.log_level)
            self.sink.set_active_tab(settings.active_tab)
        else:
            self._seed_default_config()

        if pending.input_text is not None:
            self.sink.set_input_text(pending.input_text)
            applied = True

        return applied

    def _seed_default_config(self) -> None:
        if not self.engine.is_ready():
            return
        try:
            self.sink.set_config_text(self.engine.get_default_config())
        except EngineUnavailableError as e:
            print(f"[Loader] Could not load default config: {e}")

    # --- Overlay & reporting ---

    def _show_overlay(self) -> None:
        if not self.overlay_visible:
            self.overlay_visible = True
            self.surface.show_overlay()

    def _hide_overlay(self, fade: bool) -> None:
        if self.overlay_visible:
            self.overlay_visible = False
            self.surface.hide_overlay(fade=fade)

    def _report(self, name: str, error: Exception, message: str) -> None:
        stage = getattr(error, "stage", None)
        detail = f" ({stage})" if stage else ""
        print(f"[Loader] Failed to load '{name}' fragment{detail}: {error}")
        self.surface.notify(message, "error")
