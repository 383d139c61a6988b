"""Collaborators the share-link core talks to. The DOM implementations live in dom.py."""

from typing import Protocol


class PresentationSink(Protocol):
    """The only surface through which the core reads or writes live session state."""

    def get_config_text(self) -> str: ...
    def set_config_text(self, text: str) -> None: ...
    def get_input_text(self) -> str: ...
    def set_input_text(self, text: str) -> None: ...
    def get_log_level(self) -> str: ...
    def set_log_level(self, level: str) -> None: ...
    def get_active_tab(self) -> str: ...
    def set_active_tab(self, tab: str) -> None: ...


class NotificationSurface(Protocol):
    """Loading overlay, toasts and the share-link dialog. Fire-and-forget."""

    def show_overlay(self) -> None: ...
    def hide_overlay(self, fade: bool = True) -> None: ...
    def notify(self, message: str, kind: str = "default") -> None: ...
    def dismiss(self, kind: str) -> None: ...
    def show_share_link(self, url: str) -> None: ...


class ConfigSource(Protocol):
    """The part of the scanning engine the core needs."""

    def is_ready(self) -> bool: ...

    def get_default_config(self) -> str:
        """Raises EngineUnavailableError until the engine is ready."""
        ...
