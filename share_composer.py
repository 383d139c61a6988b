"""
Builds share links from the live session.

Settings go first (either the literal default flag or a `conf` blob), the
`content` blob last. Content is always included when it is not blank.
"""

from typing import List, Optional

from share_codec import compress
from share_errors import EngineUnavailableError
from share_fragment import encode_fragments, join_url
from share_interfaces import ConfigSource, NotificationSurface, PresentationSink
from share_schema import (
    DEFAULT_FLAG_VALUE,
    FRAGMENT_CONF,
    FRAGMENT_CONTENT,
    FRAGMENT_DEFAULT,
    FRAGMENT_LOG,
    FRAGMENT_TAB,
    SessionState,
    WireFragment,
    coerce_log_level,
    coerce_tab,
    content_payload,
    is_default_config,
    settings_payload,
)


def uses_default_config(state: SessionState, default_config: Optional[str]) -> bool:
    if state.uses_default_config or state.config is None:
        return True
    return is_default_config(state.config, default_config)


def build_fragments(state: SessionState, default_config: Optional[str] = None) -> List[WireFragment]:
    fragments: List[WireFragment] = []

    # 1. Settings: a three-pair flag when the receiver already knows the config
    if uses_default_config(state, default_config):
        fragments.append(WireFragment(FRAGMENT_DEFAULT, DEFAULT_FLAG_VALUE))
        fragments.append(WireFragment(FRAGMENT_LOG, coerce_log_level(state.log_level)))
        fragments.append(WireFragment(FRAGMENT_TAB, coerce_tab(state.active_tab)))
    else:
        fragments.append(WireFragment(FRAGMENT_CONF, compress(settings_payload(state))))

    # 2. Content, independent of the settings branch
    if state.has_content():
        fragments.append(WireFragment(FRAGMENT_CONTENT, compress(content_payload(state))))

    return fragments


def compose_fragment(state: SessionState, default_config: Optional[str] = None) -> str:
    return encode_fragments(build_fragments(state, default_config))


def compose(state: SessionState, base_url: str, default_config: Optional[str] = None) -> str:
    """Full shareable URL: origin + path of `base_url`, then '#' and the fragments."""
    return join_url(base_url, compose_fragment(state, default_config))


def snapshot(sink: PresentationSink) -> SessionState:
    """Read-only copy of what the editors and selectors currently show."""
    return SessionState(
        config=sink.get_config_text(),
        log_level=sink.get_log_level(),
        active_tab=sink.get_active_tab(),
        input_text=sink.get_input_text(),
    )


def probe_default_config(engine: Optional[ConfigSource]) -> Optional[str]:
    if engine is None:
        return None
    try:
        return engine.get_default_config()
    except EngineUnavailableError as e:
        print(f"[Share] Default config unavailable, sharing full config: {e}")
        return None


def share_current_state(
    sink: PresentationSink,
    surface: NotificationSurface,
    engine: Optional[ConfigSource],
    base_url: str,
) -> Optional[str]:
    """
    The "Share" button: snapshot, compose, show the link dialog.
    Returns the URL, or None when the link could not be built.
    """
    surface.notify("Generating share link...", "processing")
    try:
        url = compose(snapshot(sink), base_url, probe_default_config(engine))
    except Exception as e:
        print(f"[Share] Failed to create share link: {e}")
        surface.notify(f"Error creating share link: {e}", "error")
        return None
    finally:
        surface.dismiss("processing")

    surface.show_share_link(url)
    return url
