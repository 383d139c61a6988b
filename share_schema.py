import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from share_errors import ParseError

# ==========================================
# BLOCK 1. ENUMERATIONS & DEFAULTS
# ==========================================

# Levels accepted by the engine's scanText(); anything else is mapped to the default.
LOG_LEVELS = ("Trace", "Debug", "Info", "Warn", "Error")
DEFAULT_LOG_LEVEL = "Info"

TABS = ("scan", "config", "wizard", "entropy")
DEFAULT_TAB = "scan"

# Wire names of the fragments that may appear after the '#'
FRAGMENT_DEFAULT = "default"
FRAGMENT_LOG = "log"
FRAGMENT_TAB = "tab"
FRAGMENT_CONF = "conf"
FRAGMENT_CONTENT = "content"
DEFAULT_FLAG_VALUE = "1"

# Cold-start input: what a visitor sees when the URL carries no shared state.
EXAMPLE_INPUT = (
    "some fake secrets to mess around with\n\n"
    "discord_client_secret = '8dyfuiRyq=vVc3RRr_edRk-fK__JItpZ'\n"
    'const FastlyAPIToken = "uhZtofOcNnzoH6F5-m0bzsLvCqIjzNFG"'
)

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_config(text: Optional[str]) -> str:
    """Collapses every whitespace run to one space and trims the ends."""
    return _WHITESPACE_RUN.sub(" ", text or "").strip()


def is_default_config(config: Optional[str], default_config: Optional[str]) -> bool:
    if default_config is None:
        return False
    return normalize_config(config) == normalize_config(default_config)


def coerce_log_level(value: Any) -> str:
    return value if value in LOG_LEVELS else DEFAULT_LOG_LEVEL


def coerce_tab(value: Any) -> str:
    return value if value in TABS else DEFAULT_TAB


# ==========================================
# BLOCK 2. STATE SHAPES
# ==========================================

@dataclass(frozen=True)
class SessionState:
    """
    One shareable snapshot of an editing session.

    `config` of None means "use the engine's default configuration";
    `uses_default_config` is derived by the composer (or set by the default
    flag on load) and is never serialized.
    """
    config: Optional[str] = None
    log_level: Optional[str] = None
    active_tab: Optional[str] = None
    input_text: Optional[str] = None
    uses_default_config: bool = False

    def has_content(self) -> bool:
        return bool(self.input_text and self.input_text.strip())


@dataclass(frozen=True)
class WireFragment:
    name: str
    payload: str

    def render(self) -> str:
        return f"{self.name}={self.payload}"


@dataclass
class PendingState:
    """
    Staging slot for state decoded from the URL but not applied yet.

    Settings and input text are kept apart: the default-config branch only
    supplies settings, and text merges in whichever settings branch was taken.
    """
    settings: Optional[SessionState] = None
    input_text: Optional[str] = None

    def is_empty(self) -> bool:
        return self.settings is None and self.input_text is None


# ==========================================
# BLOCK 3. JSON PAYLOAD SHAPES
# ==========================================
# Key names match the links produced by the JavaScript build of the page.

def settings_payload(state: SessionState) -> Dict[str, Any]:
    return {
        "config": state.config or "",
        "logLevel": state.log_level or DEFAULT_LOG_LEVEL,
        "activeTab": state.active_tab or DEFAULT_TAB,
    }


def content_payload(state: SessionState) -> Dict[str, Any]:
    return {"inputText": state.input_text or ""}


def _expect_object(payload: Any, what: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ParseError(f"{what} payload is {type(payload).__name__}, expected an object")
    return payload


def _optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        raise ParseError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def settings_from_payload(payload: Any) -> SessionState:
    """Turns a decoded `conf` payload into settings; rejects foreign shapes."""
    obj = _expect_object(payload, "settings")
    config = _optional_str(obj, "config")
    if config is None:
        raise ParseError("settings payload carries no 'config'")
    return SessionState(
        config=config,
        log_level=coerce_log_level(_optional_str(obj, "logLevel")),
        active_tab=coerce_tab(_optional_str(obj, "activeTab")),
    )


def content_from_payload(payload: Any) -> Optional[str]:
    """Returns the shared input text, or None when the payload holds none."""
    obj = _expect_object(payload, "content")
    return _optional_str(obj, "inputText") or None


def settings_from_flags(fragments: Dict[str, str]) -> SessionState:
    """Builds settings for the literal `default=1&log=..&tab=..` form."""
    return SessionState(
        log_level=coerce_log_level(fragments.get(FRAGMENT_LOG)),
        active_tab=coerce_tab(fragments.get(FRAGMENT_TAB)),
        uses_default_config=True,
    )
