"""Tests for the load-time state machine that applies shared links."""

from __future__ import annotations

import asyncio
import base64
import zlib

import pytest

from share_codec import compress
from share_loader import (
    MSG_CONTENT_FAILED,
    MSG_LOADED,
    MSG_SETTINGS_FAILED,
    LoadPhase,
    LoadReconciler,
)
from share_schema import EXAMPLE_INPUT

from fakes import FakeEngine, FakeSink, FakeSurface

CUSTOM_TOML = "title = 'custom'\n[[rules]]\nid = 'mine'\nregex = '''x{8}'''\n"
# Valid Base64 around a deflate stream cut short
CORRUPT = base64.b64encode(zlib.compress(b'{"inputText":"' + b"x" * 200 + b'"}')[:-8]).decode("ascii")


def conf_blob(config: str = CUSTOM_TOML, level: str = "Debug", tab: str = "wizard") -> str:
    return compress({"config": config, "logLevel": level, "activeTab": tab})


def content_blob(text: str) -> str:
    return compress({"inputText": text})


def make(sink: FakeSink, surface: FakeSurface, engine: FakeEngine | None = None) -> LoadReconciler:
    return LoadReconciler(sink, surface, engine or FakeEngine())


# --- Cold start ---

@pytest.mark.parametrize("fragment", ["", "#", "#foo=bar&&x"])
def test_cold_start_seeds_example_without_notifications(sink, surface, default_toml: str, fragment: str) -> None:
    reconciler = make(sink, surface)

    reconciler.begin(fragment)

    assert sink.input_text == EXAMPLE_INPUT
    assert reconciler.overlay_visible is False
    assert reconciler.pending is None

    reconciler.on_engine_ready()
    assert reconciler.reconcile() is False
    assert sink.config == default_toml
    assert surface.notifications() == []


def test_cold_start_never_shows_overlay_for_empty_fragment(sink, surface) -> None:
    asyncio.run(_ready_then_run(make(sink, surface), ""))

    assert surface.overlay_events() == []


async def _ready_then_run(reconciler: LoadReconciler, fragment: str) -> bool:
    reconciler.on_engine_ready()
    return await reconciler.run(fragment)


# --- Default flag branch ---

def test_default_flag_applies_engine_default_then_settings(sink, surface, default_toml: str) -> None:
    reconciler = make(sink, surface)
    fragment = "#default=1&log=Warn&tab=config&content=" + content_blob("aws = 'AKIA0000'")

    applied = asyncio.run(_ready_then_run(reconciler, fragment))

    assert applied is True
    assert sink.writes == [
        ("config", default_toml),
        ("log", "Warn"),
        ("tab", "config"),
        ("input", "aws = 'AKIA0000'"),
    ]
    assert surface.notifications() == [MSG_LOADED]
    assert surface.overlay_events() == [("show_overlay",), ("hide_overlay", True)]
    assert reconciler.phase is LoadPhase.RECONCILED


def test_default_flag_without_log_or_tab_uses_defaults(sink, surface) -> None:
    reconciler = make(sink, surface)

    asyncio.run(_ready_then_run(reconciler, "default=1&log=Shout"))

    assert sink.log_level == "Info"
    assert sink.tab == "scan"


def test_default_flag_with_engine_unavailable_reports_settings_failure(sink, surface) -> None:
    reconciler = make(sink, surface, FakeEngine(ready=False))
    fragment = "default=1&log=Trace&tab=entropy&content=" + content_blob("text")

    asyncio.run(_ready_then_run(reconciler, fragment))

    assert not any(name == "config" for name, _ in sink.writes)
    assert sink.log_level == "Trace"
    assert sink.input_text == "text"
    assert surface.notifications("error") == [MSG_SETTINGS_FAILED]
    assert reconciler.overlay_visible is False


# --- Conf branch ---

def test_conf_blob_is_applied_directly(sink, surface) -> None:
    engine = FakeEngine()
    reconciler = make(sink, surface, engine)

    asyncio.run(_ready_then_run(reconciler, "conf=" + conf_blob()))

    assert sink.writes == [("config", CUSTOM_TOML), ("log", "Debug"), ("tab", "wizard")]
    assert engine.probes == 0
    assert surface.notifications() == [MSG_LOADED]


def test_default_flag_wins_over_conf_blob(sink, surface, default_toml: str) -> None:
    reconciler = make(sink, surface)

    asyncio.run(_ready_then_run(reconciler, "default=1&conf=" + conf_blob()))

    assert sink.config == default_toml


@pytest.mark.parametrize(
    "payload",
    [
        ["not", "an", "object"],
        {"logLevel": "Info"},
        {"config": 42},
    ],
)
def test_conf_with_foreign_shape_is_a_settings_failure(sink, surface, payload) -> None:
    reconciler = make(sink, surface)

    applied = asyncio.run(_ready_then_run(reconciler, "conf=" + compress(payload)))

    assert applied is False
    assert surface.notifications("error") == [MSG_SETTINGS_FAILED]
    assert MSG_LOADED not in surface.notifications()


# --- Partial failure isolation ---

def test_corrupt_content_still_applies_settings(sink, surface, capsys: pytest.CaptureFixture[str]) -> None:
    reconciler = make(sink, surface)

    applied = asyncio.run(_ready_then_run(reconciler, f"conf={conf_blob()}&content={CORRUPT}"))

    assert applied is True
    assert sink.config == CUSTOM_TOML
    assert sink.log_level == "Debug"
    assert ("input", EXAMPLE_INPUT) not in sink.writes
    assert surface.notifications("error") == [MSG_CONTENT_FAILED]
    assert "Failed to load 'content' fragment (inflate)" in capsys.readouterr().out


def test_corrupt_conf_still_applies_content(sink, surface, default_toml: str) -> None:
    reconciler = make(sink, surface)

    applied = asyncio.run(_ready_then_run(reconciler, "conf=%%%&content=" + content_blob("keep me")))

    assert applied is True
    assert sink.input_text == "keep me"
    assert sink.config == default_toml
    assert surface.notifications("error") == [MSG_SETTINGS_FAILED]


def test_everything_corrupt_dismisses_overlay_at_once(sink, surface) -> None:
    reconciler = make(sink, surface)

    reconciler.begin(f"conf={CORRUPT}&content={CORRUPT}")

    assert reconciler.overlay_visible is False
    assert surface.overlay_events() == [("show_overlay",), ("hide_overlay", False)]
    assert surface.notifications("error") == [MSG_SETTINGS_FAILED, MSG_CONTENT_FAILED]

    reconciler.on_engine_ready()
    assert reconciler.reconcile() is False
    assert MSG_LOADED not in surface.notifications()


# --- Ordering & idempotence ---

@pytest.mark.parametrize("engine_first", [True, False])
def test_result_does_not_depend_on_which_side_finishes_first(engine_first: bool, default_toml: str) -> None:
    sink, surface = FakeSink(), FakeSurface()
    reconciler = make(sink, surface)
    fragment = f"default=1&log=Error&tab=scan&content={content_blob('x = 1')}"

    async def scenario() -> bool:
        if engine_first:
            reconciler.on_engine_ready()
            return await reconciler.run(fragment)
        task = asyncio.create_task(reconciler.run(fragment))
        await asyncio.sleep(0)
        # Decoded and staged, but nothing applied while the engine is loading
        assert reconciler.phase is LoadPhase.AWAITING_ENGINE
        assert reconciler.overlay_visible is True
        assert sink.writes == []
        reconciler.on_engine_ready()
        return await task

    assert asyncio.run(scenario()) is True
    assert sink.config == default_toml
    assert sink.input_text == "x = 1"
    assert sink.log_level == "Error"


def test_reconcile_applies_at_most_once(sink, surface) -> None:
    reconciler = make(sink, surface)
    reconciler.begin("conf=" + conf_blob() + "&content=" + content_blob("once"))
    reconciler.on_engine_ready()

    assert reconciler.reconcile() is True
    writes = list(sink.writes)
    assert reconciler.pending is None

    reconciler.on_engine_ready()
    assert reconciler.reconcile() is False
    assert sink.writes == writes
    assert surface.notifications() == [MSG_LOADED]


def test_reconcile_before_begin_is_a_no_op(sink, surface) -> None:
    reconciler = make(sink, surface)

    assert reconciler.reconcile() is False
    assert reconciler.phase is LoadPhase.IDLE
    assert sink.writes == []


def test_begin_twice_is_ignored(sink, surface) -> None:
    reconciler = make(sink, surface)
    reconciler.begin("conf=" + conf_blob())

    reconciler.begin("content=" + content_blob("late"))

    assert reconciler.pending is not None
    assert reconciler.pending.input_text is None
    assert surface.overlay_events() == [("show_overlay",)]


def test_empty_shared_text_is_not_applied(sink, surface) -> None:
    reconciler = make(sink, surface)

    asyncio.run(_ready_then_run(reconciler, "conf=" + conf_blob() + "&content=" + content_blob("")))

    assert not any(name == "input" for name, _ in sink.writes)


def test_empty_shared_config_keeps_the_engine_default(sink, surface, default_toml: str) -> None:
    reconciler = make(sink, surface)

    applied = asyncio.run(_ready_then_run(reconciler, "conf=" + conf_blob(config="", level="Warn")))

    assert applied is True
    assert sink.config == default_toml
    assert ("config", "") not in sink.writes
    assert sink.log_level == "Warn"
    assert sink.tab == "wizard"


def test_nested_json_content_does_not_break_loading(sink, surface) -> None:
    nested = base64.b64encode(zlib.compress(b"[" * 200_000, 9)).decode("ascii")
    reconciler = make(sink, surface)

    reconciler.begin(f"conf={conf_blob()}&content={nested}")

    assert reconciler.phase is LoadPhase.AWAITING_ENGINE
    assert surface.notifications("error") == [MSG_CONTENT_FAILED]

    reconciler.on_engine_ready()
    assert reconciler.reconcile() is True
    assert sink.config == CUSTOM_TOML
    assert reconciler.overlay_visible is False
