import asyncio
from pyodide.ffi import create_proxy, to_js
from pyscript import document, window

from dom import DomSink, DomSurface, TextAreaEditor
from engine import ENGINE_WASM_URL, GitleaksEngine
from share_composer import share_current_state
from share_errors import EngineLoadError
from share_loader import LoadReconciler

# ==========================================
# BLOCK 1. GLOBAL CONFIG & ENVIRONMENT
# ==========================================

INPUT_TEXTAREA_ID = "inputText"
CONFIG_TEXTAREA_ID = "configText"
SHARE_BUTTON_ID = "share-btn"
RESULTS_ID = "results"

EDITOR_OPTIONS = {
    "lineNumbers": True,
    "theme": "idea",
    "viewportMargin": float("inf"),
    "lineWrapping": True,
    "tabSize": 4,
    "indentWithTabs": False,
}

# Kept alive for the lifetime of the page
_HANDLERS = []


def _make_editor(textarea_id: str, mode: str):
    """CodeMirror on top of the textarea when the page ships it, the bare textarea otherwise."""
    textarea = document.getElementById(textarea_id)
    code_mirror = getattr(window, "CodeMirror", None)
    if code_mirror is None:
        print(f"[App] CodeMirror missing; using plain textarea for #{textarea_id}.")
        return TextAreaEditor(textarea)
    options = to_js({**EDITOR_OPTIONS, "mode": mode}, dict_converter=window.Object.fromEntries)
    return code_mirror.fromTextArea(textarea, options)


def _share_base_url() -> str:
    return f"{window.location.origin}{window.location.pathname}"


def _render_engine_error(message: str):
    results = document.getElementById(RESULTS_ID)
    if results:
        results.innerText = f"Failed to load Gitleaks WASM: {message}"


async def _load_engine(engine: GitleaksEngine, reconciler: LoadReconciler):
    try:
        await engine.load()
    except EngineLoadError as e:
        print(f"[App] CRITICAL: Engine load failed: {e}")
        _render_engine_error(str(e))
    finally:
        # Staged state still gets applied; the default-config branch probes and reports.
        reconciler.on_engine_ready()


# ===============================================
# BLOCK 2. INITIALIZATION (BOOTLOADER)
# ===============================================

async def main():
    """Builds the collaborators, then races the engine load against the shared-state decode."""
    fragment = str(window.location.hash or "")

    surface = DomSurface(document, window)
    sink = DomSink(
        document,
        input_editor=_make_editor(INPUT_TEXTAREA_ID, "text/plain"),
        config_editor=_make_editor(CONFIG_TEXTAREA_ID, "text/x-toml"),
    )
    engine = GitleaksEngine(window, ENGINE_WASM_URL)
    reconciler = LoadReconciler(sink, surface, engine)

    # --- Hook the Share button ---
    share_btn = document.getElementById(SHARE_BUTTON_ID)
    if share_btn:
        on_share = create_proxy(
            lambda event=None: share_current_state(sink, surface, engine, _share_base_url())
        )
        _HANDLERS.append(on_share)
        share_btn.addEventListener("click", on_share)

    applied, _ = await asyncio.gather(
        reconciler.run(fragment),
        _load_engine(engine, reconciler),
    )
    print(f"[App] Ready (shared state applied: {applied}).")


# Start the main asynchronous task
asyncio.ensure_future(main())
