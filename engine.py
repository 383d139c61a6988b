"""
The Gitleaks WASM engine, seen from Python.

The Go binary registers its functions on `window` (getDefaultConfig,
getGitleaksVersion, setUserConfig, scanTextWithGitleaks) once its runtime is
started. Nothing may call into it before that, so every accessor probes first.
"""

from share_errors import EngineLoadError, EngineUnavailableError

ENGINE_WASM_URL = "gitleaks.wasm"


class GitleaksEngine:
    def __init__(self, window, wasm_url: str = ENGINE_WASM_URL):
        self.window = window
        self.wasm_url = wasm_url
        self.instance = None
        self._started = False

    def _exported(self, name: str):
        return getattr(self.window, name, None)

    def is_ready(self) -> bool:
        return self._started and self._exported("getDefaultConfig") is not None

    def get_default_config(self) -> str:
        if not self.is_ready():
            raise EngineUnavailableError("getDefaultConfig() not available; engine not loaded yet")
        return str(self.window.getDefaultConfig())

    def version(self):
        fn = self._exported("getGitleaksVersion")
        if not self._started or fn is None:
            return None
        return str(fn())

    async def load(self, fetch=None) -> None:
        """
        Fetches, instantiates and starts the engine.
        Raises EngineLoadError; on success is_ready() turns True.
        """
        if fetch is None:
            from pyodide.http import pyfetch as fetch

        print("[Engine] Starting Gitleaks loading process...")
        go_class = self._exported("Go")
        if go_class is None:
            raise EngineLoadError("Go is not defined! Make sure wasm_exec.js is loaded properly")
        go = go_class.new()

        # 1. Fetch
        print(f"[Engine] Fetching {self.wasm_url}...")
        try:
            response = await fetch(self.wasm_url)
        except Exception as e:
            raise EngineLoadError(f"Fetch of {self.wasm_url} failed: {e}") from e
        if not response.ok:
            raise EngineLoadError(f"HTTP error! status: {response.status}")

        # 2. Instantiate
        try:
            buffer = await response.buffer()
            result = await self.window.WebAssembly.instantiate(buffer, go.importObject)
        except Exception as e:
            raise EngineLoadError(f"WASM instantiation failed: {e}") from e
        self.instance = result.instance

        # 3. Run. The returned promise only settles when Go's main() exits, which it never does.
        go.run(self.instance)
        self._started = True

        if not self.is_ready():
            raise EngineLoadError("Engine started but registered no functions")
        print(f"[Engine] {self.version() or 'Gitleaks'} loaded and functions registered.")
