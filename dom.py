"""
DOM bindings for the share-link core: the editors and selectors it reads and
writes (DomSink) and the overlay / toast / dialog surface (DomSurface).

Both take `document` (and `window`) as arguments rather than importing them
from pyscript, so the module loads anywhere.
"""

import asyncio

from share_schema import DEFAULT_TAB

OVERLAY_FADE_SECONDS = 0.3
NOTIFICATION_SECONDS = 5.0
LOG_LEVEL_SELECT_ID = "logLevelSelect"

PROCESSING = "processing"


def _later(delay: float, callback) -> None:
    """Runs `callback` after `delay` on the page's event loop (right away if there is none)."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback()
        return
    loop.call_later(delay, callback)


def _remove(element) -> None:
    parent = element.parentNode
    if parent:
        parent.removeChild(element)


class TextAreaEditor:
    """CodeMirror-shaped wrapper for a bare <textarea>, for pages without CodeMirror."""

    def __init__(self, element):
        self.element = element

    def getValue(self) -> str:
        return str(self.element.value or "")

    def setValue(self, text: str) -> None:
        self.element.value = text

    def refresh(self) -> None:
        pass


# ===============================================
# PRESENTATION SINK
# ===============================================

class DomSink:
    def __init__(self, document, input_editor, config_editor, log_select_id: str = LOG_LEVEL_SELECT_ID):
        self.document = document
        self.input_editor = input_editor
        self.config_editor = config_editor
        self.log_select_id = log_select_id

    def get_config_text(self) -> str:
        return str(self.config_editor.getValue())

    def set_config_text(self, text: str) -> None:
        self.config_editor.setValue(text)
        self.config_editor.refresh()

    def get_input_text(self) -> str:
        return str(self.input_editor.getValue())

    def set_input_text(self, text: str) -> None:
        self.input_editor.setValue(text)
        self.input_editor.refresh()

    def get_log_level(self) -> str:
        select = self.document.getElementById(self.log_select_id)
        return str(select.value) if select else ""

    def set_log_level(self, level: str) -> None:
        select = self.document.getElementById(self.log_select_id)
        if select:
            select.value = level

    def get_active_tab(self) -> str:
        button = self.document.querySelector(".tab-btn.active")
        if not button:
            return DEFAULT_TAB
        return str(button.getAttribute("data-tab") or DEFAULT_TAB)

    def set_active_tab(self, tab: str) -> None:
        # Clicking goes through the tab controller, which owns the show/hide logic
        button = self.document.querySelector(f'.tab-btn[data-tab="{tab}"]')
        if button:
            button.click()


# ===============================================
# OVERLAY, NOTIFICATIONS, SHARE DIALOG
# ===============================================

class DomSurface:
    def __init__(self, document, window=None,
                 fade_seconds: float = OVERLAY_FADE_SECONDS,
                 notification_seconds: float = NOTIFICATION_SECONDS,
                 create_proxy=None):
        self.document = document
        self.window = window
        self.fade_seconds = fade_seconds
        self.notification_seconds = notification_seconds
        self.overlay = None
        self._proxies = []
        # pyodide.ffi.create_proxy unless given
        self.create_proxy = create_proxy
        self._share_modal = None
        self._share_handlers = []

    # --- Loading overlay ---

    def show_overlay(self) -> None:
        if self.overlay is not None:
            return
        self.document.body.classList.add("content-loading")
        overlay = self.document.createElement("div")
        overlay.className = "loading-overlay"
        overlay.innerHTML = (
            '<div class="loading-spinner"></div>'
            '<div class="loading-message">Loading shared configuration...</div>'
        )
        self.document.body.appendChild(overlay)
        self.overlay = overlay

    def hide_overlay(self, fade: bool = True) -> None:
        overlay, self.overlay = self.overlay, None
        if overlay is None:
            return
        self.document.body.classList.remove("content-loading")
        if not fade:
            _remove(overlay)
            return
        overlay.style.opacity = "0"
        _later(self.fade_seconds, lambda: _remove(overlay))

    # --- Toasts ---

    def dismiss(self, kind: str) -> None:
        for el in list(self.document.querySelectorAll(f".notification.notification-{kind}")):
            _remove(el)

    def notify(self, message: str, kind: str = "default") -> None:
        """Shows a toast; replaces any toast of the same kind. Processing toasts stay until dismissed."""
        self.dismiss(kind)
        note = self.document.createElement("div")
        note.className = f"notification notification-{kind}"
        if kind == PROCESSING:
            spinner = self.document.createElement("div")
            spinner.className = "notification-spinner"
            label = self.document.createElement("span")
            label.textContent = message
            note.appendChild(spinner)
            note.appendChild(label)
        else:
            note.textContent = message
        self.document.body.appendChild(note)

        if kind != PROCESSING:
            def fade_out():
                note.style.opacity = "0"
                _later(self.fade_seconds, lambda: _remove(note))
            _later(self.notification_seconds, fade_out)

    # --- Share dialog ---

    def close_share_link(self) -> None:
        """Removes the open share dialog and releases its event handlers."""
        modal, handlers = self._share_modal, self._share_handlers
        self._share_modal, self._share_handlers = None, []
        if modal is not None:
            _remove(modal)
        for proxy in handlers:
            proxy.destroy()
            self._proxies.remove(proxy)
        # Dialogs left by other scripts
        for el in list(self.document.querySelectorAll(".share-modal")):
            _remove(el)

    def show_share_link(self, url: str) -> None:
        create_proxy = self.create_proxy
        if create_proxy is None:
            from pyodide.ffi import create_proxy

        self.close_share_link()

        modal = self.document.createElement("div")
        modal.className = "share-modal"
        modal.innerHTML = (
            '<div class="share-modal-content">'
            "<h3>Share Link</h3>"
            "<p>Copy this link to share your configuration and content:</p>"
            '<input type="text" readonly>'
            '<div class="modal-actions">'
            '<button class="btn btn-primary copy-share-link">Copy to Clipboard</button>'
            '<button class="btn btn-secondary close-share-link">Close</button>'
            "</div></div>"
        )
        field = modal.querySelector("input")
        # Assigned as a property, never interpolated into markup
        field.value = url
        self.document.body.appendChild(modal)
        field.select()

        async def copy_link(event=None):
            field.select()
            try:
                await self.window.navigator.clipboard.writeText(url)
                self.notify("Link copied to clipboard!")
            except Exception as e:
                print(f"[Share] Failed to copy: {e}")
                self.notify("Failed to copy link. Please select and copy manually.", "error")

        def close(event=None):
            self.close_share_link()

        handlers = [create_proxy(copy_link), create_proxy(close)]
        self._share_modal, self._share_handlers = modal, handlers
        self._proxies.extend(handlers)
        modal.querySelector(".copy-share-link").addEventListener("click", handlers[0])
        modal.querySelector(".close-share-link").addEventListener("click", handlers[1])
