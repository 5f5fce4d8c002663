# app.py
# CustomTkinter desktop editor for Clear.
# - Model check runs on a background thread (keeps UI responsive).
# - Generation is debounced by the editor session; highlights are text tags.
# - Content and caret persist to the configured store.

from __future__ import annotations
import argparse
import logging
import threading
from typing import Any, Callable, Optional

import customtkinter as ctk

# Project imports (ensure PYTHONPATH=src or an installed package)
from clear_editor import config as CFG
from clear_editor.DB.api import make_store
from clear_editor.inference import ChatCompletionClient
from clear_editor.models import Thought
from clear_editor.session import EditorSession

log = logging.getLogger("clear.app")


# -------------------- Tk event-loop adapter --------------------

class _AfterHandle:
    def __init__(self, widget: ctk.CTk, after_id: str) -> None:
        self._widget = widget
        self._after_id = after_id

    def cancel(self) -> None:
        # Tk ignores ids that already fired
        self._widget.after_cancel(self._after_id)


class TkLoop:
    """Exposes Tk's ``after`` queue through the call_later/call_soon interface."""

    def __init__(self, widget: ctk.CTk) -> None:
        self._widget = widget

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> _AfterHandle:
        return _AfterHandle(self._widget, self._widget.after(int(delay * 1000), callback, *args))

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> str:
        return self._widget.after_idle(callback, *args)

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> str:
        return self._widget.after(0, callback, *args)


# -------------------- main app --------------------

class ClearApp(ctk.CTk):
    """Writing surface on the left, the current thought on the right."""

    def __init__(self, client: ChatCompletionClient, db_dsn: str) -> None:
        super().__init__()

        # Theme
        ctk.set_appearance_mode("light")
        ctk.set_default_color_theme("blue")

        # Window
        self.title("Clear")
        self.geometry("1100x720")
        self.minsize(820, 560)

        # State
        self._client = client
        self._store = make_store(db_dsn)
        self._loading_thread: Optional[threading.Thread] = None
        self._syncing = False

        # Fonts
        self.font_text = ctk.CTkFont(family="Georgia", size=17)
        self.font_side = ctk.CTkFont(size=14)

        # Layout grid
        self.grid_columnconfigure(0, weight=3)
        self.grid_columnconfigure(1, weight=1)
        self.grid_rowconfigure(0, weight=1)

        # Build UI
        self._build_editor()
        self._build_sidebar()
        self._build_status()

        self.session = EditorSession(TkLoop(self), client, store=self._store, display=self)
        if self.session.restore():
            self._sync_from_surface()

        self.protocol("WM_DELETE_WINDOW", self._on_close)
        self._start_model_check()

    # --------- UI sections ---------

    def _build_editor(self) -> None:
        frame = ctk.CTkFrame(self, corner_radius=10)
        frame.grid(row=0, column=0, sticky="nsew", padx=(12, 6), pady=12)
        frame.grid_columnconfigure(0, weight=1)
        frame.grid_rowconfigure(0, weight=1)

        self.editor = ctk.CTkTextbox(frame, wrap="word", font=self.font_text, undo=True)
        self.editor.grid(row=0, column=0, sticky="nsew", padx=8, pady=8)
        self.editor.tag_config("highlight", background="#f4e2b0")
        self.editor.bind("<KeyPress>", self._on_keydown)
        self.editor.bind("<KeyRelease>", self._on_edit)
        self.editor.bind("<<Paste>>", lambda _ev: self.after_idle(self._on_edit))
        self.editor.focus_set()

    def _build_sidebar(self) -> None:
        side = ctk.CTkFrame(self, corner_radius=10)
        side.grid(row=0, column=1, sticky="nsew", padx=(6, 12), pady=12)
        side.grid_columnconfigure(0, weight=1)
        side.grid_rowconfigure(1, weight=1)

        self.lbl_question = ctk.CTkLabel(side, text="", wraplength=240, justify="left", font=self.font_side)
        self.lbl_question.grid(row=0, column=0, sticky="ew", padx=12, pady=(12, 6))

        self.txt_quotes = ctk.CTkTextbox(side, wrap="word", font=self.font_side)
        self.txt_quotes.grid(row=1, column=0, sticky="nsew", padx=12, pady=6)
        self.txt_quotes.configure(state="disabled")

        self.btn_generate = ctk.CTkButton(side, text="Reflect", command=self._on_generate, state="disabled")
        self.btn_generate.grid(row=2, column=0, sticky="ew", padx=12, pady=(6, 12))

    def _build_status(self) -> None:
        bar = ctk.CTkFrame(self, corner_radius=10)
        bar.grid(row=1, column=0, columnspan=2, sticky="ew", padx=12, pady=(0, 12))
        bar.grid_columnconfigure(1, weight=1)

        self.progress = ctk.CTkProgressBar(bar, mode="indeterminate", determinate_speed=1.2)
        self.progress.grid(row=0, column=0, padx=12, pady=8)

        self.lbl_status = ctk.CTkLabel(bar, text="", anchor="w")
        self.lbl_status.grid(row=0, column=1, sticky="ew", padx=6, pady=8)

        self.lbl_error = ctk.CTkLabel(bar, text="", anchor="e", text_color="#b3473a")
        self.lbl_error.grid(row=0, column=2, sticky="e", padx=12, pady=8)

    # --------- model check (threaded) ---------

    def _start_model_check(self) -> None:
        self.set_loading(True, "Loading model...")
        self._loading_thread = threading.Thread(target=self._load_worker, daemon=True)
        self._loading_thread.start()

    def _load_worker(self) -> None:
        try:
            self._client.load(progress=lambda text: self.after(0, lambda: self.set_loading(True, text)))
        except Exception as exc:
            self.after(0, lambda e=exc: self._on_load_error(e))
            return
        self.after(0, self._on_load_ok)

    def _on_load_ok(self) -> None:
        self.set_loading(False)
        self.btn_generate.configure(state="normal")
        self.editor.focus_set()

    def _on_load_error(self, exc: Exception) -> None:
        self.set_loading(False)
        self.set_error(str(exc) or "Failed to load model. Try again.")
        log.error("model check failed: %r", exc)

    # --------- editor events ---------

    def _caret(self) -> int:
        return len(self.editor.get("1.0", "insert"))

    def _on_keydown(self, _ev=None) -> None:
        self.session.on_keydown()

    def _on_edit(self, _ev=None) -> None:
        if self._syncing:
            return
        text = self.editor.get("1.0", "end-1c")
        if text != self.session.surface.plain_text():
            self.session.on_input(text, self._caret())

    def _on_generate(self) -> None:
        self.session.trigger()

    def _sync_from_surface(self) -> None:
        """Write the surface's text and caret into the widget (restore path)."""
        self._syncing = True
        try:
            self.editor.delete("1.0", "end")
            self.editor.insert("1.0", self.session.surface.plain_text())
            self.editor.mark_set("insert", f"1.0+{self.session.surface.caret_offset()}c")
        finally:
            self._syncing = False

    def _project_highlights(self) -> None:
        self.editor.tag_remove("highlight", "1.0", "end")
        for r in self.session.surface.highlight_ranges():
            self.editor.tag_add("highlight", f"1.0+{r.start}c", f"1.0+{r.end}c")

    # --------- StatusDisplay ---------

    def set_loading(self, show: bool, label: str = "Loading...") -> None:
        if show:
            self.progress.start()
            self.lbl_status.configure(text=label)
        else:
            self.progress.stop()
            self.lbl_status.configure(text="")

    def set_error(self, message: Optional[str]) -> None:
        self.lbl_error.configure(text=message or "")

    def show_thought(self, thought: Optional[Thought]) -> None:
        self._project_highlights()
        self.lbl_question.configure(text=thought.question if thought else "")
        self.txt_quotes.configure(state="normal")
        self.txt_quotes.delete("0.0", "end")
        if thought:
            self.txt_quotes.insert("end", "\n\n".join(f"“{s}”" for s in thought.sentences))
        self.txt_quotes.configure(state="disabled")

    # --------- lifecycle ---------

    def _on_close(self) -> None:
        self.session.close()
        self._client.shutdown()
        self._store.close()
        self.destroy()


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Clear desktop editor")
    ap.add_argument("--api-url", default=CFG.API_URL)
    ap.add_argument("--model", default=CFG.MODEL_ID)
    ap.add_argument("--api-key", default=CFG.API_KEY)
    ap.add_argument("--db", default="sqlite:///clear.sqlite")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO)

    client = ChatCompletionClient(args.api_url, args.model, api_key=args.api_key)
    ClearApp(client, args.db).mainloop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
