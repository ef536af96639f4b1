"""DAQ Error Browser — Textual TUI over the indexed DAQ error database."""

import logging
import sys

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Footer, Input, Static

from .config import BrowserConfig, ConfigError, configure_logging, load_config
from .navigation import (
    Action,
    InputMode,
    Mode,
    NavState,
    Panel,
    click_row,
    dispatch,
    initial_state,
    resize,
    search_prompt,
    submit_input,
    wheel,
)
from .render import (
    render_context,
    render_errors,
    render_groups,
    render_screen,
    render_status,
    render_title,
)
from .store import ErrorStore, SqliteErrorStore, StoreError
from .theme import DEFAULT_THEME, Theme
from .timeresolve import set_reference_timezone

logger = logging.getLogger(__name__)

# Rows above the first list entry: border, panel header, rule
PANEL_LIST_START = 3
# Picker lines above the first entry: title, blank, prompt, blank
PICKER_LIST_START = 4

PROMPTS = {
    InputMode.TIME_JUMP: ("Jump to Time", "Enter time (HH:MM):", "HH:MM", 5),
    InputMode.COMPONENT: ("Filter by Component", "Component:", "component name", 30),
    InputMode.MESSAGE: ("Filter by Message", "Message:", "message text", 60),
}


# ─── Prompt ───────────────────────────────────────────────────────────────────

class PromptScreen(ModalScreen[str | None]):
    """Single-line input dialog; dismisses with the text, or None on Esc."""

    DEFAULT_CSS = """
    PromptScreen {
        align: center middle;
    }

    #prompt-box {
        width: 44;
        height: auto;
        padding: 1 2;
        border: round #6699ff;
        background: $surface;
    }

    #prompt-title {
        text-style: bold;
        color: #6699ff;
        margin-bottom: 1;
    }

    #prompt-help {
        color: #888888;
        margin-top: 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel", show=False)]

    def __init__(self, mode: InputMode, initial: str = ""):
        super().__init__()
        self.mode = mode
        self.initial = initial

    def compose(self) -> ComposeResult:
        title, label, placeholder, limit = PROMPTS[self.mode]
        with Vertical(id="prompt-box"):
            yield Static(title, id="prompt-title")
            yield Static(label)
            yield Input(value=self.initial, placeholder=placeholder, max_length=limit, id="prompt-input")
            yield Static("Enter to confirm, Esc to cancel", id="prompt-help")

    def on_mount(self) -> None:
        self.query_one(Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss(None)


# ─── Panels ───────────────────────────────────────────────────────────────────

class ListPanel(Static):
    """One of the three explorer panels; forwards mouse input to the app."""

    def __init__(self, panel: Panel, **kwargs):
        super().__init__("", **kwargs)
        self.panel = panel

    def on_click(self, event: events.Click) -> None:
        self.app.handle_click(self.panel, event.y - PANEL_LIST_START)

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        self.app.handle_wheel(1)

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        self.app.handle_wheel(-1)


class ScreenView(Static):
    """Full-screen text for the pickers, zoom and load errors."""

    def on_click(self, event: events.Click) -> None:
        self.app.handle_click(None, event.y - PICKER_LIST_START)

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        self.app.handle_wheel(1)

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        self.app.handle_wheel(-1)


# ─── Textual App ──────────────────────────────────────────────────────────────

class DaqBrowserApp(App):
    """Hutch → date → three-panel error explorer."""

    DEFAULT_CSS = """
    Screen {
        background: transparent;
    }

    #header-bar {
        dock: top;
        height: 2;
        padding: 0 1;
        display: none;
    }

    #header-bar.visible {
        display: block;
    }

    #screen-view {
        height: 1fr;
        padding: 0 1;
    }

    #screen-view.hidden {
        display: none;
    }

    #panels {
        height: 1fr;
        display: none;
    }

    #panels.visible {
        display: block;
    }

    ListPanel {
        width: 1fr;
        height: 1fr;
        border: round #555555;
        padding: 0 1;
        margin: 0 1 0 0;
    }

    ListPanel.focused {
        border: round #6699ff;
    }

    #status-bar {
        dock: bottom;
        height: auto;
        padding: 0 1;
        display: none;
    }

    #status-bar.visible {
        display: block;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
        Binding("up,k", "nav('UP')", "Up", show=False),
        Binding("down,j", "nav('DOWN')", "Down", show=False),
        Binding("left,pageup,b,h", "nav('PAGE_UP')", "Page up", show=False),
        Binding("right,pagedown,f,l", "nav('PAGE_DOWN')", "Page down", show=False),
        Binding("home,g", "nav('HOME')", "First", show=False),
        Binding("end,G", "nav('END')", "Last", show=False),
        Binding("enter", "nav('SELECT')", "Select", show=True),
        Binding("escape", "nav('BACK')", "Back", show=True),
        Binding("tab", "nav('NEXT_PANEL')", "Next panel", show=False, priority=True),
        Binding("shift+tab", "nav('PREV_PANEL')", "Prev panel", show=False, priority=True),
        Binding("c", "nav('TOGGLE_CRITICAL')", "Critical", show=True),
        Binding("a", "nav('CLEAR_FILTERS')", "All", show=True),
        Binding("r", "nav('REFRESH')", "Refresh", show=True),
        Binding("z", "nav('TOGGLE_ZOOM')", "Zoom", show=True),
        Binding("question_mark", "nav('TOGGLE_HELP')", "Help", show=True, key_display="?"),
        Binding("t", "jump_time", "Time", show=True),
        Binding("slash", "search", "Filter", show=True, key_display="/"),
    ]

    def __init__(self, store: ErrorStore, config: BrowserConfig, theme: Theme = DEFAULT_THEME):
        super().__init__()
        self.store = store
        self.config = config
        self.browser_theme = theme
        self.state = NavState()
        self._view_ready = False

    def compose(self) -> ComposeResult:
        yield Static("", id="header-bar")
        yield ScreenView("", id="screen-view")
        with Horizontal(id="panels"):
            yield ListPanel(Panel.GROUPS, id="groups-panel")
            yield ListPanel(Panel.ERRORS, id="errors-panel")
            yield ListPanel(Panel.CONTEXT, id="context-panel")
        yield Static("", id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        cfg = self.config
        self.state = initial_state(self.store, cfg.hutch, cfg.date, cfg.time, self.size.height)
        self._view_ready = True
        self._refresh_view()

    def on_resize(self, event: events.Resize) -> None:
        self.state = resize(self.state, event.size.height)
        if self._view_ready:
            self._refresh_view()

    # ─── Input routing ────────────────────────────────────────────────────

    def _prompt_open(self) -> bool:
        return len(self.screen_stack) > 1

    def _apply(self, state: NavState) -> None:
        if state is not self.state:
            self.state = state
            self._refresh_view()

    def action_nav(self, name: str) -> None:
        """Feed a navigation action to the state machine."""
        if self._prompt_open():
            return
        self._apply(dispatch(self.state, Action[name], self.store))

    def action_jump_time(self) -> None:
        """Prompt for HH:MM and jump to the nearest group."""
        if self._prompt_open() or self.state.load_error:
            return
        if self.state.mode is not Mode.ERROR_EXPLORER:
            return
        self._open_prompt(InputMode.TIME_JUMP, "")

    def action_search(self) -> None:
        """Component filter on Groups, message filter on Errors."""
        if self._prompt_open() or self.state.load_error:
            return
        mode = search_prompt(self.state)
        if mode is None:
            return
        initial = self.state.component_filter if mode is InputMode.COMPONENT else self.state.message_filter
        self._open_prompt(mode, initial)

    def _open_prompt(self, mode: InputMode, initial: str) -> None:
        def done(value: str | None) -> None:
            if value is None:
                return
            self._apply(submit_input(self.state, mode, value))

        self.push_screen(PromptScreen(mode, initial), done)

    def handle_click(self, panel: Panel | None, row: int) -> None:
        if self._prompt_open():
            return
        self._apply(click_row(self.state, panel, row))

    def handle_wheel(self, delta: int) -> None:
        if self._prompt_open():
            return
        self._apply(wheel(self.state, delta, self.store))

    # ─── Rendering ────────────────────────────────────────────────────────

    def _refresh_view(self) -> None:
        state = self.state
        theme = self.browser_theme
        header = self.query_one("#header-bar", Static)
        screen_view = self.query_one("#screen-view", ScreenView)
        panels = self.query_one("#panels", Horizontal)
        status = self.query_one("#status-bar", Static)

        full = render_screen(state, theme)
        explorer = state.mode is Mode.ERROR_EXPLORER and not state.load_error
        if explorer:
            header.update(render_title(state, theme))
            header.add_class("visible")
            status.update(render_status(state, theme))
            status.add_class("visible")
        else:
            header.remove_class("visible")
            status.remove_class("visible")

        if full is not None:
            screen_view.update(full)
            screen_view.remove_class("hidden")
            panels.remove_class("visible")
            return

        screen_view.add_class("hidden")
        panels.add_class("visible")
        groups = self.query_one("#groups-panel", ListPanel)
        errors = self.query_one("#errors-panel", ListPanel)
        context = self.query_one("#context-panel", ListPanel)
        groups.update(render_groups(state, theme, groups.size.width or 40))
        errors.update(render_errors(state, theme, errors.size.width or 40))
        context.update(render_context(state, theme))
        for widget in (groups, errors, context):
            widget.set_class(widget.panel is state.focus, "focused")


def main(argv: list[str] | None = None) -> None:
    try:
        config = load_config(argv)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config)
    set_reference_timezone(config.tz)

    store = SqliteErrorStore(config.db_path)
    try:
        store.connect()
    except StoreError as e:
        print(f"Error connecting to database: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info("Starting browser on %s (tz=%s)", config.db_path, config.tz)
    try:
        DaqBrowserApp(store, config).run(mouse=config.mouse)
    finally:
        store.close()


if __name__ == "__main__":
    main()
