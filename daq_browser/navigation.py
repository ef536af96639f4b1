"""Navigation state machine: modes, panel focus, cursors and filters.

Every transition takes a NavState and returns a new one. Store access only
happens on transitions that load data (selecting an area or a date, refresh).
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Callable

from .models import AreaSummary, ContextPayload, DateSummary, Error, ErrorGroup, Level
from .pipeline import (
    build_groups,
    filter_errors,
    filter_messages,
    locate_error,
    nearest_group_index,
    prepare_errors,
)
from .store import ErrorStore, StoreError

logger = logging.getLogger(__name__)


class Mode(Enum):
    AREA_PICKER = auto()
    DATE_PICKER = auto()
    ERROR_EXPLORER = auto()


class Panel(Enum):
    GROUPS = auto()
    ERRORS = auto()
    CONTEXT = auto()


class Action(Enum):
    UP = auto()
    DOWN = auto()
    PAGE_UP = auto()
    PAGE_DOWN = auto()
    HOME = auto()
    END = auto()
    SELECT = auto()
    BACK = auto()
    NEXT_PANEL = auto()
    PREV_PANEL = auto()
    TOGGLE_CRITICAL = auto()
    CLEAR_FILTERS = auto()
    REFRESH = auto()
    TOGGLE_ZOOM = auto()
    TOGGLE_HELP = auto()


class InputMode(Enum):
    TIME_JUMP = auto()
    COMPONENT = auto()
    MESSAGE = auto()


MOVES = frozenset({
    Action.UP, Action.DOWN, Action.PAGE_UP, Action.PAGE_DOWN, Action.HOME, Action.END,
})

DEFAULT_VISIBLE_ROWS = 15
MIN_VISIBLE_ROWS = 5
CHROME_ROWS = 10  # title, panel headers, borders, status and help lines
WHEEL_CONTEXT_LINES = 3

NEXT_PANEL = {Panel.GROUPS: Panel.ERRORS, Panel.ERRORS: Panel.CONTEXT, Panel.CONTEXT: Panel.GROUPS}
PREV_PANEL = {Panel.GROUPS: Panel.CONTEXT, Panel.ERRORS: Panel.GROUPS, Panel.CONTEXT: Panel.ERRORS}


def visible_rows_for(height: int) -> int:
    return max(MIN_VISIBLE_ROWS, height - CHROME_ROWS)


# ─── State ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class NavState:
    """Complete browser state: mode, focus, loaded data, cursors and filters."""
    mode: Mode = Mode.AREA_PICKER
    focus: Panel = Panel.GROUPS
    visible_rows: int = DEFAULT_VISIBLE_ROWS

    areas: tuple[AreaSummary, ...] = ()
    area_cursor: int = 0
    area_offset: int = 0
    selected_area: str = ""

    dates: tuple[DateSummary, ...] = ()
    date_cursor: int = 0
    date_offset: int = 0
    selected_date: str = ""

    all_errors: tuple[Error, ...] = ()
    filtered_errors: tuple[Error, ...] = ()
    groups: tuple[ErrorGroup, ...] = ()
    group_cursor: int = 0
    group_offset: int = 0
    error_cursor: int = 0
    error_offset: int = 0

    context: ContextPayload | None = None
    context_scroll: int = 0

    level_filter: Level | None = None
    component_filter: str = ""
    message_filter: str = ""

    zoomed: bool = False
    show_help: bool = False
    load_error: str = ""


# ─── Cursor arithmetic ────────────────────────────────────────────────────────

def clamp(cursor: int, length: int) -> int:
    if length <= 0:
        return 0
    return min(max(cursor, 0), length - 1)


def page_offset(cursor: int, page: int) -> int:
    return (cursor // page) * page


def keep_visible(cursor: int, offset: int, visible: int) -> int:
    """Shift offset by the overscroll amount so cursor stays on screen."""
    offset = max(0, offset)
    if cursor < offset:
        return cursor
    if cursor >= offset + visible:
        return cursor - visible + 1
    return offset


def move_cursor(cursor: int, offset: int, length: int, action: Action, visible: int) -> tuple[int, int]:
    """New (cursor, offset) for a movement action over a list of `length` rows."""
    if length <= 0:
        return 0, 0
    if action is Action.UP:
        cursor = clamp(cursor - 1, length)
        return cursor, keep_visible(cursor, offset, visible)
    if action is Action.DOWN:
        cursor = clamp(cursor + 1, length)
        return cursor, keep_visible(cursor, offset, visible)
    if action is Action.PAGE_UP:
        cursor = clamp(cursor - visible, length)
    elif action is Action.PAGE_DOWN:
        cursor = clamp(cursor + visible, length)
    elif action is Action.HOME:
        cursor = 0
    elif action is Action.END:
        cursor = length - 1
    else:
        return clamp(cursor, length), keep_visible(clamp(cursor, length), offset, visible)
    return cursor, page_offset(cursor, visible)


# ─── Derived views ────────────────────────────────────────────────────────────

def current_group(state: NavState) -> ErrorGroup | None:
    if 0 <= state.group_cursor < len(state.groups):
        return state.groups[state.group_cursor]
    return None


def current_group_errors(state: NavState) -> tuple[Error, ...]:
    """Errors of the selected group after the message filter."""
    group = current_group(state)
    if group is None:
        return ()
    return filter_messages(group.errors, state.message_filter)


def current_error(state: NavState) -> Error | None:
    errors = current_group_errors(state)
    if 0 <= state.error_cursor < len(errors):
        return errors[state.error_cursor]
    return None


def filter_count(state: NavState) -> str:
    """Return "(shown/total)" when a filter narrows the day, else ""."""
    if not state.all_errors or len(state.filtered_errors) == len(state.all_errors):
        return ""
    return f"({len(state.filtered_errors)}/{len(state.all_errors)})"


def search_prompt(state: NavState) -> InputMode | None:
    """Which filter "/" edits: component on Groups, message on Errors."""
    if state.mode is not Mode.ERROR_EXPLORER:
        return None
    if state.focus is Panel.GROUPS:
        return InputMode.COMPONENT
    if state.focus is Panel.ERRORS:
        return InputMode.MESSAGE
    return None


def max_context_scroll(state: NavState) -> int:
    if state.context is None:
        return 0
    return max(0, state.context.line_count - state.visible_rows)


# ─── Selection helpers ────────────────────────────────────────────────────────

def refresh_context(state: NavState) -> NavState:
    e = current_error(state)
    return replace(
        state,
        context=ContextPayload.from_error(e) if e is not None else None,
        context_scroll=0,
    )


def _select_group(state: NavState, cursor: int, offset: int) -> NavState:
    if cursor == state.group_cursor:
        return replace(state, group_offset=offset)
    # A message filter is scoped to one group and never follows the cursor
    state = replace(
        state,
        group_cursor=cursor,
        group_offset=offset,
        error_cursor=0,
        error_offset=0,
        message_filter="",
    )
    return refresh_context(state)


def _select_error(state: NavState, cursor: int, offset: int) -> NavState:
    if cursor == state.error_cursor:
        return replace(state, error_offset=offset)
    return refresh_context(replace(state, error_cursor=cursor, error_offset=offset))


def _reselect(state: NavState, error_id: int | None) -> NavState:
    """Point the cursors at error_id (kept visible), or at the first error."""
    found = locate_error(state.groups, error_id) if error_id is not None else None
    if found is None:
        state = replace(state, group_cursor=0, group_offset=0, error_cursor=0, error_offset=0)
    else:
        gi, ei = found
        vis = state.visible_rows
        state = replace(
            state,
            group_cursor=gi,
            group_offset=page_offset(gi, vis),
            error_cursor=ei,
            error_offset=page_offset(ei, vis),
        )
    return refresh_context(state)


def _scroll_context(state: NavState, delta: int) -> NavState:
    scroll = min(max(state.context_scroll + delta, 0), max_context_scroll(state))
    return replace(state, context_scroll=scroll)


def _fail(state: NavState, exc: StoreError) -> NavState:
    logger.exception("Store load failed")
    return replace(state, load_error=str(exc))


# ─── Filters ──────────────────────────────────────────────────────────────────

def apply_filters(state: NavState, level: Level | None, component: str) -> NavState:
    """Re-derive the filtered set and groups; cursors and message filter reset."""
    filtered = filter_errors(state.all_errors, level, component)
    logger.debug(
        "Filters level=%s component=%r → %d/%d errors",
        level.value if level else "-", component, len(filtered), len(state.all_errors),
    )
    state = replace(
        state,
        level_filter=level,
        component_filter=component,
        message_filter="",
        filtered_errors=filtered,
        groups=build_groups(filtered),
        group_cursor=0,
        group_offset=0,
        error_cursor=0,
        error_offset=0,
    )
    return refresh_context(state)


def apply_message_filter(state: NavState, text: str) -> NavState:
    """Narrow the selected group's errors by message text."""
    state = replace(state, message_filter=text, error_cursor=0, error_offset=0)
    return refresh_context(state)


def clear_filters(state: NavState) -> NavState:
    """Drop every filter, staying on the same error when it is still there."""
    selected = current_error(state)
    state = replace(
        state,
        level_filter=None,
        component_filter="",
        message_filter="",
        filtered_errors=state.all_errors,
        groups=build_groups(state.all_errors),
    )
    return _reselect(state, selected.id if selected else None)


def toggle_critical(state: NavState) -> NavState:
    level = None if state.level_filter is Level.CRITICAL else Level.CRITICAL
    return apply_filters(state, level, state.component_filter)


def jump_to_time(state: NavState, target: str) -> NavState:
    """Select the group nearest to an HH:MM target; bad input is ignored."""
    if state.mode is not Mode.ERROR_EXPLORER:
        return state
    idx = nearest_group_index(state.groups, target)
    if idx is None:
        return state
    message_filter = state.message_filter if idx == state.group_cursor else ""
    state = replace(
        state,
        group_cursor=idx,
        group_offset=page_offset(idx, state.visible_rows),
        error_cursor=0,
        error_offset=0,
        message_filter=message_filter,
    )
    return refresh_context(state)


def submit_input(state: NavState, mode: InputMode, text: str) -> NavState:
    """Apply the value typed into a prompt."""
    if mode is InputMode.TIME_JUMP:
        return jump_to_time(state, text)
    if mode is InputMode.COMPONENT:
        return apply_filters(state, state.level_filter, text.strip())
    return apply_message_filter(state, text.strip())


# ─── Loading ──────────────────────────────────────────────────────────────────

def _open_area(state: NavState, store: ErrorStore, area: str) -> NavState:
    try:
        dates = tuple(store.list_dates_with_errors(area))
    except StoreError as e:
        return _fail(state, e)
    return replace(
        state,
        mode=Mode.DATE_PICKER,
        selected_area=area,
        dates=dates,
        date_cursor=0,
        date_offset=0,
    )


def _open_day(state: NavState, store: ErrorStore, day: str) -> NavState:
    try:
        errors = prepare_errors(store.load_errors(state.selected_area, day))
    except StoreError as e:
        return _fail(state, e)
    date_cursor = next((i for i, d in enumerate(state.dates) if d.date == day), state.date_cursor)
    state = replace(
        state,
        mode=Mode.ERROR_EXPLORER,
        focus=Panel.GROUPS,
        selected_date=day,
        date_cursor=date_cursor,
        date_offset=keep_visible(date_cursor, state.date_offset, state.visible_rows),
        all_errors=errors,
        filtered_errors=errors,
        groups=build_groups(errors),
        group_cursor=0,
        group_offset=0,
        error_cursor=0,
        error_offset=0,
        level_filter=None,
        component_filter="",
        message_filter="",
        zoomed=False,
    )
    return refresh_context(state)


def _leave_explorer(state: NavState) -> NavState:
    cursor = next((i for i, d in enumerate(state.dates) if d.date == state.selected_date), 0)
    return replace(
        state,
        mode=Mode.DATE_PICKER,
        focus=Panel.GROUPS,
        date_cursor=cursor,
        date_offset=page_offset(cursor, state.visible_rows),
        all_errors=(),
        filtered_errors=(),
        groups=(),
        group_cursor=0,
        group_offset=0,
        error_cursor=0,
        error_offset=0,
        context=None,
        context_scroll=0,
        level_filter=None,
        component_filter="",
        message_filter="",
        zoomed=False,
    )


def _reload_areas(state: NavState, store: ErrorStore) -> NavState:
    try:
        areas = tuple(store.list_areas_with_errors())
    except StoreError as e:
        return _fail(state, e)
    cursor = clamp(state.area_cursor, len(areas))
    return replace(
        state,
        areas=areas,
        area_cursor=cursor,
        area_offset=keep_visible(cursor, state.area_offset, state.visible_rows),
    )


def _reload_dates(state: NavState, store: ErrorStore) -> NavState:
    try:
        dates = tuple(store.list_dates_with_errors(state.selected_area))
    except StoreError as e:
        return _fail(state, e)
    cursor = clamp(state.date_cursor, len(dates))
    return replace(
        state,
        dates=dates,
        date_cursor=cursor,
        date_offset=keep_visible(cursor, state.date_offset, state.visible_rows),
    )


def _reload_day(state: NavState, store: ErrorStore) -> NavState:
    selected = current_error(state)
    focus, level, component = state.focus, state.level_filter, state.component_filter
    state = _open_day(state, store, state.selected_date)
    if state.load_error:
        return state
    if level is not None or component:
        state = apply_filters(state, level, component)
    state = _reselect(state, selected.id if selected else None)
    return replace(state, focus=focus)


def initial_state(
    store: ErrorStore,
    area: str = "",
    day: str = "",
    at: str = "",
    height: int | None = None,
) -> NavState:
    """Startup state, optionally pre-navigated to an area, a day and a time."""
    state = NavState()
    if height is not None:
        state = replace(state, visible_rows=visible_rows_for(height))
    state = _reload_areas(state, store)
    if state.load_error or not area:
        return state
    area_cursor = next((i for i, a in enumerate(state.areas) if a.area == area), 0)
    state = replace(
        state,
        area_cursor=area_cursor,
        area_offset=page_offset(area_cursor, state.visible_rows),
    )
    state = _open_area(state, store, area)
    if state.load_error or not day:
        return state
    state = _open_day(state, store, day)
    if state.load_error or not at:
        return state
    return jump_to_time(state, at)


def resize(state: NavState, height: int) -> NavState:
    """Recompute visible rows and pull every offset back around its cursor."""
    vis = visible_rows_for(height)
    state = replace(
        state,
        visible_rows=vis,
        area_offset=keep_visible(state.area_cursor, state.area_offset, vis),
        date_offset=keep_visible(state.date_cursor, state.date_offset, vis),
        group_offset=keep_visible(state.group_cursor, state.group_offset, vis),
        error_offset=keep_visible(state.error_cursor, state.error_offset, vis),
    )
    return replace(state, context_scroll=min(state.context_scroll, max_context_scroll(state)))


# ─── Handlers: one per (mode, focus) ──────────────────────────────────────────

Handler = Callable[[NavState, Action, ErrorStore], NavState]


def _handle_area_picker(state: NavState, action: Action, store: ErrorStore) -> NavState:
    if action in MOVES:
        c, o = move_cursor(state.area_cursor, state.area_offset, len(state.areas), action, state.visible_rows)
        return replace(state, area_cursor=c, area_offset=o)
    if action is Action.SELECT:
        if not state.areas:
            return state
        return _open_area(state, store, state.areas[state.area_cursor].area)
    if action is Action.REFRESH:
        return _reload_areas(state, store)
    return state


def _handle_date_picker(state: NavState, action: Action, store: ErrorStore) -> NavState:
    if action in MOVES:
        c, o = move_cursor(state.date_cursor, state.date_offset, len(state.dates), action, state.visible_rows)
        return replace(state, date_cursor=c, date_offset=o)
    if action is Action.SELECT:
        if not state.dates:
            return state
        return _open_day(state, store, state.dates[state.date_cursor].date)
    if action is Action.BACK:
        return replace(state, mode=Mode.AREA_PICKER, dates=(), date_cursor=0, date_offset=0)
    if action is Action.REFRESH:
        return _reload_dates(state, store)
    return state


def _handle_explorer_common(state: NavState, action: Action, store: ErrorStore) -> NavState:
    if action is Action.NEXT_PANEL:
        return replace(state, focus=NEXT_PANEL[state.focus])
    if action is Action.PREV_PANEL:
        return replace(state, focus=PREV_PANEL[state.focus])
    if action is Action.TOGGLE_CRITICAL:
        return toggle_critical(state)
    if action is Action.CLEAR_FILTERS:
        return clear_filters(state)
    if action is Action.REFRESH:
        return _reload_day(state, store)
    if action is Action.TOGGLE_ZOOM:
        return replace(state, zoomed=not state.zoomed)
    return state


def _handle_groups(state: NavState, action: Action, store: ErrorStore) -> NavState:
    if action in MOVES:
        c, o = move_cursor(state.group_cursor, state.group_offset, len(state.groups), action, state.visible_rows)
        return _select_group(state, c, o)
    if action is Action.SELECT:
        if not state.groups:
            return state
        return refresh_context(replace(state, focus=Panel.ERRORS, error_cursor=0, error_offset=0))
    if action is Action.BACK:
        return _leave_explorer(state)
    return _handle_explorer_common(state, action, store)


def _handle_errors(state: NavState, action: Action, store: ErrorStore) -> NavState:
    if action in MOVES:
        errors = current_group_errors(state)
        c, o = move_cursor(state.error_cursor, state.error_offset, len(errors), action, state.visible_rows)
        return _select_error(state, c, o)
    if action is Action.SELECT:
        if state.context is None:
            return state
        return replace(state, focus=Panel.CONTEXT)
    if action is Action.BACK:
        return replace(state, focus=Panel.GROUPS)
    return _handle_explorer_common(state, action, store)


def _handle_context(state: NavState, action: Action, store: ErrorStore) -> NavState:
    half = max(1, state.visible_rows // 2)
    if action is Action.UP:
        return _scroll_context(state, -1)
    if action is Action.DOWN:
        return _scroll_context(state, 1)
    if action is Action.PAGE_UP:
        return _scroll_context(state, -half)
    if action is Action.PAGE_DOWN:
        return _scroll_context(state, half)
    if action is Action.HOME:
        return replace(state, context_scroll=0)
    if action is Action.END:
        return replace(state, context_scroll=max_context_scroll(state))
    if action is Action.SELECT:
        return state
    if action is Action.BACK:
        return replace(state, focus=Panel.ERRORS)
    return _handle_explorer_common(state, action, store)


HANDLERS: dict[tuple[Mode, Panel | None], Handler] = {
    (Mode.AREA_PICKER, None): _handle_area_picker,
    (Mode.DATE_PICKER, None): _handle_date_picker,
    (Mode.ERROR_EXPLORER, Panel.GROUPS): _handle_groups,
    (Mode.ERROR_EXPLORER, Panel.ERRORS): _handle_errors,
    (Mode.ERROR_EXPLORER, Panel.CONTEXT): _handle_context,
}


def dispatch(state: NavState, action: Action, store: ErrorStore) -> NavState:
    """Route an action to the handler for the current (mode, focus)."""
    if state.load_error:
        return state
    if action is Action.TOGGLE_HELP:
        return replace(state, show_help=not state.show_help)
    focus = state.focus if state.mode is Mode.ERROR_EXPLORER else None
    return HANDLERS[(state.mode, focus)](state, action, store)


# ─── Mouse ────────────────────────────────────────────────────────────────────

def click_row(state: NavState, panel: Panel | None, row: int) -> NavState:
    """Click on the row-th visible line of a list (panel is None in the pickers)."""
    if state.load_error:
        return state
    if state.mode is Mode.AREA_PICKER:
        idx = state.area_offset + row
        if 0 <= row < state.visible_rows and idx < len(state.areas):
            return replace(state, area_cursor=idx)
        return state
    if state.mode is Mode.DATE_PICKER:
        idx = state.date_offset + row
        if 0 <= row < state.visible_rows and idx < len(state.dates):
            return replace(state, date_cursor=idx)
        return state
    if panel is None:
        return state
    state = replace(state, focus=panel)
    if row < 0 or row >= state.visible_rows:
        return state
    if panel is Panel.GROUPS:
        idx = state.group_offset + row
        if idx < len(state.groups):
            return _select_group(state, idx, state.group_offset)
    elif panel is Panel.ERRORS:
        idx = state.error_offset + row
        if idx < len(current_group_errors(state)):
            return _select_error(state, idx, state.error_offset)
    return state


def wheel(state: NavState, delta: int, store: ErrorStore) -> NavState:
    """Mouse wheel: one row in lists, a few lines in the context panel."""
    if state.mode is Mode.ERROR_EXPLORER and state.focus is Panel.CONTEXT:
        if state.load_error:
            return state
        return _scroll_context(state, delta * WHEEL_CONTEXT_LINES)
    return dispatch(state, Action.DOWN if delta > 0 else Action.UP, store)
