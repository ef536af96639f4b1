from dataclasses import replace

import pytest

from daq_browser.models import AreaSummary, ContextPayload, Level
from daq_browser.navigation import (
    Action,
    InputMode,
    Mode,
    NavState,
    Panel,
    apply_message_filter,
    click_row,
    current_error,
    current_group,
    current_group_errors,
    dispatch,
    filter_count,
    initial_state,
    move_cursor,
    resize,
    search_prompt,
    submit_input,
    wheel,
)

from conftest import DAY, FakeStore, make_error


def run(state, store, *actions):
    for action in actions:
        state = dispatch(state, action, store)
    return state


@pytest.fixture
def explorer(store):
    return initial_state(store, "tmo", DAY)


# ─── Cursor arithmetic ────────────────────────────────────────────────────────

class TestMoveCursor:
    def test_up_down_clamp(self):
        assert move_cursor(0, 0, 3, Action.UP, 5) == (0, 0)
        assert move_cursor(2, 0, 3, Action.DOWN, 5) == (2, 0)

    def test_down_scrolls_by_one(self):
        assert move_cursor(4, 0, 20, Action.DOWN, 5) == (5, 1)

    def test_paging_snaps_offset_to_page(self):
        assert move_cursor(3, 0, 23, Action.PAGE_DOWN, 5) == (8, 5)
        assert move_cursor(8, 5, 23, Action.PAGE_UP, 5) == (3, 0)

    def test_home_end(self):
        assert move_cursor(7, 5, 23, Action.HOME, 5) == (0, 0)
        assert move_cursor(0, 0, 23, Action.END, 5) == (22, 20)

    def test_empty_list(self):
        assert move_cursor(3, 2, 0, Action.DOWN, 5) == (0, 0)


def test_cursor_stays_visible_through_any_sequence():
    areas = [AreaSummary(f"h{i:02d}", 1, 1) for i in range(23)]
    store = FakeStore(areas=areas)
    state = initial_state(store, height=15)
    assert state.visible_rows == 5
    sequence = [
        Action.DOWN, Action.PAGE_DOWN, Action.DOWN, Action.END, Action.UP, Action.PAGE_UP,
        Action.PAGE_UP, Action.PAGE_DOWN, Action.HOME, Action.UP, Action.END, Action.DOWN,
        Action.PAGE_DOWN, Action.PAGE_UP, Action.DOWN, Action.DOWN, Action.DOWN,
    ]
    for action in sequence:
        state = dispatch(state, action, store)
        assert 0 <= state.area_cursor < len(areas)
        assert state.area_offset <= state.area_cursor < state.area_offset + state.visible_rows


# ─── Modes ────────────────────────────────────────────────────────────────────

class TestModes:
    def test_starts_in_area_picker(self, store):
        state = initial_state(store)
        assert state.mode is Mode.AREA_PICKER
        assert [a.area for a in state.areas] == ["mfx", "tmo"]

    def test_area_then_date_then_explorer(self, store):
        state = run(initial_state(store), store, Action.DOWN, Action.SELECT)
        assert state.mode is Mode.DATE_PICKER
        assert state.selected_area == "tmo"
        state = dispatch(state, Action.SELECT, store)
        assert state.mode is Mode.ERROR_EXPLORER
        assert state.selected_date == DAY
        assert state.focus is Panel.GROUPS
        assert len(state.groups) == 3
        assert state.context.error_id == 3

    def test_back_unwinds(self, store):
        state = run(initial_state(store), store, Action.DOWN, Action.SELECT, Action.DOWN, Action.SELECT)
        assert state.selected_date == "2025-01-14"
        state = dispatch(state, Action.BACK, store)
        assert state.mode is Mode.DATE_PICKER
        assert state.date_cursor == 1
        assert state.groups == () and state.context is None
        state = dispatch(state, Action.BACK, store)
        assert state.mode is Mode.AREA_PICKER
        assert state.dates == ()
        assert state.area_cursor == 1

    def test_back_in_area_picker_is_ignored(self, store):
        state = initial_state(store)
        assert dispatch(state, Action.BACK, store) == state

    def test_initial_state_prenavigates(self, store):
        state = initial_state(store, "tmo", DAY, "09:10")
        assert state.mode is Mode.ERROR_EXPLORER
        assert state.area_cursor == 1
        assert state.group_cursor == 2
        assert current_error(state).id == 4

    def test_initial_state_unknown_area(self, store):
        state = initial_state(store, "xpp")
        assert state.mode is Mode.DATE_PICKER
        assert state.dates == ()
        assert state.area_cursor == 0


# ─── Explorer panels ──────────────────────────────────────────────────────────

class TestPanels:
    def test_tab_cycles(self, explorer, store):
        focus = [run(explorer, store, *[Action.NEXT_PANEL] * n).focus for n in range(4)]
        assert focus == [Panel.GROUPS, Panel.ERRORS, Panel.CONTEXT, Panel.GROUPS]
        assert dispatch(explorer, Action.PREV_PANEL, store).focus is Panel.CONTEXT

    def test_select_and_back(self, explorer, store):
        state = dispatch(explorer, Action.SELECT, store)
        assert state.focus is Panel.ERRORS and state.error_cursor == 0
        state = dispatch(state, Action.SELECT, store)
        assert state.focus is Panel.CONTEXT
        state = dispatch(state, Action.BACK, store)
        assert state.focus is Panel.ERRORS
        state = dispatch(state, Action.BACK, store)
        assert state.focus is Panel.GROUPS
        assert state.mode is Mode.ERROR_EXPLORER

    def test_moving_errors_updates_context(self, explorer, store):
        state = run(explorer, store, Action.DOWN, Action.NEXT_PANEL, Action.DOWN)
        assert current_group(state).component == "teb"
        assert state.error_cursor == 1
        assert state.context.error_id == 2

    def test_context_scrolls(self, explorer, store):
        long = make_error(context_after="\n".join(f"line {i}" for i in range(20)))
        state = replace(explorer, focus=Panel.CONTEXT, context=ContextPayload.from_error(long))
        assert dispatch(state, Action.DOWN, store).context_scroll == 1
        assert dispatch(state, Action.UP, store).context_scroll == 0
        # 4 header + 1 error + 20 after, 15 visible
        assert dispatch(state, Action.END, store).context_scroll == 10
        assert run(state, store, Action.END, Action.HOME).context_scroll == 0
        assert run(state, store, Action.PAGE_DOWN, Action.PAGE_DOWN).context_scroll == 10

    def test_empty_day_is_navigable(self, store):
        state = initial_state(store, "tmo", "2025-01-14")
        assert state.groups == () and state.context is None
        assert dispatch(state, Action.SELECT, store) is state
        state = run(state, store, Action.DOWN, Action.END, Action.NEXT_PANEL, Action.DOWN)
        assert state.group_cursor == 0 and state.error_cursor == 0
        assert dispatch(state, Action.SELECT, store) is state

    def test_help_and_zoom_toggle(self, explorer, store):
        state = run(explorer, store, Action.TOGGLE_HELP, Action.TOGGLE_ZOOM)
        assert state.show_help and state.zoomed
        state = run(state, store, Action.TOGGLE_HELP, Action.TOGGLE_ZOOM)
        assert not state.show_help and not state.zoomed


# ─── Filters ──────────────────────────────────────────────────────────────────

class TestFilters:
    def test_toggle_critical(self, explorer, store):
        state = dispatch(explorer, Action.TOGGLE_CRITICAL, store)
        assert state.level_filter is Level.CRITICAL
        assert [e.id for e in state.filtered_errors] == [1]
        assert filter_count(state) == "(1/4)"
        state = dispatch(state, Action.TOGGLE_CRITICAL, store)
        assert state.level_filter is None
        assert len(state.groups) == 3
        assert filter_count(state) == ""

    def test_component_filter(self, explorer):
        state = submit_input(explorer, InputMode.COMPONENT, " DRP ")
        assert state.component_filter == "DRP"
        assert [(g.time, g.component) for g in state.groups] == [("07:50", "drp")]

    def test_clear_filters_keeps_selected_error(self, explorer, store):
        state = dispatch(explorer, Action.TOGGLE_CRITICAL, store)
        assert state.context.error_id == 1
        state = dispatch(state, Action.CLEAR_FILTERS, store)
        assert state.level_filter is None and state.component_filter == ""
        assert (state.group_cursor, state.error_cursor) == (1, 0)
        assert current_error(state).id == 1

    def test_message_filter_scoped_to_group(self, explorer, store):
        state = dispatch(explorer, Action.DOWN, store)
        state = apply_message_filter(state, "overflow")
        assert [e.id for e in current_group_errors(state)] == [2]
        assert state.context.error_id == 2
        # focus changes keep it
        state = run(state, store, Action.NEXT_PANEL, Action.BACK)
        assert state.message_filter == "overflow"
        # moving to another group drops it
        state = dispatch(state, Action.DOWN, store)
        assert state.message_filter == ""
        assert state.context.error_id == 4

    def test_no_match_message_filter(self, explorer):
        state = submit_input(explorer, InputMode.MESSAGE, "nothing like this")
        assert current_group_errors(state) == ()
        assert state.context is None

    def test_search_prompt_follows_focus(self, explorer, store):
        assert search_prompt(explorer) is InputMode.COMPONENT
        state = dispatch(explorer, Action.NEXT_PANEL, store)
        assert search_prompt(state) is InputMode.MESSAGE
        state = dispatch(state, Action.NEXT_PANEL, store)
        assert search_prompt(state) is None
        assert search_prompt(NavState()) is None


class TestTimeJump:
    def test_jump_to_nearest(self, explorer):
        state = submit_input(explorer, InputMode.TIME_JUMP, "09:00")
        assert state.group_cursor == 2
        assert state.context.error_id == 4

    @pytest.mark.parametrize("text", ["", "9", "25:00", "ab:cd"])
    def test_invalid_time_is_ignored(self, explorer, text):
        assert submit_input(explorer, InputMode.TIME_JUMP, text) is explorer

    def test_outside_explorer_is_ignored(self, store):
        state = initial_state(store)
        assert submit_input(state, InputMode.TIME_JUMP, "09:00") is state


# ─── Loading ──────────────────────────────────────────────────────────────────

class TestLoading:
    def test_refresh_keeps_selection_and_focus(self, explorer, store):
        state = run(explorer, store, Action.DOWN, Action.NEXT_PANEL, Action.DOWN)
        state = dispatch(state, Action.REFRESH, store)
        assert state.focus is Panel.ERRORS
        assert current_error(state).id == 2
        assert store.calls.count(("errors", "tmo", DAY)) == 2

    def test_refresh_keeps_level_filter(self, explorer, store):
        state = run(explorer, store, Action.TOGGLE_CRITICAL, Action.REFRESH)
        assert state.level_filter is Level.CRITICAL
        assert [e.id for e in state.filtered_errors] == [1]

    def test_failure_sets_load_error(self, store):
        state = initial_state(store)
        store.fail = True
        state = dispatch(state, Action.REFRESH, store)
        assert state.load_error == "database is locked"
        assert dispatch(state, Action.DOWN, store) is state
        assert click_row(state, None, 1) is state

    def test_failure_at_startup(self, store):
        store.fail = True
        assert initial_state(store, "tmo", DAY).load_error == "database is locked"

    def test_failure_while_opening_day(self, store):
        state = run(initial_state(store), store, Action.DOWN, Action.SELECT)
        store.fail = True
        state = dispatch(state, Action.SELECT, store)
        assert state.load_error
        assert state.mode is Mode.DATE_PICKER


# ─── Resize and mouse ─────────────────────────────────────────────────────────

class TestResizeAndMouse:
    def test_resize_pulls_offset_back(self, store):
        state = replace(initial_state(store), area_cursor=14, area_offset=0)
        state = resize(state, 15)
        assert state.visible_rows == 5
        assert state.area_offset == 10

    def test_resize_has_a_floor(self, store):
        assert resize(initial_state(store), 3).visible_rows == 5

    def test_click_in_picker(self, store):
        state = initial_state(store)
        assert click_row(state, None, 1).area_cursor == 1
        assert click_row(state, None, 5) is state
        assert click_row(state, None, -1) is state

    def test_click_below_picker_list_is_ignored(self):
        store = FakeStore(areas=[AreaSummary(f"h{i:02d}", 1, 1) for i in range(40)])
        state = initial_state(store, height=25)
        assert state.visible_rows == 15
        assert click_row(state, None, 14).area_cursor == 14
        assert click_row(state, None, 15) is state
        assert click_row(state, None, 20) is state

    def test_click_panel_focuses_and_selects(self, explorer):
        state = click_row(explorer, Panel.ERRORS, 0)
        assert state.focus is Panel.ERRORS
        state = click_row(state, Panel.GROUPS, 2)
        assert state.focus is Panel.GROUPS
        assert state.group_cursor == 2
        assert state.context.error_id == 4

    def test_wheel_moves_lists(self, explorer, store):
        assert wheel(explorer, 1, store).group_cursor == 1
        assert wheel(explorer, -1, store).group_cursor == 0

    def test_wheel_scrolls_context(self, explorer, store):
        long = make_error(context_before="\n".join(f"line {i}" for i in range(20)), line_number=30)
        state = replace(explorer, focus=Panel.CONTEXT, context=ContextPayload.from_error(long))
        assert wheel(state, 1, store).context_scroll == 3
        state = run_wheel(state, store, 5)
        assert state.context_scroll == 10


def run_wheel(state, store, steps):
    for _ in range(steps):
        state = wheel(state, 1, store)
    return state
