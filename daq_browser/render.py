"""Rich renderables for each view. Pure functions of (state, theme)."""

from rich.text import Text

from .models import ContextPayload
from .navigation import (
    Mode,
    NavState,
    Panel,
    current_group,
    current_group_errors,
    filter_count,
)
from .theme import Theme

APP_TITLE = "DAQ Error Browser"

SHORT_HELP = "Press ? for help, q to quit"
EXPLORER_HINT = "↑↓ nav [{focus}]  tab switch  t time  c crit  / filter  a all  z zoom  r refresh  q quit"

HELP_KEYS = [
    ("↑/k", "up"), ("↓/j", "down"), ("←/h", "page up"), ("→/l", "page down"),
    ("g/home", "first"), ("G/end", "last"), ("enter", "select"), ("esc", "back"),
    ("tab", "next panel"), ("shift+tab", "prev panel"), ("t", "jump to time"),
    ("c", "critical only"), ("/", "filter"), ("a", "show all"), ("r", "refresh"),
    ("z", "zoom"), ("?", "help"), ("q", "quit"),
]

PANEL_NAMES = {Panel.GROUPS: "groups", Panel.ERRORS: "errors", Panel.CONTEXT: "context"}


def truncate(s: str, limit: int) -> str:
    if limit <= 3 or len(s) <= limit:
        return s
    return s[: limit - 3] + "..."


def render_help(theme: Theme) -> Text:
    text = Text()
    for i, (key, desc) in enumerate(HELP_KEYS):
        if i:
            text.append("  •  ", style=theme.help)
        text.append(key, style=theme.header)
        text.append(f" {desc}", style=theme.help)
    return text


def render_load_error(state: NavState) -> Text:
    return Text(f"Error: {state.load_error}\nPress q to quit.")


# ─── Pickers ──────────────────────────────────────────────────────────────────

def _picker(title: str, prompt: str, rows: list[str], cursor: int, offset: int,
            visible: int, empty: str, theme: Theme, show_help: bool) -> Text:
    text = Text()
    text.append(f" {title} ", style=theme.title)
    text.append(f"\n\n{prompt}\n\n")
    if not rows:
        text.append(f"{empty}\n", style=theme.help)
    for i in range(offset, min(offset + visible, len(rows))):
        if i == cursor:
            text.append("> ", style=theme.cursor)
            text.append(rows[i], style=theme.selected)
        else:
            text.append("  ")
            text.append(rows[i], style=theme.normal)
        text.append("\n")
    text.append("\n")
    if show_help:
        text.append_text(render_help(theme))
    else:
        text.append(SHORT_HELP, style=theme.help)
    return text


def render_area_picker(state: NavState, theme: Theme) -> Text:
    rows = [
        f"{a.area.upper():<6}  ({a.file_count} files, {a.error_count} errors)"
        for a in state.areas
    ]
    return _picker(
        APP_TITLE, "Select a hutch to browse:", rows, state.area_cursor, state.area_offset,
        state.visible_rows, "No hutches with errors", theme, state.show_help,
    )


def render_date_picker(state: NavState, theme: Theme) -> Text:
    rows = [f"{d.date}  ({d.file_count} files, {d.error_count} errors)" for d in state.dates]
    return _picker(
        f"{APP_TITLE} - {state.selected_area.upper()}", "Select a date to browse errors:",
        rows, state.date_cursor, state.date_offset, state.visible_rows,
        "No dates with errors", theme, state.show_help,
    )


# ─── Explorer ─────────────────────────────────────────────────────────────────

def render_title(state: NavState, theme: Theme) -> Text:
    text = Text()
    text.append(f" DAQ Errors - {state.selected_area.upper()} - {state.selected_date} ", style=theme.title)
    if state.level_filter is not None or state.component_filter:
        text.append("  ")
        if state.level_filter is not None:
            text.append(f"[{state.level_filter.label} only]", style=theme.critical)
        if state.component_filter:
            text.append(f" [/{state.component_filter}]", style=theme.filter)
    count = filter_count(state)
    if count:
        text.append(f"  {count}", style=theme.status)
    return text


def render_groups(state: NavState, theme: Theme, width: int = 40) -> Text:
    focused = state.focus is Panel.GROUPS
    text = Text()
    text.append("▸ Groups" if focused else "  Groups", style=theme.header if focused else theme.normal)
    text.append(f" ({len(state.groups)})\n")
    text.append("─" * max(1, min(width - 2, 25)) + "\n", style=theme.border_dim)
    if not state.groups:
        text.append("No groups", style=theme.help)
        return text
    end = min(state.group_offset + state.visible_rows, len(state.groups))
    for i in range(state.group_offset, end):
        g = state.groups[i]
        if i == state.group_cursor:
            text.append("> " if focused else "▸ ", style=theme.cursor if focused else "")
        else:
            text.append("  ")
        comp = g.component if len(g.component) <= 12 else g.component[:9] + "..."
        line = f"{g.time} {comp:<12} ({len(g.errors)})"
        text.append(line, style=theme.selected if i == state.group_cursor else theme.normal)
        text.append("\n")
    return text


def render_errors(state: NavState, theme: Theme, width: int = 40) -> Text:
    focused = state.focus is Panel.ERRORS
    errors = current_group_errors(state)
    group = current_group(state)
    text = Text()
    text.append("▸ Errors" if focused else "  Errors", style=theme.header if focused else theme.normal)
    if group is not None:
        if state.message_filter and len(errors) != len(group.errors):
            text.append(f" in {group.time} {group.component} ({len(errors)}/{len(group.errors)})")
        else:
            text.append(f" in {group.time} {group.component} ({len(errors)})")
    text.append("\n")
    text.append("─" * max(1, min(width - 2, 40)) + "\n", style=theme.border_dim)
    if not errors:
        text.append("No matching errors" if state.message_filter else "No errors in group", style=theme.help)
        return text
    msg_width = max(10, width - 10)
    end = min(state.error_offset + state.visible_rows, len(errors))
    for i in range(state.error_offset, end):
        e = errors[i]
        if i == state.error_cursor:
            text.append("> " if focused else "▸ ", style=theme.cursor if focused else "")
        else:
            text.append("  ")
        text.append(f"[{e.level.value}]", style=theme.level_style(e.level, e.error_type))
        text.append(f" {truncate(e.message, msg_width)}\n")
    return text


def context_lines(payload: ContextPayload, theme: Theme) -> list[Text]:
    """One Text per unwrapped context line (header block, before, error, after)."""
    lines = []
    head = Text()
    head.append("Component: ", style=theme.context_label)
    head.append(f"{payload.component} @ {payload.host}")
    lines.append(head)
    head = Text()
    head.append("File: ", style=theme.context_label)
    head.append(f"{payload.file_path}:{payload.line_number}")
    lines.append(head)
    head = Text()
    head.append("Type: ", style=theme.context_label)
    head.append(f"{payload.error_type}  ")
    head.append("Level: ", style=theme.context_label)
    head.append(payload.level.label)
    lines.append(head)
    lines.append(Text())
    for ln in payload.before:
        line = Text()
        line.append(f"{ln.number:4d} " if ln.number is not None else "     ", style=theme.line_number)
        line.append(ln.text)
        lines.append(line)
    lines.append(Text(f">>> {payload.line_number:4d} {payload.message}", style=theme.error_line))
    for ln in payload.after:
        line = Text()
        line.append(f"{ln.number:4d} ", style=theme.line_number)
        line.append(ln.text)
        lines.append(line)
    return lines


def render_context(state: NavState, theme: Theme, height: int | None = None) -> Text:
    if not state.groups:
        return Text("No errors", style=theme.help)
    if state.context is None:
        return Text("No error selected", style=theme.help)
    lines = context_lines(state.context, theme)
    start = state.context_scroll
    end = start + (height or state.visible_rows)
    return Text("\n").join(lines[start:end])


def render_status(state: NavState, theme: Theme) -> Text:
    text = Text()
    if state.groups:
        status = f"Group {state.group_cursor + 1}/{len(state.groups)}"
        group = current_group(state)
        if group is not None:
            status += f"  |  Error {state.error_cursor + 1}/{len(current_group_errors(state))} in group"
        if len(state.filtered_errors) != len(state.all_errors):
            status += f"  |  {len(state.filtered_errors)} of {len(state.all_errors)} total"
        text.append(status, style=theme.status)
    else:
        text.append("No errors match filter", style=theme.status)
    text.append("  ")
    if state.show_help:
        text.append("\n")
        text.append_text(render_help(theme))
    else:
        text.append(EXPLORER_HINT.format(focus=PANEL_NAMES[state.focus]), style=theme.help)
    return text


def render_zoomed(state: NavState, theme: Theme, width: int = 80) -> Text:
    """Focused panel only, full width, no borders."""
    name = PANEL_NAMES[state.focus].title()
    text = Text(f"[ZOOM: {name}]  z to exit  ↑↓ nav  tab switch panel\n\n", style=theme.help)
    if state.focus is Panel.GROUPS:
        if not state.groups:
            text.append("No groups\n")
        end = min(state.group_offset + state.visible_rows, len(state.groups))
        for i in range(state.group_offset, end):
            g = state.groups[i]
            cursor = "> " if i == state.group_cursor else "  "
            text.append(f"{cursor}{g.time} {g.component:<20} ({len(g.errors)} errors)\n")
    elif state.focus is Panel.ERRORS:
        errors = current_group_errors(state)
        if not errors:
            text.append("No matching errors\n" if state.message_filter else "No errors in group\n")
            return text
        group = current_group(state)
        text.append(f"Group: {group.time} {group.component} ({len(errors)} errors)\n\n")
        msg_width = max(20, width - 15)
        end = min(state.error_offset + state.visible_rows, len(errors))
        for i in range(state.error_offset, end):
            e = errors[i]
            cursor = "> " if i == state.error_cursor else "  "
            text.append(f"{cursor}[{e.level.value}] {truncate(e.message, msg_width)}\n")
    else:
        text.append_text(render_context(state, theme))
    return text


def render_screen(state: NavState, theme: Theme) -> Text | None:
    """Whole-screen text for modes without the three-panel layout, else None."""
    if state.load_error:
        return render_load_error(state)
    if state.mode is Mode.AREA_PICKER:
        return render_area_picker(state, theme)
    if state.mode is Mode.DATE_PICKER:
        return render_date_picker(state, theme)
    if state.zoomed:
        return render_zoomed(state, theme)
    return None
