"""Rich styles for the browser, bundled in one immutable value."""

from dataclasses import dataclass

from .models import Level


@dataclass(frozen=True)
class Theme:
    title: str = "bold #ffffff on #6699ff"
    header: str = "bold #6699ff"
    cursor: str = "bold #66ff66"
    selected: str = "#ffffff on #6699ff"
    normal: str = "#888888"
    critical: str = "bold #ff6666"
    error: str = "#ffcc66"
    context_label: str = "bold #6699ff"
    error_line: str = "bold #ff6666"
    line_number: str = "#555555"
    help: str = "#888888"
    status: str = "#888888"
    filter: str = "bold #ffcc66"
    border_focused: str = "#6699ff"
    border_dim: str = "#555555"

    def level_style(self, level: Level, error_type: str = "") -> str:
        """System-type errors are shown as critical whatever their level."""
        if level is Level.CRITICAL or error_type == "system":
            return self.critical
        return self.error


DEFAULT_THEME = Theme()
