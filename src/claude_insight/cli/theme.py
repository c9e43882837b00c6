from __future__ import annotations

from rich.theme import Theme

from claude_insight.storage.models import InsightType

THEMES: dict[str, dict[str, str]] = {
    "dark+": {
        # VSCode Dark+ theme
        "error": "bright_red",
        "success": "bright_green",
        "warning": "bright_yellow",
        "info": "bright_cyan",
        "dim": "dim white",
        "bold": "bold white",
        "accent": "cyan",
        "table_header": "cyan",
        "insight.decision": "bold bright_blue",
        "insight.learning": "bold bright_green",
        "insight.workitem": "bold bright_yellow",
        "insight.effort": "bold bright_magenta",
    },
    "light+": {
        # VSCode Light+ theme
        "error": "red",
        "success": "green",
        "warning": "yellow",
        "info": "blue",
        "dim": "dim black",
        "bold": "bold black",
        "accent": "blue",
        "table_header": "blue",
        "insight.decision": "bold blue",
        "insight.learning": "bold green",
        "insight.workitem": "bold #949800",
        "insight.effort": "bold magenta",
    },
    "monokai": {
        "error": "#f92672",
        "success": "#a6e22e",
        "warning": "#fd971f",
        "info": "#66d9ef",
        "dim": "dim #75715e",
        "bold": "bold #f8f8f2",
        "accent": "#ae81ff",
        "table_header": "#66d9ef",
        "insight.decision": "bold #66d9ef",
        "insight.learning": "bold #a6e22e",
        "insight.workitem": "bold #fd971f",
        "insight.effort": "bold #ae81ff",
    },
    "nord": {
        "error": "#bf616a",
        "success": "#a3be8c",
        "warning": "#ebcb8b",
        "info": "#88c0d0",
        "dim": "dim #4c566a",
        "bold": "bold #eceff4",
        "accent": "#81a1c1",
        "table_header": "#88c0d0",
        "insight.decision": "bold #81a1c1",
        "insight.learning": "bold #a3be8c",
        "insight.workitem": "bold #ebcb8b",
        "insight.effort": "bold #b48ead",
    },
}

DEFAULT_THEME = "dark+"


class ThemeManager:
    """Resolves theme names into Rich Theme objects."""

    def __init__(self, theme_name: str = DEFAULT_THEME):
        if theme_name not in THEMES:
            theme_name = DEFAULT_THEME
        self.theme_name = theme_name
        self._theme = self._create_theme(theme_name)

    @staticmethod
    def get_available_themes() -> list[str]:
        return list(THEMES.keys())

    @staticmethod
    def is_valid_theme(theme_name: str) -> bool:
        return theme_name in THEMES

    @staticmethod
    def _create_theme(theme_name: str) -> Theme:
        return Theme(THEMES[theme_name], inherit=True)

    def get_theme(self) -> Theme:
        return self._theme

    def get_theme_name(self) -> str:
        return self.theme_name

    def set_theme(self, theme_name: str) -> None:
        """Change the current theme."""
        if not self.is_valid_theme(theme_name):
            available = ", ".join(self.get_available_themes())
            raise ValueError(f"Invalid theme: {theme_name}. Available: {available}")
        self.theme_name = theme_name
        self._theme = self._create_theme(theme_name)

    @staticmethod
    def insight_style(insight_type: InsightType) -> str:
        """Style name for an insight type, usable as Rich markup."""
        return f"insight.{insight_type.value}"
