"""Rich formatters for CLI output.

Shared Console instance with a semantic theme:
- green: success
- yellow: warning
- red: error
- blue: info
"""

from rich.console import Console
from rich.theme import Theme

LEDGERDB_THEME = Theme(
    {
        "success": "green",
        "warning": "yellow",
        "error": "red",
        "info": "blue",
        "muted": "dim",
        "highlight": "bold cyan",
    }
)

console = Console(theme=LEDGERDB_THEME)

__all__ = ["LEDGERDB_THEME", "console"]
