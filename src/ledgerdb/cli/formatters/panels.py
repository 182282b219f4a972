"""Rich panels for important messages."""

from rich.panel import Panel

from ledgerdb.cli.formatters import console


def _panel(message: str, title: str, style: str, color: str) -> Panel:
    return Panel(
        f"[{style}]{message}[/]",
        title=f"[bold {color}]{title}[/]",
        border_style=color,
        expand=False,
    )


def info_panel(message: str, title: str = "Info") -> Panel:
    return _panel(message, title, "info", "blue")


def error_panel(message: str, title: str = "Error") -> Panel:
    return _panel(message, title, "error", "red")


def success_panel(message: str, title: str = "Success") -> Panel:
    return _panel(message, title, "success", "green")


def print_info(message: str, title: str = "Info") -> None:
    console.print(info_panel(message, title))


def print_error(message: str, title: str = "Error") -> None:
    console.print(error_panel(message, title))


def print_success(message: str, title: str = "Success") -> None:
    console.print(success_panel(message, title))


__all__ = [
    "error_panel",
    "info_panel",
    "print_error",
    "print_info",
    "print_success",
    "success_panel",
]
