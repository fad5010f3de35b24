"""Utility functions for cdn-image.

Provides clipboard operations, output formatting and console helpers
for the command line interface.
"""

import pyperclip
from rich.console import Console


console = Console()


def copy_to_clipboard(text: str) -> bool:
    """Copy text to system clipboard.

    Args:
        text: Text to copy

    Returns:
        True if successful, False otherwise
    """
    try:
        pyperclip.copy(text)
        return True
    except pyperclip.PyperclipException:
        return False


def format_output(url: str, format_type: str, alt: str = "") -> str:
    """Format a URL as plain text, Markdown or an HTML img tag.

    Args:
        url: Delivery URL
        format_type: Output format (plain, markdown, html)
        alt: Alt text for markdown/html output

    Returns:
        Formatted output string
    """
    formatters = {
        'plain': lambda: url,
        'markdown': lambda: f"![{alt}]({url})",
        'html': lambda: f'<img src="{url}" alt="{alt}">',
    }
    return formatters.get(format_type, formatters['plain'])()


def parse_key_values(pairs: list[str]) -> dict[str, object]:
    """Parse repeated key=value CLI options into a dict.

    Integers and floats are converted; "true"/"false" become booleans.

    Raises:
        ValueError: If a pair has no '='
    """
    result: dict[str, object] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Expected key=value, got {pair!r}")
        key, value = pair.split("=", 1)
        result[key.strip()] = _convert(value.strip())
    return result


def _convert(value: str) -> object:
    if value in ("true", "false"):
        return value == "true"
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value


def print_success(message: str) -> None:
    """Print a success message with checkmark."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message with X mark."""
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message with exclamation mark."""
    console.print(f"[yellow]![/yellow] {message}")
