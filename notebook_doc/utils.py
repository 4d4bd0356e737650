"""
Utility functions for displaying notebook outputs.
"""

from rich.console import Group
from rich.markdown import Markdown
from rich.text import Text

from notebook_doc.outputs import AssetOutput, Frame, MarkdownText, TerminalText


def format_output(value) -> str:
    """
    Format a stored output value for display (plain text).

    Args:
        value: Output value from a cell's output list

    Returns:
        Formatted string for display
    """
    if isinstance(value, (TerminalText, MarkdownText)):
        return value.content

    elif isinstance(value, Frame):
        # Stored newest first; show in the order it was produced
        return "\n".join(format_output(nested) for _, nested in reversed(value.outputs))

    elif isinstance(value, AssetOutput):
        return f"[asset {value.assets.hash}]"

    return str(value)


def format_rich_output(value):
    """
    Format a stored output value as a Rich renderable.

    Args:
        value: Output value from a cell's output list

    Returns:
        Rich renderable object for console display
    """
    if isinstance(value, TerminalText):
        return Text(value.content.rstrip("\n"))

    elif isinstance(value, MarkdownText):
        return Markdown(value.content)

    elif isinstance(value, Frame):
        return Group(*(format_rich_output(nested) for _, nested in reversed(value.outputs)))

    elif isinstance(value, AssetOutput):
        text = Text()
        text.append("asset ", style="dim")
        text.append(value.assets.hash, style="cyan")
        if value.assets.js_path:
            text.append(f" ({value.assets.js_path})", style="dim")
        return text

    return Text(str(value), style="dim")


def get_cell_kind_icon(cell_kind) -> str:
    """Get a short label for the cell kind."""
    if hasattr(cell_kind, "value"):
        cell_kind = cell_kind.value
    return {"code": "py", "markdown": "md", "setup": "su"}.get(cell_kind, "??")


def truncate_text(text: str, max_length: int = 100) -> str:
    """Truncate text to max_length, adding ellipsis if needed."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
