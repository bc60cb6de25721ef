"""Result rendering and clipboard access."""

import shutil
import subprocess
import sys
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.markdown import Markdown

from .errors import XaError

console = Console()

# Tried in order on Linux; the first one installed is used
LINUX_CLIPBOARD_COMMANDS = [
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
]

# clip.exe only reads non-ASCII text correctly as UTF-16 with a BOM
WINDOWS_CLIPBOARD_ENCODING = "utf-16"


class ClipboardError(XaError):
    """Clipboard unavailable or copy failed."""
    pass


def _clipboard_command() -> Optional[list[str]]:
    if sys.platform == "darwin":
        return ["pbcopy"] if shutil.which("pbcopy") else None
    if sys.platform == "win32":
        return ["clip"]

    for command in LINUX_CLIPBOARD_COMMANDS:
        if shutil.which(command[0]):
            return command
    return None


def copy_to_clipboard(text: str) -> None:
    """Copy text to the system clipboard."""
    command = _clipboard_command()
    if command is None:
        raise ClipboardError(
            "no clipboard utility found (install wl-clipboard, xclip or xsel)"
        )

    encoding = WINDOWS_CLIPBOARD_ENCODING if sys.platform == "win32" else "utf-8"

    try:
        result = subprocess.run(command, input=text.encode(encoding), capture_output=True, timeout=5)
    except (OSError, subprocess.TimeoutExpired) as e:
        raise ClipboardError(f"{command[0]} failed: {e}") from e

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise ClipboardError(f"{command[0]} failed: {stderr}")


def render_output(text: str, show_success: bool, streamed: bool = False, copied: bool = True) -> None:
    """
    Print an LLM result.

    Streamed results are already on screen, so only the footer is added.
    """
    if not streamed:
        console.print(Markdown(text))

    if show_success:
        word_count = len(text.split())
        now = datetime.now().strftime("%H:%M:%S")
        status = "result has been copied to clipboard" if copied else "result ready"
        console.print(f"\n[dim]✓ {status} · tokens: {word_count} · {now}[/dim]", highlight=False)
