"""Interactive `ask` mode: a line-oriented loop with in-memory history."""

import logging
from typing import Callable, Optional, Protocol

from rich.console import Console
from rich.markup import escape

from .errors import XaError
from .llm import LLMError
from .output import copy_to_clipboard

log = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

EXIT_COMMANDS = {"exit", "quit", "/exit", "/quit"}
CLEAR_COMMAND = "/clear"
HISTORY_COMMAND = "/history"

BANNER = (
    "Starting interactive mode. Type your message and press Enter. "
    "Type 'exit' or 'quit' to end, '/clear' to forget the conversation, "
    "'/history' to show it, or press Ctrl+C to exit."
)


class ChatClient(Protocol):
    def chat(self, messages: list[dict], stream: bool = False) -> str: ...


class Conversation:
    """Message history for one interactive session. Never persisted."""

    def __init__(self, system_prompt: str = "") -> None:
        self.system_prompt = system_prompt
        self._history: list[dict] = []

    @property
    def turns(self) -> list[dict]:
        return list(self._history)

    def add_user(self, content: str) -> None:
        self._history.append({"role": "user", "content": content})

    def add_assistant(self, content: str) -> None:
        self._history.append({"role": "assistant", "content": content})

    def drop_last(self) -> None:
        if self._history:
            self._history.pop()

    def clear(self) -> None:
        self._history.clear()

    def messages(self) -> list[dict]:
        """Messages to send, system prompt first."""
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.extend(self._history)
        return messages


def show_history(conversation: Conversation) -> None:
    turns = conversation.turns
    if not turns:
        console.print("[dim]No messages yet.[/dim]")
        return
    for turn in turns:
        style = "cyan" if turn["role"] == "user" else "green"
        console.print(f"[{style}]{turn['role']}:[/{style}]", end=" ")
        console.print(turn["content"], markup=False, highlight=False)


def _copy_quietly(text: str) -> bool:
    try:
        copy_to_clipboard(text)
        return True
    except XaError as e:
        log.debug("Clipboard copy failed: %s", e)
        return False


def ask_once(client: ChatClient, conversation: Conversation, text: str, stream: bool = True) -> str:
    """Send one user message with the full history and record the answer."""
    conversation.add_user(text)
    try:
        answer = client.chat(conversation.messages(), stream=stream)
    except (LLMError, KeyboardInterrupt):
        conversation.drop_last()
        raise
    conversation.add_assistant(answer)
    return answer


def run_interactive(
    client: ChatClient,
    conversation: Conversation,
    read_line: Optional[Callable[[str], str]] = None,
    first_message: Optional[str] = None,
    copy: Callable[[str], bool] = _copy_quietly,
) -> None:
    """Read lines until exit, sending each to the LLM with the history so far."""
    read_line = read_line or console.input

    console.print(BANNER, highlight=False)
    console.print()

    pending = first_message
    while True:
        if pending is not None:
            line, pending = pending, None
            console.print(f"> {line}", markup=False, highlight=False)
        else:
            try:
                line = read_line("> ")
            except (EOFError, KeyboardInterrupt):
                console.print()
                break

        line = line.strip()
        if not line:
            continue

        command = line.lower()
        if command in EXIT_COMMANDS:
            break
        if command == CLEAR_COMMAND:
            conversation.clear()
            console.print("[dim]Conversation cleared.[/dim]")
            continue
        if command == HISTORY_COMMAND:
            show_history(conversation)
            continue

        try:
            answer = ask_once(client, conversation, line, stream=True)
        except LLMError as e:
            err_console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
            continue
        except KeyboardInterrupt:
            console.print()
            break

        copy(answer)
        # streamed text ends without a newline
        console.print()
        console.print()

    console.print("Goodbye!")
