"""CLI for xa - Execute Anything via LLM."""

import argparse
import getpass
import logging
import sys
import time

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from . import prompts, store
from .chat import Conversation, run_interactive
from .config import Config, get_prompts_file, load_config, save_config
from .errors import XaError
from .llm import LLMClient, LLMError
from .output import copy_to_clipboard, render_output
from .resolver import find_command
from .template import apply_command_quirks, fill_template

console = Console()
err_console = Console(stderr=True)

log = logging.getLogger("xa")

# Command names handled by the CLI itself rather than a prompt template
SECRET_ADD = "add"
SECRET_SEARCH = "search"
SECRET_TAGS = "tags"
ASK = "ask"

NOT_FOUND = "No found such thing."


def error(message) -> int:
    err_console.print(f"[red]Error:[/red] {escape(str(message))}", highlight=False)
    return 1


def warn(message) -> None:
    err_console.print(f"[yellow]Warning:[/yellow] {escape(str(message))}", highlight=False)


def configured_client(config: Config) -> LLMClient:
    """Client for the configured endpoint; exits if no API key is set."""
    if not config.api_key:
        error("API key not configured. Please run 'xa --set openai' first.")
        sys.exit(1)
    return LLMClient(config)


def read_line(prompt: str) -> str:
    return input(prompt).strip()


def cmd_set(args):
    """Configure the OpenAI-compatible endpoint interactively."""
    if args.set != "openai":
        return error(f"Unknown configuration type '{args.set}'. Supported: openai")

    try:
        config = load_config()
        console.print("[bold]Setting up OpenAI-compatible configuration...[/bold]")

        base_url = read_line(f"Base URL [{config.base_url}]: ") or config.base_url
        api_key = getpass.getpass("API Key (hidden): ").strip()
        default_model = config.default_model or ""

        models = None
        if api_key:
            console.print("[dim]Validating API key and base URL...[/dim]")
            try:
                models = LLMClient(Config(base_url, api_key, default_model or None)).list_models()
            except LLMError as e:
                warn(f"Could not validate API key and base URL: {e}")
                warn("Proceeding with configuration, but API may not work correctly.")

        if models is not None:
            console.print("[green]✓[/green] API key and base URL are valid.")
            model = select_model(models, default_model)
        else:
            model = read_line(f"Default model [{default_model}]: ") or default_model

        path = save_config(Config(base_url=base_url, api_key=api_key, default_model=model or None))
        console.print(f"[green]Configuration saved to:[/green] {path}")
        console.print("[dim]Setup complete! You can now use xa with your commands.[/dim]")
        return 0

    except (EOFError, KeyboardInterrupt):
        console.print("\n[dim]Cancelled[/dim]")
        return 1
    except XaError as e:
        return error(e)


def select_model(models, default_model: str) -> str:
    """Numbered model picker; the entry after the last model asks for a custom name."""
    console.print("Available models:")
    for i, model in enumerate(models, 1):
        console.print(f"  {i}. {escape(model)}", highlight=False)
    console.print(f"  {len(models) + 1}. Custom model", highlight=False)

    selection = read_line(f"Select model by number (or press Enter for default '{default_model}'): ")
    if not selection:
        return default_model

    if selection.isdigit():
        num = int(selection)
        if 1 <= num <= len(models):
            return models[num - 1]
        if num == len(models) + 1:
            return read_line("Enter custom model name: ")

    warn("Invalid selection. Using default model.")
    return default_model


def print_commands(commands) -> None:
    table = Table(title="User-defined commands", show_header=True)
    table.add_column("Command", style="cyan")
    table.add_column("Description")
    table.add_column("Arguments", style="dim")

    for name in sorted(commands):
        entry = commands[name]
        arg_list = ", ".join(f"{arg.name}={arg.default_value}" for arg in entry.args)
        table.add_row(escape(name), escape(entry.description or "Custom prompt command"), escape(arg_list))

    console.print(table)


def cmd_list(args):
    """List built-in and user-defined commands."""
    try:
        commands = prompts.load_prompts()
    except XaError as e:
        return error(e)

    console.print("[bold]Built-in commands:[/bold]")
    console.print("  --set openai           Configure API settings")
    console.print("  --ls                   List all commands (this command)")
    console.print("  --add                  Add a new command/prompt")
    console.print("  --rm NAME              Remove a command/prompt")
    console.print("  --reset                Restore the default commands")
    console.print("  add SECRET NOTE...     Store a secret with an LLM-generated tag")
    console.print("  search QUERY...        Find a stored secret")
    console.print("  tags                   List stored secret tags (values masked)")
    console.print("  ask                    Interactive conversation mode")
    console.print()
    print_commands(commands)
    return 0


def parse_arg_specs(text: str) -> list:
    """Parse "tone=casual, lang=en" into prompt arguments."""
    specs = []
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        name, _, default = item.partition("=")
        if not name.strip():
            raise ValueError(f"Invalid argument spec: {item}")
        specs.append(prompts.PromptArg(name.strip(), default.strip()))
    return specs


def cmd_add_command(args):
    """Add a new prompt command interactively."""
    console.print("[bold]Adding a new command...[/bold]")
    try:
        name = read_line("Enter command name: ")
        if not name:
            return error("Command name cannot be empty")

        if name in prompts.load_prompts():
            warn(f"Command '{name}' already exists. It will be overwritten.")

        template = read_line("Enter prompt template (use {input} as placeholder): ")
        if not template:
            return error("Prompt template cannot be empty")

        description = read_line("Enter description (optional): ") or None
        try:
            prompt_args = parse_arg_specs(
                read_line("Enter arguments as name=default, comma separated (optional): ")
            )
        except ValueError as e:
            return error(e)

        prompts.add_prompt(name, prompts.PromptEntry(template, description, prompt_args))

    except (EOFError, KeyboardInterrupt):
        console.print("\n[dim]Cancelled[/dim]")
        return 1
    except XaError as e:
        return error(e)

    console.print(f"[green]Command '{escape(name)}' added successfully![/green]")
    console.print(f"[dim]Prompt file location: {get_prompts_file()}[/dim]")
    console.print("[dim]You can edit this file with your favorite text editor to modify or add more commands.[/dim]")
    return 0


def cmd_remove(args):
    """Remove a prompt command."""
    try:
        prompts.remove_prompt(args.rm)
    except prompts.PromptNotFoundError as e:
        error(e)
        print_commands(prompts.load_prompts())
        return 1
    except XaError as e:
        return error(e)

    console.print(f"[green]Command '{escape(args.rm)}' removed successfully![/green]")
    if args.rm in prompts.default_prompts():
        console.print("[dim]Default commands are restored on next load.[/dim]")
    return 0


def cmd_reset(args):
    """Restore the default commands, dropping user-defined ones."""
    try:
        if not args.force:
            console.print("[yellow]Reset:[/yellow] all user-defined commands will be removed")
            confirm = input("Type 'yes' to confirm: ")
            if confirm.lower() != "yes":
                console.print("[dim]Cancelled[/dim]")
                return 0

        path = prompts.reset_prompts()
    except XaError as e:
        return error(e)

    console.print(f"[green]Default commands restored:[/green] {path}")
    return 0


def cmd_add_secret(args):
    """Store a secret; the LLM picks a tag from the note."""
    if not args.input or not args.args:
        return error("Usage: xa add <secret> <note...>")

    client = configured_client(load_config())
    try:
        with err_console.status("Generating tag..."):
            entry = store.add_secret(client, args.input, " ".join(args.args))
    except XaError as e:
        return error(e)

    console.print(f"[green]Added secret with tag:[/green] {escape(entry.tag)}")
    return 0


def cmd_search_secret(args):
    """Locate a secret from a natural-language description."""
    query = " ".join(part for part in [args.input or "", *args.args] if part)
    if not query:
        return error("Usage: xa search <query...>")

    client = configured_client(load_config())
    try:
        with err_console.status("Searching..."):
            entry = store.search_secret(client, query)
    except XaError as e:
        return error(e)

    if entry is None:
        console.print(NOT_FOUND)
        return 1

    err_console.print(f"[dim]{escape(entry.tag)}: {escape(entry.note)}[/dim]", highlight=False)
    # Raw value on stdout for piping
    print(entry.secret)
    return 0


def cmd_tags(args):
    """List stored secrets by tag (values masked)."""
    try:
        entries = store.load_entries()
    except XaError as e:
        return error(e)

    if not entries:
        console.print("[dim]No secrets stored.[/dim]")
        return 0

    table = Table(title="Stored Secrets", show_header=True)
    table.add_column("Tag", style="cyan")
    table.add_column("Note")
    table.add_column("Secret", style="dim")
    table.add_column("Created", style="dim")

    for entry in entries:
        table.add_row(escape(entry.tag), escape(entry.note), escape(store.mask_value(entry.secret)), entry.created_at[:19])

    console.print(table)
    console.print(f"\n[dim]Total: {len(entries)} secrets[/dim]")
    return 0


def cmd_ask(args):
    """Interactive conversation, or a single answer with --no-stream."""
    config = load_config()
    client = configured_client(config)

    try:
        commands = prompts.load_prompts()
    except XaError as e:
        return error(e)

    entry = commands.get(ASK) or prompts.default_prompts()[ASK]
    text = " ".join(part for part in [args.input or "", *args.args] if part)

    if args.no_stream:
        if not text:
            return error(f"No input provided for command '{ASK}'")
        prompt = fill_template(entry.template, text, [], entry.args)
        return run_prompt(client, prompt, stream=False, debug=args.debug)

    conversation = Conversation(fill_template(entry.template, "", [], entry.args).strip())
    run_interactive(client, conversation, first_message=text or None)
    return 0


def run_prompt(client: LLMClient, prompt: str, stream: bool, debug: bool = False) -> int:
    """Send a filled prompt, then copy and render the result."""
    if debug:
        err_console.print(Panel(escape(prompt), title="Prompt", border_style="dim"))

    start = time.perf_counter()
    try:
        if stream:
            result = client.complete(prompt, stream=True)
        else:
            with err_console.status("Processing..."):
                result = client.complete(prompt, stream=False)
    except LLMError as e:
        if stream:
            console.print()
        return error(e)

    elapsed = time.perf_counter() - start
    if stream:
        console.print()

    copied = True
    try:
        copy_to_clipboard(result)
    except XaError as e:
        warn(f"Could not copy to clipboard: {e}")
        copied = False

    render_output(result, show_success=True, streamed=stream, copied=copied)
    console.print(f"[dim](Completed in {elapsed:.2f}s)[/dim]")
    return 0


def cmd_run(args):
    """Resolve a prompt command, fill its template and send it."""
    if args.input is None:
        return error(f"No input provided for command '{args.command}'")

    config = load_config()
    client = configured_client(config)

    try:
        commands = prompts.load_prompts()
    except XaError as e:
        return error(e)

    name = find_command(args.command, commands)
    if name is None:
        return error(f"Command '{args.command}' not found. Use 'xa --ls' to see available commands.")
    if name != args.command:
        err_console.print(f"[dim]Using command '{escape(name)}'[/dim]")

    entry = commands[name]
    text, extra = apply_command_quirks(name, args.input, args.args)
    prompt = fill_template(entry.template, text, extra, entry.args)
    log.debug("Filled prompt for %s: %r", name, prompt)

    return run_prompt(client, prompt, stream=not args.no_stream, debug=args.debug)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xa",
        description="Execute Anything via LLM - a CLI tool for arbitrary text processing using LLMs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  xa --set openai                       # Configure OpenAI-compatible API
  xa --ls                               # List all commands
  xa --add                              # Add a new command
  xa --rm summarize                     # Remove the 'summarize' command
  xa translate "Hello"                  # Translate text
  xa trans "Hello" en                   # Prefix match, target language 'en'
  xa polish "Draft text" --no-stream    # Polish text without streaming
  xa ask                                # Interactive conversation
  xa add sk-123 gitcode api token       # Store a secret
  xa search gitcode token               # Find it again

Environment:
  XA_CONFIG_DIR       Override config directory (default: ~/.config/xa)
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    actions = parser.add_mutually_exclusive_group()
    actions.add_argument("-s", "--set", metavar="CONFIG_TYPE", help="Configure API settings (e.g. openai)")
    actions.add_argument("-l", "--ls", action="store_true", help="List all commands")
    actions.add_argument("-a", "--add", action="store_true", help="Add a new command/prompt")
    actions.add_argument("-r", "--rm", metavar="COMMAND_NAME", help="Remove a command/prompt")
    actions.add_argument("--reset", action="store_true", help="Restore the default commands")

    parser.add_argument("--force", action="store_true", help="Skip confirmation for --reset")
    parser.add_argument("--no-stream", action="store_true", help="Disable streaming mode")
    parser.add_argument("--debug", action="store_true", help="Print the filled prompt before sending it")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging to stderr")

    parser.add_argument("command", nargs="?", help="Command name (e.g. translate, polish)")
    parser.add_argument("input", nargs="?", help="Input text to process")
    parser.add_argument("args", nargs="*", help="Extra arguments for the command template")
    return parser


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # Request/response noise from the HTTP stack
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.INFO if verbose else logging.WARNING)


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_intermixed_args(argv)
    setup_logging(args.verbose)

    try:
        if args.set:
            return cmd_set(args)
        elif args.ls:
            return cmd_list(args)
        elif args.add:
            return cmd_add_command(args)
        elif args.rm:
            return cmd_remove(args)
        elif args.reset:
            return cmd_reset(args)

        if not args.command:
            parser.print_help()
            return 0

        if args.command == SECRET_ADD:
            return cmd_add_secret(args)
        elif args.command == SECRET_SEARCH:
            return cmd_search_secret(args)
        elif args.command == SECRET_TAGS:
            return cmd_tags(args)
        elif args.command == ASK:
            return cmd_ask(args)

        return cmd_run(args)

    except XaError as e:
        # Config directory problems surface from any command
        return error(e)
    except KeyboardInterrupt:
        console.print("\n[dim]Cancelled[/dim]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
