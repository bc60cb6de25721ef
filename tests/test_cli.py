"""Tests for the xa command line."""

import json
import subprocess
import sys

import pytest

from xa import __version__, chat, cli, prompts, store
from xa.config import Config, save_config
from xa.output import ClipboardError


class RecordingClient:
    """Replaces LLMClient inside the CLI."""

    instances = []
    responses = []

    def __init__(self, config):
        self.config = config
        self.prompts = []
        RecordingClient.instances.append(self)

    def complete(self, prompt, stream=False):
        self.prompts.append((prompt, stream))
        return RecordingClient.responses.pop(0) if RecordingClient.responses else "Bonjour"

    def chat(self, messages, stream=False):
        return self.complete(messages[-1]["content"], stream)


@pytest.fixture
def client(monkeypatch):
    RecordingClient.instances = []
    RecordingClient.responses = []
    monkeypatch.setattr(cli, "LLMClient", RecordingClient)
    monkeypatch.setattr(cli, "copy_to_clipboard", lambda text: None)
    return RecordingClient


@pytest.fixture
def configured():
    save_config(Config("https://api.example.com/v1", "sk-test", "test-model"))


def last_prompt(client):
    return client.instances[-1].prompts[-1]


class TestEntryPoint:
    """Tests for running the module."""

    def test_help_exits_zero(self):
        """--help exits with code 0."""
        result = subprocess.run(
            [sys.executable, "-m", "xa.cli", "--help"],
            capture_output=True
        )
        assert result.returncode == 0
        assert b"xa" in result.stdout

    def test_version_shows_version(self):
        """--version shows version."""
        result = subprocess.run(
            [sys.executable, "-m", "xa.cli", "--version"],
            capture_output=True
        )
        assert result.returncode == 0
        assert __version__.encode() in result.stdout

    def test_no_arguments_prints_help(self, capsys):
        assert cli.main([]) == 0
        assert "usage: xa" in capsys.readouterr().out


class TestRunCommand:
    """Tests for running prompt commands."""

    def test_missing_input(self, capsys):
        assert cli.main(["translate"]) == 1
        assert "No input provided" in capsys.readouterr().err

    def test_missing_api_key(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["translate", "Hello"])
        assert exc_info.value.code == 1
        assert "API key not configured" in capsys.readouterr().err

    def test_unknown_command(self, configured, client, capsys):
        assert cli.main(["xyzzy", "Hello"]) == 1
        assert "not found" in capsys.readouterr().err

    def test_fills_template(self, configured, client, capsys):
        assert cli.main(["translate", "Hello", "fr", "--no-stream"]) == 0

        prompt, stream = last_prompt(client)
        assert stream is False
        assert "idiomatic fr" in prompt
        assert "Hello" in prompt
        assert "Bonjour" in capsys.readouterr().out

    def test_flag_between_input_and_args(self, configured, client):
        assert cli.main(["translate", "Hello", "--no-stream", "fr"]) == 0

        prompt, stream = last_prompt(client)
        assert stream is False
        assert "idiomatic fr" in prompt

    def test_options_anywhere(self):
        args = cli.build_parser().parse_intermixed_args(["--debug", "polish", "draft", "--no-stream", "casual"])
        assert (args.command, args.input, args.args) == ("polish", "draft", ["casual"])
        assert args.debug and args.no_stream

    def test_default_argument(self, configured, client):
        cli.main(["polish", "some text"])
        prompt, stream = last_prompt(client)
        assert stream is True
        assert "professional tone" in prompt

    def test_prefix_resolution(self, configured, client, capsys):
        assert cli.main(["summ", "long text", "short"]) == 0
        assert "short length" in last_prompt(client)[0]
        assert "Using command 'summarize'" in capsys.readouterr().err

    def test_translate_language_first(self, configured, client):
        cli.main(["translate", "en", "Bonjour le monde"])
        prompt = last_prompt(client)[0]
        assert "idiomatic en" in prompt
        assert "Bonjour le monde" in prompt

    def test_debug_echoes_prompt(self, configured, client, capsys):
        cli.main(["polish", "draft", "--debug"])
        assert "draft" in capsys.readouterr().err

    def test_clipboard_failure_is_warning(self, configured, client, monkeypatch, capsys):
        def fail(text):
            raise ClipboardError("no clipboard utility found")

        monkeypatch.setattr(cli, "copy_to_clipboard", fail)
        assert cli.main(["polish", "draft", "--no-stream"]) == 0
        captured = capsys.readouterr()
        assert "Could not copy to clipboard" in captured.err
        assert "Bonjour" in captured.out

    def test_llm_error(self, configured, client, monkeypatch, capsys):
        def broken(self, prompt, stream=False):
            raise cli.LLMError("API request failed (401): bad key")

        monkeypatch.setattr(RecordingClient, "complete", broken)
        assert cli.main(["polish", "draft"]) == 1
        assert "bad key" in capsys.readouterr().err

    def test_interrupt_cancels(self, configured, client, monkeypatch, capsys):
        def interrupted(self, prompt, stream=False):
            raise KeyboardInterrupt

        monkeypatch.setattr(RecordingClient, "complete", interrupted)
        assert cli.main(["polish", "draft", "--no-stream"]) == 1
        assert "Cancelled" in capsys.readouterr().out


class TestCommandManagement:
    """Tests for --ls, --add, --rm and --reset."""

    def test_list(self, capsys):
        assert cli.main(["--ls"]) == 0
        out = capsys.readouterr().out
        for name in ("translate", "polish", "summarize"):
            assert name in out

    def test_list_numeric_description(self, config_dir, capsys):
        config_dir.mkdir(parents=True)
        (config_dir / "prompts.yaml").write_text("prompts:\n  joke:\n    template: '{input}'\n    description: 2024\n")
        assert cli.main(["--ls"]) == 0
        assert "2024" in capsys.readouterr().out

    def test_add_interactive(self, monkeypatch):
        answers = iter(["joke", "Tell a {style} joke about {input}", "Jokes", "style=dry"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))

        assert cli.main(["--add"]) == 0

        entry = prompts.load_prompts()["joke"]
        assert entry.template == "Tell a {style} joke about {input}"
        assert entry.description == "Jokes"
        assert entry.args == [prompts.PromptArg("style", "dry")]

    def test_add_empty_name(self, monkeypatch, capsys):
        monkeypatch.setattr("builtins.input", lambda prompt="": "")
        assert cli.main(["--add"]) == 1
        assert "cannot be empty" in capsys.readouterr().err

    def test_remove(self, capsys):
        prompts.add_prompt("joke", prompts.PromptEntry("Joke: {input}"))
        assert cli.main(["--rm", "joke"]) == 0
        assert "joke" not in prompts.load_prompts()

    def test_remove_unknown(self, capsys):
        assert cli.main(["--rm", "nope"]) == 1
        captured = capsys.readouterr()
        assert "does not exist" in captured.err
        assert "translate" in captured.out

    def test_reset(self):
        prompts.add_prompt("joke", prompts.PromptEntry("Joke: {input}"))
        assert cli.main(["--reset", "--force"]) == 0
        assert "joke" not in prompts.load_prompts()

    def test_reset_cancelled(self, monkeypatch):
        prompts.add_prompt("joke", prompts.PromptEntry("Joke: {input}"))
        monkeypatch.setattr("builtins.input", lambda prompt="": "no")
        assert cli.main(["--reset"]) == 0
        assert "joke" in prompts.load_prompts()

    def test_parse_arg_specs(self):
        assert cli.parse_arg_specs("tone=casual, lang = en,,flag") == [
            prompts.PromptArg("tone", "casual"),
            prompts.PromptArg("lang", "en"),
            prompts.PromptArg("flag", ""),
        ]


class TestSetup:
    """Tests for --set openai."""

    def test_unknown_type(self, capsys):
        assert cli.main(["--set", "claude"]) == 1
        assert "Unknown configuration type" in capsys.readouterr().err

    def test_select_listed_model(self, monkeypatch):
        answers = iter(["https://api.example.com/v1", "2"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
        monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": "sk-new")
        monkeypatch.setattr(cli.LLMClient, "list_models", lambda self: ["model-a", "model-b"])

        assert cli.main(["--set", "openai"]) == 0

        saved = cli.load_config()
        assert saved == Config("https://api.example.com/v1", "sk-new", "model-b")

    def test_validation_failure_asks_for_model(self, monkeypatch, capsys):
        def unreachable(self):
            raise cli.LLMError("API request failed: connection refused")

        answers = iter(["", "my-model"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
        monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": "sk-new")
        monkeypatch.setattr(cli.LLMClient, "list_models", unreachable)

        assert cli.main(["--set", "openai"]) == 0

        saved = cli.load_config()
        assert saved == Config("https://api.openai.com/v1", "sk-new", "my-model")
        assert "Could not validate" in capsys.readouterr().err


class TestSecrets:
    """Tests for add, search and tags."""

    def test_add(self, configured, client, capsys):
        client.responses = ['{"tag": "gitcode-token"}']
        assert cli.main(["add", "sk-123", "gitcode", "api", "token"]) == 0

        entries = store.load_entries()
        assert [(e.tag, e.note, e.secret) for e in entries] == [("gitcode-token", "gitcode api token", "sk-123")]
        assert "gitcode-token" in capsys.readouterr().out

    def test_add_needs_note(self, configured, client, capsys):
        assert cli.main(["add", "sk-123"]) == 1
        assert "Usage" in capsys.readouterr().err

    def test_search_found(self, configured, client, capsys):
        client.responses = ['{"tag": "gitcode-token"}']
        cli.main(["add", "sk-123", "gitcode api token"])
        entry_id = store.load_entries()[0].id
        capsys.readouterr()

        client.responses = [json.dumps({"found": True, "id": entry_id})]
        assert cli.main(["search", "gitcode", "token"]) == 0
        assert capsys.readouterr().out.strip() == "sk-123"

    def test_search_not_found(self, configured, client, capsys):
        assert cli.main(["search", "anything"]) == 1
        assert "No found such thing." in capsys.readouterr().out
        assert client.instances[-1].prompts == []

    def test_tags_masks_secrets(self, capsys):
        store.save_entries([store.StoreEntry(1, "db-password", "prod db", "hunter2-very-long", "2024-01-01T00:00:00")])
        assert cli.main(["tags"]) == 0
        out = capsys.readouterr().out
        assert "db-password" in out
        assert "hunter2-very-long" not in out

    def test_tags_empty(self, capsys):
        assert cli.main(["tags"]) == 0
        assert "No secrets stored" in capsys.readouterr().out

    def test_tags_with_undecodable_store(self, config_dir, capsys):
        config_dir.mkdir(parents=True)
        (config_dir / "stores.yaml").write_bytes(b"\xff\xfe")

        assert cli.main(["tags"]) == 0

        captured = capsys.readouterr()
        assert "Corrupted stores.yaml" in captured.err
        assert "No secrets stored" in captured.out
        assert (config_dir / "stores.yaml.backup").exists()


class TestAsk:
    """Tests for the ask command."""

    def test_single_shot_without_streaming(self, configured, client):
        assert cli.main(["ask", "What is xa?", "--no-stream"]) == 0
        prompt, stream = last_prompt(client)
        assert prompt.startswith("You are a helpful assistant called xa")
        assert prompt.endswith("What is xa?")
        assert stream is False

    def test_no_stream_needs_input(self, configured, client, capsys):
        assert cli.main(["ask", "--no-stream"]) == 1
        assert "No input provided" in capsys.readouterr().err

    def test_interactive(self, configured, client, monkeypatch, capsys):
        answers = iter(["hello", "exit"])
        monkeypatch.setattr(chat.console, "input", lambda prompt="": next(answers))
        monkeypatch.setattr(chat, "copy_to_clipboard", lambda text: None)

        assert cli.main(["ask"]) == 0

        assert last_prompt(client) == ("hello", True)
        assert "Goodbye!" in capsys.readouterr().out
