"""Shared fixtures for xa tests."""

import pytest


@pytest.fixture(autouse=True)
def config_dir(monkeypatch, tmp_path):
    """Point every test at an isolated config directory."""
    path = tmp_path / "xa"
    monkeypatch.setenv("XA_CONFIG_DIR", str(path))
    return path


class FakeLLM:
    """Stands in for LLMClient: replays canned responses and records prompts."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []
        self.messages = []

    def complete(self, prompt, stream=False):
        self.prompts.append(prompt)
        return self.responses.pop(0) if self.responses else ""

    def chat(self, messages, stream=False):
        self.messages.append([dict(m) for m in messages])
        return self.responses.pop(0) if self.responses else ""


@pytest.fixture
def fake_llm():
    return FakeLLM

