"""Prompt templates: named commands with typed arguments."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import get_prompts_file
from .documents import read_document, write_document
from .errors import XaError

log = logging.getLogger(__name__)


class PromptNotFoundError(XaError):
    """Command name not present in the prompts file."""
    pass


def _description(value) -> Optional[str]:
    """Hand-edited files may hold numbers here; mappings and lists are rejected."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        raise ValueError("description must be a string")
    return str(value)


@dataclass(frozen=True)
class PromptArg:
    name: str
    default_value: str
    description: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"name": self.name, "default_value": self.default_value}
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data) -> "PromptArg":
        if not isinstance(data, dict):
            raise TypeError("prompt argument must be a mapping")
        return cls(
            name=str(data["name"]),
            default_value=str(data.get("default_value", "")),
            description=_description(data.get("description")),
        )


@dataclass
class PromptEntry:
    template: str
    description: Optional[str] = None
    args: list[PromptArg] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"template": self.template}
        if self.description:
            data["description"] = self.description
        if self.args:
            data["args"] = [arg.to_dict() for arg in self.args]
        return data

    @classmethod
    def from_dict(cls, data) -> "PromptEntry":
        if not isinstance(data, dict):
            raise TypeError("prompt entry must be a mapping")
        template = data["template"]
        if not isinstance(template, str):
            raise ValueError("template must be a string")
        args = data.get("args") or []
        if not isinstance(args, list):
            raise ValueError("args must be a list")
        return cls(
            template=template,
            description=_description(data.get("description")),
            args=[PromptArg.from_dict(arg) for arg in args],
        )


def default_prompts() -> dict[str, PromptEntry]:
    """Commands seeded into every prompts file."""
    return {
        "translate": PromptEntry(
            template=(
                "You are a professional translator, please translate the following text "
                "into natural, idiomatic {target_lang}:\n\n{input}. "
                "Avoid output anything else except the final result."
            ),
            description="Translate text (default target: zh)",
            args=[PromptArg("target_lang", "zh", "Target language for translation")],
        ),
        "polish": PromptEntry(
            template=(
                "You are an expert editor. Please polish the following text to make it more "
                "clear, concise, and natural in a {tone} tone:\n\n{input}. "
                "Avoid output anything else except the final result."
            ),
            description="Polish text for clarity",
            args=[PromptArg("tone", "professional", "Tone for polishing (e.g., casual, professional, friendly)")],
        ),
        "rewrite": PromptEntry(
            template=(
                "You are a skilled writer. Please rewrite the following text in a {style} "
                "style while preserving the meaning:\n\n{input}. "
                "Avoid output anything else except the final result."
            ),
            description="Rewrite text in different style",
            args=[PromptArg("style", "formal", "Writing style for rewrite (e.g., casual, formal, creative)")],
        ),
        "summarize": PromptEntry(
            template=(
                "You are an expert summarizer. Please provide a concise summary of the "
                "following text with a {length} length:\n\n{input}. "
                "Avoid output anything else except the final result."
            ),
            description="Summarize text",
            args=[PromptArg("length", "medium", "Summary length (e.g., short, medium, long)")],
        ),
        "ask": PromptEntry(
            template="You are a helpful assistant called xa, execute anything by your side. {input}",
            description="Interactive conversation mode",
        ),
    }


def _parse_prompts(data) -> dict[str, PromptEntry]:
    if not isinstance(data, dict):
        raise TypeError("prompts document must be a mapping")
    prompts = data.get("prompts") or {}
    if not isinstance(prompts, dict):
        raise TypeError("prompts must be a mapping")
    return {str(name): PromptEntry.from_dict(entry) for name, entry in prompts.items()}


def _dump_prompts(prompts: dict[str, PromptEntry]) -> dict:
    return {"prompts": {name: entry.to_dict() for name, entry in prompts.items()}}


def save_prompts(prompts: dict[str, PromptEntry], prompts_file: Path = None) -> Path:
    prompts_file = prompts_file or get_prompts_file()
    write_document(prompts_file, _dump_prompts(prompts))
    return prompts_file


def load_prompts(prompts_file: Path = None) -> dict[str, PromptEntry]:
    """
    Load prompts and reconcile them with the defaults.

    Default commands missing from the stored document are added back and the
    file is rewritten only when something was added. User overrides of a
    default command are kept.
    """
    prompts_file = prompts_file or get_prompts_file()
    stored = read_document(prompts_file, _parse_prompts, lambda: _dump_prompts(default_prompts()))

    prompts = dict(stored) if stored is not None else {}
    missing = {name: entry for name, entry in default_prompts().items() if name not in prompts}
    prompts.update(missing)

    if stored is None or missing:
        log.debug("Seeding default prompts into %s: %s", prompts_file, sorted(missing))
        save_prompts(prompts, prompts_file)

    return prompts


def add_prompt(name: str, entry: PromptEntry, prompts_file: Path = None) -> bool:
    """Add or overwrite a command. Returns True if an existing one was replaced."""
    prompts = load_prompts(prompts_file)
    replaced = name in prompts
    prompts[name] = entry
    save_prompts(prompts, prompts_file)
    return replaced


def remove_prompt(name: str, prompts_file: Path = None) -> None:
    prompts = load_prompts(prompts_file)
    if name not in prompts:
        raise PromptNotFoundError(f"Command '{name}' does not exist.")
    del prompts[name]
    save_prompts(prompts, prompts_file)


def reset_prompts(prompts_file: Path = None) -> Path:
    """Replace all commands with the defaults."""
    return save_prompts(default_prompts(), prompts_file)
