"""
Secret store with LLM-assigned tags and natural-language search.

Secrets are kept in plaintext in stores.yaml. Only masked entries (the
secret replaced by a SECRET_<id> placeholder) are ever sent to the LLM.
"""

import json
import logging
import re
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Protocol

from .config import get_store_file
from .documents import read_document, write_document
from .errors import XaError

log = logging.getLogger(__name__)

MAX_TAG_SUFFIX = 99
FALLBACK_TAG_WORDS = 4
UNTAGGED = "untagged"

WORD_CHAR = re.compile(r"\w")


class StoreError(XaError):
    """Invalid secret store request."""
    pass


class Completer(Protocol):
    def complete(self, prompt: str, stream: bool = False) -> str: ...


@dataclass
class StoreEntry:
    id: int
    tag: str
    note: str
    secret: str
    created_at: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data) -> "StoreEntry":
        if not isinstance(data, dict):
            raise TypeError("store entry must be a mapping")
        entry_id = data["id"]
        if isinstance(entry_id, bool) or not isinstance(entry_id, int):
            raise ValueError("store entry id must be an integer")
        return cls(
            id=entry_id,
            tag=str(data["tag"]),
            note=str(data["note"]),
            secret=str(data["secret"]),
            created_at=str(data.get("created_at", "")),
        )


def mask_value(value: str, peek_chars: int = 4) -> str:
    """
    Mask a secret value, showing only first and last N characters.

    Used when listing entries so the full secret never appears on screen.
    """
    if not value:
        return "(empty)"

    if len(value) <= peek_chars * 2:
        return "*" * len(value)

    first = value[:peek_chars]
    last = value[-peek_chars:]
    hidden_len = len(value) - (peek_chars * 2)
    return f"{first}{'*' * min(hidden_len, 8)}{last}"


def load_entries(store_file: Path = None) -> list[StoreEntry]:
    store_file = store_file or get_store_file()
    entries = read_document(store_file, _parse_store, lambda: {"entries": []})
    return entries or []


def save_entries(entries: Iterable[StoreEntry], store_file: Path = None) -> Path:
    store_file = store_file or get_store_file()
    write_document(store_file, {"entries": [entry.to_dict() for entry in entries]})
    return store_file


def _parse_store(data) -> list[StoreEntry]:
    if data is None:
        return []
    if not isinstance(data, dict):
        raise TypeError("store document must be a mapping")
    entries = data.get("entries") or []
    if not isinstance(entries, list):
        raise TypeError("entries must be a list")
    return [StoreEntry.from_dict(entry) for entry in entries]


def sanitize_tag(tag: str) -> str:
    """
    Normalize a tag to lowercase ASCII words joined by single hyphens.

    Hyphens and whitespace become separators, other characters are dropped.
    """
    out = []
    last_dash = False
    for ch in tag:
        if ch.isascii() and ch.isalnum():
            out.append(ch.lower())
            last_dash = False
        elif ch == "-" or ch.isspace():
            if not last_dash:
                out.append("-")
                last_dash = True
    return "".join(out).strip("-")


def fallback_tag(note: str) -> str:
    """Tag built from the first words of the note."""
    words = [word.lower() for word in note.split() if WORD_CHAR.search(word)]
    words = words[:FALLBACK_TAG_WORDS]
    return "-".join(words) if words else UNTAGGED


def ensure_unique_tag(tag: str, existing_tags: set[str]) -> str:
    """Append -2, -3, ... (then a timestamp) until the tag is unused."""
    existing = {t.lower() for t in existing_tags}
    if tag.lower() not in existing:
        return tag

    for i in range(2, MAX_TAG_SUFFIX + 1):
        candidate = f"{tag}-{i}"
        if candidate.lower() not in existing:
            return candidate

    return f"{tag}-{_now_ms()}"


def parse_json_object(text: str) -> Optional[dict]:
    """
    Extract a JSON object from an LLM response.

    Tries the whole text first, then the span between the first "{" and
    the last "}" to get past preambles and trailing commentary.
    """
    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or start >= end:
        return None

    try:
        parsed = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _parse_tag(response: str) -> Optional[str]:
    parsed = parse_json_object(response)
    if parsed is None:
        return None
    tag = parsed.get("tag")
    return tag if isinstance(tag, str) else None


def _parse_found_id(response: str) -> Optional[int]:
    parsed = parse_json_object(response)
    if parsed is None or parsed.get("found") is not True:
        return None

    entry_id = parsed.get("id")
    if isinstance(entry_id, bool):
        return None
    if isinstance(entry_id, int):
        return entry_id
    if isinstance(entry_id, str) and entry_id.strip().isdigit():
        return int(entry_id.strip())
    return None


def build_masked_entries(entries: Iterable[StoreEntry]) -> list[dict]:
    return [
        {
            "id": entry.id,
            "tag": entry.tag,
            "note": entry.note,
            "created_at": entry.created_at,
            "secret_placeholder": f"SECRET_{entry.id}",
        }
        for entry in entries
    ]


def build_tag_prompt(note: str, existing_tags: set[str]) -> str:
    existing = json.dumps(sorted(existing_tags))
    return (
        "You generate short, memorable tags for secret notes.\n\n"
        "Rules:\n"
        "- Return JSON only.\n"
        '- JSON schema: {"tag": string, "reason": string}.\n'
        "- tag must be 2-4 words max, lowercase, use hyphens instead of spaces.\n"
        "- tag must not include any sensitive data (only use the note).\n"
        "- tag must not duplicate existing tags.\n\n"
        f"Existing tags: {existing}\n\n"
        f"Note: {note}\n\n"
        "Return JSON only."
    )


def build_search_prompt(query: str, masked_entries: list[dict]) -> str:
    entries_json = json.dumps(masked_entries, indent=2, ensure_ascii=False)
    return (
        "You are a secret locator. Given a user query and a list of entries, "
        "find the best matching entry.\n\n"
        "Rules:\n"
        "- Return JSON only.\n"
        '- JSON schema: {"found": boolean, "id": number|null, "reason": string}.\n'
        "- If nothing matches well, set found=false and id=null.\n"
        "- Do not invent ids.\n\n"
        f"Entries (secret is placeholder only):\n{entries_json}\n\n"
        f"Query: {query}\n\n"
        "Return JSON only."
    )


def _now_ms() -> int:
    return int(time.time() * 1000)


def _next_id(entries: list[StoreEntry]) -> int:
    """Creation time in ms, bumped past the newest existing id."""
    newest = max((entry.id for entry in entries), default=0)
    return max(_now_ms(), newest + 1)


def add_secret(client: Completer, secret: str, note: str, store_file: Path = None) -> StoreEntry:
    """
    Store a secret under an LLM-generated tag.

    The note (never the secret) is sent to the LLM to pick a tag. A missing,
    unparseable or empty tag falls back to the first words of the note.
    """
    secret = secret.strip()
    note = note.strip()
    if not secret:
        raise StoreError("secret cannot be empty.")
    if not note:
        raise StoreError("note/description cannot be empty.")

    entries = load_entries(store_file)
    existing_tags = {entry.tag.lower() for entry in entries}

    response = client.complete(build_tag_prompt(note, existing_tags), stream=False)
    tag = sanitize_tag(_parse_tag(response) or "")
    if not tag:
        log.debug("No usable tag in LLM response, falling back: %r", response)
        tag = sanitize_tag(fallback_tag(note)) or UNTAGGED

    tag = ensure_unique_tag(tag, existing_tags)

    entry = StoreEntry(
        id=_next_id(entries),
        tag=tag,
        note=note,
        secret=secret,
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    entries.append(entry)
    save_entries(entries, store_file)
    return entry


def search_secret(client: Completer, query: str, store_file: Path = None) -> Optional[StoreEntry]:
    """
    Find the entry best matching a natural-language query.

    Returns None when the store is empty, the LLM finds nothing, its answer
    cannot be parsed, or it names an id that is not in the store.
    """
    query = query.strip()
    if not query:
        raise StoreError("query cannot be empty.")

    entries = load_entries(store_file)
    if not entries:
        return None

    response = client.complete(build_search_prompt(query, build_masked_entries(entries)), stream=False)
    entry_id = _parse_found_id(response)
    if entry_id is None:
        log.debug("No match in LLM response: %r", response)
        return None

    for entry in entries:
        if entry.id == entry_id:
            return entry

    log.debug("LLM returned unknown id %s", entry_id)
    return None
