"""OpenAI-compatible chat completions client."""

import json
import logging
import sys
from typing import Callable, Optional

import httpx

from .config import Config
from .errors import XaError

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


class LLMError(XaError):
    """API request failed."""
    pass


def models_url(base_url: str) -> str:
    """
    Build the models endpoint for an OpenAI-compatible base URL.

    "https://host/v1" and "https://host/v1/" both map to
    "https://host/v1/models"; a URL without a version segment gets
    "/v1/models" appended.
    """
    if base_url.endswith("/v1"):
        return f"{base_url}/models"
    if base_url.endswith("/v1/"):
        return f"{base_url}models"
    return f"{base_url.rstrip('/')}/v1/models"


def _write_stdout(fragment: str) -> None:
    sys.stdout.write(fragment)
    sys.stdout.flush()


class LLMClient:
    """
    Minimal chat completions client.

    `complete` and `chat` return the full response text. With stream=True
    each fragment is handed to `echo` as it arrives (stdout by default).
    """

    def __init__(
        self,
        config: Config,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
        echo: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.config = config
        self.base_url = (config.base_url or "").rstrip("/")
        self.model = config.model
        self.echo = echo or _write_stdout
        self._transport = transport
        self._timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.Client:
        return httpx.Client(transport=self._transport, timeout=self._timeout, headers=self.headers)

    def complete(self, prompt: str, stream: bool = False) -> str:
        """Send a single user prompt."""
        return self.chat([{"role": "user", "content": prompt}], stream=stream)

    def chat(self, messages: list[dict], stream: bool = False) -> str:
        """Send a full message list."""
        payload = {"model": self.model, "messages": messages, "stream": stream}
        url = f"{self.base_url}/chat/completions"
        log.debug("POST %s model=%s messages=%d stream=%s", url, self.model, len(messages), stream)

        try:
            with self._client() as client:
                if stream:
                    return self._stream(client, url, payload)

                response = client.post(url, json=payload)
                _raise_for_status(response)
                data = response.json()
        except httpx.HTTPError as e:
            raise LLMError(f"API request failed: {e}") from e
        except json.JSONDecodeError as e:
            raise LLMError(f"API returned invalid JSON: {e}") from e

        return _choice_content(data, "message") or ""

    def _stream(self, client: httpx.Client, url: str, payload: dict) -> str:
        parts = []
        with client.stream("POST", url, json=payload) as response:
            if response.is_error:
                response.read()
            _raise_for_status(response)

            for line in response.iter_lines():
                if not line.startswith("data:"):
                    continue

                data_str = line[5:].strip()
                if data_str == "[DONE]":
                    break

                try:
                    data = json.loads(data_str)
                except json.JSONDecodeError:
                    log.debug("Skipping malformed stream line: %r", line)
                    continue

                content = _choice_content(data, "delta")
                if content:
                    self.echo(content)
                    parts.append(content)

        return "".join(parts)

    def list_models(self) -> list[str]:
        """List model ids available at the configured endpoint."""
        try:
            with self._client() as client:
                response = client.get(models_url(self.config.base_url))
                _raise_for_status(response)
                data = response.json()
        except httpx.HTTPError as e:
            raise LLMError(f"API request failed: {e}") from e
        except json.JSONDecodeError as e:
            raise LLMError(f"API returned invalid JSON: {e}") from e

        models = data.get("data", []) if isinstance(data, dict) else None
        if not isinstance(models, list) or not all(isinstance(model, dict) for model in models):
            raise _unexpected(data)
        return [str(model["id"]) for model in models if "id" in model]


def _unexpected(data) -> LLMError:
    return LLMError(f"API returned unexpected response: {repr(data)[:200]}")


def _choice_content(data, key: str) -> Optional[str]:
    """Content of the first choice's `key` ("message" or "delta"), None if absent."""
    if not isinstance(data, dict):
        raise _unexpected(data)
    choices = data.get("choices") or []
    if not isinstance(choices, list):
        raise _unexpected(data)
    if not choices:
        return None

    choice = choices[0]
    if not isinstance(choice, dict):
        raise _unexpected(data)
    part = choice.get(key) or {}
    if not isinstance(part, dict):
        raise _unexpected(data)
    content = part.get("content")
    if content is not None and not isinstance(content, str):
        raise _unexpected(data)
    return content


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    body = response.text.strip() or response.reason_phrase
    raise LLMError(f"API request failed ({response.status_code}): {body}")
