"""
Inference client for an OpenAI-compatible chat-completions endpoint
(llama.cpp server, Ollama, vLLM, LM Studio, hosted APIs).

The core only needs ``InferenceService``: a ``ready`` flag and ``submit()``
returning a future that resolves to the completion text or fails.
"""
from __future__ import annotations
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Protocol

import requests

from . import config as CFG
from .models import Message

log = logging.getLogger(__name__)


class InferenceError(RuntimeError):
    """Transport or runtime failure of the inference service."""


class InferenceService(Protocol):
    ready: bool

    def submit(self, messages: List[Message], *, temperature: float, max_tokens: int) -> "Future[str]": ...


def build_messages(text: str) -> List[Message]:
    return [
        Message(role="system", content=CFG.SYSTEM_PROMPT),
        Message(role="user", content=text),
    ]


def extract_completion(payload: Any) -> str:
    """Pull the first choice's text out of a chat-completions response body."""
    if not isinstance(payload, dict):
        raise InferenceError("Malformed response from model server.")
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        choices = [{}]
    first = choices[0] if isinstance(choices[0], dict) else {}
    message = first.get("message") or {}
    content = message.get("content")
    if content is None:
        content = first.get("text", "")
    return content if isinstance(content, str) else ""


class ChatCompletionClient:
    """
    Blocking HTTP client run on a one-worker thread pool, so ``submit`` never
    blocks the caller's event loop and requests are served in order.
    """

    def __init__(
        self,
        api_url: str = CFG.API_URL,
        model: str = CFG.MODEL_ID,
        *,
        api_key: str = CFG.API_KEY,
        timeout: float = CFG.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self.ready = False
        self._http = session or requests.Session()
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="inference")

    # ------------- lifecycle -------------

    def load(self, progress: Optional[Callable[[str], None]] = None) -> None:
        """Check that the server answers and serves ``model``; marks the client ready."""
        report = progress or (lambda _text: None)
        report("Loading model...")
        try:
            r = self._http.get(f"{self.api_url}/models", headers=self._headers(), timeout=self.timeout)
            r.raise_for_status()
            served = [m.get("id") for m in (r.json().get("data") or []) if isinstance(m, dict)]
        except requests.exceptions.RequestException as e:
            raise InferenceError(f"Failed to load model: {e}") from e
        except ValueError as e:
            raise InferenceError("Failed to load model: server did not return JSON.") from e
        if served and self.model not in served:
            log.warning("model %s not listed by server (serves %s)", self.model, served[:5])
        report(f"Model ready: {self.model}")
        self.ready = True
        log.info("Inference client ready: %s @ %s", self.model, self.api_url)

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False)
        self._http.close()
        self.ready = False

    # ------------- requests -------------

    def complete(
        self,
        messages: List[Message],
        *,
        temperature: float = CFG.TEMPERATURE,
        max_tokens: int = CFG.MAX_TOKENS,
    ) -> str:
        payload = {
            "model": self.model,
            "messages": [m.as_dict() for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        try:
            response = self._http.post(
                f"{self.api_url}/chat/completions",
                headers=self._headers(),
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.HTTPError as e:
            detail = e.response.text[:200] if e.response is not None else ""
            raise InferenceError(f"Model server error: {e}. {detail}".strip()) from e
        except requests.exceptions.RequestException as e:
            raise InferenceError(f"Model request failed: {e}") from e
        except ValueError as e:
            raise InferenceError("Model server did not return JSON.") from e
        return extract_completion(body)

    def submit(
        self,
        messages: List[Message],
        *,
        temperature: float = CFG.TEMPERATURE,
        max_tokens: int = CFG.MAX_TOKENS,
    ) -> "Future[str]":
        return self._pool.submit(self.complete, messages, temperature=temperature, max_tokens=max_tokens)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers
