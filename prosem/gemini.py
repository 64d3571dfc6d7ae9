"""
Minimal client for the Gemini `generateContent` REST endpoint.

Several API keys can be configured. When a call fails because a key ran out
of quota (HTTP 429 / RESOURCE_EXHAUSTED) or is unknown to the server, the
next key is tried immediately. Any other failure is raised right away.
There is no delay and no backoff between keys.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

import requests

log = logging.getLogger(__name__)

BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-3-flash-preview"


class AIGenerationError(RuntimeError):
    """Raised when no configured key produced a usable answer."""


def _is_quota_error(status: Optional[int], message: str) -> bool:
    return status == 429 or "429" in message or "resource_exhausted" in message or "quota" in message


def _is_unknown_key_error(message: str) -> bool:
    return "requested entity was not found" in message


class GeminiClient:
    def __init__(
        self,
        api_keys: Sequence[str],
        *,
        model: str = DEFAULT_MODEL,
        base_url: str = BASE_URL,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_keys = [k.strip() for k in api_keys if k and k.strip()]
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def generate_json(self, prompt: str, *, response_schema: Optional[dict[str, Any]] = None) -> Any:
        """
        Send `prompt` and return the decoded JSON answer.
        """
        generation_config: dict[str, Any] = {"responseMimeType": "application/json"}
        if response_schema is not None:
            generation_config["responseSchema"] = response_schema
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }

        text = self._post_with_rotation(payload)
        try:
            return json.loads(text.strip())
        except json.JSONDecodeError as exc:
            raise AIGenerationError(f"Model did not return valid JSON: {text[:500]}") from exc

    def _post_with_rotation(self, payload: dict[str, Any]) -> str:
        if not self.api_keys:
            raise AIGenerationError("No API key configured (set API_KEY or GEMINI_API_KEYS).")

        last_error: Optional[Exception] = None
        for i, key in enumerate(self.api_keys, start=1):
            try:
                resp = self._session.post(self.url, params={"key": key}, json=payload, timeout=self.timeout)
                resp.raise_for_status()
            except requests.HTTPError as exc:
                last_error = exc
                status = exc.response.status_code if exc.response is not None else None
                body = exc.response.text if exc.response is not None else ""
                message = f"{exc} {body}".lower()

                if _is_unknown_key_error(message):
                    log.error("API key #%d is invalid or unknown to the server", i)
                    continue
                if _is_quota_error(status, message):
                    log.warning("API key #%d hit its quota, trying the next key", i)
                    continue
                raise
            except requests.RequestException as exc:
                raise AIGenerationError(f"Request to Gemini failed: {exc}") from exc

            return self._extract_text(resp)

        raise AIGenerationError(f"All API keys failed: {last_error}")

    @staticmethod
    def _extract_text(resp: requests.Response) -> str:
        try:
            data = resp.json()
            parts = data["candidates"][0]["content"]["parts"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise AIGenerationError(f"Unexpected Gemini response: {resp.text[:500]}") from exc

        texts = [p.get("text") for p in parts if isinstance(p, dict) and p.get("text")]
        if not texts:
            raise AIGenerationError("Gemini returned no text parts.")
        return "\n".join(texts)
