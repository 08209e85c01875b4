# GobbleShell — Interactive Pipeline Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Gemini text-generation client used by the ``ai`` built-in.

Every failure (missing credential, transport error, HTTP error status,
unexpected payload) is raised as an AIQueryError subclass so the caller
can report it and keep the session alive.
"""

from __future__ import annotations

import os
from typing import Any

import httpx
from dotenv import find_dotenv, load_dotenv

DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_API_KEY_ENV = "GEMINI_API_KEY"


class AIQueryError(Exception):
    """Base error for a failed ``ai`` request."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CredentialError(AIQueryError):
    """The API key is missing or malformed."""


class ServiceError(AIQueryError):
    """The request failed or the response could not be used."""


def read_api_key(env_var: str = DEFAULT_API_KEY_ENV) -> str:
    """Read and sanity-check the credential from the environment."""
    raw = os.environ.get(env_var)
    if raw is None:
        raise CredentialError(f"{env_var} is not set")
    key = raw.strip()
    if not key or any(ch.isspace() for ch in key):
        raise CredentialError(f"{env_var} is malformed")
    return key


def load_env_file() -> None:
    """Load ``.env`` from the working directory or one of its parents.

    Variables already present in the environment are left untouched.
    """
    path = find_dotenv(usecwd=True)
    if path:
        load_dotenv(path, override=False)


class GeminiClient:
    """Synchronous client for the ``generateContent`` endpoint.

    The credential is read on every call, after loading any ``.env``,
    so exporting the variable in a running session takes effect without
    a restart.
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key_env: str = DEFAULT_API_KEY_ENV,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.model = model
        self.api_key_env = api_key_env
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _url(self) -> str:
        return f"{self.endpoint}/models/{self.model}:generateContent"

    def generate(self, message: str) -> str:
        load_env_file()
        api_key = read_api_key(self.api_key_env)
        body = {
            "contents": [
                {"role": "user", "parts": [{"text": message}]},
            ]
        }
        try:
            with httpx.Client(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = client.post(
                    self._url(),
                    json=body,
                    headers={"x-goog-api-key": api_key},
                )
        except httpx.TimeoutException as e:
            raise ServiceError(
                f"request timed out after {self.timeout} seconds"
            ) from e
        except httpx.HTTPError as e:
            raise ServiceError(f"request failed: {e}") from e

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> str:
        """Extract the response text or raise ServiceError."""
        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.is_success:
            detail = _error_message(data) or response.text or "empty response"
            raise ServiceError(f"HTTP {response.status_code}: {detail}")
        if not isinstance(data, dict):
            raise ServiceError("response was not a JSON object")

        return _response_text(data)


def _error_message(data: Any) -> str | None:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return None


def _response_text(data: dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback") or {}
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if reason:
            raise ServiceError(f"prompt blocked: {reason}")
        raise ServiceError("response contained no candidates")

    if not isinstance(candidates, list) or not isinstance(candidates[0], dict):
        raise ServiceError("unexpected response shape")
    content = candidates[0].get("content") or {}
    if not isinstance(content, dict):
        raise ServiceError("unexpected response shape")
    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise ServiceError("unexpected response shape")

    texts = [
        str(p["text"]) for p in parts if isinstance(p, dict) and "text" in p
    ]
    if not texts:
        raise ServiceError("response contained no text")
    return "".join(texts)
