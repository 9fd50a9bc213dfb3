"""Vertex AI Gemini client for structured report generation.

Requests go to the ``generateContent`` REST endpoint with a JSON response
MIME type, authenticated with Application Default Credentials.  The
``standard`` and ``premium`` report modes map to different models.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx
from google.auth import default as google_auth_default
from google.auth.transport.requests import Request

from .prompts import SYSTEM_INSTRUCTIONS


logger = logging.getLogger("obdscribe")

VERTEX_API_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class ModelClientError(RuntimeError):
    """The generative model could not be reached or returned no candidate."""


def _extract_text(payload: dict[str, Any]) -> str:
    candidates = payload.get("candidates") or []
    if not candidates:
        raise ModelClientError("Vertex AI response has no candidates")
    content = candidates[0].get("content") or {}
    parts = content.get("parts") or []
    return "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict))


class ReportModelClient:
    """Call a Gemini model and return its raw JSON text."""

    def __init__(
        self,
        *,
        project_id: str,
        location: str,
        standard_model: str,
        premium_model: str,
        system_prompt: str = SYSTEM_INSTRUCTIONS,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.project_id = project_id
        self.location = location
        self.standard_model = standard_model
        self.premium_model = premium_model
        self.system_prompt = system_prompt
        self.timeout = timeout
        self._http_client = http_client
        self._credentials = None
        self._auth_request = Request()

    def model_for_mode(self, mode: str) -> str:
        return self.premium_model if mode == "premium" else self.standard_model

    def endpoint_for(self, model_id: str) -> str:
        host = (
            "aiplatform.googleapis.com"
            if self.location == "global"
            else f"{self.location}-aiplatform.googleapis.com"
        )
        return (
            f"https://{host}/v1/projects/{self.project_id}/locations/{self.location}/"
            f"publishers/google/models/{model_id}:generateContent"
        )

    def build_request_body(self, prompt: str) -> dict[str, Any]:
        return {
            "systemInstruction": {"parts": [{"text": self.system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }

    async def generate_json(self, *, mode: str, prompt: str) -> str:
        """Return the model's text response for ``prompt``.

        The text is expected to be JSON, but it is returned unparsed; the
        caller decides how to treat malformed output.
        """
        token = await self._get_access_token()
        model_id = self.model_for_mode(mode)
        response = await self._post(
            self.endpoint_for(model_id),
            json=self.build_request_body(prompt),
            headers={"Authorization": f"Bearer {token}"},
        )
        if not response.is_success:
            raise ModelClientError(
                f"Vertex AI generateContent failed for {model_id} with HTTP {response.status_code}"
            )
        return _extract_text(response.json())

    async def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, timeout=self.timeout, **kwargs)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, **kwargs)

    async def _get_access_token(self) -> str:
        if self._credentials is None:
            credentials, detected_project_id = await asyncio.to_thread(
                google_auth_default,
                scopes=[VERTEX_API_SCOPE],
            )
            self._credentials = credentials
            if not self.project_id:
                self.project_id = detected_project_id or ""
        if not self.project_id:
            raise ModelClientError(
                "Google Cloud project id is unavailable. Set OBDSCRIBE_PROJECT_ID or GOOGLE_CLOUD_PROJECT."
            )
        if not self._credentials.valid:
            await asyncio.to_thread(self._credentials.refresh, self._auth_request)
        if not self._credentials.token:
            raise ModelClientError("Unable to acquire an access token for Vertex AI")
        return str(self._credentials.token)
