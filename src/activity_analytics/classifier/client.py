"""Chat-completions client for the external text classifier."""

from __future__ import annotations

import json
import logging

import httpx

from activity_analytics.config import DEFAULT_BASE_URL, DEFAULT_MODEL
from activity_analytics.exceptions import (
    ClassificationError,
    ClassifierResponseMalformedError,
    ClassifierTimeoutError,
    ClassifierUnavailableError,
    ConfigurationError,
)
from activity_analytics.instrumentation import mask_sensitive

logger = logging.getLogger(__name__)


class ClassifierClient:
    """OpenAI-compatible ``/chat/completions`` client.

    One request per call, no automatic retry: timeouts and outages are
    surfaced to the caller, which decides whether to try again.

    Args:
        api_key: Bearer token for the classifier endpoint.
        base_url: Endpoint root; ``/chat/completions`` is appended.
        model: Model name sent with every request.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        if not api_key:
            raise ConfigurationError(
                "Classifier API key is required. "
                "Pass it directly or set CLASSIFIER_API_KEY in your environment."
            )
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
    ) -> str:
        """Send one system + user message pair and return the reply content."""
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
        }
        logger.debug(
            "Classifier request to %s: %s",
            self.endpoint,
            mask_sensitive(json.dumps(body, ensure_ascii=False)[:500]),
        )

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    self.endpoint,
                    json=body,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.TimeoutException as e:
            raise ClassifierTimeoutError(
                f"Classifier did not respond within {self.timeout}s"
            ) from e
        except httpx.TransportError as e:
            raise ClassifierUnavailableError(f"Classifier unreachable: {e}") from e

        if response.status_code >= 500 or response.status_code == 429:
            raise ClassifierUnavailableError(
                f"Classifier returned HTTP {response.status_code}"
            )
        if response.status_code != 200:
            raise ClassificationError(
                f"Classifier rejected the request with HTTP {response.status_code}: "
                f"{mask_sensitive(response.text[:200])}"
            )

        return self._extract_content(response)

    @staticmethod
    def _extract_content(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError as e:
            raise ClassifierResponseMalformedError("Classifier reply is not JSON") from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            logger.warning("Classifier reply has no choices")
            raise ClassifierResponseMalformedError("Classifier reply has no choices")

        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message")
        if not isinstance(message, dict):
            raise ClassifierResponseMalformedError("Classifier reply has no message")

        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise ClassifierResponseMalformedError("Classifier reply content is empty")
        return content.strip()
