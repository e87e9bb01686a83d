"""AI drafting of titles, stories and tags through Gemini.

Requests go to the credential vault when it is enabled, so the Gallery API
never holds the real key.  With the vault disabled the configured key is sent
directly to the provider.

Failures map onto the shared error taxonomy:

- the vault/provider cannot be reached, or no key is configured in direct
  mode: :class:`~atelier.core.errors.UpstreamUnavailable`
- the provider answers with an error or without any text:
  :class:`~atelier.core.errors.UpstreamRejected`

Provider details are logged and never returned to the caller.
"""

from __future__ import annotations

import base64
import logging

import httpx

from atelier.core.config import AtelierConfig
from atelier.core.errors import UpstreamRejected, UpstreamUnavailable
from atelier.core.validation import ImagePayload

logger = logging.getLogger(__name__)

PROMPT_TEMPLATES = {
    "title": (
        "Looking at this image, generate a short, abstract, poetic title. "
        "Context provided: {context}"
    ),
    "story": (
        "Looking at this image, write a deep, engaging backing story (approx 100 words). "
        "Use a mysterious, tech-noir tone. Context: {context}"
    ),
    "tags": (
        "Analyze this image and generate 10 relevant, high-traffic Instagram hashtags. "
        "Return only tags separated by spaces. Context: {context}"
    ),
}

GENERATION_FAILED = "AI Generation Failed"


def build_prompt(generation_type: str, context: str) -> str:
    """Fill the prompt template for *generation_type* with *context*."""
    return PROMPT_TEMPLATES[generation_type].format(context=context or "")


def extract_text(payload: dict) -> str:
    """Concatenate the text parts of the first candidate in a Gemini response.

    Returns:
        The stripped text, or ``""`` if the response carries none.
    """
    if not isinstance(payload, dict):
        return ""
    candidates = payload.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(
        part.get("text", "") for part in parts if isinstance(part, dict)
    ).strip()


class GenerationClient:
    """Thin async client for Gemini ``generateContent``.

    Args:
        config: Application configuration (vault and Gemini settings).
        http: Shared ``httpx.AsyncClient``; owned by the application lifespan.
    """

    def __init__(self, config: AtelierConfig, http: httpx.AsyncClient):
        self.config = config
        self.http = http

    @property
    def endpoint(self) -> str:
        if self.config.vault_enabled:
            base = f"{self.config.vault_url.rstrip('/')}/proxy/gemini"
        else:
            base = self.config.gemini_api_base.rstrip("/")
        return f"{base}/v1beta/models/{self.config.gemini_model}:generateContent"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.vault_enabled:
            return headers
        if not self.config.gemini_api_key:
            logger.error("Gemini API key is not configured and the vault is disabled")
            raise UpstreamUnavailable("AI provider credentials are not configured")
        headers["x-goog-api-key"] = self.config.gemini_api_key
        return headers

    async def generate(self, generation_type: str, context: str, image: ImagePayload) -> str:
        """Draft text of the given type for *image*.

        Args:
            generation_type: One of ``title``, ``story``, ``tags``.
            context: Free-text hints from the user.
            image: Decoded image the model should look at.

        Returns:
            The generated text.
        """
        headers = self._headers()
        body = {
            "contents": [
                {
                    "parts": [
                        {"text": build_prompt(generation_type, context)},
                        {
                            "inline_data": {
                                "mime_type": image.mime_type,
                                "data": base64.b64encode(image.data).decode("ascii"),
                            }
                        },
                    ]
                }
            ]
        }

        try:
            response = await self.http.post(self.endpoint, headers=headers, json=body)
        except httpx.TransportError as e:
            target = "credential vault" if self.config.vault_enabled else "AI provider"
            logger.error(f"Could not reach the {target}: {e}")
            raise UpstreamUnavailable(f"The {target} is unreachable") from e

        if response.is_error:
            logger.error(
                f"AI provider returned {response.status_code} for {generation_type}: "
                f"{response.text[:500]}"
            )
            raise UpstreamRejected(GENERATION_FAILED)

        try:
            text = extract_text(response.json())
        except ValueError as e:
            logger.error(f"AI provider returned a non-JSON body: {e}")
            raise UpstreamRejected(GENERATION_FAILED) from e

        if not text:
            logger.error(f"AI provider returned no text for {generation_type}")
            raise UpstreamRejected(GENERATION_FAILED)

        logger.info(f"Generated {generation_type} ({len(text)} chars)")
        return text
