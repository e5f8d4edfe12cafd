from __future__ import annotations

import base64
import logging
from typing import Any, Callable

import httpx
from openai import AsyncOpenAI, OpenAIError

from magic_editor.config import Settings
from magic_editor.domain.entities.image import ImageAsset
from magic_editor.domain.entities.provider_result import (
    ImageResult,
    ProviderFailure,
    ProviderResult,
    TextResult,
)
from magic_editor.domain.errors import ProviderError
from magic_editor.domain.services.prompt_service import clean_model_text, truncate_prompt
from magic_editor.infrastructure.credentials import XAI_API_KEY, CredentialStore
from magic_editor.infrastructure.providers.media import (
    detect_image_mime,
    first_message_text,
    looks_like_policy_block,
)

logger = logging.getLogger(__name__)

SCENE_ANALYSIS_PROMPT = (
    "You are a scene analysis expert preparing an image for AI outpainting. "
    "Provide a concise but detailed description of the image's core visual DNA, "
    "which another AI will use to seamlessly extend the scene. Focus on:\n\n"
    "- Artistic style and medium\n"
    "- Subject and environment\n"
    "- Lighting conditions\n"
    "- Color palette\n\n"
    "Respond only with this analysis in English, without introductions."
)

EDIT_ANALYSIS_TEMPLATE = (
    "Analyze this image in detail and then write an image generation prompt that "
    'produces a new version of it with the following modification: "{instruction}".\n\n'
    "The prompt must describe the current image accurately, incorporate the requested "
    "change, keep style, lighting and composition consistent, and be specific enough "
    "for high-quality generation.\n\n"
    "Respond ONLY with the image generation prompt."
)

TRANSLATION_SYSTEM_PROMPT = (
    "You are a translation expert. Translate the user's input to English. "
    "Respond ONLY with the translated English text, without commentary. "
    "If the input is already in English, return it unchanged."
)

ClientFactory = Callable[[str], Any]


class GrokClient:
    """xAI Grok adapter: vision analysis, translation and prompt-driven image edits.

    Every public method returns a ``ProviderResult``; transport and API errors are
    reported as ``ProviderFailure`` instead of raised.
    """

    name = "grok"

    def __init__(
        self,
        credentials: CredentialStore,
        settings: Settings | None = None,
        *,
        client_factory: ClientFactory | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.credentials = credentials
        self.settings = settings or Settings()
        self._client_factory = client_factory
        self._http_client = http_client

    def _client(self) -> Any:
        api_key = self.credentials.get(XAI_API_KEY)
        if not api_key:
            raise ProviderError("xAI API key is not set. Enter it in settings.")
        if self._client_factory is not None:
            return self._client_factory(api_key)
        return AsyncOpenAI(
            api_key=api_key,
            base_url=self.settings.xai_base_url,
            timeout=self.settings.request_timeout,
        )

    def _failure(self, action: str, exc: Exception) -> ProviderFailure:
        logger.warning("Grok %s failed: %s", action, exc)
        blocked = looks_like_policy_block(exc)
        prefix = "The request was blocked by the provider" if blocked else f"Could not {action}"
        return ProviderFailure(f"{prefix}: {exc}", provider=self.name, blocked=blocked)

    async def _analyze(
        self, client: Any, asset: ImageAsset, text: str, **options: Any
    ) -> str | None:
        response = await client.chat.completions.create(
            model=self.settings.xai_vision_model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": text},
                        {
                            "type": "image_url",
                            "image_url": {"url": asset.data_url, "detail": "high"},
                        },
                    ],
                }
            ],
            max_tokens=500,
            **options,
        )
        return first_message_text(response)

    async def describe(self, asset: ImageAsset) -> ProviderResult:
        try:
            description = await self._analyze(self._client(), asset, SCENE_ANALYSIS_PROMPT)
        except ProviderError as exc:
            return ProviderFailure(str(exc), provider=self.name)
        except OpenAIError as exc:
            return self._failure("analyze the image", exc)
        if not description:
            return ProviderFailure("The AI could not generate a description.", provider=self.name)
        return TextResult(description, provider=self.name)

    async def translate(self, text: str) -> ProviderResult:
        """Translate ``text`` to English; an empty answer falls back to the input."""
        try:
            response = await self._client().chat.completions.create(
                model=self.settings.xai_text_model,
                messages=[
                    {"role": "system", "content": TRANSLATION_SYSTEM_PROMPT},
                    {"role": "user", "content": text},
                ],
                temperature=0,
                max_tokens=500,
            )
        except ProviderError as exc:
            return ProviderFailure(str(exc), provider=self.name)
        except OpenAIError as exc:
            return self._failure("translate the prompt", exc)
        translated = clean_model_text(first_message_text(response) or "")
        if not translated:
            logger.info("Translation returned an empty answer, keeping the original prompt")
            return TextResult(text, provider=self.name)
        return TextResult(translated, provider=self.name)

    async def plan_edit(self, asset: ImageAsset, instruction: str) -> ProviderResult:
        """Turn an edit instruction into a full generation prompt for this image."""
        try:
            image_prompt = await self._plan(self._client(), asset, instruction)
        except ProviderError as exc:
            return ProviderFailure(str(exc), provider=self.name)
        except OpenAIError as exc:
            return self._failure("plan the edit", exc)
        if not image_prompt:
            return ProviderFailure("The AI could not create an edit prompt.", provider=self.name)
        return TextResult(image_prompt, provider=self.name)

    async def _plan(self, client: Any, asset: ImageAsset, instruction: str) -> str | None:
        return await self._analyze(
            client, asset, EDIT_ANALYSIS_TEMPLATE.format(instruction=instruction), temperature=0.7
        )

    async def edit(self, asset: ImageAsset, instruction: str) -> ProviderResult:
        try:
            client = self._client()
            image_prompt = await self._plan(client, asset, instruction)
            if not image_prompt:
                return ProviderFailure("The AI could not create an edit prompt.", provider=self.name)
            response = await client.images.generate(
                model=self.settings.xai_image_model,
                prompt=truncate_prompt(image_prompt),
                n=1,
                response_format="b64_json",
            )
            return await self._image_from_response(response)
        except ProviderError as exc:
            return ProviderFailure(str(exc), provider=self.name)
        except OpenAIError as exc:
            return self._failure("edit the image", exc)
        except httpx.HTTPError as exc:
            return self._failure("download the generated image", exc)

    async def _image_from_response(self, response: Any) -> ProviderResult:
        data = getattr(response, "data", None)
        if not data:
            return ProviderFailure("The AI returned no image. Try another prompt.", provider=self.name)
        item = data[0]
        if getattr(item, "b64_json", None):
            try:
                raw = base64.b64decode(item.b64_json, validate=True)
            except ValueError as exc:
                # binascii.Error is a ValueError
                logger.warning("Grok returned undecodable b64_json: %s", exc)
                return ProviderFailure("The AI returned malformed image data.", provider=self.name)
        elif getattr(item, "url", None):
            raw = await self._download(item.url)
        else:
            revised = getattr(item, "revised_prompt", None)
            if revised:
                return TextResult(revised, provider=self.name)
            return ProviderFailure("The AI could not generate the image.", provider=self.name)

        mime = detect_image_mime(raw)
        if mime is None:
            return TextResult(raw.decode("utf-8", errors="replace"), provider=self.name)
        return ImageResult(ImageAsset.from_bytes(raw, mime, prefix="grok"), provider=self.name)

    async def _download(self, url: str) -> bytes:
        if self._http_client is not None:
            response = await self._http_client.get(url)
        else:
            async with httpx.AsyncClient(timeout=self.settings.request_timeout) as client:
                response = await client.get(url)
        response.raise_for_status()
        return response.content
