from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from magic_editor.config import Settings
from magic_editor.domain.entities.geometry import Dimensions, PixelRect
from magic_editor.domain.entities.image import PNG_MIME, ImageAsset
from magic_editor.domain.entities.provider_result import (
    ImageResult,
    ProviderFailure,
    ProviderResult,
    TextResult,
)
from magic_editor.domain.errors import ProviderError
from magic_editor.domain.services.geometry_service import GeometryService
from magic_editor.domain.services.raster import BLACK, WHITE
from magic_editor.infrastructure.credentials import HF_API_KEY, HF_CUSTOM_ENDPOINT, CredentialStore
from magic_editor.infrastructure.providers.media import detect_image_mime

logger = logging.getLogger(__name__)

CONNECTION_TEST_MODEL = "bert-base-uncased"


@dataclass(frozen=True)
class ConnectionCheck:
    success: bool
    message: str
    status_code: int | None = None


class HuggingFaceClient:
    """Inpainting and outpainting through the Hugging Face Inference API.

    Requests go either to the public inpainting model or to a custom inference
    endpoint stored in the credential store. Inputs are downscaled so the long
    edge stays within ``settings.hf_max_dimension``.
    """

    name = "huggingface"

    def __init__(
        self,
        credentials: CredentialStore,
        geometry: GeometryService,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.credentials = credentials
        self.geometry = geometry
        self.settings = settings or Settings()
        self._transport = transport

    # --------- configuration ---------
    def _api_key(self) -> str:
        api_key = self.credentials.get(HF_API_KEY)
        if not api_key:
            raise ProviderError("Hugging Face API key is not set. Enter it in settings.")
        if not api_key.startswith("hf_"):
            raise ProviderError("Invalid Hugging Face API key format. Keys start with 'hf_'.")
        return api_key

    @property
    def custom_endpoint(self) -> str | None:
        return self.credentials.get(HF_CUSTOM_ENDPOINT)

    @property
    def endpoint(self) -> str:
        return self.custom_endpoint or f"{self.settings.hf_api_url}/{self.settings.hf_inpaint_model}"

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.request_timeout, transport=self._transport)

    # --------- operations ---------
    async def inpaint(self, asset: ImageAsset, mask: ImageAsset, prompt: str) -> ProviderResult:
        """Regenerate the white areas of ``mask`` guided by ``prompt``."""
        try:
            api_key = self._api_key()
        except ProviderError as exc:
            return ProviderFailure(str(exc), provider=self.name)

        image_bytes, image_mime, _ = self._constrained(asset)
        mask_bytes, _, _ = self._constrained(mask, force_mime=PNG_MIME)
        return await self._post_inpaint(api_key, image_bytes, image_mime, mask_bytes, prompt)

    async def outpaint(
        self, asset: ImageAsset, target_width: int, target_height: int, instruction: str
    ) -> ProviderResult:
        try:
            api_key = self._api_key()
        except ProviderError as exc:
            return ProviderFailure(str(exc), provider=self.name)

        limit = self.settings.hf_max_dimension
        canvas = self.geometry.downscaled_dimensions(target_width, target_height, limit)
        if canvas != Dimensions(target_width, target_height):
            logger.info("Outpaint target %sx%s constrained to %s", target_width, target_height, canvas)

        image, source = self.geometry.decode(asset)
        placement = self._placement(source, canvas)
        backend = self.geometry.backend

        surface = backend.create_surface(canvas.width, canvas.height, WHITE)
        backend.draw_image_into(surface, image, PixelRect.full(source), placement)
        # white = generate, black = keep
        mask = backend.create_surface(canvas.width, canvas.height, WHITE)
        backend.fill_rect(mask, placement, BLACK)

        return await self._post_inpaint(
            api_key,
            backend.export_as_encoded_image(surface, PNG_MIME),
            PNG_MIME,
            backend.export_as_encoded_image(mask, PNG_MIME),
            instruction,
        )

    async def edit(self, asset: ImageAsset, instruction: str) -> ProviderResult:
        """Whole-image edit: inpaint with a mask that covers everything."""
        try:
            api_key = self._api_key()
        except ProviderError as exc:
            return ProviderFailure(str(exc), provider=self.name)

        image_bytes, image_mime, size = self._constrained(asset)
        backend = self.geometry.backend
        mask = backend.create_surface(size.width, size.height, WHITE)
        return await self._post_inpaint(
            api_key,
            image_bytes,
            image_mime,
            backend.export_as_encoded_image(mask, PNG_MIME),
            instruction,
        )

    async def test_connection(self) -> ConnectionCheck:
        api_key = self.credentials.get(HF_API_KEY)
        if not api_key:
            return ConnectionCheck(False, "No API key configured. Set your Hugging Face API key in settings.")
        url = f"{self.settings.hf_api_url}/{CONNECTION_TEST_MODEL}"
        try:
            async with self._http() as client:
                response = await client.get(url, headers={"Authorization": f"Bearer {api_key}"})
        except httpx.HTTPError as exc:
            logger.warning("Hugging Face connection test failed: %s", exc)
            return ConnectionCheck(False, f"Connection failed: {exc}")
        if response.is_success:
            return ConnectionCheck(True, "Connection successful.", response.status_code)
        return ConnectionCheck(
            False, f"API returned error status {response.status_code}", response.status_code
        )

    # --------- helpers ---------
    @staticmethod
    def _placement(source: Dimensions, canvas: Dimensions) -> PixelRect:
        # centered at native size; shrunk only when it would not fit the canvas
        if source.width <= canvas.width and source.height <= canvas.height:
            return PixelRect(
                float((canvas.width - source.width) // 2),
                float((canvas.height - source.height) // 2),
                float(source.width),
                float(source.height),
            )
        return GeometryService.fit_layout(source, canvas)

    def _constrained(
        self, asset: ImageAsset, force_mime: str | None = None
    ) -> tuple[bytes, str, Dimensions]:
        limit = self.settings.hf_max_dimension
        image, source = self.geometry.decode(asset)
        size = self.geometry.downscaled_dimensions(source.width, source.height, limit)
        mime = force_mime or asset.mime_type
        if size == source:
            return asset.raw_bytes, mime, size
        backend = self.geometry.backend
        surface = backend.create_surface(size.width, size.height, BLACK)
        backend.draw_image_into(surface, image, PixelRect.full(source), PixelRect.full(size))
        logger.info("Downscaled %s from %s to %s for Hugging Face", asset.id, source, size)
        return backend.export_as_encoded_image(surface, PNG_MIME), PNG_MIME, size

    async def _post_inpaint(
        self, api_key: str, image: bytes, image_mime: str, mask: bytes, prompt: str
    ) -> ProviderResult:
        files = {
            "image": ("image.png", image, image_mime),
            "mask": ("mask.png", mask, PNG_MIME),
        }
        try:
            async with self._http() as client:
                response = await client.post(
                    self.endpoint,
                    headers={"Authorization": f"Bearer {api_key}"},
                    data={"prompt": prompt},
                    files=files,
                )
        except httpx.HTTPError as exc:
            logger.warning("Hugging Face request failed: %s", exc)
            return ProviderFailure(
                "Could not reach the Hugging Face API. Check your connection and API key.",
                provider=self.name,
            )
        return self._parse(response)

    def _parse(self, response: httpx.Response) -> ProviderResult:
        if response.status_code == 401:
            return ProviderFailure(
                "Invalid Hugging Face API key. Check your key in settings.", provider=self.name
            )
        if response.status_code == 503:
            if self.custom_endpoint:
                message = "The model is loading (this can take 30-60 seconds on first use). Wait and try again."
            else:
                message = "The model is loading. Wait a few seconds and try again."
            return ProviderFailure(message, provider=self.name)
        if not response.is_success:
            logger.warning("Hugging Face API error %s: %s", response.status_code, response.text[:500])
            return ProviderFailure(
                f"Hugging Face API error ({response.status_code}): {response.text[:500]}",
                provider=self.name,
            )

        body = response.content
        if not body:
            return ProviderFailure("Hugging Face API returned an empty image.", provider=self.name)
        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        mime = detect_image_mime(body) or (content_type if content_type.startswith("image/") else None)
        if mime is None:
            return TextResult(_body_text(response), provider=self.name)
        return ImageResult(ImageAsset.from_bytes(body, mime, prefix="hf"), provider=self.name)


def _body_text(response: httpx.Response) -> str:
    try:
        payload: Any = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict):
        for key in ("generated_text", "error", "message"):
            if isinstance(payload.get(key), str):
                return payload[key]
    return response.text
