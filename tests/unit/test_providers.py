import asyncio
import base64
import json
import struct
from types import SimpleNamespace

import httpx
import openai

from magic_editor.application.orchestrator import EditOrchestrator
from magic_editor.application.use_cases.upload_image import UploadedFile
from magic_editor.config import Settings
from magic_editor.domain.entities.image import ImageAsset
from magic_editor.domain.entities.provider_result import ImageResult, ProviderFailure, TextResult
from magic_editor.infrastructure.credentials import (
    HF_API_KEY,
    HF_CUSTOM_ENDPOINT,
    XAI_API_KEY,
    CredentialStore,
)
from magic_editor.infrastructure.providers.grok_client import GrokClient
from magic_editor.infrastructure.providers.huggingface_client import HuggingFaceClient
from magic_editor.infrastructure.providers.hybrid import HybridEditProvider
from magic_editor.infrastructure.providers.media import detect_image_mime


def png_sizes(body: bytes) -> list[tuple[int, int]]:
    """Width/height of every PNG embedded in a multipart body (read from IHDR)."""
    sizes = []
    start = body.find(b"\x89PNG")
    while start >= 0:
        sizes.append(struct.unpack(">II", body[start + 16 : start + 24]))
        start = body.find(b"\x89PNG", start + 8)
    return sizes


class Recorder:
    def __init__(self, response):
        self.response = response
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response(request) if callable(self.response) else self.response


def hf_client(geometry, handler, key="hf_test", endpoint=None):
    credentials = CredentialStore({HF_API_KEY: key, HF_CUSTOM_ENDPOINT: endpoint or ""})
    return HuggingFaceClient(
        credentials, geometry, Settings(), transport=httpx.MockTransport(handler)
    )


# --------- Hugging Face ---------
def test_hf_edit_posts_multipart_and_returns_image(geometry, make_image):
    result_png = make_image(16, 16)
    recorder = Recorder(httpx.Response(200, content=result_png, headers={"content-type": "image/png"}))
    client = hf_client(geometry, recorder)
    source = ImageAsset.from_bytes(make_image(40, 30), "image/png")

    result = asyncio.run(client.edit(source, "paint it blue"))

    assert isinstance(result, ImageResult)
    assert result.asset.raw_bytes == result_png
    request = recorder.requests[0]
    assert request.headers["Authorization"] == "Bearer hf_test"
    assert str(request.url).endswith("/runwayml/stable-diffusion-inpainting")
    body = request.read()
    assert b'name="prompt"' in body and b"paint it blue" in body
    assert png_sizes(body) == [(40, 30), (40, 30)]


def test_hf_outpaint_constrains_canvas_and_mask(geometry, make_image):
    recorder = Recorder(httpx.Response(200, content=make_image(8, 8)))
    client = hf_client(geometry, recorder, endpoint="https://custom.endpoint")
    source = ImageAsset.from_bytes(make_image(400, 300), "image/png")

    result = asyncio.run(client.outpaint(source, 1792, 1008, "extend the lake"))

    assert isinstance(result, ImageResult)
    request = recorder.requests[0]
    assert str(request.url) == "https://custom.endpoint"
    assert png_sizes(request.read()) == [(1024, 576), (1024, 576)]


def test_hf_inpaint_downscales_image_and_mask(geometry, make_image):
    recorder = Recorder(httpx.Response(200, content=make_image(8, 8)))
    client = hf_client(geometry, recorder)
    source = ImageAsset.from_bytes(make_image(2048, 1536, fmt="JPEG"), "image/jpeg")
    mask = ImageAsset.from_bytes(make_image(2048, 1536, color=(255, 255, 255)), "image/png")

    result = asyncio.run(client.inpaint(source, mask, "replace the boat with a swan"))

    assert isinstance(result, ImageResult)
    body = recorder.requests[0].read()
    assert b'name="image"' in body and b'name="mask"' in body
    assert b"replace the boat with a swan" in body
    assert png_sizes(body) == [(1024, 768), (1024, 768)]


def test_hf_inpaint_passes_small_inputs_through(geometry, make_image):
    recorder = Recorder(httpx.Response(200, content=make_image(8, 8)))
    client = hf_client(geometry, recorder)
    raw = make_image(64, 48)
    source = ImageAsset.from_bytes(raw, "image/png")
    mask = ImageAsset.from_bytes(make_image(64, 48, color=(255, 255, 255)), "image/png")

    asyncio.run(client.inpaint(source, mask, "x"))

    assert raw in recorder.requests[0].read()


def test_hf_rejects_keys_without_prefix(geometry, make_image):
    recorder = Recorder(httpx.Response(200))
    client = hf_client(geometry, recorder, key="sk-123")
    source = ImageAsset.from_bytes(make_image(), "image/png")

    result = asyncio.run(client.edit(source, "x"))

    assert isinstance(result, ProviderFailure)
    assert "hf_" in result.message
    assert recorder.requests == []


def test_hf_status_codes_map_to_messages(geometry, make_image):
    source = ImageAsset.from_bytes(make_image(), "image/png")
    unauthorized = hf_client(geometry, Recorder(httpx.Response(401, text="nope")))
    loading = hf_client(geometry, Recorder(httpx.Response(503, text="loading")))
    broken = hf_client(geometry, Recorder(httpx.Response(500, text="boom")))

    assert "Invalid Hugging Face API key" in asyncio.run(unauthorized.edit(source, "x")).message
    assert "loading" in asyncio.run(loading.edit(source, "x")).message
    assert "(500)" in asyncio.run(broken.edit(source, "x")).message


def test_hf_empty_and_text_bodies(geometry, make_image):
    source = ImageAsset.from_bytes(make_image(), "image/png")
    empty = hf_client(geometry, Recorder(httpx.Response(200, content=b"")))
    text = hf_client(
        geometry,
        Recorder(httpx.Response(200, content=json.dumps({"error": "NSFW content"}).encode())),
    )

    assert isinstance(asyncio.run(empty.edit(source, "x")), ProviderFailure)
    result = asyncio.run(text.edit(source, "x"))
    assert isinstance(result, TextResult)
    assert result.text == "NSFW content"


def test_hf_network_errors_become_failures(geometry, make_image):
    def fail(request):
        raise httpx.ConnectError("no route", request=request)

    source = ImageAsset.from_bytes(make_image(), "image/png")
    result = asyncio.run(hf_client(geometry, fail).edit(source, "x"))
    assert isinstance(result, ProviderFailure)
    assert "Could not reach" in result.message


def test_hf_connection_check(geometry):
    ok = hf_client(geometry, Recorder(httpx.Response(200, json={"model": "bert"})))
    check = asyncio.run(ok.test_connection())
    assert check.success and check.status_code == 200


# --------- Grok ---------
class FakeOpenAI:
    def __init__(self, chat_text="A description", image_data=None, error=None):
        self.chat_calls = []
        self.image_calls = []
        self.chat_text = chat_text
        self.image_data = image_data
        self.error = error
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        self.images = SimpleNamespace(generate=self._generate)

    async def _create(self, **kwargs):
        self.chat_calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.chat_text)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    async def _generate(self, **kwargs):
        self.image_calls.append(kwargs)
        return SimpleNamespace(data=self.image_data)


def grok(fake, key="xai-key", http_client=None):
    credentials = CredentialStore({XAI_API_KEY: key})
    return GrokClient(credentials, Settings(), client_factory=lambda _: fake, http_client=http_client)


def test_grok_describe_sends_image_as_data_url(make_image):
    fake = FakeOpenAI(chat_text="  Golden light over a lake  ")
    source = ImageAsset.from_bytes(make_image(), "image/png")

    result = asyncio.run(grok(fake).describe(source))

    assert result == TextResult("Golden light over a lake", "grok")
    content = fake.chat_calls[0]["messages"][0]["content"]
    assert content[1]["image_url"]["url"].startswith("data:image/png;base64,")
    assert fake.chat_calls[0]["model"] == "grok-4-fast-reasoning"


def test_grok_translate_strips_quotes_and_falls_back():
    quoted = asyncio.run(grok(FakeOpenAI(chat_text='"make the sky pink"')).translate("gör himlen rosa"))
    assert quoted.text == "make the sky pink"

    empty = asyncio.run(grok(FakeOpenAI(chat_text="")).translate("gör himlen rosa"))
    assert empty.text == "gör himlen rosa"


def test_grok_without_key_fails_without_calling():
    fake = FakeOpenAI()
    result = asyncio.run(grok(fake, key="").translate("hello"))
    assert isinstance(result, ProviderFailure)
    assert fake.chat_calls == []


def test_grok_api_errors_become_failures():
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://api.x.ai/v1"))
    result = asyncio.run(grok(FakeOpenAI(error=error)).translate("hello"))
    assert isinstance(result, ProviderFailure)
    assert result.provider == "grok"


def test_grok_edit_decodes_b64_json(make_image):
    jpeg = make_image(12, 12, fmt="JPEG")
    fake = FakeOpenAI(
        chat_text="A lake with a pink sky",
        image_data=[SimpleNamespace(b64_json=base64.b64encode(jpeg).decode(), url=None)],
    )
    source = ImageAsset.from_bytes(make_image(), "image/png")

    result = asyncio.run(grok(fake).edit(source, "make the sky pink"))

    assert isinstance(result, ImageResult)
    assert result.asset.mime_type == "image/jpeg"
    assert fake.image_calls[0]["prompt"] == "A lake with a pink sky"
    assert "make the sky pink" in fake.chat_calls[0]["messages"][0]["content"][0]["text"]


def test_grok_edit_malformed_b64_is_a_failure(make_image):
    fake = FakeOpenAI(image_data=[SimpleNamespace(b64_json="not*valid*base64!", url=None)])
    source = ImageAsset.from_bytes(make_image(), "image/png")

    result = asyncio.run(grok(fake).edit(source, "x"))

    assert isinstance(result, ProviderFailure)
    assert result.message == "The AI returned malformed image data."


def test_grok_edit_downloads_url(make_image):
    png = make_image(6, 6)
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, content=png)))
    fake = FakeOpenAI(image_data=[SimpleNamespace(b64_json=None, url="https://img.x.ai/1.png")])
    source = ImageAsset.from_bytes(make_image(), "image/png")

    result = asyncio.run(grok(fake, http_client=http).edit(source, "x"))

    assert isinstance(result, ImageResult)
    assert result.asset.raw_bytes == png


def test_grok_edit_without_image_data_fails(make_image):
    source = ImageAsset.from_bytes(make_image(), "image/png")
    result = asyncio.run(grok(FakeOpenAI(image_data=[])).edit(source, "x"))
    assert isinstance(result, ProviderFailure)


# --------- hybrid ---------
def test_hybrid_plans_with_grok_and_renders_with_hf(geometry, make_image):
    recorder = Recorder(httpx.Response(200, content=make_image(8, 8)))
    provider = HybridEditProvider(
        grok(FakeOpenAI(chat_text="A detailed pink sky prompt")), hf_client(geometry, recorder)
    )
    source = ImageAsset.from_bytes(make_image(), "image/png")

    result = asyncio.run(provider.edit(source, "pink sky"))

    assert isinstance(result, ImageResult)
    assert b"A detailed pink sky prompt" in recorder.requests[0].read()


def test_detect_image_mime(make_image):
    assert detect_image_mime(make_image()) == "image/png"
    assert detect_image_mime(make_image(fmt="JPEG")) == "image/jpeg"
    assert detect_image_mime(b"{}") is None


def test_malformed_grok_image_fails_the_operation(geometry, providers, make_image):
    fake = FakeOpenAI(image_data=[SimpleNamespace(b64_json="not*valid*base64!", url=None)])
    orchestrator = EditOrchestrator(
        geometry,
        vision=providers.vision,
        translator=providers.translator,
        editor=grok(fake),
        outpainter=providers.outpainter,
    )
    upload = UploadedFile("photo.png", make_image(64, 48), "image/png")
    asyncio.run(orchestrator.upload([upload]))

    outcome = asyncio.run(orchestrator.enhance())

    assert not outcome.ok
    assert orchestrator.last_error == "The AI returned malformed image data."
    assert outcome.session.history == ()
