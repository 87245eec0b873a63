"""Contract tests for provider adapters and the services built on them."""

import pytest
from aiohttp.test_utils import unused_port

from adapters import ArkImageAdapter, ChatCompletionAdapter, NanoImageAdapter
from models.images import EditorMode, GenerationRequest, PromptEnhanceRequest
from services.enhance_service import PromptEnhanceService
from services.image_service import ImageService
from services.payload_service import ArkPayload, NanoPayload
from utils.cancel import CancelToken
from utils.exceptions import (
    ConfigurationError, RequestCancelled, TransportError, UpstreamError, ValidationException,
)

ARK_RESULT = {
    "model": "seedream-4-0-250828",
    "created": 1757000000,
    "data": [{"url": "https://ark.example.com/1.png", "size": "1280x720"}],
}

NANO_RESULT = {"candidates": [{"content": {"parts": [
    {"inlineData": {"mimeType": "image/png", "data": "iVBORw0KGgo="}},
]}}]}


@pytest.fixture
def provider_settings(test_settings, upstream):
    return test_settings.model_copy(update={
        "ark_base_url": upstream.url,
        "nano_base_url": f"{upstream.url}/v1beta",
        "chatgpt_base_url": f"{upstream.url}/v1",
    })


class TestArkAdapter:

    async def test_generate(self, provider_settings, upstream):
        upstream.respond((200, ARK_RESULT))
        adapter = ArkImageAdapter(provider_settings)

        result = await adapter.generate(ArkPayload(body={"prompt": "fox", "size": "1280x720"}))

        request = upstream.requests[0]
        assert request["path"] == "/api/v3/images/generations"
        assert request["headers"]["Authorization"] == "Bearer test-ark-key"
        assert request["json"] == {"prompt": "fox", "size": "1280x720", "model": "seedream-4-0-250828"}
        assert result.data[0].url == "https://ark.example.com/1.png"

    async def test_error_message_is_extracted(self, provider_settings, upstream):
        upstream.respond((400, {"error": {"message": "The parameter `size` is invalid"}}))

        with pytest.raises(UpstreamError) as exc_info:
            await ArkImageAdapter(provider_settings).generate(ArkPayload(body={"prompt": "fox"}))

        assert exc_info.value.status == 400
        assert exc_info.value.message == "The parameter `size` is invalid"

    async def test_missing_key_raised_on_first_use(self, provider_settings, upstream):
        adapter = ArkImageAdapter(provider_settings.model_copy(update={"ark_api_key": None}))
        with pytest.raises(ConfigurationError):
            await adapter.generate(ArkPayload(body={"prompt": "fox"}))
        assert upstream.requests == []


class TestNanoAdapter:

    async def test_generate(self, provider_settings, upstream):
        upstream.respond((200, NANO_RESULT))
        adapter = NanoImageAdapter(provider_settings)

        result = await adapter.generate(NanoPayload(prompt="fox"))

        request = upstream.requests[0]
        assert request["path"] == "/v1beta/models/gemini-2.5-flash-image-preview:generateContent"
        assert request["headers"]["x-goog-api-key"] == "test-nano-key"
        assert request["json"] == {"contents": [{"role": "user", "parts": [{"text": "fox"}]}]}
        assert result.model == "nano-banana (gemini-2.5-flash-image-preview)"
        assert result.data[0].url == "data:image/png;base64,iVBORw0KGgo="

    def test_configured(self, provider_settings):
        assert NanoImageAdapter(provider_settings).configured
        assert not NanoImageAdapter(provider_settings.model_copy(update={"nano_api_key": ""})).configured


class TestImageService:

    async def test_ark_receives_size_only(self, provider_settings, upstream):
        upstream.respond((200, ARK_RESULT))
        service = ImageService(provider_settings)

        request = GenerationRequest(prompt="fox", width=1280, height=720, size="1280x720", aspect_ratio="16:9")
        await service.create_image(request)

        body = upstream.requests[0]["json"]
        assert body["size"] == "1280x720"
        assert not {"width", "height", "aspect_ratio"} & set(body)
        assert body["watermark"] is True

    async def test_nano_model_routes_to_nano(self, provider_settings, upstream):
        upstream.respond((200, NANO_RESULT))
        service = ImageService(provider_settings)

        result = await service.create_image(GenerationRequest(
            prompt="fox", model="nano-banana", image="data:image/jpeg;base64,AAAA",
        ))

        request = upstream.requests[0]
        assert request["path"].endswith(":generateContent")
        assert request["json"]["contents"][0]["parts"][1] == {
            "inlineData": {"mimeType": "image/jpeg", "data": "AAAA"},
        }
        assert result.data[0].url.startswith("data:image/png;base64,")

    async def test_proxy_mode(self, provider_settings, upstream):
        upstream.respond((200, ARK_RESULT))
        settings = provider_settings.model_copy(update={"generation_proxy_url": f"{upstream.url}/api/generate-image"})

        await ImageService(settings).create_image(GenerationRequest(prompt="fox", width=1280, height=720))

        request = upstream.requests[0]
        assert request["path"] == "/api/generate-image"
        assert request["json"]["width"] == 1280
        assert "size" not in request["json"]

    async def test_retries_use_settings(self, provider_settings, upstream, recorded_sleeps):
        upstream.respond((503, {}), (200, ARK_RESULT))
        settings = provider_settings.model_copy(update={"generation_retries": 2, "retry_delay_ms": 250})

        await ImageService(settings).create_image(GenerationRequest(prompt="fox", size="2K"))

        assert len(upstream.requests) == 2
        assert recorded_sleeps == [0.25]

    async def test_blank_prompt_never_hits_network(self, provider_settings, upstream):
        with pytest.raises(ValidationException):
            await ImageService(provider_settings).create_image(GenerationRequest(prompt="  "))
        assert upstream.requests == []

    async def test_unknown_model(self, provider_settings):
        with pytest.raises(ValidationException):
            ImageService(provider_settings).resolve_model("dall-e-3")

    async def test_unreachable_provider_is_a_domain_error(self, provider_settings, recorded_sleeps):
        settings = provider_settings.model_copy(update={
            "ark_base_url": f"http://127.0.0.1:{unused_port()}",
            "generation_retries": 1,
        })

        with pytest.raises(TransportError) as exc_info:
            await ImageService(settings).create_image(GenerationRequest(prompt="fox"))

        assert exc_info.value.code == 502
        assert exc_info.value.details["reason"]
        assert len(recorded_sleeps) == 1

    async def test_cancellation_is_not_a_transport_error(self, provider_settings, upstream):
        token = CancelToken()
        token.cancel()

        with pytest.raises(RequestCancelled):
            await ImageService(provider_settings).create_image(GenerationRequest(prompt="fox"), token)
        assert upstream.requests == []


class TestPromptEnhance:

    async def test_enhance(self, provider_settings, upstream):
        upstream.respond((200, {"choices": [{"message": {"content": "  a fox, 35mm, golden hour  "}}]}))
        service = PromptEnhanceService(provider_settings)

        result = await service.enhance(PromptEnhanceRequest(prompt="a fox", mode=EditorMode.I2I))

        request = upstream.requests[0]
        assert request["path"] == "/v1/chat/completions"
        assert request["headers"]["Authorization"] == "Bearer test-chat-key"
        assert request["json"]["model"] == "gpt-4o-mini"
        assert request["json"]["max_tokens"] == 400
        assert "image-to-image" in request["json"]["messages"][1]["content"]
        assert result.enhanced == "a fox, 35mm, golden hour"
        assert result.rationale is None

    async def test_empty_choice_falls_back_to_prompt(self, provider_settings, upstream):
        upstream.respond((200, {"choices": [{"message": {"content": None, "refusal": "policy"}}]}))

        result = await PromptEnhanceService(provider_settings).enhance(
            PromptEnhanceRequest(prompt="a fox", maxTokens=50)
        )

        assert result.enhanced == "a fox"
        assert result.rationale == "policy"
        assert upstream.requests[0]["json"]["max_tokens"] == 50

    async def test_missing_key(self, provider_settings):
        adapter = ChatCompletionAdapter(provider_settings.model_copy(update={"chatgpt_api_key": None}))
        with pytest.raises(ConfigurationError):
            await adapter.complete([], model="gpt-4o-mini", max_tokens=10)

    async def test_unreachable_chat_service(self, provider_settings):
        settings = provider_settings.model_copy(update={"chatgpt_base_url": f"http://127.0.0.1:{unused_port()}/v1"})

        with pytest.raises(TransportError):
            await PromptEnhanceService(settings).enhance(PromptEnhanceRequest(prompt="a fox"))
