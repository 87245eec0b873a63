"""Nano适配器 - Gemini 风格的图片生成 API"""
from typing import Any, Dict, Optional

from config.settings import settings as default_settings, Settings
from adapters.http_client import client_timeout, clean_api_key, extract_error_message, fetch_with_retry
from models.images import GenerationResponse
from services.payload_service import NanoPayload, translate_nano_response
from utils.cancel import CancelToken
from utils.exceptions import ConfigurationError, UpstreamError
from utils.logger import logger


class NanoImageAdapter:
    """Nano (Gemini generateContent) 图片生成适配器

    Gemini 图片模型不支持宽高参数，只接收文本和 inline 图片。
    """

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings
        self.base_url = settings.nano_base_url
        self.api_key = clean_api_key(settings.nano_api_key)
        self.model = settings.nano_model

    @property
    def endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}/models/{self.model}:generateContent"

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def _ensure_configured(self):
        if not self.configured:
            raise ConfigurationError("The app is not configured correctly. NANO_API_KEY is missing.")

    async def generate_raw(self,
                           payload: NanoPayload,
                           token: Optional[CancelToken] = None,
                           retries: Optional[int] = None) -> Dict[str, Any]:
        """调用 generateContent，返回原始响应"""
        self._ensure_configured()
        logger.info(f"[Nano] 生成图片 | 模型: {self.model} | 输入图片: {len(payload.images)}")

        response = await fetch_with_retry(
            self.endpoint,
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": self.api_key,
            },
            json_body=payload.to_body(),
            token=token,
            retries=self.settings.generation_retries if retries is None else retries,
            retry_delay_ms=self.settings.retry_delay_ms,
            backoff_factor=self.settings.backoff_factor,
            timeout=client_timeout(self.settings.request_timeout),
        )

        if not response.ok:
            message = extract_error_message(response)
            logger.error(f"[Nano] API 错误 {response.status}: {message[:200]}")
            raise UpstreamError(message, status=response.status)

        return response.json()

    async def generate(self,
                       payload: NanoPayload,
                       token: Optional[CancelToken] = None,
                       retries: Optional[int] = None) -> GenerationResponse:
        """生成图片并转换为统一格式"""
        raw = await self.generate_raw(payload, token, retries)
        result = translate_nano_response(raw, self.model)
        logger.info(f"[Nano] 生成成功 | 数量: {len(result.data)}")
        return result


# 创建全局实例
nano_image_client = NanoImageAdapter()
