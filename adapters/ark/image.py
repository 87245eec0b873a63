"""Ark适配器 - Seedream 图片生成 API"""
from typing import Any, Dict, Optional

from config.settings import settings as default_settings, Settings
from adapters.http_client import (
    client_timeout, UpstreamResponse, clean_api_key, extract_error_message, fetch_with_retry,
)
from models.images import GenerationResponse
from services.payload_service import ArkPayload
from utils.cancel import CancelToken
from utils.exceptions import ConfigurationError, UpstreamError
from utils.logger import logger


class ArkImageAdapter:
    """Ark (BytePlus ModelArk) 图片生成适配器"""

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings
        self.base_url = settings.ark_base_url
        self.api_key = clean_api_key(settings.ark_api_key)
        self.default_model = settings.ark_model

    @property
    def endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}/api/v3/images/generations"

    def _ensure_configured(self):
        """首次使用时检查配置"""
        if not self.base_url or not self.api_key:
            raise ConfigurationError("Ark API 未配置 (ARK_BASE_URL / ARK_API_KEY)")

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def generate(self,
                       payload: ArkPayload,
                       token: Optional[CancelToken] = None,
                       retries: Optional[int] = None) -> GenerationResponse:
        """
        生成图片

        Args:
            payload: 归一化后的 Ark 请求体
            token: 取消令牌
            retries: 重试次数，为空时使用配置

        Returns:
            GenerationResponse
        """
        self._ensure_configured()
        body = dict(payload.body)
        body.setdefault("model", self.default_model)

        logger.info(f"[Ark] 生成图片 | 模型: {body['model']} | 尺寸: {body.get('size')} | 参考图: {len(body.get('image') or [])}")

        response = await fetch_with_retry(
            self.endpoint,
            headers=self._headers(),
            json_body=body,
            token=token,
            retries=self.settings.generation_retries if retries is None else retries,
            retry_delay_ms=self.settings.retry_delay_ms,
            backoff_factor=self.settings.backoff_factor,
            timeout=client_timeout(self.settings.request_timeout),
        )

        if not response.ok:
            message = extract_error_message(response)
            logger.error(f"[Ark] API 错误 {response.status}: {message[:200]}")
            raise UpstreamError(message, status=response.status)

        result = GenerationResponse.model_validate(response.json())
        logger.info(f"[Ark] 生成成功 | 数量: {len(result.data)}")
        return result

    async def forward(self, body: Dict[str, Any]) -> UpstreamResponse:
        """代理转发，状态码与响应体原样返回，不做重试"""
        self._ensure_configured()
        body = dict(body)
        body.setdefault("model", self.default_model)
        return await fetch_with_retry(
            self.endpoint,
            headers=self._headers(),
            json_body=body,
            timeout=client_timeout(self.settings.request_timeout),
        )


# 创建全局实例
ark_image_client = ArkImageAdapter()
