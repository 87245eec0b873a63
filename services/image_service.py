"""图片生成服务"""
import asyncio
import re
import secrets
from pathlib import Path
from typing import List, Dict, Any, Optional

import aiohttp

from adapters import (
    ArkImageAdapter, NanoImageAdapter, ark_image_client, nano_image_client,
)
from adapters.http_client import (
    UpstreamResponse, client_timeout, extract_error_message, fetch_with_retry,
)
from config.settings import settings as default_settings, Settings
from models.images import (
    GenerationRequest, GenerationResponse, ImageModel, NANO_MODEL_ID,
    ProviderEnum, get_all_models, get_model_info, is_nano_model,
)
from services.payload_service import (
    build_generation_body, build_nano_payload, build_provider_payload, normalize_ark_payload,
)
from utils.cancel import CancelToken
from utils.exceptions import TransportError, UpstreamError, ValidationException
from utils.logger import logger

ALLOWED_UPLOAD_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


class ImageService:
    """图片生成业务服务"""

    def __init__(self,
                 settings: Settings = default_settings,
                 ark: Optional[ArkImageAdapter] = None,
                 nano: Optional[NanoImageAdapter] = None):
        self.settings = settings
        use_shared = settings is default_settings
        self.ark = ark or (ark_image_client if use_shared else ArkImageAdapter(settings))
        self.nano = nano or (nano_image_client if use_shared else NanoImageAdapter(settings))

    def resolve_model(self, model: Optional[str]) -> ImageModel:
        """获取模型信息，未指定时使用默认 Ark 模型"""
        model_id = model or self.settings.ark_model
        model_info = get_model_info(model_id)
        if not model_info and is_nano_model(model_id):
            model_info = get_model_info(NANO_MODEL_ID)
        if not model_info:
            raise ValidationException(f"不支持的模型: {model_id}", {"model": model_id})
        return model_info

    async def create_image(self,
                           request: GenerationRequest,
                           token: Optional[CancelToken] = None) -> GenerationResponse:
        """
        创建图片
        :param request: 生成请求
        :param token: 取消令牌
        :return: 统一格式的生成结果
        """
        if not request.prompt or not request.prompt.strip():
            raise ValidationException("请输入提示词")

        model_info = self.resolve_model(request.model)
        body = build_generation_body(request, model_info)

        logger.info(f"开始创建图片: {request.prompt[:100]} | 模型: {model_info.id} | 提供商: {model_info.provider.value}")

        try:
            if self.settings.generation_proxy_url:
                return await self._create_via_proxy(body, token)

            payload = build_provider_payload(body, model_info.provider)
            if payload.provider == ProviderEnum.NANO:
                return await self.nano.generate(payload, token)
            return await self.ark.generate(payload, token)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            reason = str(e) or e.__class__.__name__
            logger.error(f"图片生成请求失败: {reason}")
            raise TransportError("无法连接图片生成服务，请检查网络后重试", reason=reason) from e

    async def _create_via_proxy(self,
                                body: Dict[str, Any],
                                token: Optional[CancelToken]) -> GenerationResponse:
        """经同源代理发送，代理负责服务商侧的归一化"""
        response = await fetch_with_retry(
            self.settings.generation_proxy_url,
            headers={"Content-Type": "application/json"},
            json_body=body,
            token=token,
            retries=self.settings.generation_retries,
            retry_delay_ms=self.settings.retry_delay_ms,
            backoff_factor=self.settings.backoff_factor,
            timeout=client_timeout(self.settings.request_timeout),
        )
        if not response.ok:
            raise UpstreamError(extract_error_message(response), status=response.status)
        return GenerationResponse.model_validate(response.json())

    async def forward_to_ark(self, body: Dict[str, Any]) -> UpstreamResponse:
        """代理入口: 归一化后转发到 Ark，上游状态与响应体原样返回"""
        payload = normalize_ark_payload(body)
        return await self.ark.forward(payload.body)

    async def generate_nano(self, body: Dict[str, Any]) -> GenerationResponse:
        """代理入口: Nano 生成并转换为统一格式"""
        payload = build_nano_payload(body)
        return await self.nano.generate(payload, retries=0)

    async def upload_image(self,
                           image_data: bytes,
                           filename: Optional[str],
                           content_type: Optional[str]) -> Dict[str, Any]:
        """
        保存上传的图片，文件名总是追加随机后缀
        :param image_data: 图片二进制数据
        :param filename: 原始文件名
        :param content_type: MIME 类型，仅允许 jpeg/png/webp
        :return: 上传结果
        """
        content_type = (content_type or "").split(";")[0].strip().lower()
        if content_type not in ALLOWED_UPLOAD_TYPES:
            raise ValidationException(
                f"不支持的图片类型: {content_type or 'unknown'}",
                {"allowed": list(ALLOWED_UPLOAD_TYPES)},
            )
        if len(image_data) > self.settings.upload_max_bytes:
            raise ValidationException(f"图片过大: {len(image_data)} 字节")

        stem = re.sub(r"[^\w.-]", "_", Path(filename or "upload").stem) or "upload"
        stored_name = f"{stem}-{secrets.token_hex(8)}{ALLOWED_UPLOAD_TYPES[content_type]}"

        upload_dir = Path(self.settings.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)
        (upload_dir / stored_name).write_bytes(image_data)

        logger.info(f"图片上传成功: {stored_name} ({len(image_data)} 字节)")
        return {
            "url": f"/uploads/{stored_name}",
            "pathname": stored_name,
            "contentType": content_type,
            "size": len(image_data),
        }

    def get_models(self) -> List[Dict[str, Any]]:
        """获取所有支持的图片模型"""
        return [model.model_dump(mode="json") for model in get_all_models()]
