"""提示词优化服务"""
import asyncio
from typing import Optional

import aiohttp

from adapters import ChatCompletionAdapter, chat_client
from config.settings import settings as default_settings, Settings
from models.images import EditorMode, PromptEnhanceRequest, PromptEnhanceResponse
from utils.cancel import CancelToken
from utils.exceptions import TransportError
from utils.logger import logger

SYSTEM_PROMPT = (
    "你是 BytePlus ModelArk Seedream 4.0 模型的资深提示词工程师。"
    "请围绕主题、风格、构图、相机/镜头、光线、氛围和画质关键词，"
    "用模型偏好的表达方式写出一段不超过 500 字的提示词。"
    "遵守安全规范，排除敏感内容，只输出最终提示词。"
    "使用与原始提示词相同的语言，必要的核心关键词可附英文。"
)

MODE_LABELS = {
    EditorMode.T2I: "text-to-image",
    EditorMode.I2I: "image-to-image",
}


class PromptEnhanceService:
    """提示词优化业务服务"""

    def __init__(self,
                 settings: Settings = default_settings,
                 chat: Optional[ChatCompletionAdapter] = None):
        self.settings = settings
        self.chat = chat or (chat_client if settings is default_settings else ChatCompletionAdapter(settings))

    def build_messages(self, request: PromptEnhanceRequest):
        mode_label = MODE_LABELS[request.mode]
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    f"任务模式: {mode_label}。原始提示词:\n{request.prompt}\n\n"
                    "请按照上述要求输出针对 Seedream 4.0 优化后的提示词。"
                ),
            },
        ]

    async def enhance(self,
                      request: PromptEnhanceRequest,
                      token: Optional[CancelToken] = None) -> PromptEnhanceResponse:
        """
        优化提示词
        :param request: 原始提示词与模式
        :param token: 取消令牌
        :return: 优化结果，模型未返回内容时回退为原始提示词
        """
        logger.info(f"开始优化提示词: {request.prompt[:50]} | 模式: {request.mode.value}")

        try:
            result = await self.chat.complete(
                self.build_messages(request),
                model=self.settings.enhance_model,
                max_tokens=request.max_tokens or self.settings.enhance_max_tokens,
                token=token,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            reason = str(e) or e.__class__.__name__
            logger.error(f"提示词优化请求失败: {reason}")
            raise TransportError("无法连接提示词优化服务，请检查网络后重试", reason=reason) from e

        choices = result.get("choices") or []
        message = (choices[0].get("message") or {}) if choices else {}
        content = message.get("content") or request.prompt

        return PromptEnhanceResponse(
            enhanced=content.strip(),
            rationale=message.get("refusal") or None,
        )
