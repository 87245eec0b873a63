"""Chat Completions 适配器 - 用于提示词优化"""
from typing import Any, Dict, List, Optional

from config.settings import settings as default_settings, Settings
from adapters.http_client import client_timeout, clean_api_key, extract_error_message, fetch_with_retry
from utils.cancel import CancelToken
from utils.exceptions import ConfigurationError, UpstreamError
from utils.logger import logger


class ChatCompletionAdapter:
    """OpenAI 兼容的 chat/completions 客户端"""

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings
        self.base_url = settings.chatgpt_base_url
        self.api_key = clean_api_key(settings.chatgpt_api_key)

    def _ensure_configured(self):
        if not self.base_url or not self.api_key:
            raise ConfigurationError("ChatGPT API is not configured.")

    async def complete(self,
                       messages: List[Dict[str, str]],
                       model: str,
                       max_tokens: int,
                       token: Optional[CancelToken] = None) -> Dict[str, Any]:
        """发送对话请求，返回原始 JSON"""
        self._ensure_configured()
        logger.debug(f"[Chat] 请求 | 模型: {model} | max_tokens: {max_tokens}")

        response = await fetch_with_retry(
            f"{self.base_url.rstrip('/')}/chat/completions",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            json_body={
                "model": model,
                "messages": messages,
                "max_tokens": max_tokens,
            },
            token=token,
            retries=self.settings.enhance_retries,
            retry_delay_ms=self.settings.retry_delay_ms,
            backoff_factor=self.settings.backoff_factor,
            timeout=client_timeout(self.settings.request_timeout),
        )

        if not response.ok:
            message = extract_error_message(response)
            logger.error(f"[Chat] API 错误 {response.status}: {message[:200]}")
            raise UpstreamError(message, status=response.status)

        return response.json()


# 创建全局实例
chat_client = ChatCompletionAdapter()
