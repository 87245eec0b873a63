"""带重试与取消的 HTTP 请求

重试策略:
  - 408/425/429/500/502/503/504 视为可重试，其余非 2xx 直接返回给调用方
  - 第 n 次重试前等待 retry_delay_ms * backoff_factor ** n 毫秒（n 从 0 开始）
  - 网络层错误同样重试，取消永不重试
  - 重试耗尽时返回最后一次响应，或抛出最后一次网络错误
"""
import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from utils.cancel import CancelToken, cancellable_sleep, run_cancellable
from utils.logger import logger

RETRYABLE_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})

DEFAULT_TIMEOUT = aiohttp.ClientTimeout(
    total=600,
    connect=30,
    sock_read=300
)


def client_timeout(total: Optional[float]) -> aiohttp.ClientTimeout:
    """按配置的总超时构建 ClientTimeout"""
    if not total:
        return DEFAULT_TIMEOUT
    return aiohttp.ClientTimeout(total=total, connect=30, sock_read=min(total, 300))


@dataclass(frozen=True)
class UpstreamResponse:
    """已读取完毕的上游响应"""
    status: int
    reason: str = ""
    content_type: str = ""
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body)


class FetchError(Exception):
    """请求失败且没有可返回的响应"""


async def _send(session: aiohttp.ClientSession,
                method: str,
                url: str,
                headers: Optional[Dict[str, str]],
                json_body: Any) -> UpstreamResponse:
    async with session.request(method, url, headers=headers, json=json_body) as response:
        body = await response.read()
        return UpstreamResponse(
            status=response.status,
            reason=response.reason or "",
            content_type=response.headers.get("Content-Type", ""),
            body=body,
            headers=dict(response.headers),
        )


async def fetch_with_retry(url: str,
                           *,
                           method: str = "POST",
                           headers: Optional[Dict[str, str]] = None,
                           json_body: Any = None,
                           token: Optional[CancelToken] = None,
                           retries: int = 0,
                           retry_delay_ms: float = 500,
                           backoff_factor: float = 2,
                           session: Optional[aiohttp.ClientSession] = None,
                           timeout: Optional[aiohttp.ClientTimeout] = None) -> UpstreamResponse:
    """
    发送请求，按策略重试

    Args:
        url: 目标地址
        method: HTTP 方法
        headers: 请求头
        json_body: JSON 请求体，每次重试原样发送
        token: 取消令牌，取消后立即中止在途请求与退避等待
        retries: 最大重试次数，默认不重试
        retry_delay_ms: 首次重试前的等待毫秒数
        backoff_factor: 退避倍数
        session: 复用的 aiohttp 会话，为空时内部创建
        timeout: 内部创建会话时使用的超时

    Returns:
        UpstreamResponse

    Raises:
        RequestCancelled: 令牌被取消
        aiohttp.ClientError / asyncio.TimeoutError: 网络错误且重试耗尽
    """
    own_session = session is None
    if own_session:
        session = aiohttp.ClientSession(timeout=timeout or DEFAULT_TIMEOUT)

    attempt = 0
    last_error: Optional[BaseException] = None
    try:
        while attempt <= retries:
            delay = retry_delay_ms * backoff_factor ** attempt / 1000
            try:
                response = await run_cancellable(_send(session, method, url, headers, json_body), token)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = e
                if attempt >= retries:
                    break
                logger.warning(f"[HTTP] 网络错误，{delay:.2f}s 后重试 ({attempt + 1}/{retries}): {url} - {e!r}")
                await cancellable_sleep(delay, token)
                attempt += 1
                continue

            if not response.ok and response.status in RETRYABLE_STATUS and attempt < retries:
                logger.warning(f"[HTTP] 状态码 {response.status}，{delay:.2f}s 后重试 ({attempt + 1}/{retries}): {url}")
                await cancellable_sleep(delay, token)
                attempt += 1
                continue

            return response
    finally:
        if own_session:
            await session.close()

    logger.error(f"[HTTP] 请求失败，重试已耗尽: {url} - {last_error!r}")
    if last_error is not None:
        raise last_error
    raise FetchError(f"Request failed: {url}")


def extract_error_message(response: UpstreamResponse) -> str:
    """
    从错误响应中提取可读信息
    支持 {error: "..."} 与 {error: {message: "..."}}，非 JSON 时返回 "<status> <reason>"
    """
    try:
        data = response.json()
    except ValueError:
        return f"{response.status} {response.reason}".strip()

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, str):
            detail = data.get("detail")
            return f"{error} ({detail})" if isinstance(detail, str) and detail else error
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return json.dumps(data, ensure_ascii=False)


def clean_api_key(api_key: Optional[str]) -> Optional[str]:
    """去掉误写入配置的 "Bearer " 前缀"""
    if not api_key:
        return api_key
    api_key = api_key.strip()
    if api_key.lower().startswith("bearer "):
        return api_key[7:].strip()
    return api_key
