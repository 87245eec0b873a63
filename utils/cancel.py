"""协作式取消: 取消令牌与单飞控制"""
import asyncio
from typing import Awaitable, Optional, TypeVar

from utils.exceptions import RequestCancelled

T = TypeVar("T")


class CancelToken:
    """一次操作的取消令牌

    网络请求与退避等待都观察同一个令牌，令牌一旦取消便永久处于取消状态。
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled"):
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self):
        if self.cancelled:
            raise RequestCancelled(self.reason or "cancelled")

    async def wait(self):
        await self._event.wait()


async def run_cancellable(awaitable: Awaitable[T], token: Optional[CancelToken] = None) -> T:
    """执行协程，令牌取消时立即中止并抛出 RequestCancelled"""
    if token is None:
        return await awaitable

    if token.cancelled:
        # 协程对象未被调度，显式关闭避免 never awaited 警告
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        token.raise_if_cancelled()

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        waiter.cancel()
        raise

    if task in done:
        waiter.cancel()
        return task.result()

    task.cancel()
    # 等待被中止的请求收尾，其结果已无意义
    await asyncio.gather(task, return_exceptions=True)
    raise RequestCancelled(token.reason or "cancelled")


async def cancellable_sleep(seconds: float, token: Optional[CancelToken] = None):
    """可被令牌打断的等待"""
    await run_cancellable(asyncio.sleep(seconds), token)


class SingleFlight:
    """同一类操作至多一个在途实例，新操作开始前先取消旧操作"""

    def __init__(self, name: str):
        self.name = name
        self._token: Optional[CancelToken] = None

    @property
    def in_flight(self) -> bool:
        return self._token is not None

    def begin(self) -> CancelToken:
        if self._token is not None:
            self._token.cancel(f"{self.name} superseded")
        self._token = CancelToken()
        return self._token

    def finish(self, token: CancelToken):
        if self._token is token:
            self._token = None

    def cancel(self, reason: str = "cancelled"):
        if self._token is not None:
            self._token.cancel(reason)
            self._token = None
