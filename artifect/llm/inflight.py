"""In-flight request de-duplication."""

import asyncio
import hashlib
import json
import logging
from typing import Any, Awaitable, Callable, Dict, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InFlightRequests:
    """
    Shares one upstream call between identical concurrent requests.

    An entry lives only while its call is running; a request issued after
    completion starts a new call.
    """

    def __init__(self):
        self._pending: Dict[str, "asyncio.Task[Any]"] = {}

    @staticmethod
    def key(method: str, url: str, body: Any) -> str:
        payload = json.dumps(body, sort_keys=True, default=str)
        return hashlib.sha256(f"{method.upper()} {url}\n{payload}".encode("utf-8")).hexdigest()

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, key: str) -> bool:
        return key in self._pending

    async def run(self, key: str, call: Callable[[], Awaitable[T]]) -> T:
        """Await ``call()``, or the identical call already in flight."""
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(call())
            self._pending[key] = task
            task.add_done_callback(lambda done: self._evict(key, done))
        else:
            logger.debug(f"Joining in-flight request {key[:12]}")
        return await asyncio.shield(task)

    def _evict(self, key: str, task: "asyncio.Task[Any]") -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        # Mark the outcome as retrieved when every waiter was cancelled
        if not task.cancelled():
            task.exception()
