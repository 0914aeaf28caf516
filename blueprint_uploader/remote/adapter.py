"""
Callback-to-async adapter.

The blueprint API reports each call through exactly one of two callbacks.
CallbackAdapter turns one such call into something sequential pipeline code
can ``await``: the callbacks resolve a single asyncio future, whichever
fires first wins, and later invocations are ignored.

Callbacks may fire synchronously while the call is being registered, later
on the event loop, or from a backend thread.

Example usage:
    >>> adapter = CallbackAdapter()
    >>> api.save(record, adapter.on_success, adapter.on_failure)
    >>> result = await adapter.wait()
    >>> if not result.success:
    ...     print(result.error)
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from blueprint_uploader.errors import RemoteCallTimeoutError, UploadCancelledError
from blueprint_uploader.status.cancellation import CancelQuery
from blueprint_uploader.utils.config import DEFAULT_POLL_INTERVAL
from blueprint_uploader.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AdapterResult:
    """Outcome of one remote call: a value on success, an error string on failure."""

    success: bool
    value: Any = None
    error: str = ""


class CallbackAdapter:
    """
    Single-use bridge from a success/failure callback pair to an awaitable.

    Create one adapter per in-flight remote call. The adapter binds to the
    running event loop on construction, so it must be created inside a
    coroutine.
    """

    def __init__(self, name: str = "remote call") -> None:
        self.name = name
        self._loop = asyncio.get_running_loop()
        self._future: "asyncio.Future[AdapterResult]" = self._loop.create_future()
        self._waited = False

    @property
    def completed(self) -> bool:
        return self._future.done()

    def on_success(self, value: Any = None) -> None:
        self._complete(AdapterResult(success=True, value=value))

    def on_failure(self, error: Any = "") -> None:
        self._complete(AdapterResult(success=False, error=str(error)))

    def _complete(self, result: AdapterResult) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._resolve(result)
        else:
            self._loop.call_soon_threadsafe(self._resolve, result)

    def _resolve(self, result: AdapterResult) -> None:
        if self._future.done():
            logger.warning(f"{self.name}: ignoring extra callback (success={result.success})")
            return
        self._future.set_result(result)

    async def wait(
        self,
        cancel_query: Optional[CancelQuery] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: Optional[float] = None,
    ) -> AdapterResult:
        """
        Wait until one of the callbacks has fired.

        Without ``cancel_query`` or ``timeout`` the wait is unbounded, as is
        the remote call it mirrors.

        Args:
            cancel_query: Checked every ``poll_interval`` seconds
            poll_interval: Seconds between cancel checks
            timeout: Overall bound in seconds

        Returns:
            AdapterResult recorded by the first callback

        Raises:
            UploadCancelledError: If cancel_query turned true first
            RemoteCallTimeoutError: If the timeout elapsed first
            RuntimeError: If the adapter was already waited on
        """
        if self._waited:
            raise RuntimeError(f"{self.name}: adapter instances are single use")
        self._waited = True

        if cancel_query is None and timeout is None:
            return await self._future

        deadline = None if timeout is None else time.monotonic() + timeout
        while not self._future.done():
            if cancel_query is not None and cancel_query():
                raise UploadCancelledError(f"Cancelled while waiting for {self.name}")

            interval = poll_interval if cancel_query is not None else timeout
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise RemoteCallTimeoutError(f"{self.name} did not complete in {timeout:.1f}s")
                interval = min(interval, remaining)

            try:
                await asyncio.wait_for(asyncio.shield(self._future), timeout=interval)
            except asyncio.TimeoutError:
                continue

        return self._future.result()


async def call_remote(
    func: Callable[..., Any],
    *args: Any,
    name: Optional[str] = None,
    cancel_query: Optional[CancelQuery] = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    timeout: Optional[float] = None,
) -> AdapterResult:
    """
    Invoke ``func(*args, on_success, on_failure)`` and await its outcome.

    Example:
        >>> result = await call_remote(api.fetch, BlueprintKind.WORLD, "wrld_1")
    """
    adapter = CallbackAdapter(name or getattr(func, "__name__", "remote call"))
    func(*args, adapter.on_success, adapter.on_failure)
    return await adapter.wait(cancel_query=cancel_query, poll_interval=poll_interval, timeout=timeout)
