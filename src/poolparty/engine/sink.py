"""Result sinks - where finished cycles are reported."""

from abc import ABC, abstractmethod
from typing import Callable, Optional
import logging

import httpx

from .protocol import CycleResult

logger = logging.getLogger(__name__)


class ResultSink(ABC):
    """Receives every finished cycle."""

    @abstractmethod
    async def submit(self, result: CycleResult) -> None:
        ...

    async def aclose(self) -> None:
        pass


class CallbackSink(ResultSink):
    def __init__(self, callback: Callable[[CycleResult], None]):
        self.callback = callback

    async def submit(self, result: CycleResult) -> None:
        self.callback(result)


class HttpResultSink(ResultSink):
    """POST each cycle as JSON to a collector, for cross-session verification."""

    def __init__(
        self,
        url: str,
        session_id: Optional[str] = None,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.session_id = session_id
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def submit(self, result: CycleResult) -> None:
        payload = result.to_dict()
        if self.session_id is not None:
            payload["session_id"] = self.session_id
        response = await self._client.post(self.url, json=payload)
        response.raise_for_status()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
