"""Client and gateway for the optional remote analysis service.

The service is never required. With no endpoint configured the engine
runs fully local. With one configured, remote answers may only adjust the
confidence of patterns that were already detected and classified locally.

Endpoints (JSON over HTTP):
    POST /v1/structure  {file, language, revision, patterns} -> {confidence: {identity: float}}
    POST /v1/classify   {language, patterns}                 -> {confidence: {identity: float}}
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx

from ..classification.models import ClassifiedPattern
from ..exceptions import RemoteUnavailableError
from ..logging_config import get_logger
from .connectivity import ConnectivityStateMachine

logger = get_logger(__name__)


class RemoteAssistClient:
    """Thin ``httpx.AsyncClient`` wrapper with per-call timeouts.

    The underlying client is bound to the event loop that first uses it. A
    call from a different loop (each ``asyncio.run`` makes a new one) opens a
    fresh client, since pooled connections cannot outlive their loop.
    """

    def __init__(
        self,
        base_url: str,
        *,
        structural_timeout: float = 5.0,
        classification_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.structural_timeout = structural_timeout
        self.classification_timeout = classification_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def aclose(self) -> None:
        """Close the client of the running loop; one left by a finished loop is dropped."""
        client, loop = self._client, self._loop
        self._client = self._loop = None
        if client is not None and loop is asyncio.get_running_loop():
            await client.aclose()

    def _http(self) -> httpx.AsyncClient:
        loop = asyncio.get_running_loop()
        if self._client is None or self._loop is not loop:
            if self._client is not None:
                logger.debug("Event loop changed; opening a new HTTP client")
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
            self._loop = loop
        return self._client

    async def analyze_structure(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post("structural analysis", "/v1/structure", payload, self.structural_timeout)

    async def classify_assist(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post("classification assist", "/v1/classify", payload, self.classification_timeout)

    async def _post(self, operation: str, path: str, payload: dict[str, Any], timeout: float) -> dict[str, Any]:
        try:
            response = await asyncio.wait_for(
                self._http().post(path, json=payload, timeout=httpx.Timeout(timeout)),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise RemoteUnavailableError(operation, "timed out", timeout) from exc
        except httpx.HTTPError as exc:
            raise RemoteUnavailableError(operation, f"{type(exc).__name__}: {exc}") from exc

        _raise_for_status(operation, response)
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteUnavailableError(operation, "response is not JSON") from exc
        if not isinstance(data, dict):
            raise RemoteUnavailableError(operation, "response is not a JSON object")
        return data


class RemoteGateway:
    """Routes remote calls through the connectivity state machine.

    Every failure (timeout, transport error, bad status) is absorbed here
    and fed to the state machine; callers get None and carry on locally.
    """

    def __init__(self, client: Optional[RemoteAssistClient], machine: ConnectivityStateMachine) -> None:
        self.client = client
        self.machine = machine

    @property
    def enabled(self) -> bool:
        return self.client is not None

    @property
    def degraded(self) -> bool:
        return self.enabled and self.machine.degraded

    async def call(
        self, operation: str, request: Callable[[RemoteAssistClient], Awaitable[dict[str, Any]]]
    ) -> Optional[dict[str, Any]]:
        if self.client is None or not self.machine.can_attempt():
            return None
        try:
            result = await request(self.client)
        except RemoteUnavailableError as e:
            logger.debug(str(e))
            self.machine.record_failure()
            return None
        except Exception as e:
            error = RemoteUnavailableError(operation, f"{type(e).__name__}: {e}")
            logger.warning(f"Unexpected remote failure: {error}")
            self.machine.record_failure()
            return None
        self.machine.record_success()
        return result

    async def refine(
        self, file: str, language: str, revision: int, patterns: list[ClassifiedPattern]
    ) -> list[ClassifiedPattern]:
        """Apply remote confidence adjustments; categories never change."""
        if self.client is None or not patterns:
            return patterns

        summary = [_summarize(p) for p in patterns]
        structural = await self.call(
            "structural analysis",
            lambda c: c.analyze_structure(
                {"file": file, "language": language, "revision": revision, "patterns": summary}
            ),
        )
        patterns = _apply(patterns, structural)

        uncertain = [_summarize(p) for p in patterns if p.confidence < 0.7]
        if uncertain:
            assist = await self.call(
                "classification assist",
                lambda c: c.classify_assist({"language": language, "patterns": uncertain}),
            )
            patterns = _apply(patterns, assist)
        return patterns

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()


def _summarize(pattern: ClassifiedPattern) -> dict[str, Any]:
    occurrence = pattern.occurrence
    return {
        "identity": occurrence.identity,
        "kind": occurrence.kind,
        "category": pattern.category.value,
        "confidence": pattern.confidence,
        "range": occurrence.range.to_dict(),
        "metadata": dict(occurrence.metadata),
    }


def _apply(patterns: list[ClassifiedPattern], response: Optional[dict[str, Any]]) -> list[ClassifiedPattern]:
    if not response:
        return patterns
    adjustments = response.get("confidence")
    if not isinstance(adjustments, dict):
        return patterns
    result = []
    for pattern in patterns:
        value = adjustments.get(pattern.identity)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            pattern = pattern.with_confidence(float(value))
        result.append(pattern)
    return result


def _raise_for_status(operation: str, response: httpx.Response) -> None:
    if response.status_code < 400:
        return
    detail: Any
    try:
        detail = response.json()
    except ValueError:
        detail = response.text
    raise RemoteUnavailableError(operation, f"status={response.status_code}, detail={detail}")
