from __future__ import annotations
import asyncio
from typing import Any, Mapping, Optional

import httpx

from ..cancel import AttemptSignal
from ..response import Response


def to_response(resp: httpx.Response) -> Response:
    return Response(
        status=resp.status_code,
        headers=dict(resp.headers),
        content=resp.content,
        reason=resp.reason_phrase,
        url=str(resp.url),
        encoding=resp.encoding or "utf-8",
    )


class HttpxTransport:
    """
    Transport on ``httpx.AsyncClient``.

    With no injected client a fresh one is opened and closed per call, so
    nothing is pooled between invocations. That client gets no httpx timeout
    of its own (pass ``timeout=`` to override); the per-attempt timer decides.
    An injected client keeps whatever timeout it was built with.
    Cancellation reaches httpx through task cancellation; ``signal`` is only
    checked before the request starts.
    Per-call options (``method``, ``headers``, ``params``, ``json``,
    ``content``, ...) are forwarded to ``client.request``.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        method: str = "GET",
        **client_kwargs: Any,
    ) -> None:
        client_kwargs.setdefault("timeout", None)
        self._client = client
        self._method = method
        self._client_kwargs = client_kwargs

    async def __call__(self, target: str, options: Mapping[str, Any], signal: AttemptSignal) -> Response:
        if signal.cancelled:
            raise asyncio.CancelledError()
        opts = dict(options)
        method = str(opts.pop("method", self._method)).upper()
        if self._client is not None:
            return to_response(await self._client.request(method, target, **opts))
        async with httpx.AsyncClient(**self._client_kwargs) as client:
            return to_response(await client.request(method, target, **opts))
