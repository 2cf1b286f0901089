"""HTTP transport for kubelet and API-server metrics endpoints.

RawClient wraps an ``httpx.AsyncClient`` configured with the bearer token and
streams response bodies straight to artifact files. It is used for both
probing (status only) and collection (full body capture).
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx

from nodestats.collector.errors import FetchError, ProbeError
from nodestats.observability.logging import get_logger

_log = get_logger("collector.transport")

_CHUNK_SIZE = 64 * 1024


class RawClient:
    """Authenticated raw-bytes client.

    Args:
        http_client:  Underlying httpx client; owned by this RawClient.
        bearer_token: Sent as ``Authorization: Bearer ...`` when non-empty.
        retry_limit:  Extra attempts after the first for collection fetches.
                      Probes are never retried.
        retry_delay:  Seconds to wait between fetch attempts.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        bearer_token: str = "",
        retry_limit: int = 1,
        retry_delay: float = 1.0,
    ) -> None:
        self._http = http_client
        self._bearer_token = bearer_token
        self._retry_limit = max(retry_limit, 0)
        self._retry_delay = retry_delay

    @classmethod
    def for_nodes(
        cls,
        bearer_token: str,
        timeout: float = 30.0,
        retry_limit: int = 1,
    ) -> RawClient:
        """Client for direct kubelet traffic.

        TLS verification is disabled: kubelet serving certificates are
        usually self-signed and not issued for the node IP.
        """
        http = httpx.AsyncClient(timeout=timeout, verify=False)  # noqa: S501
        return cls(http, bearer_token=bearer_token, retry_limit=retry_limit)

    @classmethod
    def for_cluster(
        cls,
        bearer_token: str,
        timeout: float = 60.0,
        retry_limit: int = 1,
        ca_file: str = "",
    ) -> RawClient:
        """Client for API-server proxy traffic, with verified TLS."""
        verify: str | bool = ca_file or True
        http = httpx.AsyncClient(timeout=timeout, verify=verify)
        return cls(http, bearer_token=bearer_token, retry_limit=retry_limit)

    def _headers(self) -> dict[str, str]:
        if not self._bearer_token:
            return {}
        return {"Authorization": f"Bearer {self._bearer_token}"}

    async def test_connection(
        self,
        url: str,
        method: str = "GET",
        timeout: float | None = None,
    ) -> tuple[bool, bytes | None]:
        """Check whether *url* answers with HTTP 200.

        *timeout* overrides the client timeout for this request only.

        Returns:
            ``(True, body)`` on 200, ``(False, None)`` on any other status.

        Raises:
            ProbeError: on a connection or protocol error.
        """
        try:
            response = await self._http.request(
                method,
                url,
                headers=self._headers(),
                timeout=httpx.USE_CLIENT_DEFAULT if timeout is None else timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ProbeError(url, exc) from exc
        if response.status_code == httpx.codes.OK:
            return True, response.content
        _log.debug("probe_unavailable", url=url, method=method, status_code=response.status_code)
        return False, None

    async def get_raw_endpoint(
        self,
        method: str,
        source_name: str,
        work_dir: Path,
        url: str,
        body: bytes | None = None,
    ) -> Path:
        """Fetch *url* and stream the body to ``work_dir / source_name``.

        Transport errors and non-200 statuses are retried up to the retry
        limit. The artifact file is rewritten from scratch on every attempt.

        Raises:
            FetchError: once every attempt has failed.
        """
        target = Path(work_dir) / source_name
        headers = self._headers()
        if body is not None:
            headers["Content-Type"] = "application/json"

        last_error: FetchError | None = None
        for attempt in range(self._retry_limit + 1):
            if attempt:
                await asyncio.sleep(self._retry_delay)
            try:
                return await self._stream_to_file(method, url, headers, body, target)
            except FetchError as exc:
                last_error = exc
                _log.debug("fetch_attempt_failed", url=url, attempt=attempt + 1, error=str(exc))

        assert last_error is not None
        raise last_error

    async def _stream_to_file(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
        target: Path,
    ) -> Path:
        try:
            async with self._http.stream(method, url, headers=headers, content=body) as response:
                if response.status_code != httpx.codes.OK:
                    raise FetchError(
                        url,
                        f"invalid response {response.status_code}",
                        status_code=response.status_code,
                    )
                with target.open("wb") as fh:
                    async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                        fh.write(chunk)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            target.unlink(missing_ok=True)
            raise FetchError(url, str(exc) or exc.__class__.__name__) from exc
        except OSError:
            target.unlink(missing_ok=True)
            raise
        return target

    async def aclose(self) -> None:
        await self._http.aclose()
