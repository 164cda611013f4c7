"""
HTTP portal transport (async, httpx).

Endpoints
---------
- GET  /skynet/registry?publickey=ed25519:<hex>&datakey=<hex>&timeout=<s>
- POST /skynet/registry                 (JSON entry, 204 on success)
- POST /skynet/skyfile                  (multipart "file" -> {"skylink": ...})
- GET  /<skylink>                       (raw content)

Transient failures (timeouts, network errors, HTTP 429/502/503/504) are retried
with backoff via `aretry_call`. A registry POST is not idempotent, so it is only
retried when the connection could not be opened; any later failure leaves the
outcome unknown and raises ExecuteRequestError. A 404 on a lookup or download is reported as
None; any other unexpected status raises ExecuteRequestError. A 4xx answer to a
registry POST raises RegistryUpdateError.

Example:
    async with HttpPortalTransport(ClientConfig(portal_url="https://siasky.net")) as t:
        body = await t.get_registry_entry(pk_hex, tweak_hex)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from ..config import ClientConfig, RequestOptions
from ..errors import ExecuteRequestError, RegistryUpdateError
from ..skylink import trim_uri_prefix
from ..utils.retry import RetryError, aretry_call

log = logging.getLogger(__name__)

JsonDict = Dict[str, Any]

REGISTRY_PATH = "/skynet/registry"
UPLOAD_PATH = "/skynet/skyfile"


_RETRIABLE = (httpx.TimeoutException, httpx.NetworkError)
# the request never reached the portal
_NOT_SENT = (httpx.ConnectError, httpx.ConnectTimeout)


def _is_retriable_http(status: int) -> bool:
    return status in (429, 502, 503, 504)


class _TransientStatus(Exception):
    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:256] or f"HTTP {response.status_code}"
    if isinstance(body, Mapping) and body.get("message"):
        return str(body["message"])
    return json.dumps(body)[:256]


class HttpPortalTransport:
    """Async portal client. Safe to share between tasks; close with `aclose()`."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or ClientConfig.from_env()
        self.portal_url = self.config.portal_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.portal_url,
            timeout=self.config.request_timeout,
            headers=self.config.http_headers(),
            transport=transport,
        )

    # --- context manager -------------------------------------------------

    async def __aenter__(self) -> "HttpPortalTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # --- URLs ------------------------------------------------------------

    def registry_params(self, public_key: str, data_key_hex: str, lookup_timeout: Optional[int] = None) -> Dict[str, str]:
        return {
            "publickey": f"ed25519:{public_key}",
            "datakey": data_key_hex,
            "timeout": str(lookup_timeout or self.config.registry_lookup_timeout),
        }

    def registry_url(self, public_key: str, data_key_hex: str, lookup_timeout: Optional[int] = None) -> str:
        url = httpx.URL(f"{self.portal_url}{REGISTRY_PATH}", params=self.registry_params(public_key, data_key_hex, lookup_timeout))
        return str(url)

    # --- registry ---------------------------------------------------------

    async def get_registry_entry(
        self, public_key: str, data_key_hex: str, options: Optional[RequestOptions] = None
    ) -> Optional[JsonDict]:
        opts = options or RequestOptions()
        params = self.registry_params(public_key, data_key_hex, opts.registry_lookup_timeout)
        r = await self._request("GET", REGISTRY_PATH, opts, params=params)
        if r.status_code == 404:
            return None
        if r.status_code != 200:
            raise ExecuteRequestError(_error_message(r), url=str(r.request.url), status=r.status_code, method="GET")
        try:
            body = r.json()
        except ValueError as e:
            raise ExecuteRequestError("non-JSON registry response", url=str(r.request.url), status=r.status_code, method="GET") from e
        return body

    async def post_registry_entry(self, body: JsonDict, options: Optional[RequestOptions] = None) -> None:
        opts = options or RequestOptions()
        r = await self._request("POST", REGISTRY_PATH, opts, idempotent=False, json=body)
        if r.status_code in (200, 204):
            return None
        if 400 <= r.status_code < 500:
            pk = body.get("publickey")
            raise RegistryUpdateError(
                _error_message(r),
                status=r.status_code,
                public_key=pk.get("key") if isinstance(pk, Mapping) else None,
                data_key=body.get("datakey"),
                revision=body.get("revision"),
            )
        raise ExecuteRequestError(_error_message(r), url=str(r.request.url), status=r.status_code, method="POST")

    # --- content ------------------------------------------------------------

    async def upload(
        self,
        data: bytes,
        filename: str = "dk:data",
        mime_type: str = "application/octet-stream",
        options: Optional[RequestOptions] = None,
    ) -> str:
        opts = options or RequestOptions()
        files = {"file": (filename, bytes(data), mime_type)}
        r = await self._request("POST", UPLOAD_PATH, opts, files=files)
        if r.status_code != 200:
            raise ExecuteRequestError(_error_message(r), url=str(r.request.url), status=r.status_code, method="POST")
        try:
            skylink = r.json()["skylink"]
        except (ValueError, KeyError, TypeError) as e:
            raise ExecuteRequestError("upload response has no skylink", url=str(r.request.url), status=r.status_code, method="POST") from e
        return str(skylink)

    async def download(self, skylink: str, options: Optional[RequestOptions] = None) -> Optional[bytes]:
        opts = options or RequestOptions()
        r = await self._request("GET", f"/{trim_uri_prefix(skylink)}", opts)
        if r.status_code == 404:
            return None
        if r.status_code != 200:
            raise ExecuteRequestError(_error_message(r), url=str(r.request.url), status=r.status_code, method="GET")
        return r.content

    # --- internals -------------------------------------------------------

    async def _send_once(
        self, method: str, path: str, timeout: Optional[float], retry_status: bool, **kwargs: Any
    ) -> httpx.Response:
        if timeout is not None:
            kwargs["timeout"] = timeout
        r = await self._client.request(method, path, **kwargs)
        if retry_status and _is_retriable_http(r.status_code):
            raise _TransientStatus(r)
        return r

    async def _request(
        self, method: str, path: str, opts: RequestOptions, *, idempotent: bool = True, **kwargs: Any
    ) -> httpx.Response:
        retries = self.config.max_retries if opts.max_retries is None else opts.max_retries
        exceptions = _RETRIABLE + (_TransientStatus,) if idempotent else _NOT_SENT
        try:
            return await aretry_call(
                self._send_once,
                method,
                path,
                opts.timeout,
                idempotent,
                retries=retries,
                base=self.config.backoff_base,
                max_delay=self.config.backoff_max,
                exceptions=exceptions,
                **kwargs,
            )
        except RetryError as e:
            last = e.last_exception
            status = last.response.status_code if isinstance(last, _TransientStatus) else None
            log.warning("%s %s failed after %d attempt(s): %r", method, path, e.attempts, last)
            raise ExecuteRequestError(str(last), url=f"{self.portal_url}{path}", status=status, method=method) from last
        except httpx.HTTPError as e:
            log.warning("%s %s failed: %r", method, path, e)
            raise ExecuteRequestError(str(e) or type(e).__name__, url=f"{self.portal_url}{path}", method=method) from e


__all__ = ["HttpPortalTransport", "REGISTRY_PATH", "UPLOAD_PATH"]
