# verity_core/transport/transport_http.py
import requests
from typing import Optional
from verity_core.constants import DEFAULT_API_URL, DEFAULT_APP_VERSION, REQUEST_TIMEOUT
from verity_core.crypto import device_hash
from verity_core.errors import RemoteErrorCode, RemoteResolveError
from verity_core.logger import get_logger
from verity_core.transport.transport_base import BaseResolver, ProductData, TokenStatus

log = get_logger("Verity.Transport.HTTP")


class HTTPResolver(BaseResolver):
    """
    HTTP resolver for the vendor token API.

    Features:
    - GET {base_url}/tokens/{token} with X-Device-Hash / X-App-Version headers.
    - Maps 404/410/429/503/other non-200 onto RemoteErrorCode.
    - Connection failures and timeouts surface as NETWORK_ERROR so the
      orchestrator can queue the scan for later.
    """
    name = "http"

    def __init__(self, base_url: str = DEFAULT_API_URL, device_id: str = "unknown",
                 app_version: str = DEFAULT_APP_VERSION, timeout: float = REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.app_version = app_version
        self.timeout = timeout
        self.session = session or requests.Session()
        self._device_hash = device_hash(device_id)

    def headers(self) -> dict:
        return {
            "Accept": "application/json",
            "X-Device-Hash": self._device_hash,
            "X-App-Version": self.app_version,
        }

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def resolve(self, token: str) -> ProductData:
        url = f"{self.base_url}/tokens/{token}"
        body = self._get_json(url, headers=self.headers())
        return ProductData.from_response(body)

    def check_status(self, token: str) -> TokenStatus:
        url = f"{self.base_url}/tokens/{token}/status"
        body = self._get_json(url)
        return TokenStatus.from_response(body)

    def healthz(self) -> dict:
        url = f"{self.base_url}/health"
        try:
            res = self.session.get(url, timeout=min(self.timeout, 5))
        except requests.RequestException as e:
            log.warning(f"[HTTP HEALTH] unreachable {url}: {e}")
            return {"status": "unreachable", "resolver": self.name}
        return {"status": "ok" if res.ok else "degraded", "resolver": self.name, "code": res.status_code}

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _get_json(self, url: str, headers: Optional[dict] = None):
        log.debug(f"[HTTP RESOLVE] → {url}")
        try:
            res = self.session.get(url, headers=headers, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            log.warning(f"[HTTP RESOLVE] network failure {url}: {e}")
            raise RemoteResolveError(RemoteErrorCode.NETWORK_ERROR, str(e))
        except requests.RequestException as e:
            log.error(f"[HTTP RESOLVE] request failed {url}: {e}")
            raise RemoteResolveError(RemoteErrorCode.NETWORK_ERROR, str(e))

        if res.status_code != 200:
            raise self._classify(res)

        try:
            return res.json()
        except ValueError as e:
            log.error(f"[HTTP RESOLVE] undecodable body from {url}: {e}")
            raise RemoteResolveError(RemoteErrorCode.DECODING_ERROR, "response is not valid JSON")

    @staticmethod
    def _classify(res) -> RemoteResolveError:
        code = RemoteErrorCode.from_status(res.status_code)
        message, retry_after = "", None
        # Vendor error body: {error, message, retry_after?}
        try:
            body = res.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = str(body.get("message") or body.get("error") or "")
            if isinstance(body.get("retry_after"), int):
                retry_after = body["retry_after"]
        if retry_after is None and res.headers.get("Retry-After", "").isdigit():
            retry_after = int(res.headers["Retry-After"])

        log.info(f"[HTTP RESOLVE] {res.status_code} → {code.value}")
        return RemoteResolveError(code, message, retry_after=retry_after, status_code=res.status_code)
