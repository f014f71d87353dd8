from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from spa_manager.config import get_settings
from spa_manager.utils.profiling import log_profile_event, now_ms

logger = logging.getLogger(__name__)


class SpaApiClientError(RuntimeError):
    pass


def unwrap_list(payload: Any) -> list[dict[str, Any]]:
    """Accept a bare JSON array or a ``{"data": [...]}`` envelope."""
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    if isinstance(payload, dict) and isinstance(payload.get('data'), list):
        return [row for row in payload['data'] if isinstance(row, dict)]
    return []


class SpaApiClient:
    def __init__(
        self,
        base_url: str,
        token: str = '',
        verify_tls: bool = True,
        timeout_s: float = 20.0,
        max_retries: int = 3,
        backoff_base: float = 0.5,
    ) -> None:
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.verify_tls = verify_tls
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._client = httpx.Client(verify=self.verify_tls, timeout=self.timeout_s)

    def _headers(self) -> dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def close(self) -> None:
        self._client.close()

    def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        clean_params = {k: v for k, v in (params or {}).items() if v is not None}
        for attempt in range(1, self.max_retries + 1):
            started = now_ms()
            try:
                response = self._client.get(url, headers=self._headers(), params=clean_params)
                elapsed_ms = now_ms() - started
                log_profile_event(
                    logger,
                    {
                        'component': 'spa_api.get_json',
                        'path': path,
                        'status_code': response.status_code,
                        'elapsed_ms': elapsed_ms,
                        'content_size': len(response.content or b''),
                    },
                )
                if elapsed_ms >= get_settings().spa_api_slow_threshold_ms:
                    logger.warning('SPA API slow call path=%s status=%s elapsed_ms=%s', path, response.status_code, elapsed_ms)
                if response.status_code in {408, 429} or response.status_code >= 500:
                    raise SpaApiClientError(f'SPA API retryable status for {path} on attempt {attempt}: {response.status_code}')

                response.raise_for_status()

                try:
                    data = response.json()
                except ValueError as exc:
                    content_type = response.headers.get('content-type', '')
                    logger.error(
                        'SPA API non-json response path=%s status_code=%s content_type=%s body_start=%r',
                        path,
                        response.status_code,
                        content_type,
                        response.text[:200],
                    )
                    raise SpaApiClientError(
                        f'SPA API returned non-JSON for path={path} status={response.status_code} content-type={content_type}'
                    ) from exc

                if isinstance(data, dict) and data.get('error'):
                    raise SpaApiClientError(f"SPA API logical error for {path}: {data.get('message') or data.get('error')}")

                return data
            except (httpx.TimeoutException, httpx.NetworkError, SpaApiClientError) as exc:
                if attempt >= self.max_retries:
                    raise SpaApiClientError(f'Failed SPA API call for {path} on attempt {attempt}: {exc}') from exc
                time.sleep(self.backoff_base * (2 ** (attempt - 1)))
            except httpx.HTTPStatusError as exc:
                raise SpaApiClientError(f'SPA API HTTP error for {path} on attempt {attempt}: {exc}') from exc
        raise SpaApiClientError(f'Unexpected SPA API failure for {path}')

    def get_list(self, path: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        return unwrap_list(self.get_json(path, params))
