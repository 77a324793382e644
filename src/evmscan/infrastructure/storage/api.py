"""HTTP client for the server's storage API.

Lets a process that does not own the relational store (a CLI, a second
worker) read and write the same contract metadata as the server.
"""

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from evmscan.core.exceptions import (
    AbiValidationError,
    ExplorerError,
    InvalidAddressError,
    InvalidMetricKeyError,
    MetadataStoreError,
)
from evmscan.infrastructure.storage.base import MetadataStore
from evmscan.infrastructure.storage.schemas import ContractMetadata, ContractSource

logger = logging.getLogger(__name__)

_records_adapter = TypeAdapter(list[ContractMetadata])


class ApiMetadataStore(MetadataStore):
    """Metadata store backed by ``/api/storage`` on a running server."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize API store.

        Args:
            base_url: Storage API root, e.g. http://localhost:8080/api/storage
            timeout: Request timeout in seconds
            client: Preconfigured client (tests pass one with an ASGI transport)
        """
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self._http_client = client
        self._owns_client = client is None
        self._timeout = timeout

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def _request(
        self,
        method: str,
        path: str,
        bad_request: type[ExplorerError] = AbiValidationError,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request; 404 is returned to the caller, other errors raise.

        Args:
            bad_request: Error raised for a 400 answer
        """
        client = self._get_http_client()
        url = f"{self.base_url}{path}"
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise MetadataStoreError(f"Storage API request failed: {method} {url}: {e}") from e

        if response.status_code == 400:
            raise bad_request(_error_message(response))
        if response.status_code >= 400 and response.status_code != 404:
            raise MetadataStoreError(
                f"Storage API returned {response.status_code} for {method} {url}: "
                f"{_error_message(response)}"
            )
        return response

    async def _read(self, address: str) -> ContractMetadata | None:
        response = await self._request("GET", f"/abis/{address}")
        if response.status_code == 404:
            return None
        try:
            return ContractMetadata.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise MetadataStoreError(f"Malformed storage API record for {address}: {e}") from e

    async def _write(self, record: ContractMetadata) -> None:
        response = await self._request(
            "POST",
            f"/abis/{record.address}",
            json={"abi": record.abi, "name": record.display_name},
        )
        if response.status_code == 404:
            raise MetadataStoreError(f"Storage API not found at {self.base_url}")

    async def _read_all(self) -> list[ContractMetadata]:
        response = await self._request("GET", "/contracts/verified")
        if response.status_code == 404:
            raise MetadataStoreError(f"Storage API not found at {self.base_url}")
        try:
            return _records_adapter.validate_python(response.json())
        except (ValueError, ValidationError) as e:
            raise MetadataStoreError(f"Malformed storage API listing: {e}") from e

    async def _read_source(self, address: str) -> ContractSource | None:
        response = await self._request(
            "GET", f"/contracts/{address}", bad_request=InvalidAddressError
        )
        if response.status_code == 404:
            return None
        try:
            return ContractSource.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise MetadataStoreError(f"Malformed contract source for {address}: {e}") from e

    async def _write_source(self, record: ContractSource) -> None:
        response = await self._request(
            "POST",
            f"/contracts/{record.address}",
            bad_request=InvalidAddressError,
            json=record.model_dump(by_alias=True, exclude={"address", "stored_at"}),
        )
        if response.status_code == 404:
            raise MetadataStoreError(f"Storage API not found at {self.base_url}")

    async def _read_metric(self, key: str) -> Any:
        response = await self._request(
            "GET", f"/metrics/{key}", bad_request=InvalidMetricKeyError
        )
        if response.status_code == 404:
            raise MetadataStoreError(f"Storage API not found at {self.base_url}")
        try:
            return response.json()["data"]
        except (ValueError, KeyError, TypeError) as e:
            raise MetadataStoreError(f"Malformed metric response for {key}: {e}") from e

    async def _write_metric(self, key: str, data: Any) -> None:
        response = await self._request(
            "POST", f"/metrics/{key}", bad_request=InvalidMetricKeyError, json={"data": data}
        )
        if response.status_code == 404:
            raise MetadataStoreError(f"Storage API not found at {self.base_url}")

    async def _delete_all(self) -> None:
        response = await self._request("POST", "/clear")
        if response.status_code == 404:
            raise MetadataStoreError(f"Storage API not found at {self.base_url}")

    async def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return response.text
