"""
Orange channel: pull receipts from partner warehouse systems

Each provider maps its own payload to our receipt fields. Credentials and base
URLs come from settings.EXTERNAL_WAREHOUSE_PROVIDERS, e.g.

    {"agriapp": {"base_url": "https://api.agriapp.in", "api_key": "..."},
     "ewarehouse": {"base_url": "https://ewh.example", "username": "...", "password": "..."}}
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import httpx

from tradewiser.core.config import settings
from tradewiser.services.retry import RetryService, retry_service

logger = logging.getLogger(__name__)


class ExternalWarehouseError(Exception):
    """Provider unknown, not configured, or failing after retries"""

    def __init__(self, message: str, provider: str = None, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code


def _parse_date(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


def _map_agriapp(data: Dict[str, Any]) -> Dict[str, Any]:
    warehouse = data.get("warehouse") or {}
    return {
        "receipt_number": data["receipt_id"],
        "issued_date": _parse_date(data.get("issuedAt")),
        "quantity": float(data["quantity"]),
        "measurement_unit": data.get("unit") or "MT",
        "commodity_name": data.get("commodity"),
        "quality_grade": data.get("grade"),
        "warehouse_name": warehouse.get("name"),
        "warehouse_address": warehouse.get("address"),
        "external_id": str(data["receipt_id"]),
        "external_source": "agriapp",
    }


def _map_ewarehouse(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "receipt_number": str(data["id"]),
        "issued_date": _parse_date(data.get("created_at")),
        "quantity": float(data["quantity"]),
        "measurement_unit": data.get("unit") or "MT",
        "commodity_name": data.get("product_name"),
        "quality_grade": data.get("product_grade"),
        "warehouse_name": data.get("facility_name"),
        "warehouse_address": data.get("facility_address"),
        "external_id": str(data["id"]),
        "external_source": "ewarehouse",
    }


# provider -> (display name, auth type, receipt path, payload mapper)
PROVIDERS: Dict[str, Dict[str, Any]] = {
    "agriapp": {
        "name": "AgriApp Warehouse Management",
        "auth_type": "api_key",
        "receipt_path": "/api/warehouse-receipts/{id}",
        "mapper": _map_agriapp,
    },
    "ewarehouse": {
        "name": "eWarehouse Digital Solutions",
        "auth_type": "basic",
        "receipt_path": "/receipts/{id}",
        "mapper": _map_ewarehouse,
    },
}


class ExternalWarehouseService:
    def __init__(
        self,
        providers: Optional[Dict[str, Dict[str, Any]]] = None,
        retry: Optional[RetryService] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0
    ):
        self.providers = providers if providers is not None else settings.EXTERNAL_WAREHOUSE_PROVIDERS
        self.retry = retry or retry_service
        self.transport = transport
        self.timeout = timeout

    def supported_providers(self) -> Dict[str, str]:
        return {key: spec["name"] for key, spec in PROVIDERS.items()}

    def _credentials(self, provider: str) -> Dict[str, Any]:
        if provider not in PROVIDERS:
            raise ExternalWarehouseError(f"Provider '{provider}' is not supported", provider, status_code=400)
        credentials = self.providers.get(provider)
        if not credentials or not credentials.get("base_url"):
            raise ExternalWarehouseError(f"Provider '{provider}' is not configured", provider, status_code=400)
        return credentials

    def _client_kwargs(self, provider: str, credentials: Dict[str, Any]) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "base_url": credentials["base_url"],
            "timeout": self.timeout,
        }
        if self.transport is not None:
            kwargs["transport"] = self.transport

        auth_type = PROVIDERS[provider]["auth_type"]
        if auth_type == "api_key":
            if not credentials.get("api_key"):
                raise ExternalWarehouseError("API key is required for this provider", provider, status_code=400)
            kwargs["headers"] = {"Authorization": f"ApiKey {credentials['api_key']}"}
        elif auth_type == "basic":
            if not credentials.get("username") or not credentials.get("password"):
                raise ExternalWarehouseError("Username and password are required for this provider", provider, status_code=400)
            kwargs["auth"] = (credentials["username"], credentials["password"])
        return kwargs

    async def fetch_receipt(self, provider: str, external_id: str) -> Dict[str, Any]:
        """
        Fetch one receipt from a provider and map it to receipt fields

        Raises:
            ExternalWarehouseError: unknown/unconfigured provider, request failing
                after retries, or a payload that cannot be mapped
        """
        credentials = self._credentials(provider)
        spec = PROVIDERS[provider]
        path = spec["receipt_path"].format(id=quote(external_id, safe=""))
        client_kwargs = self._client_kwargs(provider, credentials)

        async with httpx.AsyncClient(**client_kwargs) as client:
            async def request() -> Dict[str, Any]:
                response = await client.get(path)
                response.raise_for_status()
                return response.json()

            outcome = await self.retry.execute_with_retry(request, self.retry.outbound_api_config())

        if not outcome.success:
            logger.error(f"❌ {provider} receipt {external_id} fetch failed after {outcome.attempts} attempt(s): {outcome.error}")
            raise ExternalWarehouseError(
                f"Failed to fetch receipt from {spec['name']}: {outcome.error}", provider
            )

        payload = outcome.result
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]

        mapper: Callable[[Dict[str, Any]], Dict[str, Any]] = spec["mapper"]
        try:
            mapped = mapper(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise ExternalWarehouseError(f"Unexpected receipt payload from {spec['name']}: {e}", provider) from e

        mapped["metadata"] = {"original_data": payload, "provider_name": spec["name"]}
        logger.info(f"📥 Fetched {provider} receipt {external_id}")
        return mapped
