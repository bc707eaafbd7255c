import asyncio
import base64

import httpx
import pytest

from tradewiser.services.external_warehouse import ExternalWarehouseError, ExternalWarehouseService
from tradewiser.services.retry import RetryService

PROVIDERS = {
    "agriapp": {"base_url": "https://api.agriapp.test", "api_key": "agri-key"},
    "ewarehouse": {"base_url": "https://ewh.test", "username": "mandi", "password": "s3cret"},
}

AGRIAPP_RECEIPT = {
    "receipt_id": "AG-2025-0042",
    "issuedAt": "2025-02-01T09:30:00Z",
    "quantity": "25.5",
    "unit": "MT",
    "commodity": "Basmati Rice",
    "grade": "A",
    "warehouse": {"name": "Karnal Agri Store", "address": "NH-44, Karnal"},
}


async def no_sleep(delay):
    return None


def make_service(handler, providers=PROVIDERS):
    return ExternalWarehouseService(
        providers=providers,
        retry=RetryService(sleep=no_sleep),
        transport=httpx.MockTransport(handler),
    )


def test_agriapp_receipt_mapped_with_api_key():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": AGRIAPP_RECEIPT})

    data = asyncio.run(make_service(handler).fetch_receipt("agriapp", "AG-2025-0042"))

    assert seen[0].url == "https://api.agriapp.test/api/warehouse-receipts/AG-2025-0042"
    assert seen[0].headers["Authorization"] == "ApiKey agri-key"
    assert data["receipt_number"] == "AG-2025-0042"
    assert data["quantity"] == 25.5
    assert data["commodity_name"] == "Basmati Rice"
    assert data["warehouse_name"] == "Karnal Agri Store"
    assert data["issued_date"].year == 2025
    assert data["issued_date"].tzinfo is None
    assert data["external_source"] == "agriapp"
    assert data["metadata"]["original_data"] == AGRIAPP_RECEIPT
    assert data["metadata"]["provider_name"] == "AgriApp Warehouse Management"


def test_ewarehouse_uses_basic_auth():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={
            "id": 981, "quantity": 12, "product_name": "Mustard", "facility_name": "Alwar Storage"
        })

    data = asyncio.run(make_service(handler).fetch_receipt("ewarehouse", "981"))

    expected = "Basic " + base64.b64encode(b"mandi:s3cret").decode()
    assert seen[0].headers["Authorization"] == expected
    assert seen[0].url.path == "/receipts/981"
    assert data["receipt_number"] == "981"
    assert data["measurement_unit"] == "MT"
    assert data["commodity_name"] == "Mustard"
    assert data["issued_date"] is None


def test_server_errors_are_retried():
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(503)
        return httpx.Response(200, json=AGRIAPP_RECEIPT)

    data = asyncio.run(make_service(handler).fetch_receipt("agriapp", "AG-2025-0042"))
    assert calls["count"] == 2
    assert data["receipt_number"] == "AG-2025-0042"


def test_not_found_is_not_retried():
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        return httpx.Response(404, json={"error": "not found"})

    with pytest.raises(ExternalWarehouseError) as exc_info:
        asyncio.run(make_service(handler).fetch_receipt("agriapp", "missing"))

    assert calls["count"] == 1
    assert exc_info.value.status_code == 502
    assert exc_info.value.provider == "agriapp"


def test_unexpected_payload():
    def handler(request):
        return httpx.Response(200, json={"something": "else"})

    with pytest.raises(ExternalWarehouseError) as exc_info:
        asyncio.run(make_service(handler).fetch_receipt("agriapp", "AG-1"))
    assert "Unexpected receipt payload" in exc_info.value.message


@pytest.mark.parametrize("provider, providers", [
    ("warehousepro", PROVIDERS),
    ("agriapp", {}),
    ("agriapp", {"agriapp": {"base_url": "https://api.agriapp.test"}}),
    ("ewarehouse", {"ewarehouse": {"base_url": "https://ewh.test", "username": "mandi"}}),
])
def test_configuration_errors(provider, providers):
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(ExternalWarehouseError) as exc_info:
        asyncio.run(make_service(handler, providers).fetch_receipt(provider, "1"))
    assert exc_info.value.status_code == 400


def test_supported_providers():
    service = ExternalWarehouseService(providers={})
    assert set(service.supported_providers()) == {"agriapp", "ewarehouse"}
