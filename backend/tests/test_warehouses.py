import asyncio
from datetime import datetime

from conftest import WAREHOUSE_MUMBAI, create_warehouse

from tradewiser.api.endpoints.warehouses import haversine_km
from tradewiser.db.session import SessionLocal
from tradewiser.models.payment_record import PaymentRecord


def test_haversine_delhi_to_mumbai():
    distance = haversine_km(28.6139, 77.2090, 19.0760, 72.8777)
    assert 1140 < distance < 1160
    assert haversine_km(28.6, 77.2, 28.6, 77.2) == 0


def test_create_and_get_warehouse(client, farmer):
    warehouse = create_warehouse(client)

    assert warehouse["owner_id"] == farmer["id"]
    assert warehouse["channel_type"] == "green"
    assert warehouse["utilization"] == 25.0

    fetched = client.get(f"/api/warehouses/{warehouse['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["name"] == warehouse["name"]
    assert client.get("/api/warehouses/9999").status_code == 404


def test_available_space_defaults_to_capacity(client, farmer):
    warehouse = create_warehouse(client, **WAREHOUSE_MUMBAI)
    assert warehouse["available_space"] == warehouse["capacity"]
    assert warehouse["utilization"] == 0


def test_list_filters(client, farmer):
    create_warehouse(client)
    create_warehouse(client, **WAREHOUSE_MUMBAI)

    assert len(client.get("/api/warehouses").json()) == 2
    by_state = client.get("/api/warehouses", params={"state": "maharashtra"}).json()
    assert [w["city"] for w in by_state] == ["Navi Mumbai"]

    assert len(client.get("/api/warehouses/by-state/Delhi").json()) == 1
    by_commodity = client.get("/api/warehouses/by-commodity/wheat").json()
    assert [w["name"] for w in by_commodity] == ["Azadpur Mandi Warehouse"]
    assert client.get("/api/warehouses/by-commodity/cotton").json() == []


def test_filter_by_district(client, farmer):
    create_warehouse(client, district="North West Delhi")
    create_warehouse(client, name="Okhla Cold Store", district="South East Delhi")
    create_warehouse(client, **WAREHOUSE_MUMBAI)

    by_district = client.get("/api/warehouses/by-district/north west delhi")
    assert by_district.status_code == 200
    assert [w["name"] for w in by_district.json()] == ["Azadpur Mandi Warehouse"]
    assert by_district.json()[0]["district"] == "North West Delhi"

    listed = client.get("/api/warehouses", params={"district": "South East Delhi"}).json()
    assert [w["name"] for w in listed] == ["Okhla Cold Store"]
    assert client.get("/api/warehouses/by-district/Thane").json() == []


def test_nearby_sorted_by_distance_within_radius(client, farmer):
    delhi = create_warehouse(client)
    create_warehouse(client, name="Sonipat Godown", latitude=28.9931, longitude=77.0151)
    create_warehouse(client, **WAREHOUSE_MUMBAI)

    response = client.get("/api/warehouses/nearby", params={"lat": 28.70, "lng": 77.17, "radius": 100})
    assert response.status_code == 200
    nearby = response.json()
    assert [w["name"] for w in nearby] == ["Azadpur Mandi Warehouse", "Sonipat Godown"]
    assert nearby[0]["id"] == delhi["id"]
    assert nearby[0]["distance_km"] < nearby[1]["distance_km"]

    limited = client.get("/api/warehouses/nearby", params={"lat": 28.70, "lng": 77.17, "radius": 2000, "limit": 1})
    assert len(limited.json()) == 1


def test_nearby_requires_coordinates(client, farmer):
    assert client.get("/api/warehouses/nearby", params={"lat": 28.7}).status_code == 400


def test_pay_fees_records_payment(client, farmer, warehouse):
    response = client.post(f"/api/warehouses/{warehouse['id']}/pay-fees", json={"amount": 1500, "payment_method": "upi"})
    assert response.status_code == 200
    payment = response.json()
    assert payment["payment_type"] == "warehouse_fee"
    assert payment["reference_id"] == warehouse["id"]
    assert payment["amount"] == 1500
    assert payment["payment_no"].startswith("FEE")
    assert payment["payment_no"].endswith("001")
    assert payment["method_display"] == "UPI"

    second = client.post(f"/api/warehouses/{warehouse['id']}/pay-fees", json={"amount": 500}).json()
    assert second["payment_no"].endswith("002")

    history = client.get("/api/payment/history").json()
    assert history["total"] == 2
    assert history["data"][0]["id"] == second["id"]


def test_payment_sequence_continues_past_999(client, farmer, warehouse):
    stem = f"FEE{datetime.utcnow().strftime('%Y%m%d')}"

    async def _seed():
        async with SessionLocal() as db:
            db.add(PaymentRecord(payment_no=f"{stem}999", user_id=farmer["id"], payment_type="warehouse_fee",
                                 amount=1, payment_method="cash"))
            await db.commit()

    asyncio.run(_seed())

    first = client.post(f"/api/warehouses/{warehouse['id']}/pay-fees", json={"amount": 100})
    assert first.status_code == 200, first.text
    assert first.json()["payment_no"] == f"{stem}1000"

    second = client.post(f"/api/warehouses/{warehouse['id']}/pay-fees", json={"amount": 100})
    assert second.status_code == 200, second.text
    assert second.json()["payment_no"] == f"{stem}1001"
    assert second.json()["payment_date"].startswith(datetime.utcnow().strftime("%Y-%m-%d"))


def test_pay_fees_validation(client, farmer, warehouse):
    assert client.post(f"/api/warehouses/{warehouse['id']}/pay-fees", json={"amount": 0}).status_code == 422
    assert client.post("/api/warehouses/9999/pay-fees", json={"amount": 10}).status_code == 404
