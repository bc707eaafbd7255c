import asyncio
from datetime import datetime, timedelta

from sqlalchemy import update

from conftest import create_receipt, register
from tradewiser.db.session import SessionLocal
from tradewiser.models.loan import Loan
from tradewiser.services.scheduler import loan_default_sweep


def take_loan(client, receipt_ids, amount, **extra):
    response = client.post("/api/loans", json={"amount": amount, "collateral_receipt_ids": receipt_ids, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def expire_loan(loan_id):
    async def _expire():
        async with SessionLocal() as db:
            await db.execute(
                update(Loan).where(Loan.id == loan_id).values(end_date=datetime.utcnow() - timedelta(days=1))
            )
            await db.commit()

    asyncio.run(_expire())


def test_credit_available(client, farmer, warehouse):
    first = create_receipt(client, warehouse["id"])
    second = create_receipt(client, warehouse["id"], quantity=4)

    credit = client.get("/api/credit/available").json()
    assert credit["eligible_receipts"] == 2
    assert credit["total_valuation"] == 700000
    assert credit["loan_to_value_ratio"] == 0.8
    assert credit["available_credit"] == 560000
    assert set(credit["receipt_ids"]) == {first["id"], second["id"]}


def test_loan_collateralizes_receipts(client, farmer, warehouse):
    receipt = create_receipt(client, warehouse["id"])

    loan = take_loan(client, [receipt["id"], receipt["id"]], 300000)
    assert loan["status"] == "active"
    assert loan["collateral_receipt_ids"] == [receipt["id"]]
    assert loan["outstanding_amount"] == 300000
    assert loan["interest_rate"] == 12.0
    schedule = loan["repayment_schedule"]
    assert len(schedule) == 1
    assert schedule[0]["interest"] == 17753.42
    assert schedule[0]["total"] == 317753.42

    pledged = client.get(f"/api/receipts/{receipt['id']}").json()
    assert pledged["status"] == "collateralized"
    assert pledged["liens"]["loan_id"] == loan["id"]
    transfers = client.get(f"/api/receipts/{receipt['id']}/transfers").json()
    assert [t["transfer_type"] for t in transfers] == ["collateral"]

    assert client.get("/api/credit/available").json()["available_credit"] == 0
    assert client.post(f"/api/receipts/{receipt['id']}/withdraw").status_code == 400
    assert client.post("/api/loans", json={"amount": 1000, "collateral_receipt_ids": [receipt["id"]]}).status_code == 400

    assert [item["id"] for item in client.get("/api/loans").json()] == [loan["id"]]
    assert client.get(f"/api/loans/{loan['id']}").json()["amount"] == 300000


def test_loan_amount_limited_by_collateral(client, farmer, warehouse):
    receipt = create_receipt(client, warehouse["id"])

    response = client.post("/api/loans", json={"amount": 400000.01, "collateral_receipt_ids": [receipt["id"]]})
    assert response.status_code == 400
    assert "80%" in response.json()["detail"]

    loan = take_loan(client, [receipt["id"]], 400000, interest_rate=9.5, duration_days=90)
    assert loan["interest_rate"] == 9.5


def test_loan_collateral_checks(client, farmer, warehouse):
    receipt = create_receipt(client, warehouse["id"])
    assert client.post("/api/loans", json={"amount": 1000, "collateral_receipt_ids": [9999]}).status_code == 404
    assert client.post("/api/loans", json={"amount": 1000, "collateral_receipt_ids": []}).status_code == 422

    register(client, "suresh")
    response = client.post("/api/loans", json={"amount": 1000, "collateral_receipt_ids": [receipt["id"]]})
    assert response.status_code == 403


def test_partial_and_full_repayment(client, farmer, warehouse):
    receipt = create_receipt(client, warehouse["id"])
    loan = take_loan(client, [receipt["id"]], 300000)

    response = client.post(f"/api/loans/{loan['id']}/repay", json={"amount": 100000, "transaction_reference": "UTR123"})
    assert response.status_code == 200
    partial = response.json()
    assert partial["fully_repaid"] is False
    assert partial["loan"]["outstanding_amount"] == 200000
    assert partial["payment_no"].startswith("LRP")
    assert partial["released_receipt_ids"] == []

    assert client.post(f"/api/loans/{loan['id']}/repay", json={"amount": 250000}).status_code == 400

    final = client.post(f"/api/loans/{loan['id']}/repay", json={"amount": 200000}).json()
    assert final["fully_repaid"] is True
    assert final["loan"]["status"] == "repaid"
    assert final["loan"]["outstanding_amount"] == 0
    assert final["released_receipt_ids"] == [receipt["id"]]

    released = client.get(f"/api/receipts/{receipt['id']}").json()
    assert released["status"] == "active"
    assert "loan_id" not in released["liens"]
    transfers = client.get(f"/api/receipts/{receipt['id']}/transfers").json()
    assert [t["transfer_type"] for t in transfers] == ["collateral", "release"]

    repayments = client.get(f"/api/loans/{loan['id']}/repayments").json()
    assert [r["amount"] for r in repayments] == [100000, 200000]
    assert repayments[0]["transaction_reference"] == "UTR123"

    history = client.get("/api/payment/history", params={"payment_type": "loan_repayment"}).json()
    assert history["total"] == 2
    assert all(p["reference_id"] == loan["id"] for p in history["data"])

    assert client.post(f"/api/loans/{loan['id']}/repay", json={"amount": 1}).status_code == 400


def test_loans_are_private(client, farmer, warehouse):
    receipt = create_receipt(client, warehouse["id"])
    loan = take_loan(client, [receipt["id"]], 1000)

    register(client, "suresh")
    assert client.get(f"/api/loans/{loan['id']}").status_code == 403
    assert client.post(f"/api/loans/{loan['id']}/repay", json={"amount": 10}).status_code == 403
    assert client.get("/api/loans").json() == []
    assert client.get("/api/loans/9999").status_code == 404


def test_default_sweep_marks_overdue_loans(client, farmer, warehouse):
    overdue = take_loan(client, [create_receipt(client, warehouse["id"])["id"]], 1000)
    current = take_loan(client, [create_receipt(client, warehouse["id"])["id"]], 1000)
    expire_loan(overdue["id"])

    assert asyncio.run(loan_default_sweep()) == [overdue["id"]]
    assert asyncio.run(loan_default_sweep()) == []

    assert client.get(f"/api/loans/{overdue['id']}").json()["status"] == "defaulted"
    assert client.get(f"/api/loans/{current['id']}").json()["status"] == "active"

    # defaulted loans can still be settled
    settled = client.post(f"/api/loans/{overdue['id']}/repay", json={"amount": 1000}).json()
    assert settled["loan"]["status"] == "repaid"
