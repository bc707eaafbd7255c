from conftest import create_receipt, create_warehouse, login, register


def start_withdrawal(client, receipt_id, quantity=None) -> dict:
    body = {"quantity": quantity} if quantity is not None else None
    response = client.post(f"/api/receipts/{receipt_id}/withdraw", json=body)
    assert response.status_code == 201, response.text
    return response.json()["process"]


def test_advancing_through_every_stage_settles_receipt(client, farmer, warehouse):
    receipt = create_receipt(client, warehouse["id"], quantity=10)
    pid = start_withdrawal(client, receipt["id"], quantity=4)["id"]

    for expected in ("preparation", "document_check", "physical_release", "quantity_confirmation", "receipt_update"):
        assert client.post(f"/api/processes/{pid}/advance-stage").json()["current_stage"] == expected

    response = client.post(f"/api/processes/{pid}/advance-stage")
    assert response.status_code == 200, response.text
    finished = response.json()
    assert finished["status"] == "completed"
    assert set(finished["stage_progress"].values()) == {"completed"}

    settled = client.get(f"/api/receipts/{receipt['id']}").json()
    assert settled["status"] == "active"
    assert settled["quantity"] == 6
    assert settled["valuation"] == 300000
    assert "withdrawal" not in settled["liens"]

    assert client.post(f"/api/processes/{pid}/complete-withdrawal").status_code == 400
    assert client.post(f"/api/processes/{pid}/advance-stage").status_code == 400


def test_patch_completed_settles_full_withdrawal(client, farmer, warehouse):
    receipt = create_receipt(client, warehouse["id"], quantity=10)
    pid = start_withdrawal(client, receipt["id"])["id"]

    response = client.patch(f"/api/processes/{pid}", json={"status": "completed"})
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "completed"

    assert client.get(f"/api/receipts/{receipt['id']}").json()["status"] == "withdrawn"
    assert client.post(f"/api/processes/{pid}/complete-withdrawal").status_code == 400


def test_patch_failed_releases_receipt(client, farmer, warehouse):
    receipt = create_receipt(client, warehouse["id"], quantity=10)
    pid = start_withdrawal(client, receipt["id"], quantity=3)["id"]

    response = client.patch(f"/api/processes/{pid}", json={"status": "failed"})
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "failed"

    released = client.get(f"/api/receipts/{receipt['id']}").json()
    assert released["status"] == "active"
    assert released["quantity"] == 10
    assert "withdrawal" not in released["liens"]

    assert client.post(f"/api/processes/{pid}/complete-withdrawal").status_code == 400
    # the receipt can be withdrawn again
    start_withdrawal(client, receipt["id"])


def test_withdrawal_metadata_cannot_be_rewritten(client, farmer, warehouse):
    receipt = create_receipt(client, warehouse["id"], quantity=10)
    pid = start_withdrawal(client, receipt["id"], quantity=4)["id"]

    for tampered in ({"quantity": -90}, {"receipt_id": 9999}, {"partial": False}, {"receipt_number": "X"}):
        response = client.patch(f"/api/processes/{pid}", json={"metadata": tampered})
        assert response.status_code == 400

    process = client.get(f"/api/processes/{pid}").json()
    assert process["metadata"]["quantity"] == 4
    assert process["metadata"]["receipt_id"] == receipt["id"]

    done = client.post(f"/api/processes/{pid}/complete-withdrawal").json()
    assert done["withdrawn_quantity"] == 4
    assert done["receipt"]["quantity"] == 6


def test_cannot_complete_withdrawal_against_someone_elses_receipt(client, farmer, warehouse):
    victim_receipt = create_receipt(client, warehouse["id"], quantity=10)
    victim_pid = start_withdrawal(client, victim_receipt["id"])["id"]

    register(client, "suresh")
    own_receipt = create_receipt(client, create_warehouse(client, name="Narela Godown")["id"], quantity=2)
    own_pid = start_withdrawal(client, own_receipt["id"])["id"]

    assert client.post(f"/api/processes/{victim_pid}/complete-withdrawal").status_code == 403
    assert client.post(f"/api/processes/{victim_pid}/advance-stage").status_code == 403
    assert client.patch(f"/api/processes/{own_pid}", json={"metadata": {"receipt_id": victim_receipt["id"]}}).status_code == 400

    done = client.post(f"/api/processes/{own_pid}/complete-withdrawal").json()
    assert done["receipt"]["id"] == own_receipt["id"]
    assert done["receipt"]["status"] == "withdrawn"

    login(client, "ramesh")
    untouched = client.get(f"/api/receipts/{victim_receipt['id']}").json()
    assert untouched["status"] == "processing"
    assert untouched["quantity"] == 10
    assert untouched["liens"]["withdrawal"]["process_id"] == victim_pid


def test_reopened_withdrawal_cannot_settle_twice(client, farmer, warehouse):
    receipt = create_receipt(client, warehouse["id"], quantity=10)
    pid = start_withdrawal(client, receipt["id"], quantity=4)["id"]
    client.post(f"/api/processes/{pid}/complete-withdrawal")

    client.post(f"/api/processes/{pid}/jump-to-stage", json={"stage": "receipt_update"})
    assert client.post(f"/api/processes/{pid}/advance-stage").status_code == 400
    assert client.post(f"/api/processes/{pid}/complete-withdrawal").status_code == 400
    assert client.get(f"/api/receipts/{receipt['id']}").json()["quantity"] == 6


def test_deposit_is_not_a_withdrawal(client, farmer, warehouse):
    deposit = client.post("/api/deposits", json={
        "commodity_name": "Sharbati Wheat", "commodity_type": "cereals", "quantity": 10, "warehouse_id": warehouse["id"],
    }).json()
    assert client.post(f"/api/processes/{deposit['id']}/complete-withdrawal").status_code == 400
