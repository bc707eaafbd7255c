from conftest import register, login


def create_deposit(client, warehouse_id, **overrides):
    payload = {
        "commodity_name": "Sharbati Wheat",
        "commodity_type": "cereals",
        "quantity": 10,
        "warehouse_id": warehouse_id,
        "delivery_method": "managed_pickup",
        "scheduled_date": "2025-03-14",
        "pickup_address": "Village Khera, Sonipat",
        **overrides,
    }
    response = client.post("/api/deposits", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_deposit_creates_commodity_and_process(client, farmer, warehouse):
    process = create_deposit(client, warehouse["id"])

    assert process["process_type"] == "deposit"
    assert process["status"] == "in_progress"
    assert process["current_stage"] == "pickup_scheduled"
    assert process["stage_progress"]["pickup_scheduled"] == "in_progress"
    assert process["stage_progress"]["ewr_generated"] == "pending"
    assert process["metadata"]["warehouse_name"] == warehouse["name"]
    assert process["metadata"]["pickup_address"] == "Village Khera, Sonipat"
    assert process["estimated_completion_time"] is not None

    commodity = client.get(f"/api/commodities/{process['commodity_id']}").json()
    assert commodity["name"] == "Sharbati Wheat"
    assert commodity["owner_id"] == farmer["id"]
    assert commodity["valuation"] == 500000
    assert commodity["grade_assigned"] == "pending"


def test_processes_endpoint_accepts_deposits_only(client, farmer, warehouse):
    response = client.post("/api/processes", json={
        "type": "deposit", "commodity_name": "Chana", "commodity_type": "pulses",
        "quantity": 5, "warehouse_id": warehouse["id"]
    })
    assert response.status_code == 201
    assert client.post("/api/processes", json={"type": "withdrawal"}).status_code == 400

    listed = client.get("/api/processes").json()
    assert [p["id"] for p in listed] == [response.json()["id"]]


def test_deposit_validation(client, farmer, warehouse):
    response = client.post("/api/deposits", json={"commodity_name": "Wheat", "warehouse_id": warehouse["id"]})
    assert response.status_code == 400
    assert "Missing required fields" in response.json()["detail"]

    assert client.post("/api/deposits", json={
        "commodity_name": "Wheat", "commodity_type": "cereals", "quantity": 0, "warehouse_id": warehouse["id"]
    }).status_code == 400
    assert client.post("/api/deposits", json={
        "commodity_name": "Wheat", "commodity_type": "cereals", "quantity": 5, "warehouse_id": 9999
    }).status_code == 404


def test_progress_tracker(client, farmer, warehouse):
    process = create_deposit(client, warehouse["id"])

    progress = client.get(f"/api/deposits/{process['id']}/progress").json()
    assert progress["progress_percentage"] == 12
    assert len(progress["stages"]) == 8
    assert progress["stages"][0] == {"stage": "pickup_scheduled", "status": "in_progress"}


def test_advance_jump_and_reset(client, farmer, warehouse):
    process = create_deposit(client, warehouse["id"])
    pid = process["id"]

    advanced = client.post(f"/api/processes/{pid}/advance-stage").json()
    assert advanced["current_stage"] == "pickup_assigned"
    assert advanced["stage_progress"]["pickup_scheduled"] == "completed"
    assert advanced["stage_progress"]["pickup_assigned"] == "in_progress"

    jumped = client.post(f"/api/processes/{pid}/jump-to-stage", json={"stage": "quality_assessment"}).json()
    assert jumped["current_stage"] == "quality_assessment"
    assert jumped["stage_progress"]["pre_cleaning"] == "completed"
    assert jumped["stage_progress"]["ewr_generation"] == "pending"
    assert client.get(f"/api/deposits/{pid}/progress").json()["progress_percentage"] == 75

    assert client.post(f"/api/processes/{pid}/jump-to-stage", json={"stage": "teleported"}).status_code == 400

    reset = client.post(f"/api/processes/{pid}/reset-stages").json()
    assert reset["current_stage"] == "pickup_scheduled"
    assert set(reset["stage_progress"].values()) == {"pending"}


def test_advancing_past_last_stage_completes(client, farmer, warehouse):
    pid = create_deposit(client, warehouse["id"])["id"]
    client.post(f"/api/processes/{pid}/jump-to-stage", json={"stage": "ewr_generated"})

    done = client.post(f"/api/processes/{pid}/advance-stage").json()
    assert done["status"] == "completed"
    assert done["completed_time"] is not None
    assert client.post(f"/api/processes/{pid}/advance-stage").status_code == 400


def test_patch_merges_progress_and_metadata(client, farmer, warehouse):
    pid = create_deposit(client, warehouse["id"])["id"]

    response = client.patch(f"/api/processes/{pid}", json={
        "stage_progress": {"pickup_assigned": "completed"},
        "metadata": {"driver": "Suresh"},
    })
    assert response.status_code == 200
    updated = response.json()
    assert updated["stage_progress"]["pickup_assigned"] == "completed"
    assert updated["stage_progress"]["pickup_scheduled"] == "in_progress"
    assert updated["metadata"]["driver"] == "Suresh"
    assert updated["metadata"]["warehouse_name"] == warehouse["name"]

    assert client.patch(f"/api/processes/{pid}", json={"stage_progress": {"pickup_assigned": "done"}}).status_code == 400

    completed = client.patch(f"/api/processes/{pid}", json={"status": "completed"}).json()
    assert completed["completed_time"] is not None


def test_quality_assessment_and_ewr(client, farmer, warehouse):
    process = create_deposit(client, warehouse["id"])
    pid = process["id"]

    response = client.post(f"/api/bypass/quality-assessment/{pid}")
    assert response.status_code == 200
    assessed = response.json()
    assert assessed["quality"]["grade"] == "A"
    assert assessed["quality"]["score"] == 87
    assert assessed["pricing"]["market_rate"] == 2175
    assert assessed["pricing"]["total_value"] == 21750
    assert assessed["commodity"]["valuation"] == 21750
    assert assessed["commodity"]["status"] == "processing"
    assert assessed["process"]["current_stage"] == "ewr_generation"
    assert assessed["process"]["stage_progress"]["quality_assessment"] == "completed"

    response = client.post(f"/api/bypass/generate-ewr/{pid}")
    assert response.status_code == 200
    issued = response.json()
    receipt = issued["receipt"]
    assert receipt["receipt_number"].startswith("eWR-")
    assert receipt["receipt_number"].endswith(f"-{process['commodity_id']}")
    assert receipt["valuation"] == 21750
    assert receipt["quality_grade"] == "A"
    assert receipt["warehouse_name"] == warehouse["name"]
    assert receipt["metadata"]["insurance"] == {"coverage_percentage": 80, "insured_value": 17400.0}
    assert issued["process"]["status"] == "completed"
    assert issued["process"]["current_stage"] == "ewr_generated"
    assert issued["process"]["metadata"]["receipt_id"] == receipt["id"]

    commodity = client.get(f"/api/commodities/{process['commodity_id']}").json()
    assert commodity["status"] == "active"

    assert client.post(f"/api/bypass/generate-ewr/{pid}").status_code == 400


def test_reassessment_after_ewr_is_rejected(client, farmer, warehouse):
    pid = create_deposit(client, warehouse["id"])["id"]
    client.post(f"/api/bypass/quality-assessment/{pid}")
    receipt = client.post(f"/api/bypass/generate-ewr/{pid}").json()["receipt"]

    for path in ("quality-assessment", "complete-assessment"):
        response = client.post(f"/api/bypass/{path}/{pid}")
        assert response.status_code == 400

    process = client.get(f"/api/processes/{pid}").json()
    assert process["status"] == "completed"
    assert process["current_stage"] == "ewr_generated"
    assert client.get(f"/api/receipts/{receipt['id']}").json()["status"] == "active"


def test_complete_assessment_alias(client, farmer, warehouse):
    pid = create_deposit(client, warehouse["id"], commodity_type="pulses", quantity=2)["id"]

    response = client.post(f"/api/bypass/complete-assessment/{pid}")
    assert response.status_code == 200
    assert response.json()["pricing"]["total_value"] == 8010


def test_other_users_cannot_touch_process(client, farmer, warehouse):
    pid = create_deposit(client, warehouse["id"])["id"]

    register(client, "suresh")
    assert client.get(f"/api/processes/{pid}").status_code == 403
    assert client.post(f"/api/processes/{pid}/advance-stage").status_code == 403
    assert client.post(f"/api/bypass/generate-ewr/{pid}").status_code == 403
    assert client.get("/api/processes/9999").status_code == 404

    login(client, "ramesh")
    assert client.get(f"/api/processes/{pid}").status_code == 200
