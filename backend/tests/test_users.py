from conftest import PASSWORD, register


def test_settings_default(client, farmer):
    response = client.get("/api/user/settings")
    assert response.status_code == 200
    settings = response.json()
    assert settings["notifications"]["priceAlerts"] is False
    assert settings["notifications"]["depositUpdates"] is True
    assert settings["preferences"] == {
        "language": "en-in",
        "currency": "INR",
        "timezone": "Asia/Kolkata",
        "theme": "light",
        "dashboardLayout": "default",
    }
    assert settings["security"] == {"twoFactorEnabled": False, "sessionTimeout": 60, "loginNotifications": True}


def test_settings_update_merges_sections(client, farmer):
    response = client.patch("/api/user/settings", json={
        "preferences": {"theme": "dark"},
        "security": {"sessionTimeout": 30},
    })
    assert response.status_code == 200
    updated = response.json()
    assert updated["preferences"]["theme"] == "dark"
    assert updated["preferences"]["currency"] == "INR"
    assert updated["security"]["sessionTimeout"] == 30
    assert updated["security"]["twoFactorEnabled"] is False
    assert updated["notifications"]["email"] is True

    client.patch("/api/user/settings", json={"notifications": {"sms": False}})
    stored = client.get("/api/user/settings").json()
    assert stored["notifications"]["sms"] is False
    assert stored["preferences"]["theme"] == "dark"


def test_settings_are_per_user(client, farmer):
    client.patch("/api/user/settings", json={"preferences": {"language": "hi-in"}})

    register(client, "suresh")
    assert client.get("/api/user/settings").json()["preferences"]["language"] == "en-in"


def test_settings_require_login(client):
    assert client.get("/api/user/settings").status_code == 401
    assert client.post("/api/user/change-password", json={}).status_code == 401


def test_change_password(client, farmer):
    response = client.post("/api/user/change-password", json={
        "current_password": PASSWORD, "new_password": "harvest2024",
    })
    assert response.status_code == 200
    assert response.json() == {"message": "Password updated successfully"}

    client.post("/api/auth/logout")
    assert client.post("/api/auth/login", json={"username": "ramesh", "password": PASSWORD}).status_code == 401
    assert client.post("/api/auth/login", json={"username": "ramesh", "password": "harvest2024"}).status_code == 200


def test_change_password_errors(client, farmer):
    missing = client.post("/api/user/change-password", json={"current_password": PASSWORD})
    assert missing.status_code == 400

    short = client.post("/api/user/change-password", json={"current_password": PASSWORD, "new_password": "short"})
    assert short.status_code == 400
    assert "8 characters" in short.json()["detail"]

    wrong = client.post("/api/user/change-password", json={"current_password": "nope", "new_password": "harvest2024"})
    assert wrong.status_code == 400
    assert wrong.json()["detail"] == "Current password is incorrect"

    # nothing changed
    client.post("/api/auth/logout")
    assert client.post("/api/auth/login", json={"username": "ramesh", "password": PASSWORD}).status_code == 200
