from conftest import ADMIN_PAYLOAD, DONATION_PAYLOAD, USER_PAYLOAD, login


def donate(client, headers=None, **overrides):
    return client.post("/donations/", json={**DONATION_PAYLOAD, **overrides}, headers=headers or {})


def test_anonymous_donation(client):
    response = donate(client)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Donation recorded successfully"
    assert body["data"]["status"] == "pending"
    assert body["data"]["food_quantity"] == "5"
    assert body["data"]["user_id"] is None


def test_donation_form_field_names(client):
    response = client.post(
        "/donations/",
        json={
            "fullname": "Test",
            "email": "t@x.com",
            "phone": "9876543210",
            "foodType": "veg",
            "fullAddress": "1 Rd",
            "foodQuantity": "5",
        },
    )

    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["full_name"] == "Test"
    assert data["food_type"] == "veg"
    assert data["full_address"] == "1 Rd"
    assert data["status"] == "pending"
    assert data["food_quantity"] == "5"


def test_donation_validation_errors_in_envelope(client):
    response = donate(client, food_quantity="0", phone="")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert body["errors"] == ["Phone number is required", "Food quantity must be greater than 0"]
    assert "Food quantity must be greater than 0" in body["message"]


def test_register_login_and_profile(client, user_headers):
    response = client.get("/users/profile", headers=user_headers)

    assert response.status_code == 200
    profile = response.json()["data"]
    assert profile["email"] == USER_PAYLOAD["email"]
    assert profile["total_donations"] == 0
    assert "password_hash" not in profile


def test_duplicate_registration_conflicts(client, user_headers):
    response = client.post("/users/register", json=USER_PAYLOAD)

    assert response.status_code == 409
    assert response.json()["message"] == "User already exists with this email"


def test_bad_login(client, user_headers):
    response = client.post(
        "/users/login", json={"email": USER_PAYLOAD["email"], "password": "wrong-password"}
    )

    assert response.status_code == 401


def test_invalid_token_is_rejected(client):
    response = client.get("/donations/mine", headers={"Authorization": "Bearer forged"})

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_logged_in_donation_is_linked(client, user_headers):
    donation = donate(client, user_headers).json()["data"]

    profile = client.get("/users/profile", headers=user_headers).json()["data"]
    assert profile["total_donations"] == 1
    assert profile["donation_ids"] == [donation["id"]]

    mine = client.get("/donations/mine", headers=user_headers).json()["data"]
    assert [d["id"] for d in mine] == [donation["id"]]


def test_my_donations_include_email_matches(client, user_headers):
    anonymous = donate(client, email=USER_PAYLOAD["email"]).json()["data"]

    mine = client.get("/donations/mine", headers=user_headers).json()["data"]

    assert [d["id"] for d in mine] == [anonymous["id"]]


def test_my_donations_empty_for_anonymous(client):
    donate(client)

    response = client.get("/donations/mine")

    assert response.status_code == 200
    assert response.json()["data"] == []


def test_admin_status_workflow(client, admin_headers):
    donation = donate(client).json()["data"]

    response = client.patch(
        f"/donations/{donation['id']}/status", json={"status": "completed"}, headers=admin_headers
    )
    assert response.status_code == 200

    fetched = client.get(f"/donations/{donation['id']}", headers=admin_headers).json()["data"]
    assert fetched["status"] == "completed"


def test_user_cannot_change_status(client, user_headers):
    donation = donate(client, user_headers).json()["data"]

    response = client.patch(
        f"/donations/{donation['id']}/status", json={"status": "accepted"}, headers=user_headers
    )

    assert response.status_code == 403


def test_quantity_edit_rules(client, user_headers, other_user_headers, admin_headers):
    donation = donate(client, user_headers).json()["data"]
    url = f"/donations/{donation['id']}/quantity"

    assert client.patch(url, json={"food_quantity": "8"}, headers=other_user_headers).status_code == 403

    response = client.patch(url, json={"food_quantity": "8"}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["data"]["food_quantity"] == "8"

    client.patch(f"/donations/{donation['id']}/status", json={"status": "accepted"}, headers=admin_headers)
    response = client.patch(url, json={"food_quantity": "3"}, headers=user_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Only pending donations can be updated"

    fetched = client.get(f"/donations/{donation['id']}", headers=user_headers).json()["data"]
    assert fetched["food_quantity"] == "8"


def test_notes(client, admin_headers, user_headers):
    donation = donate(client, user_headers).json()["data"]
    url = f"/donations/{donation['id']}/notes"

    assert client.put(url, json={"notes": "Call first"}, headers=user_headers).status_code == 403
    assert client.put(url, json={"notes": " "}, headers=admin_headers).status_code == 400

    response = client.put(url, json={"notes": "Call first"}, headers=admin_headers)
    assert response.json()["data"]["notes"] == "Call first"


def test_malformed_and_unknown_ids(client, admin_headers):
    malformed = client.get("/donations/12345", headers=admin_headers)
    unknown = client.get("/donations/" + "0" * 32, headers=admin_headers)

    assert malformed.status_code == 400
    assert malformed.json()["message"] == "Invalid donation ID format"
    assert unknown.status_code == 404


def test_other_users_donation_looks_missing(client, user_headers, other_user_headers):
    donation = donate(client, other_user_headers, email="ravi@foodshare.org").json()["data"]

    response = client.get(f"/donations/{donation['id']}", headers=user_headers)

    assert response.status_code == 404


def test_filters(client, admin_headers, user_headers):
    donate(client, user_headers)
    donate(client, food_type="non-veg")

    admin_all = client.get("/donations/", headers=admin_headers).json()["data"]
    user_all = client.get("/donations/", headers=user_headers).json()["data"]
    non_veg = client.get("/donations/food-type/non-veg", headers=admin_headers).json()["data"]
    pending = client.get("/donations/status/pending", headers=admin_headers).json()["data"]

    assert len(admin_all) == 2
    assert len(user_all) == 1
    assert [d["food_type"] for d in non_veg] == ["non-veg"]
    assert len(pending) == 2
    assert client.get("/donations/status/shipped", headers=admin_headers).status_code == 400
    assert client.get("/donations/").status_code == 401


def test_date_range_requires_both_dates(client, admin_headers):
    response = client.get("/donations/date-range?start_date=2026-01-01", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Both start date and end date are required"


def test_statistics(client, admin_headers, user_headers):
    donate(client)
    donate(client, food_type="both")

    response = client.get("/donations/statistics", headers=admin_headers)
    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["total_donations"] == 2
    assert stats["by_food_type"] == {"veg": 1, "both": 1}
    assert len(stats["recent_donations"]) == 7

    assert client.get("/donations/statistics", headers=user_headers).status_code == 403


def test_admin_dashboard_and_listing(client, admin_headers, user_headers):
    donation = donate(client, user_headers).json()["data"]
    donate(client, food_quantity="7")
    client.patch(f"/donations/{donation['id']}/status", json={"status": "cancelled"}, headers=admin_headers)

    stats = client.get("/admin/dashboard-stats", headers=admin_headers).json()["data"]
    assert stats["total_users"] == 1
    assert stats["total_donations"] == 2
    assert stats["total_food_quantity"] == 12
    assert stats["status_counts"]["cancelled"] == 1

    listing = client.get("/admin/donations?status=cancelled", headers=admin_headers).json()["data"]
    assert [d["id"] for d in listing["donations"]] == [donation["id"]]
    assert listing["counts"] == {"total": 1, "pending": 1, "accepted": 0, "completed": 0, "cancelled": 1}

    assert client.get("/admin/dashboard-stats", headers=user_headers).status_code == 403


def test_admin_user_details_and_reconcile(client, admin_headers, user_headers):
    donate(client, user_headers)
    user = client.get("/users/profile", headers=user_headers).json()["data"]

    details = client.get(f"/admin/users/{user['id']}", headers=admin_headers).json()["data"]
    assert len(details["donations"]) == 1

    response = client.post(f"/admin/users/{user['id']}/reconcile", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["total_donations"] == 1

    assert client.get("/admin/users/bad-id", headers=admin_headers).status_code == 400


def test_second_admin_needs_an_admin(client, admin_headers):
    payload = {**ADMIN_PAYLOAD, "email": "second@foodshare.org", "phone": "9000000002"}

    assert client.post("/admin/register", json=payload).status_code == 403
    assert client.post("/admin/register", json=payload, headers=admin_headers).status_code == 201


def test_admin_password_reset(client, admin_headers):
    response = client.post(
        "/admin/reset-password",
        json={"current_password": ADMIN_PAYLOAD["password"], "new_password": "newpass99"},
        headers=admin_headers,
    )
    assert response.status_code == 200

    login(client, "/admin/login", ADMIN_PAYLOAD["email"], "newpass99")


def test_update_profile(client, user_headers, other_user_headers):
    response = client.put("/users/me", json={"city": "Mumbai"}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["data"]["city"] == "Mumbai"

    response = client.put("/users/me", json={"phone": "9123456780"}, headers=user_headers)
    assert response.status_code == 409


def test_deleting_account_keeps_donations(client, user_headers, admin_headers):
    donation = donate(client, user_headers).json()["data"]

    assert client.delete("/users/me", headers=user_headers).status_code == 200

    fetched = client.get(f"/donations/{donation['id']}", headers=admin_headers).json()["data"]
    assert fetched["user_id"] is None
    assert client.get("/users/profile", headers=user_headers).status_code == 401
