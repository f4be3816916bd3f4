"""
Tests for settlement endpoints.
"""
from conftest import add_expense, auth_headers


def test_requires_authentication(client, trip):
    response = client.get(f"/api/settlements/{trip.id}/balances")
    assert response.status_code == 401


def test_rejects_bad_token(client, trip):
    response = client.get(
        f"/api/settlements/{trip.id}/balances",
        headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


def test_non_member_is_forbidden(client, trip, outsider):
    response = client.get(f"/api/settlements/{trip.id}/balances", headers=auth_headers(outsider))
    assert response.status_code == 403


def test_unknown_trip(client, alice):
    response = client.get("/api/settlements/999/balances", headers=auth_headers(alice))
    assert response.status_code == 404


def test_get_balances(client, trip, alice, bob, carol, dinner):
    response = client.get(f"/api/settlements/{trip.id}/balances", headers=auth_headers(bob))

    assert response.status_code == 200
    data = {row["name"]: row for row in response.json()}
    assert data["Alice"]["net_balance"] == "60.00"
    assert data["Alice"]["total_paid_out"] == "90.00"
    assert data["Bob"]["net_balance"] == "-30.00"
    assert data["Carol"]["total_owed"] == "30.00"


def test_get_recommended(client, db, trip, alice, bob, carol, dinner):
    add_expense(db, trip, bob, "15.00", {carol: "15.00"})

    response = client.get(f"/api/settlements/{trip.id}/recommended", headers=auth_headers(carol))

    assert response.status_code == 200
    data = response.json()
    assert data["is_valid"] is True
    assert [(t["from_user_name"], t["to_user_name"], t["amount"]) for t in data["transactions"]] == [
        ("Carol", "Alice", "45.00"),
        ("Bob", "Alice", "15.00"),
    ]
    assert data["stats"]["total_transactions"] == 2
    assert data["stats"]["total_amount"] == "60.00"
    assert data["stats"]["users_involved"] == 3
    assert data["stats"]["average_transaction_amount"] == "30.00"
    assert len(data["original_balances"]) == 3


def test_user_recommendations(client, trip, alice, bob, carol, dinner):
    response = client.get(
        f"/api/settlements/{trip.id}/recommended/{bob.id}",
        headers=auth_headers(bob)
    )

    assert response.status_code == 200
    assert [(t["from_user_id"], t["to_user_id"]) for t in response.json()] == [(bob.id, alice.id)]


def test_user_recommendations_for_others_need_creator(client, trip, alice, bob, carol, dinner):
    response = client.get(
        f"/api/settlements/{trip.id}/recommended/{carol.id}",
        headers=auth_headers(bob)
    )
    assert response.status_code == 403

    response = client.get(
        f"/api/settlements/{trip.id}/recommended/{carol.id}",
        headers=auth_headers(alice)
    )
    assert response.status_code == 200


def test_settlement_options(client, trip, alice, bob):
    response = client.get(
        f"/api/settlements/{trip.id}/options/{alice.id}",
        params={"amount": "30"},
        headers=auth_headers(bob)
    )

    assert response.status_code == 200
    options = response.json()
    assert [o["method"] for o in options] == ["venmo", "paypal", "cash"]
    assert "amount=30.00" in options[0]["payment_link"]
    assert "from%20Bob" in options[0]["payment_link"]
    assert "currency_code=EUR" in options[1]["payment_link"]


def test_settlement_options_requires_positive_amount(client, trip, alice, bob):
    response = client.get(
        f"/api/settlements/{trip.id}/options/{alice.id}",
        params={"amount": "0"},
        headers=auth_headers(bob)
    )
    assert response.status_code == 422


def test_settlement_options_capped_amount(client, trip, alice, bob):
    response = client.get(
        f"/api/settlements/{trip.id}/options/{alice.id}",
        params={"amount": "1e30"},
        headers=auth_headers(bob)
    )
    assert response.status_code == 422


def test_settlement_options_for_non_member_payee(client, db, trip, bob, outsider):
    """Payment ids of users outside the trip stay hidden."""
    outsider.paypal_email = "mallory.pay@example.com"
    outsider.venmo_username = "mallory-v"
    db.commit()

    response = client.get(
        f"/api/settlements/{trip.id}/options/{outsider.id}",
        params={"amount": "1"},
        headers=auth_headers(bob)
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Payee not found"
    assert "mallory" not in response.text


def test_full_settlement_flow(client, trip, alice, bob, carol, dinner):
    response = client.post(
        f"/api/settlements/{trip.id}/initiate",
        json={"payee_id": alice.id, "amount": "30.00", "payment_method": "venmo"},
        headers=auth_headers(bob)
    )
    assert response.status_code == 201
    settlement = response.json()
    assert settlement["status"] == "initiated"
    assert settlement["payer_id"] == bob.id
    assert settlement["amount"] == "30.00"
    assert settlement["payment_link"].startswith("https://venmo.com/alice-v")

    # Claim alone does not move balances
    balances = client.get(f"/api/settlements/{trip.id}/balances", headers=auth_headers(bob)).json()
    assert next(b for b in balances if b["user_id"] == bob.id)["net_balance"] == "-30.00"

    pending = client.get("/api/settlements/pending", headers=auth_headers(alice)).json()
    assert [s["id"] for s in pending] == [settlement["id"]]
    assert client.get("/api/settlements/pending", headers=auth_headers(bob)).json() == []

    response = client.post(f"/api/settlements/{settlement['id']}/confirm", headers=auth_headers(bob))
    assert response.status_code == 403
    assert response.json()["detail"] == "Only the payee may confirm this settlement"

    response = client.post(f"/api/settlements/{settlement['id']}/confirm", headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert response.json()["confirmed_by"] == alice.id

    response = client.post(f"/api/settlements/{settlement['id']}/confirm", headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"

    balances = client.get(f"/api/settlements/{trip.id}/balances", headers=auth_headers(bob)).json()
    assert next(b for b in balances if b["user_id"] == bob.id)["net_balance"] == "0.00"
    assert client.get("/api/settlements/pending", headers=auth_headers(alice)).json() == []

    recommended = client.get(f"/api/settlements/{trip.id}/recommended", headers=auth_headers(carol)).json()
    assert [(t["from_user_id"], t["amount"]) for t in recommended["transactions"]] == [(carol.id, "30.00")]


def test_initiate_negative_amount(client, trip, alice, bob):
    response = client.post(
        f"/api/settlements/{trip.id}/initiate",
        json={"payee_id": alice.id, "amount": "-5"},
        headers=auth_headers(bob)
    )
    assert response.status_code == 422
    assert response.json()["detail"] == "Settlement amount must be greater than zero"


def test_initiate_amount_too_large(client, trip, alice, bob):
    response = client.post(
        f"/api/settlements/{trip.id}/initiate",
        json={"payee_id": alice.id, "amount": "100000000000000000000"},
        headers=auth_headers(bob)
    )
    assert response.status_code == 422
    assert client.get(f"/api/settlements/{trip.id}/history", headers=auth_headers(bob)).json() == []


def test_initiate_to_self(client, trip, bob):
    response = client.post(
        f"/api/settlements/{trip.id}/initiate",
        json={"payee_id": bob.id, "amount": "5"},
        headers=auth_headers(bob)
    )
    assert response.status_code == 422


def test_decline_and_history(client, trip, alice, bob):
    created = client.post(
        f"/api/settlements/{trip.id}/initiate",
        json={"payee_id": alice.id, "amount": "8", "payment_method": "cash", "notes": "coffee"},
        headers=auth_headers(bob)
    ).json()

    response = client.post(f"/api/settlements/{created['id']}/decline", headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json()["status"] == "declined"
    assert response.json()["declined_at"] is not None

    history = client.get(f"/api/settlements/{trip.id}/history", headers=auth_headers(bob)).json()
    assert [(s["id"], s["status"], s["notes"]) for s in history] == [(created["id"], "declined", "coffee")]


def test_confirm_unknown_settlement(client, alice):
    response = client.post("/api/settlements/999/confirm", headers=auth_headers(alice))
    assert response.status_code == 404


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
