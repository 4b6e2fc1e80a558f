"""Test dashboard aggregates."""
from datetime import datetime, timezone


def test_user_home_counts_only_that_user(client, db):
    db["appointments"].insert_many([
        {"email": "pat@x.com", "appointmentDate": "2024-05-01"},
        {"email": "pat@x.com", "appointmentDate": "2024-05-02"},
        {"email": "other@x.com", "appointmentDate": "2024-05-03"},
    ])
    db["payments"].insert_one({"email": "pat@x.com", "transactionId": "pi_1"})
    db["reviews"].insert_many([{"email": "other@x.com"}, {"email": "other@x.com"}])

    response = client.get("/dashboard/userhome", params={"email": "pat@x.com"})

    assert response.status_code == 200
    assert response.json() == {"appointments": 2, "payments": 1, "reviews": 0}


def test_admin_home_aggregates(client, db, admin_headers):
    db["doctors"].insert_many([{"name": "Dr. A"}, {"name": "Dr. B"}])
    db["users"].insert_many([
        {"email": "a@x.com", "created_at": datetime(2023, 3, 1, tzinfo=timezone.utc)},
        {"email": "b@x.com", "created_at": datetime(2024, 1, 5, tzinfo=timezone.utc)},
        {"email": "c@x.com", "created_at": datetime(2024, 8, 9, tzinfo=timezone.utc)},
        {"email": "d@x.com", "createdAt": "2022-12-31T23:00:00Z"},
    ])
    db["appointments"].insert_many([
        {"email": "a@x.com", "appointmentDate": "2024-05-01", "payment": {"status": "paid"}},
        {"email": "a@x.com", "appointmentDate": "2024-05-02", "payment": {"status": "paid"}},
        {"email": "b@x.com", "appointmentDate": "2024-05-03"},
        {"email": "c@x.com", "appointmentDate": "2024-05-04", "payment": {"status": "pending"}},
    ])

    response = client.get("/dashboard/adminhome", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {
        "totalDoctors": 2,
        "totalPatients": 5,
        "totalAppointments": 4,
        "signupsByYear": [
            {"year": 2022, "count": 1},
            {"year": 2023, "count": 1},
            {"year": 2024, "count": 2},
        ],
        "paidAppointments": 2,
        "unpaidAppointments": 1,
        "otherPaymentStatus": 1,
    }


def test_admin_home_counts_signups_through_the_api(client, admin_headers):
    client.post("/users", json={"email": "new@x.com"})

    body = client.get("/dashboard/adminhome", headers=admin_headers).json()

    assert body["signupsByYear"] == [{"year": datetime.now(timezone.utc).year, "count": 1}]
    assert body["totalPatients"] == 2


def test_admin_home_requires_token(client):
    assert client.get("/dashboard/adminhome").status_code == 401