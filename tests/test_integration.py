from sqlalchemy.exc import OperationalError

from conftest import TestingSessionLocal
from storeapi.models import Order, Transaction


ORDER = {
    "userId": "user-42",
    "deliveryAddress": {"name": "Ravi", "city": "Mumbai", "pincode": "400001"},
    "cardDetails": {"number": "5500 0000 0000 0004", "holder": "ravi k", "expiry": "01/30"},
    "products": [{"id": "P-1001", "quantity": 1}],
    "orderSummary": {"subtotal": 749, "finalTotal": 749},
    "paymentMethod": "upi",
}


def test_full_payment_lifecycle_integration(client, product):
    """
    Test the full lifecycle:
    1. Create order (API -> DB)
    2. Create PhonePe intent linked to the order
    3. Poll status while pending
    4. Verify success with the issued signature -> order paid + confirmed
    5. Replay verification -> already processed
    """

    # --- 1. CREATE ORDER ---
    order = client.post("/api/createOrder", json=ORDER)
    assert order.status_code == 201
    order_id = order.json()["data"]["orderId"]

    # --- 2. CREATE PAYMENT ---
    created = client.post(
        "/api/payment/create",
        json={"amount": 749, "payType": "phonepe", "orderId": order_id, "userId": "user-42"},
    )
    assert created.status_code == 200
    intent = created.json()

    db = TestingSessionLocal()
    row = db.get(Transaction, intent["tid"])
    assert row.status == "pending"
    assert row.order_id == order_id
    assert row.redirect_url == intent["redirect_url"]
    db.close()

    # --- 3. STATUS ---
    status = client.get(f"/api/payment/status/{intent['tid']}")
    assert status.json()["status"] == "pending"
    assert status.json()["completedAt"] is None

    # --- 4. VERIFY ---
    verified = client.post(
        "/api/payment/verify",
        json={"tid": intent["tid"], "status": "success", "signature": intent["sig"]},
    )
    assert verified.status_code == 200
    assert verified.json() == {
        "success": True,
        "message": "Payment success",
        "tid": intent["tid"],
        "status": "success",
        "amount": 749,
    }

    fetched = client.get(f"/api/order/{order_id}").json()["data"]
    assert fetched["paymentStatus"] == "paid"
    assert fetched["status"] == "confirmed"
    assert client.get(f"/api/payment/status/{intent['tid']}").json()["completedAt"] is not None

    # --- 5. REPLAY ---
    replay = client.post("/api/payment/verify", json={"tid": intent["tid"], "status": "failed"})
    assert replay.status_code == 400
    assert replay.json()["error"] == "Transaction already success"

    fetched = client.get(f"/api/order/{order_id}").json()["data"]
    assert fetched["paymentStatus"] == "paid"


def test_failed_payment_cancels_order(client, product):
    order_id = client.post("/api/createOrder", json=ORDER).json()["data"]["orderId"]
    tid = client.post(
        "/api/payment/create", json={"amount": 749, "payType": "paytm", "orderId": order_id}
    ).json()["tid"]

    client.post("/api/payment/verify", json={"tid": tid, "status": "failed"})

    db = TestingSessionLocal()
    order = db.get(Order, order_id)
    assert (order.payment_status, order.status) == ("failed", "cancelled")
    db.close()


def test_create_payment_database_integrity_on_store_error(client, mocker):
    """If the store write fails, the API reports 500 and leaves no record behind."""
    # Seed the merchant handle before the store goes down
    client.get("/api/payment/merchant-upi")
    mocker.patch(
        "sqlalchemy.orm.Session.commit",
        side_effect=OperationalError("INSERT", {}, Exception("database is locked")),
    )

    response = client.post("/api/payment/create", json={"amount": 25, "payType": "paytm"})
    mocker.stopall()

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to create payment", "kind": "internal_failure"}

    db = TestingSessionLocal()
    assert db.query(Transaction).count() == 0
    db.close()


def test_create_payment_store_error_while_seeding_merchant_handle(client, mocker):
    """A store failure on the very first merchant lookup still answers with an error body."""
    mocker.patch(
        "sqlalchemy.orm.Session.commit",
        side_effect=OperationalError("INSERT", {}, Exception("database is locked")),
    )

    response = client.post("/api/payment/create", json={"amount": 25, "payType": "phonepe"})
    mocker.stopall()

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to get merchant UPI", "kind": "internal_failure"}

    db = TestingSessionLocal()
    assert db.query(Transaction).count() == 0
    db.close()


def test_create_order_store_error_returns_internal_failure(client, product, mocker):
    mocker.patch(
        "sqlalchemy.orm.Session.commit",
        side_effect=OperationalError("INSERT", {}, Exception("disk I/O error")),
    )

    response = client.post("/api/createOrder", json=ORDER)
    mocker.stopall()

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "kind": "internal_failure"}

    db = TestingSessionLocal()
    assert db.query(Order).count() == 0
    db.close()
