"""Test payment amount conversion and the payment-intent client."""
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient

from errors import ApiError, GatewayError
from gateway import PaymentGateway, to_minor_units
from main import create_app


@pytest.mark.parametrize("price,amount", [
    ("19.99", 1999),
    (19.99, 1999),
    (10, 1000),
    ("0.019", 1),
    ("150.5", 15050),
])
def test_to_minor_units_truncates(price, amount):
    assert to_minor_units(price) == amount


@pytest.mark.parametrize("price", ["abc", "0", -5, "NaN", None, "1e30"])
def test_to_minor_units_rejects_bad_prices(price):
    with pytest.raises(ApiError) as exc_info:
        to_minor_units(price)
    assert exc_info.value.status_code == 400


def test_create_payment_intent_posts_form(gateway, gateway_requests):
    secret = gateway.create_payment_intent(1999)

    assert secret == "pi_123_secret_abc"
    request = gateway_requests[0]
    assert request.method == "POST"
    assert request.url.path == "/v1/payment_intents"
    assert request.headers["Authorization"] == "Bearer sk_test_123"
    form = parse_qs(request.content.decode())
    assert form == {"amount": ["1999"], "currency": ["usd"], "payment_method_types[]": ["card"]}


def test_gateway_error_status_raises():
    transport = httpx.MockTransport(lambda request: httpx.Response(402, json={"error": {"message": "card declined"}}))
    gateway = PaymentGateway("sk_test_123", "https://api.stripe.com/v1", transport=transport)

    with pytest.raises(GatewayError):
        gateway.create_payment_intent(500)


def test_gateway_without_key_raises():
    gateway = PaymentGateway(None, "https://api.stripe.com/v1")

    assert not gateway.is_available()
    with pytest.raises(GatewayError):
        gateway.create_payment_intent(500)


def test_payment_intent_endpoint_sends_amount_in_cents(client, gateway_requests):
    response = client.post("/create-payment-intent", json={"price": "19.99"})

    assert response.status_code == 200
    assert response.json() == {"clientSecret": "pi_123_secret_abc"}
    assert parse_qs(gateway_requests[0].content.decode())["amount"] == ["1999"]


def test_payment_intent_endpoint_rejects_zero_price(client, gateway_requests):
    response = client.post("/create-payment-intent", json={"price": 0})

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid"
    assert gateway_requests == []


def test_payment_intent_gateway_failure_is_502(settings, db):
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
    gateway = PaymentGateway("sk_test_123", settings.payment_api_url, transport=transport)
    with TestClient(create_app(settings, db=db, gateway=gateway)) as client:
        response = client.post("/create-payment-intent", json={"price": 25})

    assert response.status_code == 502
    assert response.json() == {"error": True, "kind": "upstream-failure", "message": "payment gateway unavailable"}


def test_payment_intent_endpoint_rejects_huge_price(client, gateway_requests):
    response = client.post("/create-payment-intent", json={"price": "1e30"})

    assert response.status_code == 400
    assert response.json() == {"error": True, "kind": "invalid", "message": "price is too large"}
    assert gateway_requests == []
