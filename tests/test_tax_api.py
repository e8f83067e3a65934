import pytest
from tax_api import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c


LINE = {
    "rowId": "r1",
    "skuId": "sku-1",
    "quantity": 2,
    "unitPrice": 100,
    "discountPercent": 10,
    "cgstPercent": 9,
    "sgstPercent": 9,
    "igstPercent": 0,
    "promotionCode": "BUY10",
}

# --- Regime ---

@pytest.mark.parametrize("billing,shipping,expected", [
    (" MAHARASHTRA ", "maharashtra", "INTRA"),
    ("Maharashtra", "Gujarat", "INTER"),
])
def test_regime_get(client, billing, shipping, expected):
    resp = client.get("/api/gst/regime", query_string={
        "billingState": billing, "shippingState": shipping,
    })
    assert resp.status_code == 200
    assert resp.get_json() == {"regime": expected}


def test_regime_post_missing_states(client):
    resp = client.post("/api/gst/regime", json={})
    assert resp.get_json() == {"regime": "INTER"}


@pytest.mark.parametrize("url,payload", [
    ("/api/gst/regime", {"billingState": 27, "shippingState": "x"}),
    ("/api/gst/regime", {"billingState": "Maharashtra", "shippingState": ["Maharashtra"]}),
    ("/api/gst", {"taxableAmount": 100, "billingState": 27}),
    ("/api/order-lines", {"items": [LINE], "billingState": {"name": "Maharashtra"}}),
])
def test_non_string_state_is_bad_request(client, url, payload):
    resp = client.post(url, json=payload)
    assert resp.status_code == 400
    assert "Invalid state" in resp.get_json()["error"]


# --- GST ---

def test_gst_by_states(client):
    resp = client.post("/api/gst", json={
        "taxableAmount": 1000, "billingState": "Maharashtra", "shippingState": "Gujarat",
    })
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["regime"] == "INTER"
    assert body["igstAmount"] == 180
    assert body["cgstAmount"] == 0
    assert body["totalGstAmount"] == 180


def test_gst_by_regime(client):
    resp = client.get("/api/gst", query_string={"taxableAmount": "1000", "regime": "intra"})
    body = resp.get_json()
    assert body["cgstAmount"] == 90
    assert body["sgstAmount"] == 90
    assert body["igstAmount"] == 0


def test_gst_missing_amount(client):
    resp = client.post("/api/gst", json={"regime": "INTRA"})
    assert resp.status_code == 400
    assert "taxableAmount" in resp.get_json()["error"]


@pytest.mark.parametrize("payload", [
    {"taxableAmount": "abc", "regime": "INTRA"},
    {"taxableAmount": None, "regime": "INTRA"},
    {"taxableAmount": 100, "regime": "BOTH"},
])
def test_gst_invalid_data(client, payload):
    resp = client.post("/api/gst", json=payload)
    assert resp.status_code == 400


# --- Order lines ---

def test_order_lines_recompute(client):
    resp = client.post("/api/order-lines", json={"items": [LINE]})
    assert resp.status_code == 200
    body = resp.get_json()
    assert "regime" not in body
    line = body["items"][0]
    assert line["subTotal"] == 200
    assert line["discountAmount"] == 20
    assert line["taxableAmount"] == 180
    assert line["taxAmount"] == pytest.approx(32.4)
    assert line["totalAmount"] == pytest.approx(212.4)
    assert line["promotionCode"] == "BUY10"


def test_order_lines_reclassify(client):
    resp = client.post("/api/order-lines", json={
        "items": [LINE],
        "billingState": "Maharashtra",
        "shippingState": "Gujarat",
    })
    body = resp.get_json()
    assert body["regime"] == "INTER"
    line = body["items"][0]
    assert line["cgstPercent"] == 0
    assert line["igstPercent"] == 18
    assert line["igstAmount"] == pytest.approx(32.4)


@pytest.mark.parametrize("payload", [
    {},
    {"items": "nope"},
    {"items": [{"quantity": "lots"}]},
])
def test_order_lines_bad_request(client, payload):
    resp = client.post("/api/order-lines", json=payload)
    assert resp.status_code == 400
    assert "error" in resp.get_json()


def test_order_lines_non_object_body(client):
    resp = client.post("/api/order-lines", json=[LINE])
    assert resp.status_code == 400


# --- Order summary ---

def test_order_summary(client):
    second = dict(LINE, rowId="r2", quantity=1, unitPrice=50, discountPercent=0)
    resp = client.post("/api/order-summary", json={"items": [LINE, second]})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["lineCount"] == 2
    assert body["totalQuantity"] == 3
    assert body["totalDiscountAmount"] == 20
    assert body["totalTaxableAmount"] == 230
    assert body["netAmount"] == pytest.approx(230 * 1.18)


def test_unknown_route_is_404(client):
    assert client.get("/api/nothing").status_code == 404


def test_order_lines_stale_derived_fields(client):
    line = dict(LINE, subTotal="x", totalAmount=None)
    resp = client.post("/api/order-lines", json={"items": [line]})
    assert resp.status_code == 200
    assert resp.get_json()["items"][0]["subTotal"] == 200
