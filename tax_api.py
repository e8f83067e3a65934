# tax_api.py

import logging
from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException

from gst_engine import GSTEngine, GSTRegime, load_gst_rates
from order_engine import (
    OrderLineItem,
    prepare_order_lines,
    recompute_lines,
    summarize_order,
)

logger = logging.getLogger("GSTEngine.api")

engine = GSTEngine(load_gst_rates())

# —————————————————————————————————————————————————————
# Request helpers


def _request_data() -> dict:
    if request.method == "POST":
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError("Request body must be a JSON object")
        return data
    return request.args.to_dict()


def _parse_items(data: dict):
    items = data["items"]
    if not isinstance(items, list):
        raise ValueError("items must be a list")
    return [OrderLineItem.from_dict(item) for item in items]


def _number(data: dict, key: str) -> float:
    value = data[key]
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid number for {key}: {value!r}") from None


def _state(data: dict, key: str):
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"Invalid state for {key}: {value!r}")
    return value


def _has_states(data: dict) -> bool:
    return "billingState" in data or "shippingState" in data

# —————————————————————————————————————————————————————
# Flask API Endpoints

app = Flask(__name__)


@app.errorhandler(KeyError)
def handle_missing_parameter(ke):
    logger.error(f"Missing parameter: {ke}")
    return jsonify({"error": f"Missing parameter: {ke}"}), 400


@app.errorhandler(ValueError)
def handle_invalid_data(ve):
    logger.error(f"Invalid data: {ve}")
    return jsonify({"error": str(ve)}), 400


@app.route("/api/gst/regime", methods=["GET", "POST"])
def api_gst_regime():
    data = _request_data()
    regime = engine.determine_regime(_state(data, "billingState"), _state(data, "shippingState"))
    return jsonify({"regime": regime.value})


@app.route("/api/gst", methods=["GET", "POST"])
def api_gst():
    data = _request_data()
    taxable_amount = _number(data, "taxableAmount")
    if "regime" in data:
        regime = GSTRegime.parse(data["regime"])
    else:
        regime = engine.determine_regime(_state(data, "billingState"), _state(data, "shippingState"))
    result = engine.calculate(taxable_amount, regime)
    logger.info(f"GST calc: {result}")
    return jsonify(result.to_dict())


@app.route("/api/order-lines", methods=["POST"])
def api_order_lines():
    data = _request_data()
    items = _parse_items(data)
    body = {}
    if _has_states(data):
        regime, items = prepare_order_lines(
            items, _state(data, "billingState"), _state(data, "shippingState"), engine
        )
        body["regime"] = regime.value
    else:
        items = recompute_lines(items)
    body["items"] = [item.to_dict() for item in items]
    return jsonify(body)


@app.route("/api/order-summary", methods=["POST"])
def api_order_summary():
    data = _request_data()
    summary = summarize_order(_parse_items(data))
    return jsonify(summary.to_dict())


@app.errorhandler(Exception)
def handle_internal_error(e):
    if isinstance(e, HTTPException):
        return e
    logger.exception("GST API internal error")
    return jsonify({"error": "Internal server error"}), 500

# —————————————————————————————————————————————————————
if __name__ == "__main__":
    # For local testing only; in production run under WSGI
    app.run(host="0.0.0.0", port=8000, debug=False)
