import logging
import os

from flask import Flask, jsonify, request

from pricematch import run_comparison

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = Flask(__name__)


@app.route("/health")
def health():
    return jsonify({"status": "ok"})


@app.route("/api/compare", methods=["POST"])
def compare_products():
    # Body: {"italoProducts": [...], "marconProducts": [...], "alfaProducts": [...], "useSemanticAI": bool}
    payload = request.get_json(silent=True)
    result = run_comparison(payload)
    status = 200 if result["success"] else 500
    return jsonify(result), status


if __name__ == "__main__":
    port = int(os.getenv("PORT", "5000"))
    app.run(host="0.0.0.0", port=port, debug=True)
