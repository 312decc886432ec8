"""
app.py – Flask application wiring.

Creates the application, applies CORS to every response, and registers the
route Blueprint from ``routes.py``.
"""

from __future__ import annotations

import logging
import os

from flask import Flask, Response
from flask_cors import CORS

from config import CONFIG_FILE, DEFAULT_CONFIG, save_config
from routes import bp

_CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

app = Flask(__name__)
CORS(
    app,
    resources={r"/api/*": {"origins": "*"}},
    methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)
app.register_blueprint(bp)


@app.after_request
def add_cors_headers(response: Response) -> Response:
    # Error responses need the headers too, or browsers report a CORS failure
    for header, value in _CORS_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not os.path.exists(CONFIG_FILE):
        save_config(DEFAULT_CONFIG.copy())

    app.run(host="0.0.0.0", debug=True, port=int(os.environ.get("PORT", "5000")))
