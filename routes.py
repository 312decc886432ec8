"""
routes.py – Flask Blueprint containing all HTTP route handlers.

Every route is registered on the ``bp`` Blueprint which is imported and
registered with the Flask application in ``app.py``.  Route handlers are
intentionally thin: they validate inputs, delegate to the watchlist sources,
and serialise results back to JSON.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from flask import Blueprint, jsonify, request, send_from_directory
from flask.typing import ResponseReturnValue

from config import load_config
from letterboxd import ChallengeError, EmptyWatchlistError, UserNotFoundError
from watchlist import build_sources, get_watchlist, pick_random

bp = Blueprint("main", __name__)

# Directory holding the static front-end served for non-API paths
PUBLIC_DIR: str = os.path.join(os.path.dirname(__file__), "public")


# ---------------------------------------------------------------------------
# Watchlist
# ---------------------------------------------------------------------------


@bp.route("/api/watchlist", methods=["GET", "OPTIONS"])
def get_user_watchlist() -> ResponseReturnValue:
    """Return a user's Letterboxd watchlist, or one random film from it.

    Query parameters:
        username: Letterboxd username (``user`` is accepted as an alias).
        random: When exactly ``"true"``, return a single random film.

    Returns:
        ``{"movies": [...], "total": n}`` or ``{"movie": {...}, "total": n}``
        on success; ``{"error": ...}`` with a 400, 404, 503 or 500 status
        otherwise.
    """
    if request.method == "OPTIONS":
        return "", 200

    username = request.args.get("username") or request.args.get("user")
    if not username:
        return jsonify({"error": "Username required"}), 400

    try:
        sources = build_sources(load_config())
        movies = get_watchlist(username, sources)
    except UserNotFoundError:
        return jsonify({"error": "User not found or watchlist is private"}), 404
    except ChallengeError as exc:
        return jsonify({"error": str(exc), "cloudflare": True}), 503
    except EmptyWatchlistError:
        return jsonify({"error": "Watchlist is empty or not accessible"}), 404
    except Exception as exc:
        logging.exception("Unexpected error while fetching watchlist for %r", username)
        return jsonify({"error": str(exc)}), 500

    if request.args.get("random") == "true":
        return jsonify({"movie": pick_random(movies), "total": len(movies)})

    return jsonify({"movies": movies, "total": len(movies)})


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@bp.route("/api/config", methods=["GET"])
def get_config() -> ResponseReturnValue:
    """Return the effective service configuration as JSON."""
    config: dict[str, Any] = load_config()
    return jsonify(config)


# ---------------------------------------------------------------------------
# Static front-end
# ---------------------------------------------------------------------------


@bp.route("/")
def index() -> ResponseReturnValue:
    """Serve the front-end entry page."""
    return send_from_directory(PUBLIC_DIR, "index.html")


@bp.route("/<path:filename>")
def static_asset(filename: str) -> ResponseReturnValue:
    """Serve a file from the front-end directory; unknown API paths get a JSON 404."""
    if filename.startswith("api/"):
        return jsonify({"error": "Not found"}), 404
    return send_from_directory(PUBLIC_DIR, filename)
