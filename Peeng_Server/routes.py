import sqlite3

from flask import jsonify, request

from .config import VERSION
from .logger import get_logger

log = get_logger("API")


def register_http_routes(app, ctx):

    # Every known peer, most recently checked first.
    @app.route("/peers", methods=["GET"])
    def get_peers():
        try:
            peers = ctx.store.list_peers()
        except sqlite3.Error as e:
            log.error(f"Failed to query peers from DB: {e}")
            return jsonify({"error": "Failed to query peers from DB"}), 500

        log.info("/peers endpoint served.")
        return jsonify([p.to_json() for p in peers]), 200

    # On-demand ping of one peer, known or not.
    @app.route("/hehojexiste", methods=["POST"])
    def hehojexiste():
        data = request.get_json(force=True, silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Failed to decode request body"}), 400

        peer_id = data.get("peer_id")
        if not peer_id or not isinstance(peer_id, str):
            return jsonify({"error": "'peer_id' is required"}), 400

        address_map = data.get("address_map")
        if address_map is not None and not isinstance(address_map, str):
            return jsonify({"error": "'address_map' must be a string"}), 400

        log.info(f"Received /hehojexiste request for PeerID: {peer_id}, AddressMap: {address_map}")
        result = ctx.client.ping(peer_id, address_map)
        ctx.record_ping(peer_id, result.reachable)

        log.info(f"/hehojexiste endpoint served for PeerID {peer_id}.")
        return jsonify({"ping_successful": result.reachable}), 200

    @app.route("/", methods=["GET"])
    def health():
        return f"OK - version {VERSION}", 200, {"Content-Type": "text/plain; charset=utf-8"}
