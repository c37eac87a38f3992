from flask import request

from .logger import get_logger

log = get_logger("SOCKET")

STATUS_EVENT = "peer_status"


def register_socket_events(socketio):

    @socketio.on("connect")
    def handle_connect():
        log.info(f"Connected: {request.sid}")

    @socketio.on("disconnect")
    def handle_disconnect(*args):
        log.info(f"Disconnected: {request.sid}")


def make_status_broadcaster(socketio):
    """Returns a callback pushing each stored peer record to every connected client."""

    def broadcast(record):
        try:
            socketio.emit(STATUS_EVENT, record.to_json())
        except Exception as e:
            log.warning(f"Failed to broadcast status of {record.peer_id}: {e}")

    return broadcast
