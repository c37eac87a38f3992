# server_main.py
import sqlite3
import sys

from flask import Flask
from flask_socketio import SocketIO

from .config import Settings
from .context import MonitorContext
from .logger import get_logger, setup_logging
from .monitor import PeerMonitor
from .routes import register_http_routes
from .socket_events import make_status_broadcaster, register_socket_events

log = get_logger("MAIN")


def create_app(ctx):
    app = Flask(__name__)
    socketio = SocketIO(app, cors_allowed_origins="*", async_mode="threading")

    ctx.notify = make_status_broadcaster(socketio)

    register_http_routes(app, ctx)
    register_socket_events(socketio)

    return app, socketio


def main():
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file or None)

    ctx = MonitorContext(settings)
    try:
        ctx.store.open()
    except sqlite3.Error as e:
        log.critical(f"Failed to open database {settings.db_path}: {e}")
        sys.exit(1)

    app, socketio = create_app(ctx)

    monitor = PeerMonitor(ctx, sleep=socketio.sleep)
    socketio.start_background_task(monitor.run_forever)

    log.info(f"API listening on :{settings.port} (IPFS API {settings.ipfs_api})")
    socketio.run(app, host=settings.host, port=settings.port, allow_unsafe_werkzeug=True)


if __name__ == "__main__":
    main()
