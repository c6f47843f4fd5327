import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS
from werkzeug.serving import make_server

from config import SystemConfig, config as default_config
from data_store import DataStore
from router import router
from watcher import DatabaseWatcher

logger = logging.getLogger(__name__)


def create_app(
    cfg: Optional[SystemConfig] = None,
    store: Optional[DataStore] = None,
    watcher: Optional[DatabaseWatcher] = None,
) -> Flask:
    """Build the Flask app serving the data file, with CORS applied to every response"""
    cfg = cfg or default_config
    if store is None:
        store = DataStore(cfg.DB_FILE, indent=cfg.JSON_INDENT)
        store.load()

    app = Flask(__name__)
    # Keep the key order of the data file in responses
    app.json.sort_keys = False
    app.extensions['json_server'] = {
        'config': cfg,
        'store': store,
        'watcher': watcher,
    }

    CORS(
        app,
        origins=cfg.cors_origins(),
        methods=cfg.cors_methods(),
        allow_headers=cfg.cors_headers(),
    )
    app.register_blueprint(router)
    return app


class JsonServer:
    """
    The data file served over HTTP and watched for changes.

    Constructing it loads the data file and binds the listener, so
    StartupError and bind failures surface before anything runs.
    """

    def __init__(self, cfg: Optional[SystemConfig] = None):
        self.config = cfg or default_config
        self.store = DataStore(self.config.DB_FILE, indent=self.config.JSON_INDENT)
        self.store.load()
        self.watcher = DatabaseWatcher(self.store, debounce_seconds=self.config.DEBOUNCE_SECONDS)
        self.app = create_app(self.config, store=self.store, watcher=self.watcher)
        self.server = make_server(self.config.HOST, self.config.PORT, self.app, threaded=True)

    @property
    def port(self) -> int:
        return self.server.server_port

    def serve_forever(self):
        """Watch the data file and serve requests until shutdown() or an interrupt"""
        self.watcher.start()
        logger.info("🚀 JSON Server is running at http://localhost:%d", self.port)
        logger.info("📄 Using database file: %s", self.store.db_file)
        try:
            self.server.serve_forever()
        finally:
            self.watcher.stop()
            self.server.server_close()

    def shutdown(self):
        self.server.shutdown()


def create_json_server(cfg: Optional[SystemConfig] = None):
    """Load the data file, start watching it and serve it until interrupted"""
    JsonServer(cfg).serve_forever()
