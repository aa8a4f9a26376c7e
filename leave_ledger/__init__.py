import logging
from typing import Any, Mapping, Optional

from flask import Flask
from flask.logging import default_handler


from .leave_service import LeaveLedger
from .routes import api_bp
from .storage import PersistenceStore



def create_app(config: Optional[Mapping[str, Any]] = None):
    """Application factory for the leave ledger service."""
    app = Flask(__name__)

    app.config.setdefault("SECRET_KEY", "leave-ledger-secret")
    app.config.setdefault("DATA_DIR", "data")
    app.config.setdefault("LOG_LEVEL", "INFO")
    app.config.from_prefixed_env(prefix="LEAVE_LEDGER")
    if config:
        app.config.from_mapping(config)

    package_logger = logging.getLogger(__name__)
    if default_handler not in package_logger.handlers:
        package_logger.addHandler(default_handler)
    package_logger.setLevel(app.config["LOG_LEVEL"])

    app.extensions["leave_ledger"] = LeaveLedger(PersistenceStore(app.config["DATA_DIR"]))
    app.register_blueprint(api_bp)

    return app


__all__ = ["create_app"]
