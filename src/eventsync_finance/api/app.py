"""
Flask application factory.

The ledger and settings are injected, so tests build an app around a
temporary database and production builds one from FinanceSettings.
"""

from typing import Any

from flask import Flask, Response, current_app, g, jsonify, request

from eventsync_finance.kernel.logging import (
    generate_correlation_id,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)
from eventsync_finance.kernel.settings import FinanceSettings, get_settings
from eventsync_finance.ledger import FinanceLedger

logger = get_logger(__name__)

LEDGER_KEY = "finance_ledger"
SETTINGS_KEY = "finance_settings"


def current_ledger() -> FinanceLedger:
    return current_app.extensions[LEDGER_KEY]


def current_settings() -> FinanceSettings:
    return current_app.extensions[SETTINGS_KEY]


def ok(data: Any = None, message: str | None = None, status: int = 200) -> tuple[Response, int]:
    """Success envelope: {"success": true, "data": ..., "message"?: ...}"""
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def create_app(
    ledger: FinanceLedger | None = None,
    settings: FinanceSettings | None = None,
) -> Flask:
    """
    Build the REST application.

    Args:
        ledger: Ledger to serve (opened from settings.db_path if None)
        settings: Deployment settings (environment if None)
    """
    from eventsync_finance.api.access import access_bp
    from eventsync_finance.api.audit import audit_bp
    from eventsync_finance.api.errors import register_error_handlers
    from eventsync_finance.api.finance import finance_bp
    from eventsync_finance.api.health import health_bp
    from eventsync_finance.api.transactions import transactions_bp

    settings = settings or get_settings()
    ledger = ledger or FinanceLedger(settings.db_path)

    app = Flask(__name__)
    app.extensions[LEDGER_KEY] = ledger
    app.extensions[SETTINGS_KEY] = settings

    @app.before_request
    def bind_correlation_id() -> None:
        set_correlation_id(
            request.headers.get("X-Correlation-ID") or generate_correlation_id()
        )
        g.session = None

    @app.after_request
    def expose_correlation_id(response: Response) -> Response:
        response.headers["X-Correlation-ID"] = get_correlation_id()
        return response

    register_error_handlers(app)
    app.register_blueprint(finance_bp, url_prefix="/api/finance")
    app.register_blueprint(transactions_bp, url_prefix="/api/finance/ledger")
    app.register_blueprint(audit_bp, url_prefix="/api/audit")
    app.register_blueprint(access_bp, url_prefix="/api/access")
    app.register_blueprint(health_bp, url_prefix="/health")

    logger.info("API initialized", db_path=str(ledger.sqlite_path))
    return app
