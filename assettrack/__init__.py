import os

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from assettrack.config import Config
from assettrack.db import close_db, init_db
from assettrack.db_migrations import register_db_cli
from assettrack.observability import (
    configure_json_logging,
    ensure_request_id,
    mark_request_start,
    metrics_snapshot,
    observe_response,
)
from assettrack.security import apply_security_headers, enforce_rate_limit


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_json_logging(app)

    _ensure_database_dir(app)
    _register_error_handlers(app)
    _register_security(app)
    _register_auth(app)
    _register_blueprints(app)
    _register_health(app)
    register_db_cli(app)
    _maybe_init_schema(app)

    app.teardown_appcontext(close_db)
    return app


def _ensure_database_dir(app: Flask) -> None:
    database_dir = app.config.get("DATABASE_DIR")
    if database_dir:
        os.makedirs(database_dir, exist_ok=True)


def _maybe_init_schema(app: Flask) -> None:
    auto_init = bool(app.config.get("DB_AUTO_INIT", False))
    if app.testing:
        # Testes sempre criam o schema no banco temporario.
        auto_init = True
    if not auto_init:
        return

    flask_env = (os.environ.get("FLASK_ENV", "development") or "development").strip().lower()
    if not app.testing and flask_env != "development":
        app.logger.warning("DB_AUTO_INIT ignorado fora de development.")
        return

    with app.app_context():
        init_db()


def _register_blueprints(app: Flask) -> None:
    from assettrack.routes.accounting_routes import accounting_bp
    from assettrack.routes.asset_routes import asset_bp
    from assettrack.routes.company_routes import company_bp
    from assettrack.routes.dashboard_routes import dashboard_bp
    from assettrack.routes.employee_routes import employee_bp
    from assettrack.routes.inventory_check_routes import inventory_check_bp
    from assettrack.routes.maintenance_routes import maintenance_bp
    from assettrack.routes.print_routes import print_bp
    from assettrack.routes.purchase_order_routes import purchase_order_bp
    from assettrack.routes.request_routes import request_bp
    from assettrack.routes.system_routes import system_bp
    from assettrack.routes.user_routes import user_bp

    for blueprint in (
        dashboard_bp,
        company_bp,
        asset_bp,
        maintenance_bp,
        employee_bp,
        request_bp,
        purchase_order_bp,
        inventory_check_bp,
        print_bp,
        user_bp,
        accounting_bp,
        system_bp,
    ):
        app.register_blueprint(blueprint)


def _register_auth(app: Flask) -> None:
    from assettrack.auth import register_auth

    register_auth(app)


def _register_error_handlers(app: Flask) -> None:
    from assettrack.errors import AppError, SystemError

    @app.before_request
    def _ensure_request_id() -> None:
        ensure_request_id()
        mark_request_start()

    @app.after_request
    def _append_request_id(response):
        response.headers["X-Request-Id"] = ensure_request_id()
        response = observe_response(response)
        return apply_security_headers(response)

    def _log_error(error: AppError, request_id: str) -> None:
        log_method = app.logger.error if error.critical else app.logger.warning
        log_method(
            "application_error",
            extra={
                "request_id_ref": request_id,
                **error.log_extra(),
                "request_path": request.path,
                "http_method": request.method,
            },
            exc_info=error.critical,
        )

    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        request_id = ensure_request_id()
        _log_error(exc, request_id)
        return jsonify(exc.to_response_payload(request_id)), exc.http_status

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc

        request_id = ensure_request_id()
        mapped = SystemError(
            code="unexpected_error",
            message_key="unexpected_error",
            http_status=500,
            critical=True,
            details=str(exc),
        )
        app.logger.exception(
            "unexpected_exception",
            extra={
                "request_id_ref": request_id,
                "error_code": mapped.code,
                "request_path": request.path,
                "http_method": request.method,
            },
        )
        return jsonify(mapped.to_response_payload(request_id)), mapped.http_status


def _register_security(app: Flask) -> None:
    @app.before_request
    def _rate_limit_guard():
        return enforce_rate_limit()


def _register_health(app: Flask) -> None:
    @app.route("/health")
    def health():
        from assettrack.db import get_db
        from assettrack.errors import StoreError

        db_path = app.config.get("DB_PATH") or "unknown"
        backend = "postgres" if str(db_path).startswith("postgres") else "sqlite"
        payload = {
            "status": "ok",
            "db": backend,
            "env": app.config.get("ENV", os.environ.get("FLASK_ENV", "development")),
            "metrics": {
                "http": metrics_snapshot(),
            },
        }
        try:
            get_db().execute("SELECT 1").fetchone()
        except StoreError:
            payload["status"] = "degraded"
        return payload, 200
