import os

import click
from flask import Flask, jsonify
from sqlalchemy import text, event

from config import load_settings
from models import db
import movie_api as mapi
from app_core.errors import install_error_handlers
from app_core.responders import install_responder
from app_core.metrics import metrics_bp
from app_core.auth import auth_bp
from app_core.web import web_bp
import seed


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    # sqlite ignores ON DELETE CASCADE unless asked per connection
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_app(config=None, catalog=None):
    """
    Application factory.

    `config` overrides environment settings; `catalog` replaces the OMDb
    client (tests pass a fake). Missing DB settings or session secret raise
    config.ConfigError before anything is wired.
    """
    app = Flask(__name__, static_folder="static", template_folder="templates")
    app.config.update(load_settings(overrides=config))
    app.logger.setLevel(app.config["LOG_LEVEL"])

    database_url = app.config["SQLALCHEMY_DATABASE_URI"]
    safe_dest = database_url.split("@", 1)[-1]
    app.logger.info("Using database -> %s", safe_dest)

    install_responder(app)
    install_error_handlers(app)
    db.init_app(app)
    app.extensions["catalog"] = catalog if catalog is not None else mapi.client_from_config(app.config)
    if not app.extensions["catalog"].configured:
        app.logger.warning("OMDB_API_KEY is not set; discovery will be empty")

    # Initializing database safely
    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            event.listen(db.engine, "connect", _enable_sqlite_foreign_keys)
        try:
            db.create_all()
        except Exception:
            app.logger.exception("Database initialization skipped due to error")

    # HEALTH CHECK ENDPOINT
    @app.route("/health")
    def health():
        """
        Basic health endpoint for monitoring.
        Returns 200 if DB is reachable, 500 otherwise.
        """
        db_ok = True
        try:
            db.session.execute(text("SELECT 1"))
        except Exception:
            app.logger.exception("Health check query failed")
            db_ok = False

        status_code = 200 if db_ok else 500

        return jsonify({"status": "ok" if db_ok else "error", "database": db_ok}), status_code

    @app.cli.command("init-db")
    @click.option("--drop", is_flag=True, help="Drop all tables first.")
    def init_db(drop):
        """Create the database tables."""
        if drop:
            db.drop_all()
        db.create_all()
        click.echo("Database initialized.")

    seed.register_commands(app)

    # Register blueprints; web_bp carries the login gate, so it goes last
    app.register_blueprint(metrics_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(web_bp)

    return app


# Development only
if __name__ == "__main__":
    port = int(os.getenv("PORT", 3000))
    create_app().run(host="0.0.0.0", port=port, debug=True)
