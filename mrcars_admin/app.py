import logging

from flask import Flask, jsonify, session

from mrcars_admin.client import QueryError
from mrcars_admin.config import Config
from mrcars_admin.extensions import db
from mrcars_admin.routes import NAV, register_blueprints
from mrcars_admin.routes.pages import table_url
from mrcars_admin.utils.responses import err


def create_app(test_config=None, client=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)
    app.json.ensure_ascii = False

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    query_client = client or db
    query_client.init_app(app)

    @app.get("/health")
    def health():
        return jsonify(service="mrcars-admin", status="ok"), 200

    @app.errorhandler(QueryError)
    def query_error(e):
        app.logger.error("unhandled data backend error: %s", e)
        return err(str(e), e.status or 502)

    @app.context_processor
    def inject_layout():
        return {"nav": NAV, "admin_user": session.get("admin_user"), "table_url": table_url}

    register_blueprints(app)
    return app


def main():
    app = create_app()
    app.run(host="0.0.0.0", port=app.config["PORT"], debug=False)


if __name__ == "__main__":
    main()
