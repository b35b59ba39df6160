# --- crafthub/__init__.py ---
import logging

from flask import Flask, jsonify
from .extensions import db, jwt, cors, migrate
from .config import Config


def create_app(config_object=Config):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    config_object.init_app(app)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": "*"}})
    migrate.init_app(app, db)

    # Collaborators (tests replace these)
    from .services.paypal import PayPalGateway
    from .services.chat_store import ChatSessionStore, catalog_responder
    app.extensions["payment_gateway"] = PayPalGateway.from_config(app.config)
    app.extensions["chat_store"] = ChatSessionStore(
        max_sessions=app.config["CHAT_MAX_SESSIONS"],
        ttl_seconds=app.config["CHAT_SESSION_TTL_SECONDS"],
        max_messages=app.config["CHAT_MAX_MESSAGES"],
    )
    app.extensions["chat_responder"] = catalog_responder

    # Register blueprints
    from .auth import bp as auth_bp; app.register_blueprint(auth_bp)
    from .cart import bp as cart_bp; app.register_blueprint(cart_bp)
    from .checkout import bp as checkout_bp; app.register_blueprint(checkout_bp)
    from .coupon import bp as coupon_bp; app.register_blueprint(coupon_bp)
    from .review import bp as review_bp; app.register_blueprint(review_bp)
    from .chat import bp as chat_bp; app.register_blueprint(chat_bp)

    from .errors import register_error_handlers
    register_error_handlers(app)

    from .cli import register_cli
    register_cli(app)

    @app.get("/health")
    def health():
        return jsonify(ok=True, msg="API running", paypal=app.extensions["payment_gateway"].configured)

    with app.app_context():
        from . import model  # noqa: F401
        db.create_all()

    app.logger.info("crafthub started (paypal %s)",
                    "configured" if app.extensions["payment_gateway"].configured else "not configured")
    return app
