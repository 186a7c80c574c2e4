import logging
from datetime import datetime, timezone

from flask import Flask, jsonify
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_sqlalchemy import SQLAlchemy

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Initialize extensions
db = SQLAlchemy()
bcrypt = Bcrypt()
jwt = JWTManager()
cors = CORS()

logger = logging.getLogger(__name__)


def configure_logging(level="INFO"):
    """Root logging setup: timestamp | level | logger | message on stderr."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def create_app(config_object='skillswap.config.Config'):
    app = Flask(__name__)
    app.config.from_object(config_object)

    if not app.config.get('JWT_SECRET_KEY'):
        raise RuntimeError("JWT_SECRET is not set; refusing to start")

    configure_logging(app.config.get('LOG_LEVEL', 'INFO'))

    app.json.sort_keys = False
    app.url_map.strict_slashes = False

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={
        r"/*": {
            "origins": app.config['CORS_ORIGINS'],
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "supports_credentials": True,
        }
    })

    from skillswap.errors import register_error_handlers
    from skillswap.rate_limit import limit_api_traffic

    register_error_handlers(app)
    app.before_request(limit_api_traffic)

    @app.route('/', methods=['GET'])
    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({
            'status': 'OK',
            'message': 'SkillSwap API funcionando',
            'timestamp': datetime.now(timezone.utc).isoformat(),
        })

    # Create tables if they don't exist
    with app.app_context():
        create_tables()

    # Import and register Blueprints
    from skillswap.auth_routes import auth_bp
    from skillswap.cart_routes import cart_bp
    from skillswap.favorite_routes import favorite_bp
    from skillswap.profile_routes import profile_bp
    from skillswap.skill_routes import skill_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(skill_bp, url_prefix='/api/skills')
    app.register_blueprint(favorite_bp, url_prefix='/api/favorites')
    app.register_blueprint(cart_bp, url_prefix='/api/cart')
    app.register_blueprint(profile_bp, url_prefix='/api/users')

    logger.info(
        "SkillSwap API ready (%s), allowed origins: %s",
        app.config.get('ENVIRONMENT'), ', '.join(app.config['CORS_ORIGINS']),
    )
    return app


def create_tables():
    import skillswap.models  # noqa: F401  registers the tables on db.metadata

    db.create_all()
