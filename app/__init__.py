from flask import Flask
from flask_cors import CORS
from config import Config
from app.models import db
import logging


def create_app(config_class=Config, application_factory=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Set up detailed logging
    handlers = [logging.StreamHandler()]
    if app.config.get('LOG_FILE'):
        handlers.append(logging.FileHandler(app.config['LOG_FILE'], mode='a'))
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers
    )

    logging.getLogger('app').setLevel(logging.DEBUG)
    logging.getLogger('app.routes').setLevel(logging.DEBUG)
    logging.getLogger('app.services').setLevel(logging.DEBUG)
    logging.getLogger('app.utils').setLevel(logging.DEBUG)
    logging.getLogger('werkzeug').setLevel(logging.INFO)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.INFO)
    logger = logging.getLogger(__name__)
    logger.info("Starting application initialization")

    # Configure CORS
    if app.config['FLASK_ENV'] == 'development':
        CORS(
            app,
            resources={
                r"/*": {  # Apply CORS to all routes
                    "origins": "*",  # Allow all origins during development
                    "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
                    "allow_headers": ["Content-Type", "Accept"],
                    "expose_headers": ["Content-Type"]
                }
            })
    else:
        CORS(app,
             resources={
                 r"/api/*": {
                     "origins": app.config.get('CORS_ORIGINS', []),
                     "expose_headers": ["Content-Type"],
                     "allow_headers": ["Content-Type", "Accept"],
                     "methods": ["GET", "POST", "DELETE", "OPTIONS"]
                 }
             })

    # Configure SQLAlchemy
    try:
        logger.info(
            f"Configuring database with URL: {app.config['DATABASE_URL']}")
        app.config['SQLALCHEMY_DATABASE_URI'] = app.config['DATABASE_URL']
        app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
        if not app.config['DATABASE_URL'].startswith('sqlite'):
            app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
                "pool_recycle": 300,
                "pool_pre_ping": True,
            }

        db.init_app(app)
        logger.info("Successfully initialized Flask extensions")

        from app.services.selector import GameStationService
        service = GameStationService.from_config(
            app.config, application_factory=application_factory)
        app.extensions['game_station'] = service

        with app.app_context():
            db.create_all()
            logger.info("Database tables created successfully")
            service.connect()

        # Register blueprints
        from app.routes import main, game, stats, leaderboard
        app.register_blueprint(main.bp)
        app.register_blueprint(game.bp, url_prefix='/api')
        app.register_blueprint(stats.bp, url_prefix='/api')
        app.register_blueprint(leaderboard.bp, url_prefix='/api')
        logger.info("Successfully registered all blueprints")

        from app.routes.commands import register_commands
        register_commands(app)

    except Exception as e:
        logger.error(f"Error during application initialization: {str(e)}")
        raise

    logger.info("Application initialization completed successfully")
    return app
