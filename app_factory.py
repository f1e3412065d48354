from flask import Flask
from flask_cors import CORS

# Import configuration and utility functions/modules
import config
from database import init_db
from config import ensure_upload_dir

# Import Blueprints
from routes.main_routes import main_bp
from routes.pdf_routes import pdf_bp

def create_app():
    """Creates and configures the Flask application."""
    app = Flask(__name__)

    # Load configuration from config.py
    app.config.from_object(config)
    CORS(app, origins=config.CORS_ORIGINS)

    # --- Initialization ---
    if not app.config.get('TESTING'):
        print("Initializing application components...")

    # 1. Ensure the upload directory exists
    if not ensure_upload_dir():
        # Uploads are retried per request (UploadSession creates the directory too)
        print("Warning: Failed to create or access the upload directory.")

    # 2. Initialize the conversion history log.
    # It is optional: a failure is reported and the server keeps going.
    # In testing, the app fixture in conftest.py handles DB initialization.
    if not app.config.get('TESTING') and config.HISTORY_ENABLED:
        with app.app_context():
            if not init_db():
                print("Warning: Conversion history is unavailable. Conversions will not be recorded.")

    # --- Register Blueprints ---
    app.register_blueprint(main_bp, url_prefix='/')
    app.register_blueprint(pdf_bp)

    if not app.config.get('TESTING'):
        print("Blueprints registered.")
        print(f"App ready. Running in {'Debug' if app.debug else 'Production'} mode.")
        print(f"Access at: http://{config.HOST}:{config.PORT}")

    return app
