import pytest
from app_factory import create_app as create_flask_app
import os
import tempfile

# Import database functions and config values
from database import init_db as initialize_database
import config as config_module_for_patching


@pytest.fixture(scope='function')
def upload_dir(monkeypatch):
    """Points config.UPLOAD_DIR at a fresh temporary directory."""
    with tempfile.TemporaryDirectory(prefix="test_uploads_") as tmpdir_path:
        monkeypatch.setattr(config_module_for_patching, 'UPLOAD_DIR', tmpdir_path)
        monkeypatch.setattr(config_module_for_patching, 'KEEP_UPLOADS', False)
        yield tmpdir_path


@pytest.fixture(scope='function')
def app(monkeypatch, upload_dir):
    """Create and configure a new app instance for each test function with an isolated DB."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    # database.py reads config.DB_NAME at call time
    monkeypatch.setattr(config_module_for_patching, 'DB_NAME', db_path)
    monkeypatch.setattr(config_module_for_patching, 'HISTORY_ENABLED', True)

    # TESTING must be set before create_app so startup chatter and init are skipped
    monkeypatch.setattr(config_module_for_patching, 'TESTING', True, raising=False)
    flask_app = create_flask_app()
    flask_app.config.update({
        "TESTING": True,
        "DB_NAME": db_path,
        "UPLOAD_DIR": upload_dir,
    })

    with flask_app.app_context():
        initialize_database()

    yield flask_app

    os.close(db_fd)
    try:
        os.remove(db_path)
    except OSError:
        pass


@pytest.fixture(scope='function')
def client(app):
    """A test client for the app."""
    return app.test_client()
