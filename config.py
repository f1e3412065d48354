import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_flag(name, default):
    """Reads a true/false style environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# --- File Handling ---
UPLOAD_DIR_NAME = os.getenv("UPLOAD_DIR", "uploads")
UPLOAD_DIR = os.path.abspath(UPLOAD_DIR_NAME)
KEEP_UPLOADS = _env_flag("KEEP_UPLOADS", False) # Leave uploaded files on disk after the request
MAX_FILE_SIZE_MB = int(os.getenv("MAX_UPLOAD_MB", "50"))
MAX_CONTENT_LENGTH = MAX_FILE_SIZE_MB * 1024 * 1024 # Flask rejects larger bodies with 413

# --- PDF Assembly ---
# Pillow format names. Both are embedded by img2pdf without recompression.
ALLOWED_IMAGE_FORMATS = {'JPEG', 'PNG'}
# Formats Pillow reports for files that are JPEGs on the wire (multi-picture phone photos)
JPEG_VARIANTS = {'MPO'}
PAGE_DPI = 72 # 72 dpi makes one image pixel exactly one PDF unit
SIZE_TOLERANCE = 0.5 # Page size slack, in units, when checking the output against the input
OUTPUT_CHUNK_SIZE = 64 * 1024
SPOOL_MAX_BYTES = 8 * 1024 * 1024 # Output documents above this spill to disk
VERIFY_OUTPUT = _env_flag("VERIFY_OUTPUT", True) # Re-read the PDF and check the page count

# --- Conversion History ---
HISTORY_ENABLED = _env_flag("HISTORY_ENABLED", True)
DB_NAME = os.getenv("HISTORY_DB", "conversion_history.db")
HISTORY_DEFAULT_LIMIT = 50
DB_TIMEOUT_SECONDS = 0.5 # Wait this long on a locked database, then skip recording

# --- Application Settings ---
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
DEBUG_MODE = _env_flag("FLASK_DEBUG", False)
HOST = os.getenv("HOST", '0.0.0.0')
PORT = int(os.getenv("PORT", "3000"))

# --- Directory Setup ---
def ensure_upload_dir():
    """Creates the upload directory if it doesn't exist."""
    if not os.path.exists(UPLOAD_DIR):
        try:
            os.makedirs(UPLOAD_DIR)
            print(f"Created upload directory: {UPLOAD_DIR}")
            return True
        except OSError as e:
            print(f"Error creating upload directory '{UPLOAD_DIR}': {e}")
            return False
    return True
