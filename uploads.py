import os
import time
import uuid
from collections import namedtuple
from werkzeug.utils import secure_filename

import config # Import the config module directly so tests can patch UPLOAD_DIR


UploadedImage = namedtuple('UploadedImage', ['temporary_path', 'original_filename', 'received_order'])


def build_unique_filename(original_filename):
    """Prefixes a sanitised filename with a millisecond timestamp and a random token."""
    safe_name = secure_filename(original_filename or '') or 'upload'
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{safe_name}"


class UploadSession:
    """
    Request-scoped storage for uploaded image parts.

    Every file written through the session is removed again by close(), which
    runs on success, on failure and when the client goes away mid-stream.
    """

    def __init__(self, upload_dir=None, keep_files=None):
        self.upload_dir = upload_dir or config.UPLOAD_DIR
        self.keep_files = config.KEEP_UPLOADS if keep_files is None else keep_files
        self.uploads = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def save(self, file_storage):
        """Writes one uploaded part to disk and returns its UploadedImage."""
        if self.closed:
            raise RuntimeError("Upload session is already closed.")

        os.makedirs(self.upload_dir, exist_ok=True)
        path = os.path.join(self.upload_dir, build_unique_filename(file_storage.filename))
        uploaded = UploadedImage(path, file_storage.filename, len(self.uploads))
        # Track before writing so a half-written file is still cleaned up
        self.uploads.append(uploaded)
        file_storage.save(path)
        return uploaded

    def save_all(self, files):
        """Saves parts in arrival order, skipping entries with no filename."""
        saved = []
        for file_storage in files:
            if not file_storage or not file_storage.filename:
                print("Warning: Skipping empty file entry.")
                continue
            saved.append(self.save(file_storage))
        return saved

    def read(self, uploaded):
        with open(uploaded.temporary_path, 'rb') as f:
            return f.read()

    def close(self):
        """Deletes the session's files. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        if self.keep_files:
            return
        for uploaded in self.uploads:
            try:
                os.remove(uploaded.temporary_path)
            except FileNotFoundError:
                pass
            except OSError as e:
                print(f"Error removing temporary upload '{uploaded.temporary_path}': {e}")
