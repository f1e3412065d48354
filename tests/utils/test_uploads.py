import os
import re
import pytest
from io import BytesIO
from unittest.mock import patch
from werkzeug.datastructures import FileStorage

from uploads import UploadSession, UploadedImage, build_unique_filename


def make_file_storage(content, filename):
    return FileStorage(stream=BytesIO(content), filename=filename)


def test_build_unique_filename_prefixes_timestamp_and_token():
    name = build_unique_filename("holiday photo.jpg")
    assert re.fullmatch(r"\d{13}-[0-9a-f]{8}-holiday_photo\.jpg", name)

def test_build_unique_filename_is_unique_for_same_name():
    assert build_unique_filename("a.jpg") != build_unique_filename("a.jpg")

def test_build_unique_filename_strips_paths():
    name = build_unique_filename("../../etc/passwd")
    assert "/" not in name and ".." not in name
    assert build_unique_filename("").endswith("-upload")


def test_save_all_preserves_arrival_order(upload_dir):
    files = [
        make_file_storage(b"first", "b.jpg"),
        make_file_storage(b"second", "a.png"),
        make_file_storage(b"third", "c.jpg"),
    ]
    with UploadSession() as session:
        uploads = session.save_all(files)

        assert [u.original_filename for u in uploads] == ["b.jpg", "a.png", "c.jpg"]
        assert [u.received_order for u in uploads] == [0, 1, 2]
        assert [session.read(u) for u in uploads] == [b"first", b"second", b"third"]
        for u in uploads:
            assert os.path.dirname(u.temporary_path) == upload_dir

def test_save_all_skips_empty_entries(upload_dir):
    with UploadSession() as session:
        uploads = session.save_all([make_file_storage(b"", ""), make_file_storage(b"x", "x.jpg"), None])
        assert len(uploads) == 1
        assert uploads[0] == UploadedImage(uploads[0].temporary_path, "x.jpg", 0)

def test_close_removes_files(upload_dir):
    session = UploadSession()
    uploads = session.save_all([make_file_storage(b"1", "1.jpg"), make_file_storage(b"2", "2.jpg")])
    assert len(os.listdir(upload_dir)) == 2

    session.close()
    assert os.listdir(upload_dir) == []
    assert all(not os.path.exists(u.temporary_path) for u in uploads)

    session.close() # Idempotent

def test_context_manager_cleans_up_on_error(upload_dir):
    with pytest.raises(RuntimeError):
        with UploadSession() as session:
            session.save(make_file_storage(b"data", "img.jpg"))
            raise RuntimeError("conversion failed")
    assert os.listdir(upload_dir) == []

def test_close_ignores_already_deleted_files(upload_dir):
    session = UploadSession()
    uploaded = session.save(make_file_storage(b"data", "img.jpg"))
    os.remove(uploaded.temporary_path)
    session.close()
    assert session.closed

def test_close_reports_other_os_errors(upload_dir, capsys):
    session = UploadSession()
    session.save(make_file_storage(b"data", "img.jpg"))
    with patch('uploads.os.remove', side_effect=PermissionError("denied")):
        session.close()
    assert "Error removing temporary upload" in capsys.readouterr().out

def test_keep_files_leaves_uploads(upload_dir):
    session = UploadSession(keep_files=True)
    session.save(make_file_storage(b"data", "img.jpg"))
    session.close()
    assert len(os.listdir(upload_dir)) == 1

def test_save_after_close_fails(upload_dir):
    session = UploadSession()
    session.close()
    with pytest.raises(RuntimeError, match="already closed"):
        session.save(make_file_storage(b"data", "img.jpg"))

def test_creates_missing_upload_dir(tmp_path):
    target = tmp_path / "nested" / "uploads"
    with UploadSession(upload_dir=str(target)) as session:
        session.save(make_file_storage(b"data", "img.jpg"))
        assert target.is_dir()
