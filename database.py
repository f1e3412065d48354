import sqlite3
import json
import config # DB_NAME and HISTORY_ENABLED are read at call time so tests can patch them

# The history log is optional: every function here fails soft and nothing on
# the conversion path depends on it succeeding.

def _is_testing():
    from flask import current_app, has_app_context
    return has_app_context() and current_app.config.get('TESTING')

def init_db():
    """Initializes the database and creates the conversions table if it doesn't exist."""
    if not config.HISTORY_ENABLED:
        return False
    conn = None
    try:
        conn = sqlite3.connect(config.DB_NAME, timeout=config.DB_TIMEOUT_SECONDS)
        cursor = conn.cursor()
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS conversions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
                image_count INTEGER NOT NULL,
                page_sizes TEXT NULL, -- JSON list of [width, height]
                status TEXT NOT NULL,
                error TEXT NULL
            )
        ''')
        conn.commit()
        if not _is_testing():
            print(f"Database '{config.DB_NAME}' initialized successfully.")
        return True
    except sqlite3.Error as e:
        print(f"Database error during initialization: {e}")
        return False
    finally:
        if conn:
            conn.close()

def get_db():
    """Establishes a connection to the database."""
    try:
        conn = sqlite3.connect(config.DB_NAME, timeout=config.DB_TIMEOUT_SECONDS)
        conn.row_factory = sqlite3.Row # Return rows as dict-like objects
        return conn
    except sqlite3.Error as e:
        print(f"Database connection error: {e}")
        return None # Return None if connection fails

def record_conversion(image_count, page_sizes, status, error=None):
    """Saves the outcome of one /convert request. Returns False if nothing was stored."""
    if not config.HISTORY_ENABLED:
        return False
    conn = get_db()
    if not conn:
        return False

    page_sizes_json = json.dumps([list(size) for size in page_sizes]) if page_sizes else None
    try:
        cursor = conn.cursor()
        cursor.execute(
            "INSERT INTO conversions (image_count, page_sizes, status, error) VALUES (?, ?, ?, ?)",
            (image_count, page_sizes_json, status, error)
        )
        conn.commit()
        return True
    except sqlite3.Error as e:
        print(f"Database error saving conversion record: {e}")
        return False
    finally:
        conn.close()

def get_conversion_history(limit=None):
    """Fetches the most recent conversion records, newest first."""
    if limit is None:
        limit = config.HISTORY_DEFAULT_LIMIT
    conn = get_db()
    if not conn:
        return []

    history_list = []
    try:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT id, timestamp, image_count, page_sizes, status, error FROM conversions ORDER BY id DESC LIMIT ?",
            (limit,)
        )
        for row in cursor.fetchall():
            history_list.append({
                'id': row['id'],
                'timestamp': row['timestamp'],
                'image_count': row['image_count'],
                'page_sizes': json.loads(row['page_sizes']) if row['page_sizes'] else [],
                'status': row['status'],
                'error': row['error'],
            })
        return history_list
    except sqlite3.Error as e:
        print(f"Database error fetching conversion history: {e}")
        return []
    finally:
        conn.close()

def clear_conversion_history():
    """Deletes every conversion record. Returns the number of deleted rows."""
    conn = get_db()
    if not conn:
        return 0

    try:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM conversions")
        conn.commit()
        deleted_count = cursor.rowcount
        print(f"Deleted {deleted_count} conversion records")
        return deleted_count
    except sqlite3.Error as e:
        print(f"Database error clearing conversion history: {e}")
        return 0
    finally:
        conn.close()
