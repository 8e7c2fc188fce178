# ==============================================================================
# bcadmin/main/utils.py
# ==============================================================================
import os
import uuid
from flask import current_app
from werkzeug.utils import secure_filename


def save_upload(file_storage):
    """
    Stores an uploaded file in UPLOAD_FOLDER under a unique name.

    Returns:
        tuple: (stored path, original secure filename for the audit log)
    """
    filename = secure_filename(file_storage.filename)
    os.makedirs(current_app.config['UPLOAD_FOLDER'], exist_ok=True)
    filepath = os.path.join(current_app.config['UPLOAD_FOLDER'], f"{uuid.uuid4().hex}_{filename}")
    file_storage.save(filepath)
    return filepath, filename


def discard_upload(filepath):
    if os.path.exists(filepath):
        os.remove(filepath)


def cap_errors(errors, limit=None):
    """
    Trims a row error list for display.

    Returns:
        tuple: (first `limit` errors, number of hidden errors)
    """
    if limit is None:
        limit = current_app.config.get('MAX_DISPLAY_ERRORS', 50)
    hidden = max(len(errors) - limit, 0)
    return errors[:limit], hidden


def format_outcome(outcome):
    """Shapes a pipeline outcome into the JSON status message payload."""
    shown, hidden = cap_errors(outcome.get('errors', []))
    payload = dict(outcome, errors=shown)
    if hidden:
        payload['more_errors'] = f"... and {hidden} more errors."
    return payload
