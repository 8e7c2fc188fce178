# ==============================================================================
# bcadmin/audit.py
# ------------------------------------------------------------------------------
# Append-only upload/export log.
# ==============================================================================

import logging
from sqlalchemy.exc import SQLAlchemyError
from bcadmin import db
from bcadmin.models import UploadLog

STATUS_SUCCESS = 'SUCCESS'
STATUS_FAILED = 'FAILED'


def record_upload(file_type, file_name, upload_mode, rows_count, status, error_message=None):
    """
    Appends one audit row. A failure to write it is logged and never replaces
    the outcome of the operation being audited.
    """
    entry = UploadLog(file_type=file_type, file_name=file_name or 'unknown',
                      upload_mode=upload_mode, rows_count=rows_count or 0,
                      status=status, error_message=error_message)
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logging.error(f"Failed to write upload log for {file_type} '{file_name}': {e}", exc_info=True)
        return None
    return entry


def recent_uploads(limit=100):
    return UploadLog.query.order_by(UploadLog.created_at.desc(), UploadLog.id.desc()).limit(limit).all()
