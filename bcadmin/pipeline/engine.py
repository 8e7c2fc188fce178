# ==============================================================================
# bcadmin/pipeline/engine.py
# ------------------------------------------------------------------------------
# Commission calculation and the daily/commission upload orchestrators.
# ==============================================================================

import os
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from bcadmin import db
from bcadmin.audit import record_upload, STATUS_SUCCESS, STATUS_FAILED
from bcadmin.models import Agent, Commission, DailyPerformance
from .ingest import read_tabular_file
from .registry import fetch_active_column_settings, check_column_settings
from .schema import DAILY_HEADERS, CALCULATED_FIELDS
from .validator import (validate_headers_dynamic, validate_headers_exact, validate_commission_rows,
                        validate_daily_rows, normalize_daily_row)
from .procedures import commission_upload, daily_upload

DEFAULT_TDS_PERCENT = 2.00

MONTH_NAMES = ['January', 'February', 'March', 'April', 'May', 'June',
               'July', 'August', 'September', 'October', 'November', 'December']

STATUS_OK = 'success'
STATUS_ERROR = 'failed'
STATUS_CONFIRM = 'confirmation_required'

# --- Commission Calculator ---

def _money(value):
    return Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def calculate_tds(bc_comm, tds_percent=DEFAULT_TDS_PERCENT):
    """
    Computes TDS and the agent's net payable from the BC commission.

    Returns:
        tuple: (tds_amount, agent_net_payable), both rounded to 2 places.
    """
    bc = Decimal(str(bc_comm))
    tds_amount = _money(bc * Decimal(str(tds_percent)) / Decimal(100))
    agent_net_payable = _money(bc - tds_amount)
    return float(tds_amount), float(agent_net_payable)


def apply_tds(row, tds_percent=DEFAULT_TDS_PERCENT):
    """Overwrites the calculated fields of a validated commission row."""
    for field in CALCULATED_FIELDS:
        row.pop(field, None)
    tds_amount, net_payable = calculate_tds(row.get('bc_comm') or 0.0, tds_percent)
    row['tds_percent'] = float(tds_percent)
    row['tds_amount'] = tds_amount
    row['agent_net_payable'] = net_payable
    return row


# --- Helpers ---

def outcome(status, message, errors=None, **extra):
    result = {'status': status, 'message': message, 'errors': errors or []}
    result.update(extra)
    return result


def error_summary(errors, limit=5):
    messages = [f"Row {e['row']}: {e['message']}" if e.get('row') else e['message'] for e in errors[:limit]]
    if len(errors) > limit:
        messages.append(f"and {len(errors) - limit} more")
    return '; '.join(messages)


def fetch_known_agent_ids():
    return {agent_id.strip() for (agent_id,) in db.session.query(Agent.agent_id).all()}


def commission_period_exists(month, year):
    return db.session.query(Commission.id).filter_by(month=month, year=year).first() is not None


def daily_date_exists(upload_date):
    return db.session.query(DailyPerformance.id).filter_by(date=upload_date).first() is not None


# --- Commission Upload ---

def run_commission_upload(filepath, month, year, confirm_replace=False, filename=None):
    """
    Full commission upload: schema, headers, rows, TDS, replace gate, bulk write.

    Args:
        filepath: Path (or file object) of the uploaded .csv/.xlsx/.xls file.
        month (int): 1-12.
        year (int): Commission year.
        confirm_replace (bool): Whether existing records for the period may be replaced.
        filename (str): Original file name, for the audit log.

    Returns:
        dict: Outcome with 'status', 'message', 'errors' and, on success, 'result'.
    """
    filename = filename or os.path.basename(str(filepath))
    min_year = current_app.config.get('MIN_COMMISSION_YEAR', 2020)

    if not 1 <= month <= 12:
        return outcome(STATUS_ERROR, "Invalid month selected")
    if year < min_year:
        return outcome(STATUS_ERROR, f"Year must be {min_year} or later")

    logging.info("=" * 60)
    logging.info(f"COMMISSION UPLOAD '{filename}' FOR {year}-{month:02d}")

    # 1. Column schema, read fresh for every upload
    column_settings = fetch_active_column_settings()
    schema_errors = check_column_settings(column_settings)
    if schema_errors:
        logging.error(f"Commission upload halted by schema errors: {schema_errors}")
        record_upload('COMMISSION', filename, 'UPLOAD', 0, STATUS_FAILED, '; '.join(schema_errors))
        return outcome(STATUS_ERROR, schema_errors[0], [{'message': m} for m in schema_errors])

    # 2. File
    headers, rows = read_tabular_file(filepath, filename)
    if not headers or not rows:
        record_upload('COMMISSION', filename, 'UPLOAD', 0, STATUS_FAILED, "File has no valid data rows")
        return outcome(STATUS_ERROR, "File is empty or has no valid data rows")

    # 3. Headers
    header_check = validate_headers_dynamic(headers, column_settings)
    if not header_check['valid']:
        logging.warning(f"Commission header validation failed: {header_check['errors']}")
        record_upload('COMMISSION', filename, 'UPLOAD', len(rows), STATUS_FAILED,
                      error_summary(header_check['errors']))
        return outcome(STATUS_ERROR, "Header validation failed", header_check['errors'])

    # 4. Rows
    valid_agent_ids = fetch_known_agent_ids()
    processed, row_errors = validate_commission_rows(rows, column_settings, valid_agent_ids)
    if row_errors:
        logging.warning(f"Commission row validation failed with {len(row_errors)} errors.")
        record_upload('COMMISSION', filename, 'UPLOAD', len(rows), STATUS_FAILED, error_summary(row_errors))
        return outcome(STATUS_ERROR, "Row validation failed. See errors below.", row_errors)

    # 5. TDS
    tds_percent = current_app.config.get('DEFAULT_TDS_PERCENT', DEFAULT_TDS_PERCENT)
    for row in processed:
        apply_tds(row, tds_percent)

    # 6. Replace gate
    month_name = MONTH_NAMES[month - 1]
    exists = commission_period_exists(month, year)
    if exists and not confirm_replace:
        logging.info(f"Commission data already exists for {month_name} {year}; waiting for confirmation.")
        return outcome(STATUS_CONFIRM,
                       f"Commission data already exists for {month_name} {year}. "
                       f"This will DELETE all existing records for this month and replace them with new data.")

    upload_mode = 'REPLACE' if exists else 'NEW'
    try:
        result = commission_upload(processed, month, year)
    except SQLAlchemyError as e:
        logging.error(f"commission_upload failed: {e}", exc_info=True)
        record_upload('COMMISSION', filename, upload_mode, len(processed), STATUS_FAILED, str(e))
        raise

    record_upload('COMMISSION', filename, upload_mode, result['inserted_count'], STATUS_SUCCESS)
    logging.info(f"COMMISSION UPLOAD COMPLETE: {result['inserted_count']} records.")
    return outcome(STATUS_OK,
                   f"Successfully uploaded {result['inserted_count']} commission records for {month_name} {year}",
                   result=result)


# --- Daily Performance Upload ---

def run_daily_upload(filepath, upload_date, confirm_replace=False, filename=None):
    """
    Daily performance upload for one date. Same gates as the commission upload,
    against the fixed 26-column template.
    """
    filename = filename or os.path.basename(str(filepath))
    if upload_date is None:
        return outcome(STATUS_ERROR, "Please select a date first.")

    logging.info("=" * 60)
    logging.info(f"DAILY UPLOAD '{filename}' FOR {upload_date}")

    headers, rows = read_tabular_file(filepath, filename)
    if not headers:
        record_upload('DAILY', filename, 'UPLOAD', 0, STATUS_FAILED, "File is empty")
        return outcome(STATUS_ERROR, "File is empty or invalid")

    header_check = validate_headers_exact(headers, DAILY_HEADERS)
    if not header_check['valid']:
        record_upload('DAILY', filename, 'UPLOAD', len(rows), STATUS_FAILED, error_summary(header_check['errors']))
        return outcome(STATUS_ERROR, "Invalid Daily file format. Download latest template.", header_check['errors'])

    if not rows:
        record_upload('DAILY', filename, 'UPLOAD', 0, STATUS_FAILED, "File has no valid data rows")
        return outcome(STATUS_ERROR, "File has no valid data rows")

    row_check = validate_daily_rows(rows)
    if not row_check['valid']:
        logging.warning(f"Daily row validation failed with {len(row_check['errors'])} errors.")
        record_upload('DAILY', filename, 'UPLOAD', len(rows), STATUS_FAILED, error_summary(row_check['errors']))
        return outcome(STATUS_ERROR, "Row validation failed. See errors below.", row_check['errors'])

    exists = daily_date_exists(upload_date)
    if exists and not confirm_replace:
        return outcome(STATUS_CONFIRM,
                       f"Data already exists for {upload_date.isoformat()}. Uploading will replace it.")

    performance_data = [normalize_daily_row(row) for row in rows]
    upload_mode = 'REPLACE' if exists else 'NEW'
    try:
        result = daily_upload(performance_data, upload_date)
    except SQLAlchemyError as e:
        logging.error(f"daily_upload failed: {e}", exc_info=True)
        record_upload('DAILY', filename, upload_mode, len(performance_data), STATUS_FAILED, str(e))
        raise

    record_upload('DAILY', filename, upload_mode, result['inserted_rows'], STATUS_SUCCESS)
    return outcome(STATUS_OK,
                   f"Upload Successful! Date: {result['upload_date']}, Rows Processed: {result['inserted_rows']}, "
                   f"New Devices Created: {result['created_devices']}",
                   result=result)


# --- Approval ---

def approve_commissions(month, year, approved_by='admin'):
    """Approves every pending record of the period. Returns the number approved."""
    pending = Commission.query.filter_by(month=month, year=year, approved=False).all()
    now = datetime.utcnow()
    for record in pending:
        record.approved = True
        record.approved_at = now
        record.approved_by = approved_by
    db.session.commit()
    logging.info(f"Approved {len(pending)} commission records for {year}-{month} by {approved_by}.")
    return len(pending)


def commission_approval_summary(month, year):
    records = Commission.query.filter_by(month=month, year=year).all()
    approved = sum(1 for r in records if r.approved)
    return {'total': len(records), 'approved': approved, 'pending': len(records) - approved}
