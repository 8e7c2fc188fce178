# ==============================================================================
# bcadmin/pipeline/sync.py
# ------------------------------------------------------------------------------
# Master data sync: roster file -> agents and devices -> login accounts.
# ==============================================================================

import os
import logging
from sqlalchemy.exc import SQLAlchemyError

from bcadmin.audit import record_upload, STATUS_SUCCESS, STATUS_FAILED
from bcadmin.identity import provision_agent_accounts
from .engine import outcome, error_summary, STATUS_OK, STATUS_ERROR, STATUS_CONFIRM
from .ingest import read_tabular_file
from .procedures import master_sync
from .schema import (MASTER_HEADERS, MASTER_AGENT_ID, MASTER_AGENT_NAME, MASTER_JOINING_DATE,
                     MASTER_DEVICE_ID, SYNC_MODES)
from .validator import clean_cell, validate_headers_exact, validate_master_rows, parse_joining_date


def normalize_device_id(device_id):
    """Upstream rosters sometimes drop the leading zero of 10-character ids."""
    device_id = clean_cell(device_id)
    if len(device_id) == 9:
        return '0' + device_id
    return device_id


def normalize_master_row(row):
    def text(header):
        value = clean_cell(row.get(header))
        return value or None

    return {
        'agent_id': text(MASTER_AGENT_ID),
        'agent_name': text(MASTER_AGENT_NAME),
        'joining_date': parse_joining_date(row.get(MASTER_JOINING_DATE)),
        'device_id': normalize_device_id(row.get(MASTER_DEVICE_ID)),
        'branch_name': text('Branch Name'),
        'district': text('District'),
        'state': text('State'),
        'region': text('Region'),
    }


def run_master_sync(filepath, mode='incremental', confirm_full=False, filename=None, directory=None):
    """
    Reconciles agents and devices with an uploaded roster.

    Args:
        filepath: Path (or file object) of the roster CSV.
        mode (str): 'incremental' (add/update) or 'full' (also deactivate
            agents missing from the file).
        confirm_full (bool): Explicit confirmation required for 'full' mode.
        filename (str): Original file name, for the audit log.
        directory: IdentityDirectory override used for provisioning.

    Returns:
        dict: Outcome with 'status', 'message', 'errors' and, on success,
            'result' (roster counts) and 'provisioning' (account counts).
    """
    if mode not in SYNC_MODES:
        raise ValueError(f"Unknown sync mode: {mode}")
    filename = filename or os.path.basename(str(filepath))
    upload_mode = mode.upper()

    logging.info("=" * 60)
    logging.info(f"MASTER SYNC '{filename}' ({mode})")

    headers, rows = read_tabular_file(filepath, filename)
    header_check = validate_headers_exact(headers, MASTER_HEADERS)
    if not header_check['valid']:
        record_upload('MASTER', filename, upload_mode, len(rows), STATUS_FAILED, error_summary(header_check['errors']))
        return outcome(STATUS_ERROR, "Invalid header format. Download latest template.", header_check['errors'])

    if not rows:
        record_upload('MASTER', filename, upload_mode, 0, STATUS_FAILED, "File has no valid data rows")
        return outcome(STATUS_ERROR, "File has no valid data rows")

    row_check = validate_master_rows(rows)
    if not row_check['valid']:
        record_upload('MASTER', filename, upload_mode, len(rows), STATUS_FAILED, error_summary(row_check['errors']))
        return outcome(STATUS_ERROR, "Row validation failed. See errors below.", row_check['errors'])

    master_data = [normalize_master_row(row) for row in rows]

    if mode == 'full' and not confirm_full:
        return outcome(STATUS_CONFIRM, "Full Sync will deactivate agents not in this file. Continue?")

    try:
        result = master_sync(master_data, mode)
    except SQLAlchemyError as e:
        logging.error(f"master_sync failed: {e}", exc_info=True)
        record_upload('MASTER', filename, upload_mode, len(master_data), STATUS_FAILED, str(e))
        raise
    record_upload('MASTER', filename, upload_mode, len(master_data), STATUS_SUCCESS)

    # Roster data is committed; account provisioning failures are reported, not raised.
    try:
        provisioning = provision_agent_accounts([row['agent_id'] for row in master_data], directory)
    except SQLAlchemyError as e:
        logging.error(f"Account provisioning aborted: {e}", exc_info=True)
        provisioning = {'total': len(master_data), 'created': 0, 'existing': 0,
                        'failed': len(master_data), 'errors': [f"Auth Sync failed: {e}"]}

    db_summary = f"{result['added_agents']} added, {result['updated_agents']} updated"
    if mode == 'full':
        db_summary += f", {result['deactivated_agents']} deactivated"
    auth_summary = f"{provisioning['created']} created, {provisioning['existing']} existing"
    if provisioning['failed']:
        auth_summary += f", {provisioning['failed']} failed"
    message = f"Success! DB Sync: {db_summary}. Auth Sync: {auth_summary}."
    return outcome(STATUS_OK, message, result=result, provisioning=provisioning)
