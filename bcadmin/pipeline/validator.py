# ==============================================================================
# bcadmin/pipeline/validator.py
# ------------------------------------------------------------------------------
# Validates uploaded headers and rows. Every function here is pure: it returns
# collected error lists and never touches the database.
# ==============================================================================

import math
from datetime import datetime
import pandas as pd
from .schema import (AGENT_ID_HEADER, FIELD_KIND_INTEGER, FIELD_KIND_DECIMAL,
                     DAILY_COLUMNS, DAILY_DEVICE_HEADER, DAILY_NUMERIC_HEADERS,
                     MASTER_AGENT_ID, MASTER_REQUIRED_FIELDS, MASTER_JOINING_DATE,
                     MASTER_DATE_FORMAT)

NET_COMMISSION_TOLERANCE = 0.01


def excel_row_number(index):
    """Data rows start below the header line."""
    return index + 2


def clean_cell(value):
    text = '' if value is None else str(value).strip()
    if text.startswith("'"):
        text = text[1:].strip()
    return text


def _numeric_text(value):
    """Cell text as a number literal: text marker and thousands separators removed."""
    return clean_cell(value).replace(',', '')


def _numeric_series(values):
    """Coerces cells to numbers; blanks, non-numbers and infinities come back as NaN."""
    numbers = pd.to_numeric(pd.Series([_numeric_text(v) for v in values], dtype=object), errors='coerce')
    return numbers.replace([math.inf, -math.inf], math.nan)


def _parse_decimal(value):
    text = _numeric_text(value)
    if not text:
        return 0.0
    try:
        number = float(text)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _parse_integer(value):
    text = _numeric_text(value)
    if not text:
        return 0
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return 0


def coerce_value(value, field_kind):
    """Blank or unparsable numbers become 0; blank text becomes None."""
    if field_kind == FIELD_KIND_INTEGER:
        return _parse_integer(value)
    if field_kind == FIELD_KIND_DECIMAL:
        return _parse_decimal(value)
    text = clean_cell(value)
    return text or None


# --- Header validation ---

def validate_headers_dynamic(headers, column_settings):
    """
    Checks an uploaded commission file's headers against the active settings.

    Args:
        headers (list): Raw header strings from the file.
        column_settings (list): Active ColumnSetting entries.

    Returns:
        dict: {'valid': bool, 'errors': [{'message': str}, ...]}
    """
    trimmed = {str(h or '').strip() for h in headers}
    errors = []

    if AGENT_ID_HEADER not in trimmed:
        errors.append({'message': f'Missing required header: "{AGENT_ID_HEADER}"'})

    for setting in column_settings:
        if not setting.is_required:
            continue
        expected = setting.csv_header_name.strip()
        if expected not in trimmed:
            errors.append({'message': f'Missing required header: "{expected}"'})

    return {'valid': not errors, 'errors': errors}


def validate_headers_exact(headers, expected_headers):
    """
    Order-sensitive header check used by the fixed daily and master templates.
    """
    trimmed = [str(h or '').strip() for h in headers]
    if trimmed == list(expected_headers):
        return {'valid': True, 'errors': []}

    errors = []
    missing = [h for h in expected_headers if h not in trimmed]
    unexpected = [h for h in trimmed if h not in expected_headers]
    if missing:
        errors.append({'message': f"Missing headers: {', '.join(missing)}"})
    if unexpected:
        errors.append({'message': f"Unexpected headers: {', '.join(unexpected)}"})
    if not missing and not unexpected:
        errors.append({'message': "Headers are out of order. Download the latest template."})
    return {'valid': False, 'errors': errors}


# --- Commission rows ---

def map_row_dynamic(row, column_settings):
    """Maps a row to internal field names using each setting's field kind."""
    mapped = {'agent_id': clean_cell(row.get(AGENT_ID_HEADER))}
    for setting in column_settings:
        header = setting.csv_header_name.strip()
        mapped[setting.column_key] = coerce_value(row.get(header), setting.field_kind)
    return mapped


def validate_and_process_row(row, row_index, column_settings, valid_agent_ids):
    """
    Validates one commission row and maps it to internal fields.

    Returns:
        dict: {'valid': bool, 'processed': dict or None,
               'errors': [{'row': int, 'message': str}, ...]}
    """
    row_number = excel_row_number(row_index)
    errors = []

    agent_id = clean_cell(row.get(AGENT_ID_HEADER))
    if not agent_id:
        return {'valid': False, 'processed': None,
                'errors': [{'row': row_number, 'message': "Missing AGENT ID"}]}

    if agent_id not in valid_agent_ids:
        errors.append({'row': row_number, 'message': f'Agent ID "{agent_id}" does not exist in system'})

    mapped = map_row_dynamic(row, column_settings)

    bc_comm = mapped.get('bc_comm') or 0.0
    corp_comm = mapped.get('corp_comm') or 0.0
    net_commission = mapped.get('net_commission') or 0.0
    expected = bc_comm + corp_comm
    if abs(expected - net_commission) > NET_COMMISSION_TOLERANCE:
        errors.append({
            'row': row_number,
            'message': (f"NET COMMISSION mismatch. Expected {expected:.2f} (BC_COMM + CORP_COMM), "
                        f"got {net_commission:.2f}")
        })

    if errors:
        return {'valid': False, 'processed': None, 'errors': errors}
    return {'valid': True, 'processed': mapped, 'errors': []}


def check_duplicate_agents(rows):
    """Reports every repeated AGENT ID with the row it first appeared on."""
    first_seen = {}
    errors = []
    for index, row in enumerate(rows):
        agent_id = clean_cell(row.get(AGENT_ID_HEADER))
        if not agent_id:
            continue
        if agent_id in first_seen:
            errors.append({
                'row': excel_row_number(index),
                'message': (f'Duplicate AGENT ID "{agent_id}" found at rows '
                            f'{excel_row_number(first_seen[agent_id])} and {excel_row_number(index)}')
            })
        else:
            first_seen[agent_id] = index
    return errors


def validate_commission_rows(rows, column_settings, valid_agent_ids):
    """
    Runs duplicate detection and per-row validation over the whole file.

    Returns:
        tuple: (processed rows, errors sorted by row number). Processed rows
            are only meaningful when the error list is empty.
    """
    errors = check_duplicate_agents(rows)
    processed = []
    for index, row in enumerate(rows):
        result = validate_and_process_row(row, index, column_settings, valid_agent_ids)
        if result['valid']:
            processed.append(result['processed'])
        else:
            errors.extend(result['errors'])
    errors.sort(key=lambda e: e['row'])
    return processed, errors


# --- Daily performance rows ---

def validate_daily_rows(rows):
    """Device presence, in-file device duplicates, numeric fields."""
    numbers = {field: _numeric_series(row.get(field) for row in rows) for field in DAILY_NUMERIC_HEADERS}
    device_ids = set()
    errors = []
    for index, row in enumerate(rows):
        row_number = excel_row_number(index)
        device_id = clean_cell(row.get(DAILY_DEVICE_HEADER))
        if not device_id:
            errors.append({'row': row_number, 'message': "Missing Deviceid"})
            continue

        if device_id in device_ids:
            errors.append({'row': row_number, 'message': f'Duplicate Deviceid "{device_id}"'})
        else:
            device_ids.add(device_id)

        for field in DAILY_NUMERIC_HEADERS:
            value = clean_cell(row.get(field))
            if not value:
                continue
            number = numbers[field].iloc[index]
            if pd.isna(number):
                errors.append({'row': row_number, 'message': f'Invalid numeric value "{value}" in field "{field}"'})
            elif number < 0:
                errors.append({'row': row_number, 'message': f'Negative value not allowed in field "{field}"'})

    return {'valid': not errors, 'errors': errors}


def normalize_daily_row(row):
    """Strips text markers, zero-fills blank numbers and maps to internal fields."""
    normalized = {}
    for header, field in DAILY_COLUMNS:
        value = row.get(header)
        if header in DAILY_NUMERIC_HEADERS:
            normalized[field] = _parse_integer(value) if field.endswith('_count') else _parse_decimal(value)
        else:
            normalized[field] = clean_cell(value) or None
    return normalized


# --- Master roster rows ---

def parse_joining_date(value):
    """DD-MM-YYYY to a date, or None when it is not a real calendar date."""
    try:
        return datetime.strptime(clean_cell(value), MASTER_DATE_FORMAT).date()
    except ValueError:
        return None


def validate_master_rows(rows):
    """Required fields, duplicate agent ids and joining dates."""
    agent_ids = set()
    errors = []
    for index, row in enumerate(rows):
        row_number = excel_row_number(index)
        missing = [field for field in MASTER_REQUIRED_FIELDS if not clean_cell(row.get(field))]
        if missing:
            errors.append({'row': row_number, 'message': f"Missing required field(s): {', '.join(missing)}"})
            continue

        agent_id = clean_cell(row.get(MASTER_AGENT_ID))
        if agent_id in agent_ids:
            errors.append({'row': row_number, 'message': f'Duplicate Agent id "{agent_id}"'})
        agent_ids.add(agent_id)

        if parse_joining_date(row.get(MASTER_JOINING_DATE)) is None:
            errors.append({'row': row_number,
                           'message': f'Invalid DATE OF JOINING "{clean_cell(row.get(MASTER_JOINING_DATE))}" (expected DD-MM-YYYY)'})

    return {'valid': not errors, 'errors': errors}
