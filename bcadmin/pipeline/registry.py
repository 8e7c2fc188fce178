# ==============================================================================
# bcadmin/pipeline/registry.py
# ------------------------------------------------------------------------------
# Access to the commission column settings (the column schema registry).
# Settings are always read fresh; nothing here is cached between uploads.
# ==============================================================================

import logging
from bcadmin import db
from bcadmin.models import ColumnSetting
from .schema import (COMMISSION_FIELDS, MONETARY_FIELDS, FIELD_KINDS,
                     FIELD_KIND_INTEGER, FIELD_KIND_DECIMAL, FIELD_KIND_TEXT)


class ColumnSettingError(ValueError):
    """An administrative change would break the registry invariants."""


def infer_field_kind(column_key):
    """
    Legacy naming rule, applied once when a column is configured without an
    explicit kind.
    """
    if '_count' in column_key or column_key == 'login_days':
        return FIELD_KIND_INTEGER
    if '_comm' in column_key or '_amount' in column_key or column_key in MONETARY_FIELDS:
        return FIELD_KIND_DECIMAL
    return FIELD_KIND_TEXT


def fetch_active_column_settings():
    """Returns the active settings ordered by display_order. Read errors propagate."""
    return (ColumnSetting.query
            .filter_by(is_active=True)
            .order_by(ColumnSetting.display_order, ColumnSetting.id)
            .all())


def check_column_settings(settings):
    """
    Checks a set of active settings before it is used for an upload.

    Returns:
        list: Schema error messages. Empty means the schema is usable.
    """
    errors = []
    if not settings:
        errors.append("No active column settings found. Please configure commission columns first.")
        return errors

    keys_seen = {}
    headers_seen = {}
    for setting in settings:
        key = setting.column_key
        header = setting.csv_header_name.strip()
        if key in keys_seen:
            errors.append(f'Column key "{key}" is mapped more than once (headers "{keys_seen[key]}" and "{header}").')
        else:
            keys_seen[key] = header

        if header in headers_seen and headers_seen[header] != key:
            errors.append(f'Header "{header}" is mapped to two column keys: "{headers_seen[header]}" and "{key}".')
        else:
            headers_seen.setdefault(header, key)

        if setting.field_kind not in FIELD_KINDS:
            errors.append(f'Column "{key}" has unknown field kind "{setting.field_kind}".')
    return errors


def _active_conflicts(column_key, csv_header_name, exclude_id=None):
    query = ColumnSetting.query.filter_by(is_active=True)
    if exclude_id is not None:
        query = query.filter(ColumnSetting.id != exclude_id)
    header = csv_header_name.strip()
    for other in query.all():
        if other.column_key == column_key:
            return f'Column key "{column_key}" is already active (header "{other.csv_header_name}").'
        if other.csv_header_name.strip() == header:
            return f'Header "{header}" is already mapped to "{other.column_key}".'
    return None


def add_column_setting(column_key, csv_header_name, field_kind=None, is_required=False,
                       is_active=True, display_order=100):
    """Creates a new mapping rule. Raises ColumnSettingError on invalid input."""
    column_key = (column_key or '').strip()
    if not column_key or not (csv_header_name or '').strip():
        raise ColumnSettingError("Column key and CSV header name are required")
    if column_key not in COMMISSION_FIELDS:
        raise ColumnSettingError(f'"{column_key}" is not a commission field.')

    field_kind = field_kind or infer_field_kind(column_key)
    if field_kind not in FIELD_KINDS:
        raise ColumnSettingError(f'Unknown field kind "{field_kind}".')

    if is_active:
        conflict = _active_conflicts(column_key, csv_header_name)
        if conflict:
            raise ColumnSettingError(conflict)

    setting = ColumnSetting(column_key=column_key, csv_header_name=csv_header_name,
                            field_kind=field_kind, is_required=is_required,
                            is_active=is_active, display_order=display_order)
    db.session.add(setting)
    db.session.commit()
    logging.info(f"Added column setting {setting.column_key} <- '{setting.csv_header_name}' ({setting.field_kind}).")
    return setting


def update_column_setting(setting_id, **fields):
    """Edits one mapping rule in place; unknown attributes are rejected."""
    setting = db.session.get(ColumnSetting, setting_id)
    if setting is None:
        raise ColumnSettingError(f"Column setting {setting_id} not found.")

    allowed = {'csv_header_name', 'field_kind', 'is_required', 'is_active', 'display_order'}
    unknown = set(fields) - allowed
    if unknown:
        raise ColumnSettingError(f"Cannot update: {', '.join(sorted(unknown))}")

    if 'field_kind' in fields and fields['field_kind'] not in FIELD_KINDS:
        raise ColumnSettingError(f'Unknown field kind "{fields["field_kind"]}".')

    header = fields.get('csv_header_name', setting.csv_header_name)
    if fields.get('is_active', setting.is_active):
        conflict = _active_conflicts(setting.column_key, header, exclude_id=setting.id)
        if conflict:
            raise ColumnSettingError(conflict)

    for name, value in fields.items():
        setattr(setting, name, value)
    db.session.commit()
    return setting


def delete_column_setting(setting_id):
    setting = db.session.get(ColumnSetting, setting_id)
    if setting is None:
        raise ColumnSettingError(f"Column setting {setting_id} not found.")
    db.session.delete(setting)
    db.session.commit()
    logging.info(f"Deleted column setting {setting.column_key}.")
