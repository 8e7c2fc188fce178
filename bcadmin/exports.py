# ==============================================================================
# bcadmin/exports.py
# ------------------------------------------------------------------------------
# Header-only upload templates and audited CSV exports.
# ==============================================================================

import logging
from datetime import date
import pandas as pd

from bcadmin.audit import record_upload, STATUS_SUCCESS, STATUS_FAILED
from bcadmin.models import Agent, Device, DailyPerformance, Commission
from bcadmin.pipeline.registry import fetch_active_column_settings
from bcadmin.pipeline.schema import AGENT_ID_HEADER, DAILY_HEADERS, MASTER_HEADERS

TEMPLATE_KINDS = ('daily', 'master', 'commission')


def _columns(model):
    return [column.name for column in model.__table__.columns]


def _frame(records, model):
    columns = _columns(model)
    return pd.DataFrame([{c: getattr(r, c) for c in columns} for r in records], columns=columns)


def template_csv(kind):
    """Returns (file_name, csv_text) with only the header row for an upload type."""
    if kind == 'daily':
        headers = DAILY_HEADERS
    elif kind == 'master':
        headers = MASTER_HEADERS
    elif kind == 'commission':
        headers = [AGENT_ID_HEADER] + [s.csv_header_name.strip() for s in fetch_active_column_settings()]
    else:
        raise ValueError(f"Unknown template: {kind}")
    return f"{kind}_template.csv", pd.DataFrame(columns=headers).to_csv(index=False)


def _audited_export(file_type, file_name, build):
    """Runs `build` -> (csv_text, count) and records the outcome in the upload log."""
    try:
        csv_text, count = build()
    except Exception as e:
        logging.error(f"{file_type} failed: {e}", exc_info=True)
        record_upload(file_type, file_name, 'EXPORT', 0, STATUS_FAILED, str(e))
        raise
    record_upload(file_type, file_name, 'EXPORT', count, STATUS_SUCCESS)
    logging.info(f"{file_type}: {count} rows exported to {file_name}.")
    return file_name, csv_text, count


def export_agents():
    """Agents joined with their device's location; missing values become 'N/A'."""
    def build():
        agents = Agent.query.order_by(Agent.created_at.desc(), Agent.id.desc()).all()
        if not agents:
            raise LookupError("No agents found")
        devices = {d.device_id: d for d in Device.query.all()}

        frame = _frame(agents, Agent)
        located = [devices.get(a.assigned_device_id) for a in agents]
        for column, attribute in (('device_branch', 'branch_name'), ('device_district', 'district'),
                                  ('device_state', 'state'), ('device_region_zone', 'region')):
            frame[column] = [getattr(d, attribute, None) or 'N/A' for d in located]
        return frame.to_csv(index=False), len(frame)

    return _audited_export('EXPORT_AGENTS', f"agents_with_devices_{date.today().isoformat()}.csv", build)


def export_devices():
    def build():
        frame = _frame(Device.query.order_by(Device.device_id).all(), Device)
        return frame.to_csv(index=False), len(frame)

    return _audited_export('EXPORT_DEVICES', f"devices_export_{date.today().isoformat()}.csv", build)


def export_daily_performance(start_date, end_date):
    def build():
        records = (DailyPerformance.query
                   .filter(DailyPerformance.date >= start_date, DailyPerformance.date <= end_date)
                   .order_by(DailyPerformance.date, DailyPerformance.device_id).all())
        frame = _frame(records, DailyPerformance)
        return frame.to_csv(index=False), len(frame)

    file_name = f"daily_performance_{start_date.isoformat()}_to_{end_date.isoformat()}.csv"
    return _audited_export('EXPORT_DAILY_PERFORMANCE', file_name, build)


def export_commissions(month, year):
    def build():
        records = Commission.query.filter_by(month=month, year=year).order_by(Commission.agent_id).all()
        frame = _frame(records, Commission)
        return frame.to_csv(index=False), len(frame)

    return _audited_export('EXPORT_COMMISSIONS', f"commissions_{month}_{year}.csv", build)
