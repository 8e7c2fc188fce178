# tests/test_exports.py

from io import StringIO
from datetime import date
import pandas as pd
import pytest

from bcadmin.pipeline.schema import DAILY_HEADERS, MASTER_HEADERS


def test_templates_contain_only_the_header_row(seeded_columns):
    from bcadmin.exports import template_csv

    name, text = template_csv('daily')
    assert name == 'daily_template.csv'
    assert text.splitlines() == [','.join(DAILY_HEADERS)]

    assert template_csv('master')[1].splitlines() == [','.join(MASTER_HEADERS)]

    commission_header = template_csv('commission')[1].splitlines()[0].split(',')
    assert commission_header[:3] == ['AGENT ID', 'STATE_NAME', 'ZONE_NAME']
    assert commission_header[-3:] == ['NET COMMISSION', 'BC_COMM', 'CORP_COMM']


def test_unknown_template_is_refused(app_with_db):
    from bcadmin.exports import template_csv

    with pytest.raises(ValueError):
        template_csv('payroll')


def test_agent_export_joins_device_locations(roster):
    from bcadmin.exports import export_agents
    from bcadmin.models import UploadLog

    name, text, count = export_agents()
    frame = pd.read_csv(StringIO(text), dtype=str, keep_default_na=False).set_index('agent_id')

    assert name.startswith('agents_with_devices_')
    assert count == 3
    assert frame.loc['A1', 'device_branch'] == 'Main'
    assert frame.loc['A1', 'device_region_zone'] == 'South'
    assert frame.loc['A3', 'device_branch'] == 'N/A'

    log = UploadLog.query.one()
    assert (log.file_type, log.upload_mode, log.rows_count, log.status) == ('EXPORT_AGENTS', 'EXPORT', 3, 'SUCCESS')


def test_agent_export_without_agents_fails_and_is_logged(app_with_db):
    from bcadmin.exports import export_agents
    from bcadmin.models import UploadLog

    with pytest.raises(LookupError):
        export_agents()
    log = UploadLog.query.one()
    assert log.status == 'FAILED'
    assert log.error_message == "No agents found"


def test_daily_export_filters_by_date_range(roster):
    from bcadmin import db
    from bcadmin.exports import export_daily_performance
    from bcadmin.models import DailyPerformance

    for day in (1, 2, 3):
        db.session.add(DailyPerformance(date=date(2024, 3, day), device_id='0123456789', deposit_count=day))
    db.session.commit()

    name, text, count = export_daily_performance(date(2024, 3, 2), date(2024, 3, 3))
    frame = pd.read_csv(StringIO(text))

    assert name == 'daily_performance_2024-03-02_to_2024-03-03.csv'
    assert count == 2
    assert frame['deposit_count'].tolist() == [2, 3]


def test_commission_and_device_exports(roster):
    from bcadmin import db
    from bcadmin.exports import export_commissions, export_devices
    from bcadmin.models import Commission, UploadLog

    db.session.add(Commission(agent_id='A1', month=3, year=2024, bc_comm=1000, corp_comm=0, net_commission=1000,
                              tds_percent=2, tds_amount=20, agent_net_payable=980))
    db.session.commit()

    name, text, count = export_commissions(3, 2024)
    assert name == 'commissions_3_2024.csv'
    assert count == 1
    assert pd.read_csv(StringIO(text))['agent_net_payable'].tolist() == [980.0]

    assert export_commissions(4, 2024)[2] == 0
    assert export_devices()[2] == 3
    assert [log.file_type for log in UploadLog.query.order_by(UploadLog.id).all()] == [
        'EXPORT_COMMISSIONS', 'EXPORT_COMMISSIONS', 'EXPORT_DEVICES']
