# ==============================================================================
# bcadmin/pipeline/procedures.py
# ------------------------------------------------------------------------------
# Atomic bulk writes. Each procedure runs in a single session transaction:
# it commits everything or rolls back and re-raises.
# ==============================================================================

import logging
from bcadmin import db
from bcadmin.models import Agent, Device, DailyPerformance, Commission

_COMMISSION_COLUMNS = set(Commission.__table__.columns.keys()) - {'id', 'month', 'year', 'approved',
                                                                  'approved_at', 'approved_by', 'created_at'}


def daily_upload(performance_data, upload_date):
    """
    Replaces every daily performance row for `upload_date` with `performance_data`.
    Devices referenced for the first time are created.

    Returns:
        dict: {'upload_date', 'inserted_rows', 'created_devices'}
    """
    try:
        known_devices = {d for (d,) in db.session.query(Device.device_id).all()}
        created_devices = 0

        DailyPerformance.query.filter_by(date=upload_date).delete()

        for row in performance_data:
            device_id = row['device_id']
            if device_id not in known_devices:
                db.session.add(Device(device_id=device_id, state=row.get('state'), region=row.get('zone')))
                known_devices.add(device_id)
                created_devices += 1
        # Devices must exist before the rows that reference them
        db.session.flush()

        for row in performance_data:
            db.session.add(DailyPerformance(date=upload_date, **row))

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logging.info(f"daily_upload: {len(performance_data)} rows for {upload_date}, {created_devices} new devices.")
    return {
        'upload_date': upload_date.isoformat(),
        'inserted_rows': len(performance_data),
        'created_devices': created_devices,
    }


def commission_upload(commission_data, upload_month, upload_year):
    """
    Deletes the period's commission records and inserts `commission_data`.

    Returns:
        dict: {'inserted_count'}
    """
    try:
        Commission.query.filter_by(month=upload_month, year=upload_year).delete()

        for row in commission_data:
            values = {key: value for key, value in row.items() if key in _COMMISSION_COLUMNS}
            db.session.add(Commission(month=upload_month, year=upload_year, approved=False, **values))

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logging.info(f"commission_upload: {len(commission_data)} records for {upload_year}-{upload_month}.")
    return {'inserted_count': len(commission_data)}


def master_sync(master_data, sync_mode):
    """
    Upserts devices and agents from a normalized roster. In 'full' mode every
    active agent missing from the roster is deactivated.

    Each row is a dict with agent_id, agent_name, joining_date (date),
    device_id, branch_name, district, state, region.

    Returns:
        dict: {'added_agents', 'updated_agents', 'deactivated_agents'}
    """
    added = updated = deactivated = 0
    try:
        devices = {d.device_id: d for d in Device.query.all()}
        agents = {a.agent_id: a for a in Agent.query.all()}

        for row in master_data:
            device = devices.get(row['device_id'])
            if device is None:
                device = Device(device_id=row['device_id'])
                db.session.add(device)
                devices[device.device_id] = device
            device.branch_name = row.get('branch_name')
            device.district = row.get('district')
            device.state = row.get('state')
            device.region = row.get('region')

            agent = agents.get(row['agent_id'])
            if agent is None:
                agent = Agent(agent_id=row['agent_id'])
                db.session.add(agent)
                agents[agent.agent_id] = agent
                added += 1
            else:
                updated += 1
            agent.agent_name = row['agent_name']
            agent.joining_date = row['joining_date']
            agent.assigned_device_id = row['device_id']
            agent.active_status = True

        if sync_mode == 'full':
            roster_ids = {row['agent_id'] for row in master_data}
            for agent_id, agent in agents.items():
                if agent_id not in roster_ids and agent.active_status:
                    agent.active_status = False
                    deactivated += 1

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logging.info(f"master_sync ({sync_mode}): {added} added, {updated} updated, {deactivated} deactivated.")
    return {'added_agents': added, 'updated_agents': updated, 'deactivated_agents': deactivated}
