# tests/test_sync.py

from io import StringIO
from datetime import date
import pytest

from bcadmin.pipeline.schema import MASTER_HEADERS

HEADER = ','.join(MASTER_HEADERS)


def roster_csv(*rows):
    return HEADER + '\n' + '\n'.join(rows) + '\n'


A1 = "A1,Asha Rao,01-04-2023,123456789,Main,North,KA,South"
A2 = "A2,Bala K,15-06-2022,0987654321,Market,East,KA,South"
A4 = "A4,Deepa,02-01-2024,0444444444,Hill,West,KA,North"


def sync(csv, mode='incremental', confirm_full=False):
    from bcadmin.pipeline.sync import run_master_sync
    return run_master_sync(StringIO(csv), mode, confirm_full=confirm_full, filename='roster.csv')


def test_nine_character_device_ids_get_their_leading_zero():
    from bcadmin.pipeline.sync import normalize_device_id

    assert normalize_device_id('123456789') == '0123456789'
    assert normalize_device_id(' 0123456789 ') == '0123456789'
    assert normalize_device_id("'123456789") == '0123456789'
    assert normalize_device_id('ABC') == 'ABC'


def test_incremental_sync_adds_agents_devices_and_accounts(app_with_db):
    from bcadmin.models import Agent, Device, IdentityAccount, UploadLog

    outcome = sync(roster_csv(A1, A2))

    assert outcome['status'] == 'success'
    assert outcome['result'] == {'added_agents': 2, 'updated_agents': 0, 'deactivated_agents': 0}
    assert outcome['provisioning']['created'] == 2
    assert outcome['message'] == "Success! DB Sync: 2 added, 0 updated. Auth Sync: 2 created, 0 existing."

    asha = Agent.query.filter_by(agent_id='A1').one()
    assert asha.agent_name == 'Asha Rao'
    assert asha.joining_date == date(2023, 4, 1)
    assert asha.assigned_device_id == '0123456789'
    assert asha.active_status is True
    assert Device.query.filter_by(device_id='0123456789').one().branch_name == 'Main'

    account = IdentityAccount.query.filter_by(email='A1@app.local').one()
    assert account.must_change_password is True
    assert account.check_password('Welcome@123')

    log = UploadLog.query.one()
    assert (log.file_type, log.upload_mode, log.status) == ('MASTER', 'INCREMENTAL', 'SUCCESS')


def test_resync_updates_existing_agents_and_accounts(app_with_db):
    from bcadmin.models import Agent, IdentityAccount

    sync(roster_csv(A1))
    outcome = sync(roster_csv(A1.replace('Asha Rao', 'Asha R'), A4))

    assert outcome['result'] == {'added_agents': 1, 'updated_agents': 1, 'deactivated_agents': 0}
    assert outcome['provisioning']['existing'] == 1
    assert outcome['provisioning']['created'] == 1
    assert Agent.query.filter_by(agent_id='A1').one().agent_name == 'Asha R'
    assert IdentityAccount.query.count() == 2


def test_text_marked_roster_cells_are_stored_clean(app_with_db):
    from bcadmin.models import Agent, Device

    outcome = sync(roster_csv("'A1,Asha Rao,01-04-2023,'123456789,'Main,North,KA,South"))

    assert outcome['status'] == 'success'
    asha = Agent.query.filter_by(agent_id='A1').one()
    assert asha.assigned_device_id == '0123456789'
    assert asha.must_change_password is True
    assert Device.query.one().branch_name == 'Main'


def test_incremental_sync_reactivates_listed_agents(roster):
    from bcadmin.models import Agent
    from bcadmin.agents import toggle_agent_status

    toggle_agent_status('A1')
    sync(roster_csv(A1))

    assert Agent.query.filter_by(agent_id='A1').one().active_status is True


def test_full_sync_requires_confirmation(roster):
    from bcadmin.models import Agent, UploadLog

    outcome = sync(roster_csv(A1), mode='full')

    assert outcome['status'] == 'confirmation_required'
    assert Agent.query.filter_by(active_status=True).count() == 3
    assert UploadLog.query.count() == 0


def test_full_sync_deactivates_agents_missing_from_the_file(roster):
    from bcadmin.models import Agent, UploadLog

    outcome = sync(roster_csv(A1, A4), mode='full', confirm_full=True)

    assert outcome['result'] == {'added_agents': 1, 'updated_agents': 1, 'deactivated_agents': 2}
    assert outcome['message'].startswith("Success! DB Sync: 1 added, 1 updated, 2 deactivated.")
    active = {a.agent_id for a in Agent.query.filter_by(active_status=True).all()}
    assert active == {'A1', 'A4'}
    assert Agent.query.count() == 4
    assert UploadLog.query.one().upload_mode == 'FULL'


def test_invalid_rows_block_the_sync(app_with_db):
    from bcadmin.models import Agent, UploadLog

    outcome = sync(roster_csv(A1, A2.replace('15-06-2022', '31-06-2022')))

    assert outcome['status'] == 'failed'
    assert outcome['errors'][0]['row'] == 3
    assert Agent.query.count() == 0
    assert UploadLog.query.one().status == 'FAILED'


def test_wrong_roster_headers_are_rejected(app_with_db):
    outcome = sync("Agent id,Agent Name\nA1,Asha\n")

    assert outcome['status'] == 'failed'
    assert outcome['message'] == "Invalid header format. Download latest template."


def test_unknown_mode_is_a_programming_error(app_with_db):
    with pytest.raises(ValueError):
        sync(roster_csv(A1), mode='partial')


def test_provisioning_failures_do_not_undo_the_roster(app_with_db):
    from bcadmin.identity import IdentityDirectory, IdentityError
    from bcadmin.pipeline.sync import run_master_sync
    from bcadmin.models import Agent

    class FlakyDirectory(IdentityDirectory):
        def create_account(self, email, password=None, role='agent'):
            if email.startswith('A2@'):
                raise IdentityError("directory unavailable")
            return super().create_account(email, password, role)

    outcome = run_master_sync(StringIO(roster_csv(A1, A2)), 'incremental', filename='roster.csv',
                              directory=FlakyDirectory())

    assert outcome['status'] == 'success'
    assert outcome['provisioning']['created'] == 1
    assert outcome['provisioning']['failed'] == 1
    assert outcome['provisioning']['errors'] == ["Failed to create A2: directory unavailable"]
    assert outcome['message'].endswith("Auth Sync: 1 created, 0 existing, 1 failed.")
    assert Agent.query.count() == 2
