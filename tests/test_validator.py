# tests/test_validator.py

from io import StringIO
from types import SimpleNamespace
from datetime import date

from bcadmin.pipeline.ingest import disambiguate_headers, read_tabular_file
from bcadmin.pipeline.schema import DAILY_HEADERS, MASTER_HEADERS
from bcadmin.pipeline.validator import (coerce_value, validate_headers_dynamic, validate_headers_exact,
                                        validate_and_process_row, validate_commission_rows,
                                        check_duplicate_agents, validate_daily_rows, normalize_daily_row,
                                        parse_joining_date, validate_master_rows)


def setting(column_key, header, kind, required=False):
    return SimpleNamespace(column_key=column_key, csv_header_name=header, field_kind=kind, is_required=required)


SETTINGS = [
    setting('non_funded_comm_acct_opn', 'NON_FUNDED_COMM_ACCT_OPN', 'decimal'),
    setting('funded_comm_acct_opn', 'FUNDED_COMM_ACCT_OPN', 'decimal'),
    setting('total_comm_acct_opn', 'TOTAL_COMM_ACCT_OPN', 'decimal'),
    setting('login_days', 'Login days', 'integer'),
    setting('sol_id', 'SOL_ID', 'text'),
    setting('net_commission', 'NET COMMISSION', 'decimal', required=True),
    setting('bc_comm', 'BC_COMM', 'decimal', required=True),
    setting('corp_comm', 'CORP_COMM', 'decimal', required=True),
]


def commission_row(agent_id='A1', bc='100', corp='50', net='150'):
    return {'AGENT ID': agent_id, 'BC_COMM': bc, 'CORP_COMM': corp, 'NET COMMISSION': net}


# --- Ingestion ---

def test_repeated_account_opening_headers_keep_every_value():
    csv = ("AGENT ID,COMM_ACCT_OPN,COMM_ACCT_OPN,COMM_ACCT_OPN,BC_COMM,CORP_COMM,NET COMMISSION\n"
           "A1,10,20,30,100,50,150\n")
    headers, rows = read_tabular_file(StringIO(csv), 'commission.csv')

    assert headers[1:4] == ['NON_FUNDED_COMM_ACCT_OPN', 'FUNDED_COMM_ACCT_OPN', 'TOTAL_COMM_ACCT_OPN']
    result = validate_and_process_row(rows[0], 0, SETTINGS, {'A1'})
    assert result['valid']
    assert result['processed']['non_funded_comm_acct_opn'] == 10.0
    assert result['processed']['funded_comm_acct_opn'] == 20.0
    assert result['processed']['total_comm_acct_opn'] == 30.0


def test_other_repeated_headers_are_suffixed():
    assert disambiguate_headers(['A', 'B', 'A', 'A']) == ['A', 'B', 'A.1', 'A.2']


def test_headers_are_trimmed_and_blank_rows_skipped():
    csv = " AGENT ID , BC_COMM \nA1,10\n,\nA2,20\n"
    headers, rows = read_tabular_file(StringIO(csv), 'c.csv')

    assert headers == ['AGENT ID', 'BC_COMM']
    assert [r['AGENT ID'] for r in rows] == ['A1', 'A2']


def test_empty_file_yields_no_headers():
    assert read_tabular_file(StringIO(''), 'empty.csv') == ([], [])


# --- Value coercion ---

def test_coerce_value_by_field_kind():
    assert coerce_value('1,234.50', 'decimal') == 1234.5
    assert coerce_value('', 'decimal') == 0.0
    assert coerce_value('abc', 'decimal') == 0.0
    assert coerce_value('nan', 'decimal') == 0.0
    assert coerce_value('12', 'integer') == 12
    assert coerce_value('x', 'integer') == 0
    assert coerce_value("'0012345", 'text') == '0012345'
    assert coerce_value('   ', 'text') is None


# --- Header validation ---

def test_dynamic_headers_accept_whitespace_around_names():
    headers = [' AGENT ID', 'BC_COMM ', 'CORP_COMM', 'NET COMMISSION']
    assert validate_headers_dynamic(headers, SETTINGS)['valid']


def test_dynamic_headers_report_each_missing_required_header():
    result = validate_headers_dynamic(['BC_COMM'], SETTINGS)

    messages = [e['message'] for e in result['errors']]
    assert not result['valid']
    assert 'Missing required header: "AGENT ID"' in messages
    assert 'Missing required header: "NET COMMISSION"' in messages
    assert 'Missing required header: "CORP_COMM"' in messages
    assert 'Missing required header: "BC_COMM"' not in messages


def test_exact_headers_are_order_sensitive():
    assert validate_headers_exact(list(MASTER_HEADERS), MASTER_HEADERS)['valid']

    swapped = list(MASTER_HEADERS)
    swapped[0], swapped[1] = swapped[1], swapped[0]
    result = validate_headers_exact(swapped, MASTER_HEADERS)
    assert not result['valid']
    assert 'out of order' in result['errors'][0]['message']


def test_exact_headers_report_missing_and_unexpected():
    headers = DAILY_HEADERS[:-1] + ['Extra']
    messages = [e['message'] for e in validate_headers_exact(headers, DAILY_HEADERS)['errors']]

    assert messages == ['Missing headers: BCname', 'Unexpected headers: Extra']


# --- Commission rows ---

def test_net_commission_within_tolerance_passes():
    assert validate_and_process_row(commission_row(net='150.005'), 0, SETTINGS, {'A1'})['valid']
    assert validate_and_process_row(commission_row(net='150'), 0, SETTINGS, {'A1'})['valid']


def test_net_commission_mismatch_is_reported_with_row_number():
    result = validate_and_process_row(commission_row(net='151'), 3, SETTINGS, {'A1'})

    assert not result['valid']
    assert result['errors'] == [{
        'row': 5,
        'message': "NET COMMISSION mismatch. Expected 150.00 (BC_COMM + CORP_COMM), got 151.00"
    }]


def test_net_commission_just_outside_tolerance_fails():
    assert not validate_and_process_row(commission_row(net='150.02'), 0, SETTINGS, {'A1'})['valid']


def test_unknown_and_missing_agent_ids():
    unknown = validate_and_process_row(commission_row(agent_id='ZZ'), 0, SETTINGS, {'A1'})
    assert unknown['errors'][0]['message'] == 'Agent ID "ZZ" does not exist in system'

    missing = validate_and_process_row(commission_row(agent_id='  '), 0, SETTINGS, {'A1'})
    assert missing['errors'] == [{'row': 2, 'message': "Missing AGENT ID"}]


def test_leading_apostrophe_is_stripped_from_agent_id():
    result = validate_and_process_row(commission_row(agent_id="'A1"), 0, SETTINGS, {'A1'})

    assert result['valid']
    assert result['processed']['agent_id'] == 'A1'


def test_duplicate_agent_ids_name_both_rows():
    rows = [commission_row('A1'), commission_row('A2'), commission_row('A3'),
            commission_row('A4'), commission_row('A1')]

    assert check_duplicate_agents(rows) == [
        {'row': 6, 'message': 'Duplicate AGENT ID "A1" found at rows 2 and 6'}
    ]


def test_row_errors_are_collected_across_the_file_and_sorted():
    rows = [commission_row('A1', net='999'), commission_row('A2'), commission_row('ZZ'), commission_row('A2')]
    processed, errors = validate_commission_rows(rows, SETTINGS, {'A1', 'A2'})

    assert [e['row'] for e in errors] == [2, 4, 5]
    assert len(processed) == 2


# --- Daily rows ---

def daily_row(device_id='0123456789', **values):
    row = {header: '' for header in DAILY_HEADERS}
    row.update({'State': 'KA', 'Zone': 'South', 'Deviceid': device_id, 'Deposit_Txn_Count': '3',
                'Deposit_Txn_Amount': '1500.50'})
    row.update(values)
    return row


def test_daily_rows_flag_missing_duplicate_and_negative_values():
    rows = [daily_row(), daily_row(), daily_row(''), daily_row('0987654321', Withdrawal_Txn_Count='-1'),
            daily_row('0555555555', AEPS_Onus_Amt='abc')]
    errors = validate_daily_rows(rows)['errors']

    assert errors == [
        {'row': 3, 'message': 'Duplicate Deviceid "0123456789"'},
        {'row': 4, 'message': "Missing Deviceid"},
        {'row': 5, 'message': 'Negative value not allowed in field "Withdrawal_Txn_Count"'},
        {'row': 6, 'message': 'Invalid numeric value "abc" in field "AEPS_Onus_Amt"'},
    ]


def test_validation_and_normalizing_share_one_number_format():
    row = daily_row(Deposit_Txn_Amount='1,234.50', Deposit_Txn_Count="'1,234", AEPS_Onus_Amt='inf')

    assert validate_daily_rows([row])['errors'] == [
        {'row': 2, 'message': 'Invalid numeric value "inf" in field "AEPS_Onus_Amt"'},
    ]
    assert validate_daily_rows([daily_row(Deposit_Txn_Amount='1,234.50', Deposit_Txn_Count="'1,234")])['valid']

    normalized = normalize_daily_row(row)
    assert normalized['deposit_amount'] == 1234.5
    assert normalized['deposit_count'] == 1234


def test_normalized_daily_row_zero_fills_blank_numbers():
    normalized = normalize_daily_row(daily_row(BCname="'Acme BC"))

    assert normalized['device_id'] == '0123456789'
    assert normalized['deposit_count'] == 3
    assert normalized['deposit_amount'] == 1500.5
    assert normalized['withdrawal_count'] == 0
    assert normalized['remittance_amount'] == 0.0
    assert normalized['bc_name'] == 'Acme BC'
    assert normalized['account_number'] is None


# --- Master rows ---

def master_row(agent_id='A1', joined='01-04-2023', **values):
    row = dict(zip(MASTER_HEADERS, [agent_id, 'Asha', joined, '123456789', 'Main', 'North', 'KA', 'South']))
    row.update(values)
    return row


def test_joining_date_must_be_a_real_calendar_date():
    assert parse_joining_date('29-02-2024') == date(2024, 2, 29)
    assert parse_joining_date('31-02-2024') is None
    assert parse_joining_date('2024-02-01') is None


def test_master_rows_report_missing_fields_duplicates_and_dates():
    rows = [master_row(), master_row('A1'), master_row('A2', joined='31-02-2024'),
            master_row('A3', **{'Agent Name': ''})]
    errors = validate_master_rows(rows)['errors']

    assert [e['row'] for e in errors] == [3, 4, 5]
    assert errors[0]['message'] == 'Duplicate Agent id "A1"'
    assert 'DD-MM-YYYY' in errors[1]['message']
    assert errors[2]['message'] == 'Missing required field(s): Agent Name'
