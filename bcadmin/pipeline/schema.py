# ==============================================================================
# bcadmin/pipeline/schema.py
# ------------------------------------------------------------------------------
# Defines the expected structure of every uploaded file type.
# The validators and the bulk procedures read their layouts from here.
# ==============================================================================

# --- Commission files ---

AGENT_ID_HEADER = 'AGENT ID'

# Legacy commission sheets repeat this header three times: non-funded, funded
# and total account-opening commission, in that order.
DUPLICATE_HEADER_ALIASES = {
    'COMM_ACCT_OPN': ['NON_FUNDED_COMM_ACCT_OPN', 'FUNDED_COMM_ACCT_OPN', 'TOTAL_COMM_ACCT_OPN'],
}

FIELD_KIND_INTEGER = 'integer'
FIELD_KIND_DECIMAL = 'decimal'
FIELD_KIND_TEXT = 'text'
FIELD_KINDS = (FIELD_KIND_INTEGER, FIELD_KIND_DECIMAL, FIELD_KIND_TEXT)

# Monetary keys that do not follow the '_comm' / '_amount' naming
MONETARY_FIELDS = {'tds_percent', 'tds_amount', 'agent_net_payable', 'sss_incentive', 'fixed_commission'}

# Derived by the commission calculator, never taken from the file
CALCULATED_FIELDS = ('tds_percent', 'tds_amount', 'agent_net_payable')

COMMISSION_FIELDS = [
    'state_name', 'zone_name', 'district', 'mandal', 'base_branch', 'sol_id',
    'village_name', 'bca_name', 'agent_id_bank', 'settlement_account',
    'date_of_joining', 'device_id', 'company_name', 'location_type',
    'non_funded_acct_opn_count', 'non_funded_comm_acct_opn',
    'funded_acct_opn_count', 'funded_comm_acct_opn',
    'total_acct_opn_count', 'total_comm_acct_opn',
    'financial_txn_count', 'financial_txn_amount', 'financial_txn_comm',
    'remittance_count', 'remittance_comm', 'login_days', 'fixed_commission',
    'apy_count', 'apy_comm', 'pmsby_count', 'pmsby_comm', 'pmjby_count', 'pmjby_comm',
    'sss_incentive', 'rekyc_count', 'rekyc_comm',
    'bc_comm', 'corp_comm', 'net_commission',
]

# (column_key, csv_header_name, is_required) in upstream sheet order
DEFAULT_COLUMN_LAYOUT = [
    ('state_name', 'STATE_NAME', False),
    ('zone_name', 'ZONE_NAME', False),
    ('district', 'DIST', False),
    ('mandal', 'Mandal', False),
    ('base_branch', 'BASE_BRANCH', False),
    ('sol_id', 'SOL_ID', False),
    ('village_name', 'VILLAGE_NAME', False),
    ('bca_name', 'BCA_NAME', False),
    ('agent_id_bank', 'AGENT ID BANK', False),
    ('settlement_account', 'SETT_ACCNO', False),
    ('date_of_joining', 'DATE OF JOINING', False),
    ('device_id', 'Device ID', False),
    ('company_name', 'Company Name', False),
    ('location_type', 'Location Type', False),
    ('non_funded_acct_opn_count', 'NON FUNDED_NO_OF_ACCT_OPN', False),
    ('non_funded_comm_acct_opn', 'NON_FUNDED_COMM_ACCT_OPN', False),
    ('funded_acct_opn_count', 'FUNDED_NO_OF_ACCT_OPN', False),
    ('funded_comm_acct_opn', 'FUNDED_COMM_ACCT_OPN', False),
    ('total_acct_opn_count', 'TOTAL_NO_OF_ACCT_OPN', False),
    ('total_comm_acct_opn', 'TOTAL_COMM_ACCT_OPN', False),
    ('financial_txn_count', 'FINANCIAL_TXN', False),
    ('financial_txn_amount', 'TXN_AMT', False),
    ('financial_txn_comm', 'TXN_COMM', False),
    ('remittance_count', 'Remmittance count', False),
    ('remittance_comm', 'remmittance/Rs10', False),
    ('login_days', 'Login days', False),
    ('fixed_commission', 'fixd commission', False),
    ('apy_count', 'APY COUNT', False),
    ('apy_comm', 'APY COMM', False),
    ('pmsby_count', 'SBY COUNT', False),
    ('pmsby_comm', 'SBY COMM', False),
    ('pmjby_count', 'JBY COUNT', False),
    ('pmjby_comm', 'JBY COMM', False),
    ('sss_incentive', '10 % INCENTIVE for SSS', False),
    ('rekyc_count', 'Re-KYC Count', False),
    ('rekyc_comm', 'Re-KYC Comm', False),
    ('net_commission', 'NET COMMISSION', True),
    ('bc_comm', 'BC_COMM', True),
    ('corp_comm', 'CORP_COMM', True),
]

# --- Daily performance files ---

# header -> internal field, in template order
DAILY_COLUMNS = [
    ('State', 'state'),
    ('Zone', 'zone'),
    ('Sol_Id', 'sol_id'),
    ('Deviceid', 'device_id'),
    ('BC_Agent_Name', 'agent_name'),
    ('OD_Account_Number', 'account_number'),
    ('Deposit_Txn_Count', 'deposit_count'),
    ('Deposit_Txn_Amount', 'deposit_amount'),
    ('Withdrawal_Txn_Count', 'withdrawal_count'),
    ('Withdrawal_Txn_Amount', 'withdrawal_amount'),
    ('AEPS_Onus_Count', 'aeps_onus_count'),
    ('AEPS_Onus_Amt', 'aeps_onus_amount'),
    ('AEPS_Offus_Count', 'aeps_offus_count'),
    ('AEPS_Offus_Amt', 'aeps_offus_amount'),
    ('Rupay_Card_Count', 'rupay_card_count'),
    ('Rupay_Card_Amount', 'rupay_card_amount'),
    ('Other_Card_Count', 'other_card_count'),
    ('Other_Card_Amount', 'other_card_amount'),
    ('Remittance_Count', 'remittance_count'),
    ('Remittance_Amt', 'remittance_amount'),
    ('Enrollment_Count', 'enrollment_count'),
    ('PMJBY_Count', 'pmjby_count'),
    ('PMSBY_Count', 'pmsby_count'),
    ('APY_Count', 'apy_count'),
    ('Onlineaccount count', 'online_account_count'),
    ('BCname', 'bc_name'),
]
DAILY_HEADERS = [header for header, _ in DAILY_COLUMNS]
DAILY_DEVICE_HEADER = 'Deviceid'

DAILY_NUMERIC_HEADERS = DAILY_HEADERS[6:25]

# --- Master roster files ---

MASTER_AGENT_ID = 'Agent id'
MASTER_AGENT_NAME = 'Agent Name'
MASTER_JOINING_DATE = 'DATE OF JOINING'
MASTER_DEVICE_ID = 'DLM_DeviceId'

MASTER_HEADERS = [
    MASTER_AGENT_ID, MASTER_AGENT_NAME, MASTER_JOINING_DATE, MASTER_DEVICE_ID,
    'Branch Name', 'District', 'State', 'Region',
]
MASTER_REQUIRED_FIELDS = [MASTER_AGENT_ID, MASTER_AGENT_NAME, MASTER_JOINING_DATE, MASTER_DEVICE_ID]
MASTER_DATE_FORMAT = '%d-%m-%Y'

SYNC_MODES = ('incremental', 'full')
