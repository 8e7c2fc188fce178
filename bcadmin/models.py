# ==============================================================================
# bcadmin/models.py
# ------------------------------------------------------------------------------
# Defines the database schema using SQLAlchemy ORM models.
# ==============================================================================

from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from bcadmin import db


class ColumnSetting(db.Model):
    """
    One configurable mapping rule between a commission file header and an
    internal commission field. Managed via the column settings endpoints and
    read fresh at the start of every commission upload.
    """
    __tablename__ = 'commission_column_setting'
    id = db.Column(db.Integer, primary_key=True)
    column_key = db.Column(db.String(64), nullable=False, index=True)
    csv_header_name = db.Column(db.String(128), nullable=False)
    field_kind = db.Column(db.String(16), nullable=False, default='text')  # 'integer', 'decimal', 'text'
    is_required = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    display_order = db.Column(db.Integer, nullable=False, default=100)

    def __repr__(self):
        return f'<ColumnSetting {self.column_key} <- "{self.csv_header_name}">'

    def to_dict(self):
        return {
            'id': self.id,
            'column_key': self.column_key,
            'csv_header_name': self.csv_header_name,
            'field_kind': self.field_kind,
            'is_required': self.is_required,
            'is_active': self.is_active,
            'display_order': self.display_order,
        }


class Device(db.Model):
    """A field device. Created by master sync or implicitly by a daily upload."""
    __tablename__ = 'device'
    id = db.Column(db.Integer, primary_key=True)
    device_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    branch_name = db.Column(db.String(128))
    district = db.Column(db.String(128))
    state = db.Column(db.String(128))
    region = db.Column(db.String(128))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Device {self.device_id}>'


class Agent(db.Model):
    """
    A banking-correspondent agent. Agents are never deleted, only deactivated.
    """
    __tablename__ = 'agent'
    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    agent_name = db.Column(db.String(128), nullable=False)
    joining_date = db.Column(db.Date)
    assigned_device_id = db.Column(db.String(64), db.ForeignKey('device.device_id'), nullable=True)
    active_status = db.Column(db.Boolean, nullable=False, default=True)
    must_change_password = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    device = db.relationship('Device', foreign_keys=[assigned_device_id])

    def __repr__(self):
        return f'<Agent {self.agent_id}: {self.agent_name}>'


class DailyPerformance(db.Model):
    """One device's transaction summary for one day."""
    __tablename__ = 'daily_performance'
    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    device_id = db.Column(db.String(64), db.ForeignKey('device.device_id'), nullable=False, index=True)
    state = db.Column(db.String(128))
    zone = db.Column(db.String(128))
    sol_id = db.Column(db.String(64))
    agent_name = db.Column(db.String(128))
    account_number = db.Column(db.String(64))
    deposit_count = db.Column(db.Integer, default=0)
    deposit_amount = db.Column(db.Float, default=0)
    withdrawal_count = db.Column(db.Integer, default=0)
    withdrawal_amount = db.Column(db.Float, default=0)
    aeps_onus_count = db.Column(db.Integer, default=0)
    aeps_onus_amount = db.Column(db.Float, default=0)
    aeps_offus_count = db.Column(db.Integer, default=0)
    aeps_offus_amount = db.Column(db.Float, default=0)
    rupay_card_count = db.Column(db.Integer, default=0)
    rupay_card_amount = db.Column(db.Float, default=0)
    other_card_count = db.Column(db.Integer, default=0)
    other_card_amount = db.Column(db.Float, default=0)
    remittance_count = db.Column(db.Integer, default=0)
    remittance_amount = db.Column(db.Float, default=0)
    enrollment_count = db.Column(db.Integer, default=0)
    pmjby_count = db.Column(db.Integer, default=0)
    pmsby_count = db.Column(db.Integer, default=0)
    apy_count = db.Column(db.Integer, default=0)
    online_account_count = db.Column(db.Integer, default=0)
    bc_name = db.Column(db.String(128))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('device_id', 'date', name='_device_date_uc'),)

    def __repr__(self):
        return f'<DailyPerformance {self.device_id} {self.date}>'


class Commission(db.Model):
    """
    One agent's commission for one month. Created in bulk by a commission
    upload (replacing the period) and afterwards only touched by approval.
    """
    __tablename__ = 'commission'
    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.String(64), db.ForeignKey('agent.agent_id'), nullable=False, index=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)

    # Agent details as reported by the bank
    state_name = db.Column(db.String(128))
    zone_name = db.Column(db.String(128))
    district = db.Column(db.String(128))
    mandal = db.Column(db.String(128))
    base_branch = db.Column(db.String(128))
    sol_id = db.Column(db.String(64))
    village_name = db.Column(db.String(128))
    bca_name = db.Column(db.String(128))
    agent_id_bank = db.Column(db.String(64))
    settlement_account = db.Column(db.String(64))
    date_of_joining = db.Column(db.String(32))
    device_id = db.Column(db.String(64))
    company_name = db.Column(db.String(128))
    location_type = db.Column(db.String(64))

    # Account opening
    non_funded_acct_opn_count = db.Column(db.Integer, default=0)
    non_funded_comm_acct_opn = db.Column(db.Float, default=0)
    funded_acct_opn_count = db.Column(db.Integer, default=0)
    funded_comm_acct_opn = db.Column(db.Float, default=0)
    total_acct_opn_count = db.Column(db.Integer, default=0)
    total_comm_acct_opn = db.Column(db.Float, default=0)

    # Financial transactions and remittance
    financial_txn_count = db.Column(db.Integer, default=0)
    financial_txn_amount = db.Column(db.Float, default=0)
    financial_txn_comm = db.Column(db.Float, default=0)
    remittance_count = db.Column(db.Integer, default=0)
    remittance_comm = db.Column(db.Float, default=0)

    # Login activity
    login_days = db.Column(db.Integer, default=0)
    fixed_commission = db.Column(db.Float, default=0)

    # Government schemes
    apy_count = db.Column(db.Integer, default=0)
    apy_comm = db.Column(db.Float, default=0)
    pmsby_count = db.Column(db.Integer, default=0)
    pmsby_comm = db.Column(db.Float, default=0)
    pmjby_count = db.Column(db.Integer, default=0)
    pmjby_comm = db.Column(db.Float, default=0)

    # Incentives and Re-KYC
    sss_incentive = db.Column(db.Float, default=0)
    rekyc_count = db.Column(db.Integer, default=0)
    rekyc_comm = db.Column(db.Float, default=0)

    # Totals
    bc_comm = db.Column(db.Float, default=0)
    corp_comm = db.Column(db.Float, default=0)
    net_commission = db.Column(db.Float, default=0)
    tds_percent = db.Column(db.Float, default=0)
    tds_amount = db.Column(db.Float, default=0)
    agent_net_payable = db.Column(db.Float, default=0)

    # Approval
    approved = db.Column(db.Boolean, nullable=False, default=False)
    approved_at = db.Column(db.DateTime, nullable=True)
    approved_by = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('agent_id', 'month', 'year', name='_agent_month_year_uc'),)

    def __repr__(self):
        return f'<Commission {self.agent_id} {self.year}-{self.month}>'


class UploadLog(db.Model):
    """Append-only audit row for every upload and export."""
    __tablename__ = 'upload_log'
    id = db.Column(db.Integer, primary_key=True)
    file_type = db.Column(db.String(64), nullable=False)
    file_name = db.Column(db.String(256), nullable=False)
    upload_mode = db.Column(db.String(32), nullable=False)
    rows_count = db.Column(db.Integer, default=0)
    status = db.Column(db.String(16), nullable=False)  # 'SUCCESS' or 'FAILED'
    error_message = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, index=True, default=datetime.utcnow)

    def __repr__(self):
        return f'<UploadLog {self.id}: {self.file_type} {self.status}>'

    def to_dict(self):
        return {
            'id': self.id,
            'file_type': self.file_type,
            'file_name': self.file_name,
            'upload_mode': self.upload_mode,
            'rows_count': self.rows_count,
            'status': self.status,
            'error_message': self.error_message,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class IdentityAccount(db.Model):
    """
    Login account for an agent, keyed by the derived email address.
    """
    __tablename__ = 'identity_account'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(256), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(32), nullable=False, default='agent')
    must_change_password = db.Column(db.Boolean, nullable=False, default=True)
    email_confirmed = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f'<IdentityAccount {self.email}>'
