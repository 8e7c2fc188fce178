# ==============================================================================
# bcadmin/main/forms.py
# ------------------------------------------------------------------------------
# Defines request forms using Flask-WTF for input validation.
# ==============================================================================

from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired, FileAllowed
from wtforms import StringField, IntegerField, SelectField, BooleanField, DateField
from wtforms.validators import DataRequired, InputRequired, NumberRange, Optional

from bcadmin.pipeline.schema import FIELD_KINDS, SYNC_MODES


class ApiForm(FlaskForm):
    """Base for the JSON endpoint forms; no session means no CSRF token to hand out."""
    class Meta:
        csrf = False


class CommissionUploadForm(ApiForm):
    """Commission file for one month."""
    file = FileField('Commission file', validators=[
        FileRequired(message="No file selected."),
        FileAllowed(['csv', 'xlsx', 'xls'], message="Upload a .csv, .xlsx or .xls file.")
    ])
    month = IntegerField('Month', validators=[InputRequired(message="Please select month and year first"),
                                              NumberRange(min=1, max=12, message="Invalid month selected")])
    year = IntegerField('Year', validators=[InputRequired(message="Please select month and year first")])
    confirm_replace = BooleanField('Replace existing data')


class DailyUploadForm(ApiForm):
    """Daily performance CSV for one date."""
    file = FileField('Daily file', validators=[
        FileRequired(message="No file selected."),
        FileAllowed(['csv'], message="Upload a .csv file.")
    ])
    upload_date = DateField('Date', validators=[InputRequired(message="Please select a date first.")])
    confirm_replace = BooleanField('Replace existing data')


class MasterSyncForm(ApiForm):
    """Roster CSV and sync mode."""
    file = FileField('Roster file', validators=[
        FileRequired(message="No file selected."),
        FileAllowed(['csv'], message="Upload a .csv file.")
    ])
    mode = SelectField('Mode', choices=[(m, m.title()) for m in SYNC_MODES], default='incremental')
    confirm_full = BooleanField('I understand agents missing from the file will be deactivated')


class ColumnSettingForm(ApiForm):
    """Adds a commission column mapping."""
    column_key = StringField('Column key', validators=[DataRequired(message="Column key is required")])
    csv_header_name = StringField('CSV header', validators=[DataRequired(message="CSV header name is required")])
    field_kind = SelectField('Field kind', choices=[('', 'Infer from key')] + [(k, k) for k in FIELD_KINDS],
                             default='', validators=[Optional()])
    is_required = BooleanField('Required')
    is_active = BooleanField('Active', default=True)
    display_order = IntegerField('Display order', default=100, validators=[Optional()])


class AgentForm(ApiForm):
    """Adds an agent on a free device."""
    agent_id = StringField('Agent ID', validators=[DataRequired(message="This field is required.")])
    agent_name = StringField('Agent name', validators=[DataRequired(message="This field is required.")])
    joining_date = DateField('Joining date', validators=[Optional()])
    device_id = StringField('Device ID', validators=[DataRequired(message="This field is required.")])


class ReplaceAgentForm(ApiForm):
    """New agent taking over the device of an existing one."""
    new_agent_id = StringField('New agent ID', validators=[DataRequired(message="This field is required.")])
    new_agent_name = StringField('New agent name', validators=[DataRequired(message="This field is required.")])
    joining_date = DateField('Joining date', validators=[Optional()])


class ApprovalForm(ApiForm):
    month = IntegerField('Month', validators=[InputRequired(), NumberRange(min=1, max=12)])
    year = IntegerField('Year', validators=[InputRequired()])
    approved_by = StringField('Approved by', default='admin')
