# ==============================================================================
# bcadmin/main/routes.py
# ------------------------------------------------------------------------------
# Defines the admin console endpoints for the main application blueprint.
# Every endpoint answers JSON, except templates and exports which answer CSV.
# ==============================================================================

from datetime import datetime
from functools import wraps
from flask import request, jsonify, current_app, Response
from werkzeug.exceptions import HTTPException

from bcadmin import db
from bcadmin.main import bp
from bcadmin.models import Agent, Device, ColumnSetting
from bcadmin.audit import recent_uploads
from bcadmin.agents import AgentError, add_agent, replace_agent, toggle_agent_status, available_devices
from bcadmin.exports import (TEMPLATE_KINDS, template_csv, export_agents, export_devices,
                             export_daily_performance, export_commissions)
from bcadmin.identity import UnknownAgentError, reset_agent_credentials
from bcadmin.pipeline.engine import (run_commission_upload, run_daily_upload, approve_commissions,
                                     commission_approval_summary, STATUS_OK, STATUS_CONFIRM)
from bcadmin.pipeline.registry import (ColumnSettingError, add_column_setting, update_column_setting,
                                       delete_column_setting)
from bcadmin.pipeline.sync import run_master_sync
from bcadmin.main.forms import (CommissionUploadForm, DailyUploadForm, MasterSyncForm, ColumnSettingForm,
                                AgentForm, ReplaceAgentForm, ApprovalForm)
from bcadmin.main.utils import save_upload, discard_upload, format_outcome

# --- Helper Functions ---

def handle_failures(f):
    """Turns an unexpected exception into a rolled-back session and a generic 500."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except HTTPException:
            raise
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"{request.method} {request.path} failed: {e}", exc_info=True)
            return jsonify(status='failed',
                           message='An unexpected error occurred. Please check the server log.'), 500
    return decorated_function


def form_errors(form):
    errors = [{'message': f"{field}: {message}"} for field, messages in form.errors.items() for message in messages]
    return jsonify(status='failed', message='Invalid request.', errors=errors), 400


def outcome_response(outcome):
    if outcome['status'] == STATUS_OK:
        code = 200
    elif outcome['status'] == STATUS_CONFIRM:
        code = 409
    else:
        code = 400
    return jsonify(format_outcome(outcome)), code


def csv_response(file_name, csv_text):
    return Response(csv_text, mimetype='text/csv',
                    headers={'Content-Disposition': f'attachment; filename={file_name}'})


def agent_dict(agent):
    return {
        'agent_id': agent.agent_id,
        'agent_name': agent.agent_name,
        'joining_date': agent.joining_date.isoformat() if agent.joining_date else None,
        'assigned_device_id': agent.assigned_device_id,
        'active_status': agent.active_status,
        'must_change_password': agent.must_change_password,
    }


def parse_iso_date(value):
    try:
        return datetime.strptime(value or '', '%Y-%m-%d').date()
    except ValueError:
        return None

# --- Dashboard ---

@bp.route('/')
def index():
    """Headline counts and the latest audit rows."""
    return jsonify(
        agents=Agent.query.count(),
        active_agents=Agent.query.filter_by(active_status=True).count(),
        devices=Device.query.count(),
        recent_uploads=[log.to_dict() for log in recent_uploads(limit=10)]
    )

# --- Uploads ---

@bp.route('/uploads/commission', methods=['POST'])
@handle_failures
def upload_commission():
    form = CommissionUploadForm()
    if not form.validate_on_submit():
        return form_errors(form)

    filepath, filename = save_upload(form.file.data)
    try:
        outcome = run_commission_upload(filepath, form.month.data, form.year.data,
                                        confirm_replace=form.confirm_replace.data, filename=filename)
    finally:
        discard_upload(filepath)
    current_app.logger.info(f"Commission upload '{filename}': {outcome['status']}")
    return outcome_response(outcome)


@bp.route('/uploads/daily', methods=['POST'])
@handle_failures
def upload_daily():
    form = DailyUploadForm()
    if not form.validate_on_submit():
        return form_errors(form)

    filepath, filename = save_upload(form.file.data)
    try:
        outcome = run_daily_upload(filepath, form.upload_date.data,
                                   confirm_replace=form.confirm_replace.data, filename=filename)
    finally:
        discard_upload(filepath)
    current_app.logger.info(f"Daily upload '{filename}': {outcome['status']}")
    return outcome_response(outcome)


@bp.route('/sync/master', methods=['POST'])
@handle_failures
def sync_master():
    form = MasterSyncForm()
    if not form.validate_on_submit():
        return form_errors(form)

    filepath, filename = save_upload(form.file.data)
    try:
        outcome = run_master_sync(filepath, form.mode.data, confirm_full=form.confirm_full.data, filename=filename)
    finally:
        discard_upload(filepath)
    current_app.logger.info(f"Master sync '{filename}' ({form.mode.data}): {outcome['status']}")
    return outcome_response(outcome)

# --- Commission Approval ---

@bp.route('/commissions/<int:year>/<int:month>/summary')
def commission_summary(year, month):
    return jsonify(month=month, year=year, **commission_approval_summary(month, year))


@bp.route('/commissions/approve', methods=['POST'])
@handle_failures
def approve():
    form = ApprovalForm()
    if not form.validate_on_submit():
        return form_errors(form)
    approved = approve_commissions(form.month.data, form.year.data, form.approved_by.data or 'admin')
    return jsonify(status=STATUS_OK, message=f"Approved {approved} commission records.", approved=approved)

# --- Agents ---

@bp.route('/devices/available')
def list_available_devices():
    return jsonify(devices=[d.device_id for d in available_devices()])


@bp.route('/agents', methods=['POST'])
@handle_failures
def create_agent():
    form = AgentForm()
    if not form.validate_on_submit():
        return form_errors(form)
    try:
        agent = add_agent(form.agent_id.data, form.agent_name.data, form.joining_date.data, form.device_id.data)
    except AgentError as e:
        return jsonify(status='failed', message=str(e)), 400
    return jsonify(status=STATUS_OK, message=f"Agent {agent.agent_id} added.", agent=agent_dict(agent)), 201


@bp.route('/agents/<agent_id>/replace', methods=['POST'])
@handle_failures
def replace(agent_id):
    form = ReplaceAgentForm()
    if not form.validate_on_submit():
        return form_errors(form)
    try:
        agent = replace_agent(agent_id, form.new_agent_id.data, form.new_agent_name.data, form.joining_date.data)
    except AgentError as e:
        return jsonify(status='failed', message=str(e)), 400
    return jsonify(status=STATUS_OK, message=f"Agent {agent_id} replaced by {agent.agent_id}.",
                   agent=agent_dict(agent))


@bp.route('/agents/<agent_id>/toggle', methods=['POST'])
@handle_failures
def toggle(agent_id):
    try:
        agent = toggle_agent_status(agent_id)
    except AgentError as e:
        return jsonify(status='failed', message=str(e)), 404
    return jsonify(status=STATUS_OK, agent=agent_dict(agent))


@bp.route('/agents/<agent_id>/reset-password', methods=['POST'])
@handle_failures
def reset_password(agent_id):
    try:
        action = reset_agent_credentials(agent_id)
    except UnknownAgentError as e:
        return jsonify(status='failed', message=str(e)), 404
    message = "Account created with default password." if action == 'created' else "Password reset to default."
    return jsonify(status=STATUS_OK, message=message, action=action)

# --- Templates & Exports ---

@bp.route('/templates/<kind>.csv')
def download_template(kind):
    if kind not in TEMPLATE_KINDS:
        return jsonify(status='failed', message=f"Unknown template: {kind}"), 404
    file_name, csv_text = template_csv(kind)
    return csv_response(file_name, csv_text)


@bp.route('/exports/agents.csv')
@handle_failures
def download_agents():
    try:
        file_name, csv_text, _ = export_agents()
    except LookupError as e:
        return jsonify(status='failed', message=str(e)), 404
    return csv_response(file_name, csv_text)


@bp.route('/exports/devices.csv')
@handle_failures
def download_devices():
    file_name, csv_text, _ = export_devices()
    return csv_response(file_name, csv_text)


@bp.route('/exports/daily.csv')
@handle_failures
def download_daily():
    start_date = parse_iso_date(request.args.get('start'))
    end_date = parse_iso_date(request.args.get('end'))
    if start_date is None or end_date is None or start_date > end_date:
        return jsonify(status='failed', message="Provide a valid start and end date (YYYY-MM-DD)."), 400
    file_name, csv_text, _ = export_daily_performance(start_date, end_date)
    return csv_response(file_name, csv_text)


@bp.route('/exports/commissions.csv')
@handle_failures
def download_commissions():
    month = request.args.get('month', type=int)
    year = request.args.get('year', type=int)
    if month is None or year is None or not 1 <= month <= 12:
        return jsonify(status='failed', message="Provide a valid month and year."), 400
    file_name, csv_text, _ = export_commissions(month, year)
    return csv_response(file_name, csv_text)

# --- Column Settings ---

@bp.route('/column-settings')
def column_settings():
    settings = ColumnSetting.query.order_by(ColumnSetting.display_order, ColumnSetting.id).all()
    return jsonify(settings=[s.to_dict() for s in settings])


@bp.route('/column-settings', methods=['POST'])
@handle_failures
def add_setting():
    form = ColumnSettingForm()
    if not form.validate_on_submit():
        return form_errors(form)
    try:
        setting = add_column_setting(form.column_key.data, form.csv_header_name.data,
                                     field_kind=form.field_kind.data or None,
                                     is_required=form.is_required.data, is_active=form.is_active.data,
                                     display_order=form.display_order.data or 100)
    except ColumnSettingError as e:
        return jsonify(status='failed', message=str(e)), 400
    return jsonify(status=STATUS_OK, setting=setting.to_dict()), 201


@bp.route('/column-settings/<int:setting_id>/edit', methods=['POST'])
@handle_failures
def edit_setting(setting_id):
    setting = db.get_or_404(ColumnSetting, setting_id)
    form = ColumnSettingForm(obj=setting)
    if not form.validate_on_submit():
        return form_errors(form)
    try:
        fields = {'csv_header_name': form.csv_header_name.data,
                  'field_kind': form.field_kind.data or setting.field_kind,
                  'display_order': form.display_order.data or setting.display_order}
        # Unchecked boxes are absent from the form; only touch flags the client sent.
        for flag in ('is_required', 'is_active'):
            if flag in request.form:
                fields[flag] = form[flag].data
        setting = update_column_setting(setting.id, **fields)
    except ColumnSettingError as e:
        return jsonify(status='failed', message=str(e)), 400
    return jsonify(status=STATUS_OK, setting=setting.to_dict())


@bp.route('/column-settings/<int:setting_id>/delete', methods=['POST'])
@handle_failures
def delete_setting(setting_id):
    try:
        delete_column_setting(setting_id)
    except ColumnSettingError as e:
        return jsonify(status='failed', message=str(e)), 404
    return jsonify(status=STATUS_OK, message="Column setting deleted.")

# --- Audit Log ---

@bp.route('/upload-logs')
def upload_logs():
    limit = request.args.get('limit', 100, type=int)
    return jsonify(logs=[log.to_dict() for log in recent_uploads(limit=limit)])
