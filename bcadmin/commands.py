# ==============================================================================
# bcadmin/commands.py
# ------------------------------------------------------------------------------
# `flask` CLI commands: seeding, uploads, master sync, credential resets
# and CSV exports from the command line.
# ==============================================================================

import os
import click

from bcadmin.pipeline.engine import STATUS_OK, STATUS_CONFIRM
from bcadmin.pipeline.schema import SYNC_MODES


def _print_outcome(outcome, limit=20):
    click.echo(outcome['message'])
    for error in outcome['errors'][:limit]:
        prefix = f"Row {error['row']}: " if error.get('row') else ''
        click.echo(f"  - {prefix}{error['message']}")
    if len(outcome['errors']) > limit:
        click.echo(f"  ... and {len(outcome['errors']) - limit} more errors.")


def _run_with_confirmation(run, confirm_flag_name, confirmed):
    """Runs an upload; on a confirmation gate asks once and runs again confirmed."""
    outcome = run(**{confirm_flag_name: confirmed})
    if outcome['status'] == STATUS_CONFIRM:
        click.echo(outcome['message'])
        if not click.confirm('Continue?', default=False):
            raise click.ClickException('Aborted; nothing was changed.')
        outcome = run(**{confirm_flag_name: True})
    _print_outcome(outcome)
    if outcome['status'] != STATUS_OK:
        raise click.ClickException('Upload failed.')
    return outcome


def _write_export(file_name, csv_text, count, output_dir):
    path = os.path.join(output_dir, file_name)
    with open(path, 'w', encoding='utf-8', newline='') as f:
        f.write(csv_text)
    click.echo(f"Exported {count} rows to {path}")


def register_commands(app):
    """Attaches the admin commands to `app.cli`."""

    @app.cli.command("seed")
    def seed():
        """Seeds the column registry with the default commission layout."""
        from bcadmin.seed import seed_data
        seed_data()
        app.logger.info("Database has been seeded with default values.")

    @app.cli.command("upload-commission")
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    @click.option('--month', type=click.IntRange(1, 12), required=True)
    @click.option('--year', type=int, required=True)
    @click.option('--yes', is_flag=True, help='Replace existing records without asking.')
    def upload_commission(path, month, year, yes):
        """Validates and loads a monthly commission file."""
        from bcadmin.pipeline.engine import run_commission_upload

        def run(confirm_replace):
            return run_commission_upload(path, month, year, confirm_replace=confirm_replace)
        _run_with_confirmation(run, 'confirm_replace', yes)

    @app.cli.command("upload-daily")
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    @click.option('--date', 'upload_date', type=click.DateTime(formats=['%Y-%m-%d']), required=True)
    @click.option('--yes', is_flag=True, help='Replace existing rows for the date without asking.')
    def upload_daily(path, upload_date, yes):
        """Validates and loads a daily performance file."""
        from bcadmin.pipeline.engine import run_daily_upload

        def run(confirm_replace):
            return run_daily_upload(path, upload_date.date(), confirm_replace=confirm_replace)
        _run_with_confirmation(run, 'confirm_replace', yes)

    @app.cli.command("sync-master")
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    @click.option('--mode', type=click.Choice(SYNC_MODES), default='incremental', show_default=True)
    @click.option('--yes', is_flag=True, help='Confirm a full sync without asking.')
    def sync_master(path, mode, yes):
        """Reconciles agents and devices with a roster file."""
        from bcadmin.pipeline.sync import run_master_sync

        def run(confirm_full):
            return run_master_sync(path, mode, confirm_full=confirm_full)
        outcome = _run_with_confirmation(run, 'confirm_full', yes)
        for error in outcome['provisioning']['errors']:
            click.echo(f"  ! {error}")

    @app.cli.command("reset-password")
    @click.argument('agent_id')
    def reset_password(agent_id):
        """Resets (or creates) an agent's login with the default password."""
        from bcadmin.identity import reset_agent_credentials, UnknownAgentError
        try:
            action = reset_agent_credentials(agent_id)
        except UnknownAgentError as e:
            raise click.ClickException(str(e))
        click.echo(f"Account {action} for agent {agent_id}.")

    @app.cli.command("export")
    @click.argument('kind', type=click.Choice(['agents', 'devices', 'daily', 'commissions']))
    @click.option('--start', type=click.DateTime(formats=['%Y-%m-%d']))
    @click.option('--end', type=click.DateTime(formats=['%Y-%m-%d']))
    @click.option('--month', type=click.IntRange(1, 12))
    @click.option('--year', type=int)
    @click.option('--output-dir', type=click.Path(file_okay=False), default='.', show_default=True)
    def export(kind, start, end, month, year, output_dir):
        """Writes a CSV export to OUTPUT_DIR."""
        from bcadmin import exports

        if kind == 'agents':
            try:
                result = exports.export_agents()
            except LookupError as e:
                raise click.ClickException(str(e))
        elif kind == 'devices':
            result = exports.export_devices()
        elif kind == 'daily':
            if start is None or end is None:
                raise click.UsageError('--start and --end are required for daily exports.')
            result = exports.export_daily_performance(start.date(), end.date())
        else:
            if month is None or year is None:
                raise click.UsageError('--month and --year are required for commission exports.')
            result = exports.export_commissions(month, year)

        os.makedirs(output_dir, exist_ok=True)
        _write_export(*result, output_dir)
        app.logger.info(f"{kind} export finished.")
