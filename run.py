# ==============================================================================
# run.py
# ------------------------------------------------------------------------------
# The main entry point to launch the Flask application.
# ==============================================================================

from bcadmin import create_app, db
from bcadmin.models import Agent, ColumnSetting, Commission, DailyPerformance, Device, IdentityAccount, UploadLog

# Create the Flask application instance using the factory function
app = create_app()

@app.shell_context_processor
def make_shell_context():
    """Provides a shell context for the `flask shell` command."""
    return {
        'db': db,
        'Agent': Agent,
        'ColumnSetting': ColumnSetting,
        'Commission': Commission,
        'DailyPerformance': DailyPerformance,
        'Device': Device,
        'IdentityAccount': IdentityAccount,
        'UploadLog': UploadLog
    }

if __name__ == '__main__':
    app.run(debug=True)
