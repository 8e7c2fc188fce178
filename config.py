# ==============================================================================
# config.py
# ------------------------------------------------------------------------------
# Configuration settings for the BC administration console.
# Uses environment variables for sensitive data to keep them out of version control.
# ==============================================================================

import os
from dotenv import load_dotenv

# Determine the absolute path of the project directory
basedir = os.path.abspath(os.path.dirname(__file__))

# Load environment variables from a .env file located in the project root
load_dotenv(os.path.join(basedir, '.env'))

class Config:
    """
    Base configuration class. Contains default settings that can be overridden
    by environment-specific configurations.
    """
    # --- Security ---
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-should-really-set-a-secret-key-in-your-env-file'

    # --- Database Configuration ---
    # SQLite in the instance folder unless DATABASE_URL points elsewhere.
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance/app.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- File Upload Configuration ---
    UPLOAD_FOLDER = os.path.join(basedir, 'instance/uploads')
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # --- Commission Rules ---
    # TDS applied to every newly ingested commission row; not read from the file.
    DEFAULT_TDS_PERCENT = float(os.environ.get('DEFAULT_TDS_PERCENT') or 2.00)
    MIN_COMMISSION_YEAR = int(os.environ.get('MIN_COMMISSION_YEAR') or 2020)

    # --- Identity Directory ---
    IDENTITY_EMAIL_DOMAIN = os.environ.get('IDENTITY_EMAIL_DOMAIN') or 'app.local'
    DEFAULT_AGENT_PASSWORD = os.environ.get('DEFAULT_AGENT_PASSWORD') or 'change-this-default-password'

    # Row errors beyond this count are summarized as "and N more errors."
    MAX_DISPLAY_ERRORS = 50
