# tests/conftest.py

import pytest

from config import Config


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    WTF_CSRF_ENABLED = False
    DEFAULT_AGENT_PASSWORD = 'Welcome@123'
    IDENTITY_EMAIL_DOMAIN = 'app.local'
    DEFAULT_TDS_PERCENT = 2.00


@pytest.fixture
def app_with_db(tmp_path):
    """
    Creates a new app instance for each test with an in-memory database,
    and yields the app within an application context.
    """
    from bcadmin import create_app, db

    app = create_app(TestConfig)
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')

    with app.app_context():
        db.create_all()
        yield app  # The tests will run here
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app_with_db):
    return app_with_db.test_client()


@pytest.fixture
def seeded_columns(app_with_db):
    """The default commission column layout."""
    from bcadmin.seed import seed_data
    seed_data()


@pytest.fixture
def roster(app_with_db):
    """Three agents, two of them on devices."""
    from bcadmin import db
    from bcadmin.models import Agent, Device

    db.session.add_all([
        Device(device_id='0123456789', branch_name='Main', district='North', state='KA', region='South'),
        Device(device_id='0987654321', branch_name='Market', district='East', state='KA', region='South'),
        Device(device_id='0555555555'),
        Agent(agent_id='A1', agent_name='Asha', assigned_device_id='0123456789'),
        Agent(agent_id='A2', agent_name='Bala', assigned_device_id='0987654321'),
        Agent(agent_id='A3', agent_name='Chitra'),
    ])
    db.session.commit()

