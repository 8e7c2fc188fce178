# ==============================================================================
# bcadmin/identity.py
# ------------------------------------------------------------------------------
# Agent login accounts: provisioning after a roster sync and credential resets.
# ==============================================================================

import logging
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from bcadmin import db
from bcadmin.models import Agent, IdentityAccount


class IdentityError(Exception):
    """The identity directory refused an operation."""


class AccountExistsError(IdentityError):
    pass


class UnknownAgentError(IdentityError):
    pass


class IdentityDirectory:
    """
    Account store keyed by '{agent_id}@{domain}'. Lookups by email use the
    unique index on IdentityAccount.email.
    """

    def __init__(self, domain=None, default_password=None):
        self.domain = domain or current_app.config.get('IDENTITY_EMAIL_DOMAIN', 'app.local')
        self.default_password = default_password or current_app.config['DEFAULT_AGENT_PASSWORD']

    def email_for(self, agent_id):
        return f"{agent_id}@{self.domain}"

    def find_account(self, email):
        return IdentityAccount.query.filter_by(email=email).first()

    def create_account(self, email, password=None, role='agent'):
        """Adds a new account flagged to change its password. Does not commit."""
        if self.find_account(email) is not None:
            raise AccountExistsError(f"User already registered: {email}")
        account = IdentityAccount(email=email, role=role, must_change_password=True, email_confirmed=True)
        account.set_password(password or self.default_password)
        db.session.add(account)
        return account

    def reset_password(self, account, password=None):
        account.set_password(password or self.default_password)
        account.must_change_password = True
        return account


def provision_agent_accounts(agent_ids, directory=None):
    """
    Makes sure every agent has a login account. Each agent is handled in its
    own transaction; failures are collected rather than raised.

    Returns:
        dict: {'total', 'created', 'existing', 'failed', 'errors'}
    """
    directory = directory or IdentityDirectory()
    results = {'total': len(agent_ids), 'created': 0, 'existing': 0, 'failed': 0, 'errors': []}

    for agent_id in agent_ids:
        if not agent_id:
            continue
        email = directory.email_for(agent_id)
        try:
            directory.create_account(email)
            Agent.query.filter_by(agent_id=agent_id).update({'must_change_password': True})
            db.session.commit()
            results['created'] += 1
        except AccountExistsError:
            results['existing'] += 1
        except (IdentityError, SQLAlchemyError) as e:
            db.session.rollback()
            results['failed'] += 1
            results['errors'].append(f"Failed to create {agent_id}: {e}")
            logging.warning(f"Account provisioning failed for {agent_id}: {e}")

    logging.info(f"Account provisioning: {results['created']} created, {results['existing']} existing, "
                 f"{results['failed']} failed.")
    return results


def reset_agent_credentials(agent_id, directory=None):
    """
    Creates the agent's account if it is missing, otherwise overwrites its
    password with the default. Either way the agent must change it at next login.

    Returns:
        str: 'created' or 'reset'.
    """
    agent = Agent.query.filter_by(agent_id=agent_id).first()
    if agent is None:
        raise UnknownAgentError(f"Agent {agent_id} not found")

    directory = directory or IdentityDirectory()
    email = directory.email_for(agent_id)
    try:
        account = directory.find_account(email)
        if account is None:
            directory.create_account(email)
            action = 'created'
        else:
            directory.reset_password(account)
            action = 'reset'
        agent.must_change_password = True
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logging.info(f"Credentials {action} for agent {agent_id} ({email}).")
    return action
