# ==============================================================================
# bcadmin/agents.py
# ------------------------------------------------------------------------------
# Manual roster changes outside the master sync: add, replace, toggle.
# ==============================================================================

import logging
from sqlalchemy.exc import SQLAlchemyError
from bcadmin import db
from bcadmin.models import Agent, Device


class AgentError(ValueError):
    """A roster change was refused."""


def available_devices():
    """Devices not assigned to any active agent."""
    assigned = {d for (d,) in db.session.query(Agent.assigned_device_id)
                .filter(Agent.active_status.is_(True), Agent.assigned_device_id.isnot(None)).all()}
    return [d for d in Device.query.order_by(Device.device_id).all() if d.device_id not in assigned]


def _check_new_agent(agent_id, agent_name):
    if not agent_id or not agent_name:
        raise AgentError("Agent ID and name are required")
    if Agent.query.filter_by(agent_id=agent_id).first() is not None:
        raise AgentError(f"Agent {agent_id} already exists")


def add_agent(agent_id, agent_name, joining_date, device_id):
    agent_id = (agent_id or '').strip()
    _check_new_agent(agent_id, agent_name)
    if device_id not in {d.device_id for d in available_devices()}:
        raise AgentError(f"Device {device_id} is not available")

    agent = Agent(agent_id=agent_id, agent_name=agent_name, joining_date=joining_date,
                  assigned_device_id=device_id, active_status=True)
    db.session.add(agent)
    db.session.commit()
    logging.info(f"Added agent {agent_id} on device {device_id}.")
    return agent


def replace_agent(old_agent_id, new_agent_id, new_agent_name, joining_date):
    """
    Deactivates `old_agent_id` and creates the new agent on the same device,
    both in one transaction.
    """
    old_agent = Agent.query.filter_by(agent_id=old_agent_id).first()
    if old_agent is None:
        raise AgentError(f"Agent {old_agent_id} not found")
    new_agent_id = (new_agent_id or '').strip()
    _check_new_agent(new_agent_id, new_agent_name)

    try:
        old_agent.active_status = False
        new_agent = Agent(agent_id=new_agent_id, agent_name=new_agent_name, joining_date=joining_date,
                          assigned_device_id=old_agent.assigned_device_id, active_status=True)
        db.session.add(new_agent)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logging.info(f"Replaced agent {old_agent_id} with {new_agent_id} on device {new_agent.assigned_device_id}.")
    return new_agent


def toggle_agent_status(agent_id):
    agent = Agent.query.filter_by(agent_id=agent_id).first()
    if agent is None:
        raise AgentError(f"Agent {agent_id} not found")
    agent.active_status = not agent.active_status
    db.session.commit()
    return agent
