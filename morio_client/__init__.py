"""
morio_client: The Morio client

Manages the configuration of the agents (auditbeat, filebeat, metricbeat)
that ship observability data to a Morio collector: a layered variable
store, template rendering, and module enable/disable.
"""

__version__ = '0.1.0'

from morio_client.modules import ModuleManager, ModuleState
from morio_client.templates import TemplateRenderer
from morio_client.vars import VariableStore

__all__ = ['ModuleManager', 'ModuleState', 'TemplateRenderer', 'VariableStore']
