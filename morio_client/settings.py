"""
Client settings.

Static settings live in <root>/morio.yaml:

    agents:
      audit: /usr/share/auditbeat/bin/auditbeat
      logs: /usr/share/filebeat/bin/filebeat
      metrics: /usr/share/metricbeat/bin/metricbeat
    log_level: warning
    log_file: /var/log/morio/client.log

Environment variables prefixed with MORIO_ override the file
(MORIO_AGENTS_LOGS, MORIO_LOG_LEVEL, MORIO_LOG_FILE).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from morio_client.collectors import COLLECTORS
from morio_client.errors import ConfigError

DEFAULT_ROOT = '/etc/morio'
ROOT_ENV = 'MORIO_CONFIG_ROOT'
ENV_PREFIX = 'MORIO_'
SETTINGS_FILE = 'morio.yaml'
GLOBAL_VARS_FILE = 'global-vars.yaml'


def default_root() -> Path:
    return Path(os.environ.get(ROOT_ENV) or DEFAULT_ROOT)


def read_settings_file(path) -> dict:
    """
    Parse morio.yaml

    Returns:
        dict: Settings, empty when the file does not exist

    Raises:
        ConfigError: If the file is not a valid YAML mapping
    """
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Unable to read {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Settings in {path} must be a mapping")
    return data


@dataclass
class ClientSettings:
    """Where things are, and how to log"""
    root: Path
    agents: Dict[str, str] = field(default_factory=dict)
    log_level: str = 'warning'
    log_file: Optional[str] = None

    @property
    def settings_file(self) -> Path:
        return self.root / SETTINGS_FILE

    @property
    def custom_vars_dir(self) -> Path:
        return self.root / 'vars' / 'custom'

    @property
    def default_vars_dir(self) -> Path:
        return self.root / 'vars' / 'default'

    @property
    def global_vars_file(self) -> Path:
        return self.root / GLOBAL_VARS_FILE

    def agent_path(self, collector: str) -> Optional[str]:
        return self.agents.get(collector) or None

    def save_agent_path(self, collector: str, path: str) -> None:
        """Store the binary path of a collector in morio.yaml"""
        data = read_settings_file(self.settings_file)
        agents = data.get('agents')
        if not isinstance(agents, dict):
            agents = {}
        agents[collector] = path
        data['agents'] = agents

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with open(self.settings_file, 'w') as f:
                yaml.safe_dump(data, f, default_flow_style=False)
        except OSError as e:
            raise ConfigError(f"Failed to write to config file {self.settings_file}: {e}")

        self.agents[collector] = path


def load_settings(root=None, environ=None) -> ClientSettings:
    """Load settings for a config root, applying environment overrides"""
    environ = os.environ if environ is None else environ
    root = Path(root) if root else default_root()
    data = read_settings_file(root / SETTINGS_FILE)

    agents = data.get('agents')
    if not isinstance(agents, dict):
        agents = {}
    agents = {str(key): str(value) for key, value in agents.items() if value}

    for collector in COLLECTORS:
        override = environ.get(f"{ENV_PREFIX}AGENTS_{collector.name.upper()}")
        if override:
            agents[collector.name] = override

    log_level = environ.get(f"{ENV_PREFIX}LOG_LEVEL") or data.get('log_level') or 'warning'
    log_file = environ.get(f"{ENV_PREFIX}LOG_FILE") or data.get('log_file')

    return ClientSettings(
        root=root,
        agents=agents,
        log_level=str(log_level),
        log_file=str(log_file) if log_file else None,
    )
