"""
Run a collector binary with its Morio configuration.
"""

import subprocess
from typing import Callable, List, Sequence

import click

from logcore import get_logger

from morio_client.collectors import Collector
from morio_client.errors import AgentError
from morio_client.settings import ClientSettings

logger = get_logger(__name__)


def ensure_agent_path(settings: ClientSettings, collector: Collector, prompt: Callable = click.prompt) -> str:
    """
    Path to a collector binary, asking for it (once) when not configured.

    The answer is saved to morio.yaml under agents.<collector>.
    """
    path = settings.agent_path(collector.name)
    if path:
        return path

    path = prompt(f"Please provide the path to {collector.beat}").strip()
    if not path:
        raise AgentError(f"No path provided for {collector.beat}")

    settings.save_agent_path(collector.name, path)
    return path


def agent_command(settings: ClientSettings, collector: Collector, binary: str, args: Sequence[str]) -> List[str]:
    """Command line that runs a collector against its rendered config"""
    return [binary, '-c', str(collector.config_file(settings.root)), *args]


def run_agent(settings: ClientSettings, collector: Collector, args: Sequence[str]) -> int:
    """
    Run a collector in the foreground, sharing our stdin/stdout/stderr.

    Returns:
        int: The collector's exit status
    """
    binary = ensure_agent_path(settings, collector)
    command = agent_command(settings, collector, binary, args)
    logger.debug(f"Running {' '.join(command)}")

    try:
        result = subprocess.run(command)
    except OSError as e:
        raise AgentError(f"Unable to run {binary}: {e}") from e

    return result.returncode
