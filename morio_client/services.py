"""
Start, stop, and query the collector services through the OS service manager.
"""

import platform
import subprocess
from abc import ABC, abstractmethod
from typing import List

import psutil

from logcore import get_logger

from morio_client.collectors import Collector
from morio_client.errors import ServiceError

logger = get_logger(__name__)

ACTIONS = ('start', 'stop', 'restart')


def _run(command: List[str]) -> subprocess.CompletedProcess:
    logger.debug(f"Running {' '.join(command)}")
    try:
        return subprocess.run(command, capture_output=True, text=True)
    except OSError as e:
        raise ServiceError(f"Unable to run {command[0]}: {e}") from e


def _check(command: List[str]) -> None:
    result = _run(command)
    if result.returncode != 0:
        raise ServiceError(f"{' '.join(command)} failed: {result.stderr.strip()}")


class ServiceBackend(ABC):
    """Base service manager"""

    name = 'unknown'

    def change_state(self, collector: Collector, action: str) -> None:
        """Start, stop, or restart the service of a collector"""
        if action not in ACTIONS:
            raise ServiceError(f"Unsupported action: {action}")
        getattr(self, action)(collector)
        logger.info(f"{action} {collector.service} via {self.name}")

    @abstractmethod
    def start(self, collector: Collector) -> None:
        pass

    @abstractmethod
    def stop(self, collector: Collector) -> None:
        pass

    def restart(self, collector: Collector) -> None:
        self.stop(collector)
        self.start(collector)

    @abstractmethod
    def is_active(self, collector: Collector) -> bool:
        """Whether the collector is running (False if that cannot be told)"""
        pass


class SystemdBackend(ServiceBackend):
    """Linux: systemctl"""

    name = 'systemd'

    def start(self, collector):
        _check(['systemctl', 'start', collector.service])

    def stop(self, collector):
        _check(['systemctl', 'stop', collector.service])

    def restart(self, collector):
        _check(['systemctl', 'restart', collector.service])

    def is_active(self, collector):
        result = _run(['systemctl', 'is-active', collector.service])
        return result.returncode == 0 and result.stdout.strip() == 'active'


class LaunchdBackend(ServiceBackend):
    """macOS: launchctl"""

    name = 'launchd'

    def start(self, collector):
        _check(['launchctl', 'load', collector.service])

    def stop(self, collector):
        _check(['launchctl', 'unload', collector.service])

    def is_active(self, collector):
        result = _run(['launchctl', 'list'])
        return result.returncode == 0 and collector.service in result.stdout


class WindowsBackend(ServiceBackend):
    """Windows: sc"""

    name = 'sc'

    def start(self, collector):
        _check(['sc', 'start', collector.service])

    def stop(self, collector):
        _check(['sc', 'stop', collector.service])

    def is_active(self, collector):
        result = _run(['sc', 'query', collector.service])
        return result.returncode == 0 and 'RUNNING' in result.stdout


class ProcessBackend(ServiceBackend):
    """Any other platform: no service manager, look for the beat process"""

    name = 'process'

    def start(self, collector):
        raise ServiceError(f"Unsupported platform: {platform.system()}")

    def stop(self, collector):
        raise ServiceError(f"Unsupported platform: {platform.system()}")

    def is_active(self, collector):
        for proc in psutil.process_iter(['name']):
            if proc.info.get('name') == collector.beat:
                return True
        return False


BACKENDS = {
    'Linux': SystemdBackend,
    'Darwin': LaunchdBackend,
    'Windows': WindowsBackend,
}


def get_backend(system: str = None) -> ServiceBackend:
    """Service backend for this (or the given) platform"""
    system = system or platform.system()
    return BACKENDS.get(system, ProcessBackend)()
