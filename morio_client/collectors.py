"""
The collectors wrapped by the Morio client, and where their files live.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

CONFIG_TEMPLATE = 'config-template.yaml'
CONFIG_FILE = 'config.yaml'


@dataclass(frozen=True)
class Area:
    """A folder of module templates belonging to one collector"""
    collector: str
    templates: str
    output: str

    @property
    def key(self) -> str:
        return f"{self.collector}/{self.templates}"

    def template_dir(self, root) -> Path:
        return Path(root) / self.collector / self.templates

    def output_dir(self, root) -> Path:
        return Path(root) / self.collector / self.output


@dataclass(frozen=True)
class Collector:
    """An external observability agent (a beat)"""
    name: str
    beat: str
    areas: List[Area] = field(default_factory=list)

    @property
    def service(self) -> str:
        return f"morio-{self.name}"

    def directory(self, root) -> Path:
        return Path(root) / self.name

    def config_template(self, root) -> Path:
        return self.directory(root) / CONFIG_TEMPLATE

    def config_file(self, root) -> Path:
        return self.directory(root) / CONFIG_FILE


AUDIT = Collector(
    name='audit',
    beat='auditbeat',
    areas=[Area('audit', 'module-templates.d', 'modules.d')],
)

LOGS = Collector(
    name='logs',
    beat='filebeat',
    areas=[
        Area('logs', 'module-templates.d', 'modules.d'),
        Area('logs', 'input-templates.d', 'inputs.d'),
    ],
)

METRICS = Collector(
    name='metrics',
    beat='metricbeat',
    areas=[Area('metrics', 'module-templates.d', 'modules.d')],
)

COLLECTORS = [AUDIT, LOGS, METRICS]


def get_collector(name: str) -> Optional[Collector]:
    for collector in COLLECTORS:
        if collector.name == name:
            return collector
    return None


def all_areas() -> List[Area]:
    return [area for collector in COLLECTORS for area in collector.areas]
