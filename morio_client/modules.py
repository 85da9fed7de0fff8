"""
Module lifecycle.

A module is a template file in one of the collector areas. Its state is
its file name: `nginx.yaml` is enabled, `nginx.yaml.disabled` is
disabled. Enabling and disabling are renames between the two.
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, NamedTuple, Optional, Set, Tuple

from logcore import get_logger

from morio_client.collectors import Area, Collector, all_areas
from morio_client.errors import ModuleStateError

logger = get_logger(__name__)

CONFIG_EXTENSION = '.yaml'
DISABLED_MARKER = '.disabled'


class ModuleState(Enum):
    ENABLED = 'enabled'
    DISABLED = 'disabled'


def module_name(filename: str) -> str:
    """Logical module name of a template file, whatever its state"""
    base = os.path.splitext(os.path.basename(filename))[0]
    # Disabled modules have a double extension
    if base.endswith(CONFIG_EXTENSION):
        return base[:-len(CONFIG_EXTENSION)]
    return base


def classify(filename: str) -> Optional[Tuple[str, ModuleState]]:
    """Map a file name to (module name, state), or None if it is not a module"""
    if filename.endswith(CONFIG_EXTENSION + DISABLED_MARKER):
        state = ModuleState.DISABLED
    elif filename.endswith(CONFIG_EXTENSION):
        state = ModuleState.ENABLED
    else:
        return None

    name = module_name(filename)
    if not name:
        return None
    return name, state


def module_filename(name: str, state: ModuleState) -> str:
    """File name of a module in the given state"""
    if state is ModuleState.DISABLED:
        return name + CONFIG_EXTENSION + DISABLED_MARKER
    return name + CONFIG_EXTENSION


class ModuleListing(NamedTuple):
    enabled: Set[str]
    disabled: Set[str]


@dataclass
class ModuleFile:
    area: Area
    path: Path
    state: ModuleState

    @property
    def name(self) -> str:
        return module_name(self.path.name)


class ModuleManager:
    """Lists and toggles modules in every collector area under a config root"""

    def __init__(self, root, areas: Optional[List[Area]] = None):
        self.root = Path(root)
        self.areas = areas if areas is not None else all_areas()

    def scan(self, area: Area) -> List[ModuleFile]:
        """
        Module files in an area, in directory-listing order.

        A missing area has no modules. An area that exists but cannot be
        read raises ModuleStateError.
        """
        folder = area.template_dir(self.root)
        try:
            entries = sorted(folder.iterdir())
        except FileNotFoundError:
            return []
        except OSError as e:
            raise ModuleStateError(f"Unable to load module list from {folder}: {e}") from e

        files = []
        for entry in entries:
            if entry.is_dir():
                continue
            classified = classify(entry.name)
            if classified is None:
                continue
            files.append(ModuleFile(area=area, path=entry, state=classified[1]))

        return files

    def list(self, area: Area) -> ModuleListing:
        listing = ModuleListing(enabled=set(), disabled=set())
        for module in self.scan(area):
            if module.state is ModuleState.ENABLED:
                listing.enabled.add(module.name)
            else:
                listing.disabled.add(module.name)
        return listing

    def list_collector(self, collector: Collector) -> ModuleListing:
        """Modules of all areas of a collector, merged by name"""
        listing = ModuleListing(enabled=set(), disabled=set())
        for area in collector.areas:
            area_listing = self.list(area)
            listing.enabled.update(area_listing.enabled)
            listing.disabled.update(area_listing.disabled)
        return listing

    def find(self, name: str) -> List[ModuleFile]:
        """Every file of a module across all areas"""
        return [
            module for area in self.areas
            for module in self.scan(area)
            if module.name == name
        ]

    def _plan(self, area: Area, name: str, target: ModuleState) -> Optional[Tuple[Path, Path]]:
        source_state = ModuleState.DISABLED if target is ModuleState.ENABLED else ModuleState.ENABLED
        for module in self.scan(area):
            if module.name == name and module.state is source_state:
                destination = module.path.with_name(module_filename(name, target))
                if destination.exists():
                    raise ModuleStateError(
                        f"Module {name} is both enabled and disabled in {area.key}"
                    )
                return module.path, destination
        return None

    def _rename(self, source: Path, destination: Path) -> None:
        try:
            os.rename(source, destination)
        except OSError as e:
            raise ModuleStateError(f"Unable to rename {source} to {destination.name}: {e}") from e
        logger.info(f"Renamed {source} to {destination.name}")

    def _transition(self, areas: List[Area], name: str, target: ModuleState) -> List[Area]:
        # Plan every area first so an unreadable area stops us before any rename
        plans = []
        for area in areas:
            plan = self._plan(area, name, target)
            if plan is not None:
                plans.append((area, plan))

        for area, (source, destination) in plans:
            self._rename(source, destination)

        return [area for area, _ in plans]

    def enable(self, area: Area, name: str) -> bool:
        """Enable a module in one area; False when there was nothing to do"""
        return bool(self._transition([area], name, ModuleState.ENABLED))

    def disable(self, area: Area, name: str) -> bool:
        """Disable a module in one area; False when there was nothing to do"""
        return bool(self._transition([area], name, ModuleState.DISABLED))

    def enable_module(self, name: str) -> List[Area]:
        """Enable a module in every area it appears in"""
        return self._transition(self.areas, name, ModuleState.ENABLED)

    def disable_module(self, name: str) -> List[Area]:
        """Disable a module in every area it appears in"""
        return self._transition(self.areas, name, ModuleState.DISABLED)
