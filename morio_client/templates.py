"""
Template rendering.

Turns the Jinja2 templates under the config root into the configuration
files the collectors read. Every rendered file goes through a shared
layout, which pulls in the template with:

    {% include MORIO_TEMPLATE_SOURCE_FILE %}

After each file is written, the defaults the template documents are
stored in the default tier of the variable store.

Any failure is raised immediately; there is no partial recovery.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, TemplateError

from logcore import get_logger

from morio_client.collectors import COLLECTORS, Collector
from morio_client.docs import DOCS_FLAG, SOURCE_MARKER, MetadataExtractor
from morio_client.errors import TemplateRenderError
from morio_client.modules import CONFIG_EXTENSION, classify

logger = get_logger(__name__)

LAYOUT = 'layout.yaml'
ENCODING = 'utf-8'


def create_environment(root) -> Environment:
    """Jinja2 environment that loads templates relative to the config root"""
    return Environment(
        loader=FileSystemLoader(str(root), encoding=ENCODING),
        keep_trailing_newline=True,
        autoescape=False,
    )


class TemplateRenderer:
    """Renders templates against the variable store"""

    def __init__(self, root, store, layout: str = LAYOUT):
        self.root = Path(root)
        self.store = store
        self.layout = layout
        self.env = create_environment(self.root)
        self.extractor = MetadataExtractor(self.env)

    def template_name(self, source) -> str:
        """
        Name of a template file relative to the config root.

        Symlinks are not followed: a template linked in from elsewhere is
        named by where the link sits.
        """
        try:
            relative = os.path.relpath(os.path.abspath(source), os.path.abspath(self.root))
        except ValueError:
            relative = os.pardir
        if relative == os.pardir or relative.startswith(os.pardir + os.sep):
            raise TemplateRenderError(f"Template {source} is outside {self.root}")
        return Path(relative).as_posix()

    def build_context(self, name: str, context: Optional[Dict[str, str]] = None) -> dict:
        """Variables a template sees (a store snapshot unless given)"""
        values = dict(self.store.get_all() if context is None else context)
        values[SOURCE_MARKER] = name
        values[DOCS_FLAG] = False
        return values

    def render(self, source, context: Optional[Dict[str, str]] = None) -> str:
        """Render a template through the layout and return the text"""
        name = self.template_name(source)
        try:
            layout = self.env.get_template(self.layout)
            return layout.render(self.build_context(name, context))
        except TemplateError as e:
            raise TemplateRenderError(f"Unable to render {name}: {e}") from e
        except UnicodeDecodeError as e:
            raise TemplateRenderError(f"Unable to render {name}: not valid {ENCODING}: {e}") from e

    def harvest_defaults(self, source) -> Dict[str, str]:
        """Store the defaults a template documents, returning them"""
        name = self.template_name(source)
        defaults = self.extractor.extract_default_vars(name)
        for var, value in defaults.items():
            self.store.set_default(var, value)
        if defaults:
            logger.debug(
                f"Harvested {len(defaults)} default(s) from {name}",
                extra={'context': {'template': name, 'vars': sorted(defaults)}}
            )
        return defaults

    def render_file(self, source, destination, context: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """
        Render one template to its destination file.

        Args:
            source: Template path (must be under the config root)
            destination: File to write, replaced if it exists
            context: Variables to use (default: current store values)

        Returns:
            The defaults harvested from the template

        Raises:
            TemplateRenderError: Render or write failed
            TemplateParseError: Documentation output is not valid YAML
        """
        destination = Path(destination)
        output = self.render(source, context)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(output, encoding=ENCODING)
        except OSError as e:
            raise TemplateRenderError(f"Unable to write {destination}: {e}") from e

        logger.info(f"Rendered {self.template_name(source)} to {destination}")
        return self.harvest_defaults(source)

    def clear_generated(self, folder) -> List[Path]:
        """Remove generated configuration files (and nothing else) from a folder"""
        folder = Path(folder)
        removed = []
        try:
            entries = sorted(folder.iterdir())
        except FileNotFoundError:
            return removed
        except OSError as e:
            raise TemplateRenderError(f"Unable to list {folder}: {e}") from e

        for entry in entries:
            if entry.is_file() and entry.suffix == CONFIG_EXTENSION:
                try:
                    entry.unlink()
                except OSError as e:
                    raise TemplateRenderError(f"Unable to remove {entry}: {e}") from e
                removed.append(entry)

        return removed

    def render_folder(self, source_folder, destination_folder, context: Optional[Dict[str, str]] = None) -> List[Path]:
        """
        Render every enabled template in a folder.

        The destination is cleared of generated files first. Disabled
        templates (and any other extension) are skipped. Returns the
        files written, in directory-listing order.
        """
        source_folder = Path(source_folder)
        destination_folder = Path(destination_folder)

        self.clear_generated(destination_folder)

        try:
            entries = sorted(source_folder.iterdir())
        except FileNotFoundError:
            logger.debug(f"No templates in {source_folder}")
            return []
        except OSError as e:
            raise TemplateRenderError(f"Unable to list {source_folder}: {e}") from e

        written = []
        for entry in entries:
            if not entry.is_file() or entry.suffix != CONFIG_EXTENSION:
                continue
            destination = destination_folder / entry.name
            self.render_file(entry, destination, context)
            written.append(destination)

        return written

    def render_collector(self, collector: Collector) -> List[Path]:
        """Render the main config and all module folders of a collector"""
        written = []
        config = collector.config_file(self.root)
        self.render_file(collector.config_template(self.root), config)
        written.append(config)

        for area in collector.areas:
            written.extend(
                self.render_folder(area.template_dir(self.root), area.output_dir(self.root))
            )

        return written

    def template_files(self, collector: Collector) -> List[Path]:
        """Main template and every module template (any state) of a collector"""
        files = []
        config = collector.config_template(self.root)
        if config.is_file():
            files.append(config)

        for area in collector.areas:
            try:
                entries = sorted(area.template_dir(self.root).iterdir())
            except FileNotFoundError:
                continue
            except OSError as e:
                raise TemplateRenderError(f"Unable to list {area.template_dir(self.root)}: {e}") from e
            files.extend(entry for entry in entries if entry.is_file() and classify(entry.name))

        return files

    def seed_defaults(self, collectors=None) -> Dict[str, str]:
        """
        Store the defaults of all templates without rendering anything.

        Covers disabled modules too, so enabling one later renders with
        its defaults in place.
        """
        seeded = {}
        for collector in collectors or COLLECTORS:
            for source in self.template_files(collector):
                seeded.update(self.harvest_defaults(source))
        return seeded

    def render_all(self, collectors=None) -> List[Path]:
        """
        Render every installed collector.

        A collector whose directory is missing is not installed and is
        skipped.
        """
        written = []
        for collector in collectors or COLLECTORS:
            if not collector.directory(self.root).is_dir():
                logger.warning(f"Skipping {collector.name}: {collector.directory(self.root)} not found")
                continue
            written.extend(self.render_collector(collector))

        return written
