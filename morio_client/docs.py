"""
Template metadata extraction.

A template documents itself by emitting YAML when MORIO_DOCS is true:

    {% if MORIO_DOCS %}
    about: Collects the auditd log
    vars:
      local:
        AUDITD_LOG: Location of the audit log
      global:
        - MORIO_CLIENT_UUID
      defaults:
        AUDITD_LOG: /var/log/audit/audit.log
    {% else %}
    ...
    {% endif %}

Rendering in documentation mode and parsing the result gives a TemplateDoc.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from jinja2 import TemplateError

from logcore import get_logger

from morio_client.errors import ConfigError, TemplateParseError, TemplateRenderError
from morio_client.vars import stringify

logger = get_logger(__name__)

DOCS_FLAG = 'MORIO_DOCS'
SOURCE_MARKER = 'MORIO_TEMPLATE_SOURCE_FILE'


@dataclass
class TemplateDoc:
    """What a template says about itself (every field optional)"""
    about: Optional[str] = None
    local: Optional[Dict[str, str]] = None
    globals: Optional[List[str]] = None
    defaults: Optional[Dict[str, str]] = None


@dataclass
class GlobalVar:
    """Entry of the global variable catalog"""
    name: str
    default: str = ''
    about: str = ''


def _string_map(value: Any) -> Optional[Dict[str, str]]:
    if not isinstance(value, dict):
        return None
    return {str(key): stringify(val) for key, val in value.items()}


def parse_doc(data: Any) -> TemplateDoc:
    """
    Build a TemplateDoc from parsed YAML.

    Fields with the wrong shape are treated as absent.
    """
    if not isinstance(data, dict):
        return TemplateDoc()

    about = data.get('about')
    doc = TemplateDoc(about=about if isinstance(about, str) else None)

    variables = data.get('vars')
    if not isinstance(variables, dict):
        return doc

    doc.local = _string_map(variables.get('local'))
    doc.defaults = _string_map(variables.get('defaults'))

    refs = variables.get('global')
    if isinstance(refs, list):
        doc.globals = [ref for ref in refs if isinstance(ref, str)]

    return doc


class MetadataExtractor:
    """Renders templates in documentation mode and reads their metadata"""

    def __init__(self, env):
        # env is a jinja2.Environment whose loader resolves template names
        self.env = env

    def render_docs(self, name: str) -> str:
        context = {DOCS_FLAG: True, SOURCE_MARKER: name}
        try:
            return self.env.get_template(name).render(context)
        except TemplateError as e:
            raise TemplateRenderError(f"Unable to render docs for {name}: {e}") from e
        except UnicodeDecodeError as e:
            raise TemplateRenderError(f"Unable to render docs for {name}: not valid utf-8: {e}") from e

    def extract_metadata(self, name: str) -> TemplateDoc:
        """Metadata of the template with the given loader name"""
        output = self.render_docs(name)
        try:
            data = yaml.safe_load(output)
        except yaml.YAMLError as e:
            raise TemplateParseError(f"Docs of {name} are not valid YAML: {e}") from e

        return parse_doc(data)

    def extract_default_vars(self, name: str) -> Dict[str, str]:
        """Default values declared by a template, as text"""
        return dict(self.extract_metadata(name).defaults or {})


def load_global_catalog(path) -> Dict[str, GlobalVar]:
    """
    Load the global variable catalog.

    Maps each variable name to its default and description. A missing
    catalog is empty; entries that are not mappings are skipped.
    """
    path = Path(path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.debug(f"No global variable catalog at {path}")
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Unable to read {path}: {e}") from e

    catalog = {}
    if not isinstance(data, dict):
        return catalog

    for name, entry in data.items():
        if not isinstance(entry, dict):
            continue
        about = entry.get('about')
        catalog[str(name)] = GlobalVar(
            name=str(name),
            default=stringify(entry.get('default')),
            about=about if isinstance(about, str) else '',
        )

    return catalog
