"""
Layered variable store.

Every variable is a flat file whose content is the raw text value. Two
tiers exist side by side: custom values set by the user and default
values harvested from templates. The effective value of a name is its
custom value, else its default value, else the empty string.
"""

import re
from pathlib import Path
from typing import Any, Dict, List, Mapping

from logcore import get_logger

from morio_client.errors import InvalidVariableName, StorageError

logger = get_logger(__name__)

VALID_NAME = re.compile(r'^[A-Za-z0-9_][A-Za-z0-9_.-]*$')

ENCODING = 'utf-8'

TRUE = 'true'
FALSE = 'false'


def format_bool(value: bool) -> str:
    """Format a boolean the way templates expect to find it"""
    return TRUE if value else FALSE


def parse_bool(text: str) -> bool:
    """Read back a value written by format_bool (anything else is false)"""
    return text.strip().lower() == TRUE


def stringify(value: Any) -> str:
    """
    Turn a YAML scalar into the text the store keeps.

    Booleans become true/false, numbers use their shortest decimal form,
    null becomes empty text and anything else goes through str().
    """
    if value is None:
        return ''
    if isinstance(value, bool):
        return format_bool(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


class VariableStore:
    """Custom-over-default variable storage backed by two directories"""

    def __init__(self, custom_dir, default_dir):
        self.custom_dir = Path(custom_dir)
        self.default_dir = Path(default_dir)

    def _path(self, tier: Path, name: str) -> Path:
        if not VALID_NAME.match(name or ''):
            raise InvalidVariableName(f"Invalid variable name: {name!r}")
        return tier / name

    def _read(self, path: Path):
        """Return file content, or None when the file does not exist"""
        try:
            return path.read_bytes().decode(ENCODING)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Unable to read {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise StorageError(f"{path} is not valid {ENCODING}: {e}") from e

    def _write(self, tier: Path, name: str, value: str) -> None:
        path = self._path(tier, name)
        try:
            tier.mkdir(parents=True, exist_ok=True)
            path.write_bytes(value.encode(ENCODING))
        except OSError as e:
            raise StorageError(f"Unable to write {path}: {e}") from e
        except UnicodeEncodeError as e:
            raise StorageError(f"Value of {name} is not valid {ENCODING}: {e}") from e

    def _names(self, tier: Path) -> List[str]:
        try:
            entries = sorted(tier.iterdir())
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(f"Unable to list {tier}: {e}") from e

        return [
            entry.name for entry in entries
            if entry.is_file() and VALID_NAME.match(entry.name)
        ]

    def get(self, name: str) -> str:
        """Effective value of a variable (empty string when unset)"""
        custom = self._read(self._path(self.custom_dir, name))
        if custom is not None:
            return custom

        default = self._read(self._path(self.default_dir, name))
        if default is not None:
            return default

        return ''

    def get_custom(self, name: str):
        """Custom value of a variable, or None"""
        return self._read(self._path(self.custom_dir, name))

    def get_default(self, name: str):
        """Default value of a variable, or None"""
        return self._read(self._path(self.default_dir, name))

    def custom_names(self) -> List[str]:
        return self._names(self.custom_dir)

    def default_names(self) -> List[str]:
        return self._names(self.default_dir)

    def get_all(self) -> Dict[str, str]:
        """Every known variable resolved to its effective value"""
        names = set(self.custom_names()) | set(self.default_names())
        return {name: self.get(name) for name in sorted(names)}

    def set(self, name: str, value: str) -> None:
        """Write a custom value"""
        self._write(self.custom_dir, name, value)
        logger.debug(f"Set custom var {name}")

    def set_default(self, name: str, value: str) -> None:
        """Write a default value"""
        self._write(self.default_dir, name, value)
        logger.debug(f"Set default var {name}")

    def remove(self, name: str) -> None:
        """Remove a custom value, a no-op when there is none"""
        path = self._path(self.custom_dir, name)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"Unable to remove {path}: {e}") from e
        logger.debug(f"Removed custom var {name}")

    def wipe(self) -> List[str]:
        """Remove all custom values, returning the names removed"""
        names = self.custom_names()
        for name in names:
            self.remove(name)
        return names

    def enable(self, name: str) -> None:
        self.set(name, format_bool(True))

    def disable(self, name: str) -> None:
        self.set(name, format_bool(False))

    def clear(self, name: str) -> None:
        """Set an empty custom value, masking any default"""
        self.set(name, '')

    def import_vars(self, values: Mapping[str, Any]) -> List[str]:
        """Store every entry of a mapping as a custom value"""
        for name in values:
            self._path(self.custom_dir, str(name))

        for name, value in values.items():
            self.set(str(name), stringify(value))
        return [str(name) for name in values]

    def export_vars(self) -> Dict[str, str]:
        return self.get_all()
