"""
Exceptions raised by the Morio client core.

Absence (a missing variable, a module that is not there) is never an
exception. Everything below is fatal to the command that raised it.
"""


class MorioError(Exception):
    """Base class for all Morio client errors"""
    pass


class ConfigError(MorioError):
    """Client settings could not be loaded or saved"""
    pass


class StorageError(MorioError):
    """A variable read, write, or removal failed"""
    pass


class InvalidVariableName(StorageError):
    """Variable name is not safe to use as a file name"""
    pass


class TemplateRenderError(MorioError):
    """A template or the layout failed to render or could not be written"""
    pass


class TemplateParseError(MorioError):
    """Documentation output of a template is not valid YAML"""
    pass


class ModuleStateError(MorioError):
    """A module area could not be read, or a module could not be renamed"""
    pass


class ServiceError(MorioError):
    """The OS service manager could not be driven"""
    pass


class AgentError(MorioError):
    """A collector binary could not be launched"""
    pass
