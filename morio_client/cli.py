#!/usr/bin/env python3
"""
morio: The Morio client

Wraps the agents that each gather one type of observability data
(audit, logs, metrics) and manages their configuration.
"""

import logging
import sys
import uuid
from pathlib import Path

import click
import yaml

from logcore import get_logger, setup_logging

from morio_client import __version__
from morio_client.agent import run_agent
from morio_client.collectors import COLLECTORS, get_collector
from morio_client.docs import load_global_catalog
from morio_client.errors import ConfigError, MorioError
from morio_client.modules import ModuleManager
from morio_client.services import get_backend
from morio_client.settings import load_settings
from morio_client.templates import TemplateRenderer
from morio_client.vars import VariableStore

logger = get_logger(__name__)

CLIENT_UUID = 'MORIO_CLIENT_UUID'
COLLECTOR_NAMES = [collector.name for collector in COLLECTORS]


class MorioContext:
    """Everything a command needs, built from the settings"""

    def __init__(self, settings):
        self.settings = settings
        self.root = settings.root
        self.store = VariableStore(settings.custom_vars_dir, settings.default_vars_dir)

    @property
    def renderer(self) -> TemplateRenderer:
        return TemplateRenderer(self.root, self.store)

    @property
    def modules(self) -> ModuleManager:
        return ModuleManager(self.root)

    @property
    def backend(self):
        return get_backend()


class MorioGroup(click.Group):
    """Root group: turns Morio errors into a message and exit status 1"""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except MorioError as e:
            logger.debug('Command failed', exc_info=True)
            click.echo(click.style(f'❌ {e}', fg='red'), err=True)
            ctx.exit(1)


def success(message):
    click.echo(click.style(f'✓ {message}', fg='green'))


def warn(message):
    click.echo(click.style(f'⚠ {message}', fg='yellow'))


def selected_collectors(name):
    return [get_collector(name)] if name else COLLECTORS


@click.group(cls=MorioGroup)
@click.version_option(version=__version__, prog_name='morio')
@click.option('--config-root', type=click.Path(file_okay=False), default=None,
              help='Morio config root (default: $MORIO_CONFIG_ROOT or /etc/morio)')
@click.option('-v', '--verbose', is_flag=True, help='Show debug logging')
@click.pass_context
def cli(ctx, config_root, verbose):
    """
    The Morio client

    This client wraps different agents that each gather one type
    of observability data and ship it to a Morio collector.

    Use this to manage the various agents and their configuration.
    """
    settings = load_settings(config_root)

    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    if not isinstance(level, int):
        level = logging.WARNING
    try:
        setup_logging('morio_client', level=level, log_file=settings.log_file)
    except OSError as e:
        setup_logging('morio_client', level=level)
        logger.warning(f"Not logging to {settings.log_file}: {e}")

    ctx.obj = MorioContext(settings)


@cli.command()
def version():
    """Show the Morio client version"""
    click.echo(f'Morio client v{__version__}')


@cli.command()
@click.pass_obj
def init(obj):
    """
    Initialise the Morio client

    Generates a unique UUID for this client and stores the default vars
    of all templates. Running it again keeps the UUID.
    """
    seeded = obj.renderer.seed_defaults()
    click.echo(f'Stored {len(seeded)} default var(s) from the templates.')

    client = obj.store.get(CLIENT_UUID)
    if not client:
        click.echo('Initializing Morio client.')
        client = str(uuid.uuid4())
        obj.store.set_default(CLIENT_UUID, client)
        success(f'Morio client initialised with UUID {client}')
    else:
        click.echo('This Morio client is already initialised.')
        click.echo(f'Its UUID is {client}')

    click.echo('\nAgent status:')
    show_status(obj.backend, COLLECTORS)


@cli.command()
@click.pass_obj
def template(obj):
    """
    Template out the agents configuration

    Combines the configuration templates with your vars and writes the
    configuration of every agent. Defaults documented by the templates
    are stored along the way.
    """
    written = obj.renderer.render_all()
    if not written:
        warn(f'No agent configuration found under {obj.root}')
        return
    success(f'Rendered {len(written)} configuration file(s)')


# morio vars

@cli.group('vars')
def vars_group():
    """
    Manage template variables for the Morio client configuration

    The agents wrapped by the Morio client are configured from templates
    that take variables (vars). A var you set overrides the default the
    templates provide. Run 'morio template' to apply your changes.
    """
    pass


@vars_group.command('ls')
@click.pass_obj
def vars_ls(obj):
    """List the current vars"""
    for name in obj.store.get_all():
        click.echo(name)


@vars_group.command('dump')
@click.pass_obj
def vars_dump(obj):
    """List the current vars, their values, and where they come from"""
    custom = set(obj.store.custom_names())
    for name, value in obj.store.get_all().items():
        tier = 'custom' if name in custom else 'default'
        click.echo(f'{name}={value}  [{tier}]')


@vars_group.command('get')
@click.argument('name')
@click.pass_obj
def vars_get(obj, name):
    """Show the value of a var"""
    click.echo(obj.store.get(name))


@vars_group.command('set')
@click.argument('name')
@click.argument('value')
@click.pass_obj
def vars_set(obj, name, value):
    """Set the value of a var"""
    obj.store.set(name, value)
    success(f'{name} set')


@vars_group.command('rm')
@click.argument('name')
@click.pass_obj
def vars_rm(obj, name):
    """Remove a var (its default, if any, applies again)"""
    if obj.store.get_custom(name) is None:
        warn(f'{name} has no custom value')
        return
    obj.store.remove(name)
    success(f'{name} removed')


@vars_group.command('wipe')
@click.confirmation_option(prompt='Remove all custom vars?')
@click.pass_obj
def vars_wipe(obj):
    """Remove all custom vars"""
    removed = obj.store.wipe()
    success(f'Removed {len(removed)} var(s)')


@vars_group.command('enable')
@click.argument('name')
@click.pass_obj
def vars_enable(obj, name):
    """Set a var to true"""
    obj.store.enable(name)
    success(f'{name} enabled')


@vars_group.command('disable')
@click.argument('name')
@click.pass_obj
def vars_disable(obj, name):
    """Set a var to false"""
    obj.store.disable(name)
    success(f'{name} disabled')


@vars_group.command('clear')
@click.argument('name')
@click.pass_obj
def vars_clear(obj, name):
    """Set a var to an empty value (hiding its default)"""
    obj.store.clear(name)
    success(f'{name} cleared')


@vars_group.command('edit')
@click.argument('name')
@click.pass_obj
def vars_edit(obj, name):
    """Open an editor to edit a var"""
    edited = click.edit(obj.store.get(name))
    if edited is None:
        click.echo('No changes made')
        return
    obj.store.set(name, edited.rstrip('\n'))
    success(f'{name} set')


@vars_group.command('import')
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def vars_import(obj, file):
    """Import vars from a YAML file"""
    try:
        with open(file, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f'Invalid YAML in {file}: {e}')

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f'{file} must contain a mapping of var names to values')

    imported = obj.store.import_vars(data)
    success(f'Imported {len(imported)} var(s)')


@vars_group.command('export')
@click.argument('file', required=False, type=click.Path(dir_okay=False))
@click.pass_obj
def vars_export(obj, file):
    """Export the current vars as YAML (to FILE or stdout)"""
    output = yaml.safe_dump(obj.store.export_vars(), default_flow_style=False, sort_keys=True)
    if not file:
        click.echo(output, nl=False)
        return
    try:
        Path(file).write_text(output)
    except OSError as e:
        raise ConfigError(f'Unable to write {file}: {e}')
    success(f'Exported vars to {file}')


# morio modules

@cli.group('modules')
def modules_group():
    """
    Manage modules

    Modules are applied to all agents: enabling a module enables it for
    every agent that has it.
    """
    pass


def show_modules_list(manager):
    for collector in COLLECTORS:
        listing = manager.list_collector(collector)
        if listing.enabled:
            click.echo(f'Enabled {collector.name} modules:')
            for name in sorted(listing.enabled):
                click.echo(f' - {name}')
        else:
            click.echo(f'No {collector.name} modules enabled')
        if listing.disabled:
            click.echo(f'Disabled {collector.name} modules:')
            for name in sorted(listing.disabled):
                click.echo(f' - {name}')
        else:
            click.echo(f'No {collector.name} modules disabled')
        click.echo()


@modules_group.command('list')
@click.pass_obj
def modules_list(obj):
    """List modules"""
    show_modules_list(obj.modules)


@modules_group.command('enable')
@click.argument('name')
@click.pass_obj
def modules_enable(obj, name):
    """Enable a module"""
    manager = obj.modules
    changed = manager.enable_module(name)
    if changed:
        success(f'Enabled {name} in ' + ', '.join(area.key for area in changed))
    else:
        warn(f'No disabled module named {name}')
    show_modules_list(manager)


@modules_group.command('disable')
@click.argument('name')
@click.pass_obj
def modules_disable(obj, name):
    """Disable a module"""
    manager = obj.modules
    changed = manager.disable_module(name)
    if changed:
        success(f'Disabled {name} in ' + ', '.join(area.key for area in changed))
    else:
        warn(f'No enabled module named {name}')
    show_modules_list(manager)


@modules_group.command('info')
@click.argument('name')
@click.pass_obj
def modules_info(obj, name):
    """
    Show module info

    Example: morio modules info linux-system
    """
    files = obj.modules.find(name)
    if not files:
        warn(f'No module named {name}')
        sys.exit(1)

    renderer = obj.renderer
    catalog = load_global_catalog(obj.settings.global_vars_file)

    click.echo(f'\nModule: {name}\n')

    for module in files:
        doc = renderer.extractor.extract_metadata(renderer.template_name(module.path))
        click.echo(f'-- {module.area.key} ({module.state.value}) --')
        if doc.about:
            click.echo(doc.about.rstrip())

        if doc.local is None and doc.globals is None and doc.defaults is None:
            click.echo()
            continue

        click.echo('  -- vars --')
        if doc.local:
            click.echo('    -- local --')
            for key, about in doc.local.items():
                click.echo(f'      {key}\n        {about}')
        if doc.globals:
            click.echo('    -- globals --')
            for key in doc.globals:
                entry = catalog.get(key)
                about = entry.about if entry else '(not in global catalog)'
                click.echo(f'      {key}\n        {about}')
        if doc.defaults is not None or doc.globals:
            click.echo('    -- defaults --')
            for key, value in (doc.defaults or {}).items():
                click.echo(f'      {key}: {value}')
            for key in doc.globals or []:
                click.echo(f'      {key}: {obj.store.get(key)}')
        click.echo()


# morio audit|logs|metrics

PASSTHROUGH = dict(ignore_unknown_options=True, allow_extra_args=True, help_option_names=[])


def passthrough_command(collector):
    @click.command(
        name=collector.name,
        context_settings=PASSTHROUGH,
        help=f'Invoke the {collector.name} agent. '
             f'Any parameters after this command will be passed to {collector.beat}.',
    )
    @click.argument('args', nargs=-1, type=click.UNPROCESSED)
    @click.pass_obj
    def command(obj, args):
        sys.exit(run_agent(obj.settings, collector, args))

    return command


for _collector in COLLECTORS:
    cli.add_command(passthrough_command(_collector))


# morio start|stop|restart|status

def show_status(backend, collectors):
    for collector in collectors:
        if backend.is_active(collector):
            click.echo(f"  {collector.name:<8} {click.style('running', fg='green')}")
        else:
            click.echo(f"! {collector.name:<8} {click.style('stopped', fg='red')}")


def change_state(obj, action, name):
    backend = obj.backend
    collectors = selected_collectors(name)
    for collector in collectors:
        backend.change_state(collector, action)
    show_status(backend, COLLECTORS)


@cli.command()
@click.argument('agent', required=False, type=click.Choice(COLLECTOR_NAMES))
@click.pass_obj
def start(obj, agent):
    """Start all agents, or the one you pass it"""
    change_state(obj, 'start', agent)


@cli.command()
@click.argument('agent', required=False, type=click.Choice(COLLECTOR_NAMES))
@click.pass_obj
def stop(obj, agent):
    """Stop all agents, or the one you pass it"""
    change_state(obj, 'stop', agent)


@cli.command()
@click.argument('agent', required=False, type=click.Choice(COLLECTOR_NAMES))
@click.pass_obj
def restart(obj, agent):
    """Restart all agents, or the one you pass it"""
    change_state(obj, 'restart', agent)


@cli.command()
@click.argument('agent', required=False, type=click.Choice(COLLECTOR_NAMES))
@click.pass_obj
def status(obj, agent):
    """Show the status of all agents, or the one you pass it"""
    show_status(obj.backend, selected_collectors(agent))


if __name__ == '__main__':
    cli()
