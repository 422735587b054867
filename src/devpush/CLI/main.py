# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Command Line Interface for devpush.
"""
import logging
import os
import click
from ..MANAGERS.component_orchestrator import ComponentOrchestrator
from ..PARSERS.devfile_parser import DevfileParser, get_push_commands
from ..PARSERS.env_parser import EnvInfo
from ..RUNTIME.docker_client import DockerRuntimeClient
from ..UTILS.errors import DevPushError
from ..UTILS.settings import load_settings


def _component_name(ctx) -> str:
    name = ctx.obj.get('name')
    if name:
        return name
    name = EnvInfo(ctx.obj['context']).get_component_name()
    if name:
        return name
    devfile = ctx.obj.get('devfile')
    if devfile is not None and devfile.name:
        return devfile.name
    return os.path.basename(os.path.abspath(ctx.obj['context']))


def _orchestrator(ctx) -> ComponentOrchestrator:
    client = ctx.obj.get('client')
    settings = ctx.obj['settings']
    if client is None:
        client = DockerRuntimeClient(base_url=settings.docker_host, timeout=settings.timeout)
        ctx.obj['client'] = client
    return ComponentOrchestrator(client, settings)


@click.group()
@click.option('--context', '-c', default='.', help='Component context directory')
@click.option('--devfile', '-f', 'devfile_path', default=None, help='Devfile path (default: <context>/devfile.yaml)')
@click.option('--name', '-n', default=None, help='Component name')
@click.option('--env-file', default='.env', help='File with DEVPUSH_* settings')
@click.pass_context
def cli(ctx, context, devfile_path, name, env_file):
    """
    devpush - push devfile components to a local Docker engine.

    Creates or updates the component's containers, then runs its devfile
    init, build and run commands inside them.
    """
    ctx.ensure_object(dict)
    try:
        settings = ctx.obj.get('settings') or load_settings(os.path.join(context, env_file))
    except DevPushError as err:
        raise click.ClickException(str(err))
    ctx.obj['settings'] = settings
    ctx.obj['context'] = context
    ctx.obj['name'] = name
    ctx.obj['devfile_path'] = devfile_path or os.path.join(context, 'devfile.yaml')
    logging.basicConfig(level=settings.log_level.upper(), format="%(message)s")


@cli.command()
@click.option('--init-command', default=None, help='Devfile init command to execute')
@click.option('--build-command', default=None, help='Devfile build command to execute')
@click.option('--run-command', default=None, help='Devfile run command to execute')
@click.option('--show-log', is_flag=True, help='Show the output of the executed commands')
@click.pass_context
def push(ctx, init_command, build_command, run_command, show_log):
    """Create or update the component and run its commands."""
    try:
        devfile = DevfileParser().parse(ctx.obj['devfile_path'])
        ctx.obj['devfile'] = devfile
        commands = get_push_commands(devfile, init=init_command, build=build_command, run=run_command)
        urls = EnvInfo(ctx.obj['context']).get_exposed_urls()
        name = _component_name(ctx)

        if show_log:
            ctx.obj['settings'] = ctx.obj['settings'].model_copy(update={'show_log': True})
        result = _orchestrator(ctx).push(name, devfile, commands, urls)
    except DevPushError as err:
        raise click.ClickException(str(err))

    for alias, outcome in result.outcomes.items():
        click.echo(f"{alias:15} {outcome.value}")
    click.echo(f"Changes successfully pushed to component: {name}")


@cli.command()
@click.pass_context
def ps(ctx):
    """List the component's containers"""
    try:
        name = _component_name(ctx)
        containers = _orchestrator(ctx).list_containers(name)
    except DevPushError as err:
        raise click.ClickException(str(err))

    click.echo(f"{'CONTAINER':15} {'ID':14}")
    click.echo("-" * 30)
    for container in containers:
        click.echo(f"{container.alias or '':15} {container.id[:12]:14}")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
