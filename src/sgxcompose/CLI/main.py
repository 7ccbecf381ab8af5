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
Command Line Interface for sgxcompose.
"""
import os

import click

from ..errors import ComposeError, CircularDependencyError
from ..PARSERS.compose_parser import ComposeParser
from ..RUNNERS.dependency_resolver import DependencyResolver
from ..VALIDATORS.deployment_validator import DeploymentValidator, Severity
from ..MANAGERS.environment_manager import EnvironmentManager
from ..CONVERTERS.to_compose import ComposeConverter
from ..CONVERTERS.to_docker_run import DockerRunConverter
from ..CATALOG.ci_deployment import build_ci_deployment


@click.group()
@click.option('--file', '-f', default='docker-compose.yml', help='Compose file path')
@click.option('--env-file', multiple=True, help='.env file layered over the host environment')
@click.pass_context
def cli(ctx, file, env_file):
    """
    sgxcompose - load, check and re-author SGX test deployments.

    Reads compose-style service descriptors and reports ordering,
    forwarded environment and host readiness without starting containers.
    """
    ctx.ensure_object(dict)
    ctx.obj['file'] = file
    ctx.obj['env'] = EnvironmentManager(env_files=env_file)


def _load(ctx):
    """
    Loads the compose file named on the command line, exiting on failure.
    """
    path = ctx.obj['file']
    if not os.path.exists(path):
        click.echo(f"Error: {path} not found.", err=True)
        ctx.exit(1)
    parser = ComposeParser(context=ctx.obj['env'].host_environment())
    try:
        return parser.parse(path)
    except ComposeError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@cli.command()
@click.option('--check-host', is_flag=True, help='Also check SGX devices, bind sources and capacity on this host')
@click.pass_context
def validate(ctx, check_host):
    """Validate the compose file."""
    path = ctx.obj['file']
    if not os.path.exists(path):
        click.echo(f"Error: {path} not found.", err=True)
        ctx.exit(1)
    parser = ComposeParser(context=ctx.obj['env'].host_environment())
    report = DeploymentValidator(check_host=check_host, parser=parser).validate_file(path)
    for issue in report.issues:
        click.echo(str(issue))
    if report.ok:
        count = len(report.config.services) if report.config else 0
        click.echo(f"{path}: OK ({count} services, {len(report.warnings)} warnings)")
    else:
        click.echo(f"{path}: {len(report.errors)} errors")
        ctx.exit(1)


@cli.command()
@click.option('--waves', is_flag=True, help='Group services that can start in parallel')
@click.option('--reverse', is_flag=True, help='Print shutdown order instead')
@click.pass_context
def order(ctx, waves, reverse):
    """Print service startup order."""
    config = _load(ctx)
    resolver = DependencyResolver()
    try:
        if waves:
            groups = resolver.startup_waves(config)
            if reverse:
                groups = list(reversed(groups))
            for i, group in enumerate(groups, 1):
                click.echo(f"{i}: {' '.join(group)}")
        else:
            names = resolver.shutdown_order(config) if reverse else resolver.resolve_order(config)
            for name in names:
                click.echo(name)
    except CircularDependencyError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@cli.command()
@click.pass_context
def services(ctx):
    """List services"""
    config = _load(ctx)
    click.echo(f"{'SERVICE':15} {'IMAGE':30} {'DEPENDS ON':20} {'LIMITS':10}")
    click.echo("-" * 78)
    for name, svc in config.services.items():
        limits = ""
        if svc.resources is not None:
            parts = []
            if svc.resources.cpus is not None:
                parts.append(f"cpus={svc.resources.cpus:g}")
            if svc.resources.memory is not None:
                parts.append(f"mem={svc.resources.memory}")
            limits = ",".join(parts)
        depends = ",".join(svc.depends_on) or "-"
        click.echo(f"{name:15} {svc.image:30} {depends:20} {limits or '-':10}")


@cli.command()
@click.argument('service')
@click.pass_context
def env(ctx, service):
    """Show the environment forwarded into SERVICE"""
    config = _load(ctx)
    try:
        svc = config.get(service)
    except KeyError as e:
        click.echo(f"Error: {e.args[0]}", err=True)
        ctx.exit(1)
    manager = ctx.obj['env']
    for name, value in manager.resolve(svc).items():
        click.echo(f"{name}={value}")
    for name in manager.missing(svc):
        click.echo(f"# {name} is not set on this host and will not be forwarded")


@cli.command()
@click.option('--out', '-o', default=None, help='Write to this file instead of stdout')
@click.pass_context
def config(ctx, out):
    """Print the normalized compose file"""
    converter = ComposeConverter(_load(ctx))
    if out:
        converter.convert(out)
        click.echo(f"Compose file written to {out}")
    else:
        click.echo(converter.render(), nl=False)


@cli.command()
@click.option('--out', '-o', default=None, help='Write to this file instead of stdout')
@click.option('--project', '-p', default=None, help='Project name for containers and network')
@click.pass_context
def script(ctx, out, project):
    """Generate a docker run script"""
    config = _load(ctx)
    if project is None:
        project = os.path.basename(os.path.dirname(os.path.abspath(ctx.obj['file']))) or None
    try:
        converter = DockerRunConverter(config, project=project)
        if out:
            converter.convert(out)
            click.echo(f"Script written to {out}")
        else:
            click.echo(converter.render(), nl=False)
    except CircularDependencyError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@cli.command()
@click.option('--out', '-o', default=None, help='Destination, defaults to the --file path')
@click.option('--force', is_flag=True, help='Overwrite an existing file')
@click.pass_context
def init(ctx, out, force):
    """Write the built-in SGX CI deployment"""
    path = out or ctx.obj['file']
    if os.path.exists(path) and not force:
        click.echo(f"Error: {path} already exists, use --force to overwrite.", err=True)
        ctx.exit(1)
    ComposeConverter(build_ci_deployment()).convert(path)
    click.echo(f"CI deployment written to {path}")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
