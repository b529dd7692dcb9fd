"""Workspace command group and sub-commands."""

import click

from .validate import validate
from .list_services import list
from .up import up
from .down import down
from .exec_command import exec_command

__all__ = [
    'workspace',
    'validate',
    'list',
    'up',
    'down',
    'exec_command',
]


@click.group()
@click.option('--file', '-f', 'workspace_file',
              help='Path to workspace file or its directory (default: reactor-workspace.yml)')
@click.pass_context
def workspace(ctx, workspace_file):
    """Manage multi-container workspaces"""
    ctx.ensure_object(dict)
    ctx.obj['workspace_file'] = workspace_file


# Register all sub-commands
workspace.add_command(validate)
workspace.add_command(list)
workspace.add_command(up)
workspace.add_command(down)
workspace.add_command(exec_command)
