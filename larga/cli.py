"""
Maintenance commands (``flask --app larga <command>``).
"""
import logging
import sys
from pathlib import Path
from xml.etree.ElementTree import ParseError

import click
from flask import current_app

from larga.errors import LargaError
from larga.services.supabase_service import supabase_service
from larga.utils.terminals import parse_gpx_waypoints, render_runtime_config, terminal_upsert_sql


def register_commands(app):
    app.cli.add_command(terminals_sql)
    app.cli.add_command(runtime_config)
    app.cli.add_command(check_supabase)


@click.command('terminals-sql')
@click.argument('gpx_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
def terminals_sql(gpx_path):
    """Print jeepney_terminals upserts generated from a GPX file."""
    try:
        waypoints = parse_gpx_waypoints(gpx_path.read_text(encoding='utf-8'))
    except ParseError as e:
        click.echo(f"Invalid GPX file {gpx_path}: {e}", err=True)
        sys.exit(1)

    if not waypoints:
        click.echo('No <wpt> waypoints with <name> found in GPX.', err=True)
        sys.exit(1)

    click.echo(f"-- Generated from {gpx_path.name}")
    click.echo('-- Review before running in Supabase SQL editor.')
    click.echo('\n\n'.join(terminal_upsert_sql(waypoints)))


@click.command('runtime-config')
@click.option('--out', 'out_path', type=click.Path(dir_okay=False, path_type=Path),
              default=Path('login') / 'runtime-config.js', show_default=True)
@click.option('--api-base', default=None, help='Defaults to the API_BASE setting.')
def runtime_config(out_path, api_base):
    """Write the frontend runtime-config.js with the API base URL."""
    base = api_base if api_base is not None else current_app.config.get('API_BASE', '')
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(render_runtime_config(base), encoding='utf-8')
    except OSError as e:
        logging.error(f"[runtime-config] Failed to write {out_path}: {e}")
        sys.exit(1)
    click.echo(f"[runtime-config] Wrote {out_path} with API_BASE={base}")


@click.command('check-supabase')
def check_supabase():
    """List auth users with the service role key to confirm credentials work."""
    try:
        users = supabase_service.list_users(page=1, per_page=50)
    except LargaError as e:
        click.echo(f"Error listing users (admin): {e.public_message}", err=True)
        sys.exit(1)
    click.echo(f"Users count: {len(users)}")
