#!/usr/bin/env python3
"""
Management script for the CabShare key-value server.
"""

import os
import sys
import json
import signal
import subprocess
import time
import click

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PID_FILE = os.path.join(BASE_DIR, 'server.pid')
DB_PATH = os.path.join(BASE_DIR, 'data', 'kv.json')


def _read_pid():
    with open(PID_FILE, 'r') as f:
        return f.read().strip()


@click.group()
def cli():
    """CabShare server management CLI."""
    pass


@cli.command()
@click.option('--port', default=3000, help='Port to run the server on')
def start(port):
    """Start the key-value server."""
    # Check if server is already running
    if os.path.exists(PID_FILE):
        click.echo(f"Server already running with PID {_read_pid()}")
        click.echo("If the server is not running, delete the 'server.pid' file and try again")
        return

    if not os.path.exists(DB_PATH):
        click.echo(f"Database file not found: {DB_PATH}")
        click.echo("Creating empty database file...")
        os.makedirs(os.path.dirname(DB_PATH), exist_ok=True)
        with open(DB_PATH, 'w') as f:
            json.dump({}, f)

    click.echo(f"Starting key-value server on port {port}...")
    click.echo(f"Using database: {DB_PATH}")

    env = dict(os.environ, CABSHARE_SERVER_PORT=str(port), CABSHARE_SERVER_DB=DB_PATH)
    try:
        process = subprocess.Popen(
            [sys.executable, os.path.join(BASE_DIR, 'kv_server.py')],
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE)

        with open(PID_FILE, 'w') as f:
            f.write(str(process.pid))

        # Give the server a moment to start
        time.sleep(1)

        if process.poll() is not None:
            click.echo("Server failed to start!", err=True)
            stdout, stderr = process.communicate()
            click.echo(f"STDOUT: {stdout.decode('utf-8')}")
            click.echo(f"STDERR: {stderr.decode('utf-8')}")
            os.remove(PID_FILE)
            return

        click.echo(f"Server running with PID {process.pid}")
        click.echo(f"Set CABSHARE_STORE_URL=http://localhost:{port} to use it")

    except OSError as e:
        click.echo(f"Error starting server: {str(e)}", err=True)
        if os.path.exists(PID_FILE):
            os.remove(PID_FILE)


@cli.command()
def stop():
    """Stop the key-value server."""
    if not os.path.exists(PID_FILE):
        click.echo("No running server found")
        return

    pid = _read_pid()
    try:
        pid = int(pid)
    except ValueError:
        click.echo(f"Invalid PID in the file: {pid}")
        os.remove(PID_FILE)
        return

    click.echo(f"Stopping server with PID {pid}...")
    try:
        os.kill(pid, signal.SIGTERM)
        time.sleep(1)

        try:
            os.kill(pid, 0)
            click.echo("Server did not terminate gracefully, force killing...")
            os.kill(pid, signal.SIGKILL)
        except OSError:
            # Process is gone
            pass

        click.echo("Server stopped")
    except OSError as e:
        click.echo(f"Error stopping server: {str(e)}")

    os.remove(PID_FILE)


@cli.command()
def status():
    """Check if the key-value server is running."""
    if not os.path.exists(PID_FILE):
        click.echo("Server is not running")
        return

    pid = _read_pid()
    try:
        os.kill(int(pid), 0)
        click.echo(f"Server is running with PID {pid}")
    except ValueError:
        click.echo(f"Invalid PID in the file: {pid}")
    except OSError:
        click.echo("Server PID file exists but process is not running")
        click.echo("You may want to remove the 'server.pid' file")


@cli.command()
def reset():
    """Reset the database to empty state."""
    if not os.path.exists(DB_PATH):
        click.echo(f"Database file not found: {DB_PATH}")
        return

    try:
        backup_path = f"{DB_PATH}.bak"
        with open(DB_PATH, 'r') as src:
            with open(backup_path, 'w') as dst:
                dst.write(src.read())

        with open(DB_PATH, 'w') as f:
            json.dump({}, f)

        click.echo(f"Database reset. Backup created at {backup_path}")
    except OSError as e:
        click.echo(f"Error resetting database: {str(e)}")


if __name__ == '__main__':
    cli()
