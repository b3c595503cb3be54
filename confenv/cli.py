# confenv/cli.py

import json
import os
import re
import fnmatch
import logging
import shlex
import click
import toml

from .registry import Registry
from .store import MemoryStore
from .exceptions import InvalidDomain

def _match(pattern: str, text: str, ignore_case: bool = False) -> bool:
    """
    Try glob first, then regex, then exact match.
      - Glob if pattern contains *, ?, [ or ]
      - Regex if pattern contains any of . + ^ $ ( ) { } | \\
      - Exact otherwise
    Honors ignore_case by lowercasing both pattern & text.
    """
    if ignore_case:
        pattern = pattern.lower()
        text = text.lower()

    if any(c in pattern for c in "*?[]"):
        return fnmatch.fnmatch(text, pattern)

    if any(c in pattern for c in ".+^$(){}|\\"):
        flags = re.IGNORECASE if ignore_case else 0
        return re.search(pattern, text, flags) is not None

    return pattern == text

def _parse_value(raw: str):
    """JSON-decode VALUE when possible (lists, objects, quoted strings), else keep it."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-d", "--domain", required=True, help="Env-var prefix, e.g. myapp for MYAPP_*")
@click.option("--env-file", "env_file", help=".env file to load after the environment")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx, domain, env_file, verbose):
    """
    confenv CLI: inspect a domain's environment variables via dot-notation.

    Reads the current environment (`-d myapp` picks MYAPP_*), then runs:
      • get       PATH
      • exists    PATH
      • dump      [--format json|toml|env]
      • set       PATH VALUE   (prints `export` lines for eval)
      • search    [--key PAT] [--val PAT] [-i]
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    store = MemoryStore(dict(os.environ))
    try:
        registry = Registry(domain, store=store, dotenv_path=env_file)
    except (InvalidDomain, FileNotFoundError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)

    ctx.obj = {
        "registry": registry,
        "store": store,
    }

@cli.command()
@click.argument("path")
@click.pass_context
def get(ctx, path):
    """Print the value at PATH (dot-notation) as JSON."""
    value = ctx.obj["registry"].param(path)
    if value is None:
        click.secho(f"Path not found: {path}", fg="yellow", err=True)
        ctx.exit(1)
    click.echo(json.dumps(value, indent=2))

@cli.command()
@click.argument("path")
@click.pass_context
def exists(ctx, path):
    """Exit 0 if PATH exists in the domain, 1 otherwise."""
    if path in ctx.obj["registry"]:
        click.echo("true")
        ctx.exit(0)
    click.echo("false")
    ctx.exit(1)

@cli.command()
@click.option("--format", "fmt", type=click.Choice(["json", "toml", "env"]), default="json",
              help="Output format")
@click.pass_context
def dump(ctx, fmt):
    """Print the whole domain as a JSON/TOML tree or as KEY=VALUE lines."""
    registry = ctx.obj["registry"]
    if fmt == "env":
        for key, value in sorted(registry.environment().items()):
            click.echo(f"{key}={value}")
    elif fmt == "toml":
        click.echo(toml.dumps(registry.tree))
    else:
        click.echo(json.dumps(registry.tree, indent=2))

@cli.command()
@click.argument("path")
@click.argument("value")
@click.pass_context
def set(ctx, path, value):
    """
    Set PATH to JSON-parsed VALUE and print the resulting shell commands.

    A child process cannot change its parent's environment, so the changes
    are printed as `export`/`unset` lines:  eval "$(confenv -d myapp set db.1.user root)"
    """
    registry, store = ctx.obj["registry"], ctx.obj["store"]
    before = store.as_dict()
    registry.param(path, _parse_value(value))
    after = store.as_dict()

    for key in sorted(before.keys() - after.keys()):
        click.echo(f"unset {key}")
    for key, val in sorted(after.items()):
        if before.get(key) != val:
            click.echo(f"export {key}={shlex.quote(val)}")

@cli.command()
@click.option("--key", "key_pat",    help="Pattern for variable names (regex/glob/plain)")
@click.option("--val", "val_pat",    help="Pattern for values (regex/glob/plain)")
@click.option("-i", "--ignore-case", is_flag=True,
              help="Make key/value matching case-insensitive")
@click.pass_context
def search(ctx, key_pat, val_pat, ignore_case):
    """
    Search the domain's variables by name and/or value.
    At least one of --key or --val must be provided.
    """
    if not (key_pat or val_pat):
        click.secho("Error: supply --key or --val", fg="red", err=True)
        ctx.exit(1)

    found = {}
    for k, v in ctx.obj["registry"].environment().items():
        ks = _match(key_pat, k, ignore_case) if key_pat else True
        vs = _match(val_pat, v, ignore_case) if val_pat else True
        if ks and vs:
            found[k] = v

    if not found:
        click.echo("No matches")
        ctx.exit(1)

    click.echo(json.dumps(dict(sorted(found.items())), indent=2))
