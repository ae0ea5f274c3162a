"""memokit CLI for inspecting and purging persistent (file driver) caches."""

from __future__ import annotations

import sys
import time
import traceback
from pathlib import Path

import click

from memokit import __version__
from memokit.backends.file import FileCache, list_namespaces
from memokit.config import MemoizeConfig


def handle_error(error: Exception, debug: bool) -> None:
    """Handle errors with structured output.

    Args:
        error: The exception that occurred
        debug: Whether to show full traceback
    """
    if debug:
        traceback.print_exc()
    else:
        click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _root_dir(ctx: click.Context) -> Path:
    return ctx.obj["root_dir"]


def _open(ctx: click.Context, namespace: str) -> FileCache:
    namespaces = list_namespaces(_root_dir(ctx))
    if namespace not in namespaces:
        raise click.ClickException(f"No cache namespace '{namespace}' under {_root_dir(ctx)}")
    return FileCache(namespace, root_dir=_root_dir(ctx))


@click.group()
@click.version_option(version=__version__, prog_name="memokit")
@click.option('--root-dir', type=click.Path(path_type=Path), help='File cache root (default: $MEMOKIT_ROOT_DIR or .memokit)')
@click.option('--config', 'config_path', type=click.Path(exists=True, path_type=Path), help='YAML configuration file')
@click.option('--debug', is_flag=True, help='Enable debug mode (show full tracebacks)')
@click.pass_context
def cli(ctx: click.Context, root_dir: Path | None, config_path: Path | None, debug: bool):
    """memokit CLI - inspect memoized results stored on disk."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug
    try:
        config = MemoizeConfig.from_yaml(config_path) if config_path else MemoizeConfig.from_env()
    except (OSError, ValueError) as e:
        handle_error(e, debug)
    ctx.obj['root_dir'] = root_dir or config.root_dir


@cli.command()
@click.pass_context
def namespaces(ctx: click.Context):
    """List cache namespaces."""
    found = list_namespaces(_root_dir(ctx))
    if not found:
        click.echo(f"No caches under {_root_dir(ctx)}")
        return
    for name in found:
        click.echo(name)


@cli.command()
@click.argument('namespace', required=False)
@click.pass_context
def stats(ctx: click.Context, namespace: str | None):
    """Show cache statistics for one namespace or all of them."""
    debug = ctx.obj.get('debug', False)

    try:
        names = [namespace] if namespace else list(list_namespaces(_root_dir(ctx)))
        if not names:
            click.echo(f"No caches under {_root_dir(ctx)}")
            return
        for name in names:
            cache_stats = _open(ctx, name).stats()
            click.echo(f"{name}:")
            click.echo(f"  Entries: {cache_stats['entries']}")
            click.echo(f"  Total size: {cache_stats['total_size_bytes']:,} bytes")
            click.echo(f"  Location: {cache_stats['cache_dir']}")
    except click.ClickException:
        raise
    except Exception as e:
        handle_error(e, debug)


@cli.command()
@click.argument('namespace')
@click.option('--expired', is_flag=True, help='Only list expired entries')
@click.pass_context
def keys(ctx: click.Context, namespace: str, expired: bool):
    """List stored keys in a namespace."""
    debug = ctx.obj.get('debug', False)

    try:
        cache = _open(ctx, namespace)
        now = time.time()
        for key in cache.get_keys():
            entry = cache.get_entry(key)
            if entry is None:
                continue
            if expired and not (entry.expires_at is not None and entry.expires_at <= now):
                continue
            click.echo(key)
    except click.ClickException:
        raise
    except Exception as e:
        handle_error(e, debug)


@cli.command()
@click.argument('namespace', required=False)
@click.option('--all', 'clear_all', is_flag=True, help='Clear every namespace')
@click.confirmation_option(prompt='Are you sure you want to clear the cache?')
@click.pass_context
def clear(ctx: click.Context, namespace: str | None, clear_all: bool):
    """Clear cached results."""
    debug = ctx.obj.get('debug', False)

    if not namespace and not clear_all:
        raise click.UsageError("Give a NAMESPACE or --all")

    try:
        names = list(list_namespaces(_root_dir(ctx))) if clear_all else [namespace]
        total = 0
        for name in names:
            total += _open(ctx, name).clear()
        click.echo(f"Cleared {total} cache entries")
    except click.ClickException:
        raise
    except Exception as e:
        handle_error(e, debug)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
