"""Click commands for replaying snapshot logs and serving their results."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from livecache.config import load_config
from livecache.errors import SnapshotFormatError
from livecache.models.config import LiveCacheConfig
from livecache.models.subscription import IDENTITY_EQUALITIES, SubscriptionIdentity, field_key
from livecache.observability.logging import get_logger, setup_logging
from livecache.source.replay import ReplayChangeSource
from livecache.sync.registry import SubscriptionRegistry
from livecache.sync.subscription import SubscriptionManager


def _build_manager(
    config: LiveCacheConfig,
    log_path: Path,
    key_path: str,
) -> tuple[SubscriptionManager, ReplayChangeSource, SubscriptionIdentity]:
    try:
        source = ReplayChangeSource.from_file(log_path)
    except SnapshotFormatError as exc:
        raise click.ClickException(f"{log_path}: {exc}") from exc
    manager = SubscriptionManager(
        source,
        equality=IDENTITY_EQUALITIES[config.subscription.identity_equality],
        name=log_path.stem,
    )
    identity = SubscriptionIdentity(query=str(log_path), key_of=field_key(key_path))
    return manager, source, identity


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Reconcile live-query snapshot logs into keyed result caches."""
    config = load_config()
    setup_logging(config.log.level)
    ctx.obj = config


@cli.command()
@click.argument("log_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--key", "key_path", default=None, help="Dotted path of the document key field.")
@click.pass_obj
def replay(config: LiveCacheConfig, log_path: Path, key_path: str | None) -> None:
    """Replay LOG_PATH and print every published result sequence as JSON."""
    manager, source, identity = _build_manager(config, log_path, key_path or config.replay.key_field)

    unsubscribe = manager.on_results(
        lambda results: click.echo(json.dumps({"version": manager.version, "documents": list(results)}, default=str))
    )
    errors: list[BaseException] = []
    manager.on_error(errors.append)

    manager.use(identity)
    delivered = source.play()
    unsubscribe()
    manager.stop()

    get_logger("cli").info("replay_finished", path=str(log_path), delivered=delivered)
    if errors:
        click.echo(f"error: {type(errors[0]).__name__}: {errors[0]}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("log_paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--key", "key_path", default=None, help="Dotted path of the document key field.")
@click.option("--host", default=None, help="Bind address (default LIVECACHE_API_HOST).")
@click.option("--port", type=int, default=None, help="Bind port (default LIVECACHE_API_PORT).")
@click.pass_obj
def serve(
    config: LiveCacheConfig,
    log_paths: tuple[Path, ...],
    key_path: str | None,
    host: str | None,
    port: int | None,
) -> None:
    """Replay each LOG_PATH into a named subscription and serve the results."""
    import uvicorn

    from livecache.api import create_app

    log = get_logger("cli")
    registry = SubscriptionRegistry()
    for log_path in log_paths:
        manager, source, identity = _build_manager(config, log_path, key_path or config.replay.key_field)
        try:
            registry.register(log_path.stem, manager)
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc
        manager.use(identity)
        source.play()
        log.info("subscription_replayed", subscription=log_path.stem, size=manager.size, version=manager.version)

    app = create_app(registry=registry, config=config)
    try:
        uvicorn.run(
            app,
            host=host or config.api.host,
            port=port or config.api.port,
            log_config=None,  # structlog handles all logging
            access_log=False,
        )
    finally:
        registry.stop_all()
