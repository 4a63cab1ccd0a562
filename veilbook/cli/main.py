#!/usr/bin/env python3
"""
Veilbook CLI

Command-line interface for inspecting configuration and running batches
against the reference collaborators.

Usage:
    veilbook config [--config FILE]
    veilbook simulate [--config FILE] [--ask AMOUNT ...] [--bid AMOUNT ...]
                      [--expire-after BLOCKS] [--json]
"""

import json
from pathlib import Path
from typing import Optional, Tuple

import click

from ..config import VeilbookConfig, load_config
from ..constants import ENGINE_VERSION
from ..crypto.reference import ReferenceBackend
from ..engine import BatchEngine, DecryptionCompleted
from ..exceptions import VeilbookError
from ..logger import configure_logging
from ..oracle import LocalDecryptionOracle

# Used when no owner is configured; simulation only
SIMULATION_OWNER = "0x" + "a1" * 20
SIMULATION_PROVIDER = "0x" + "b2" * 20


def _load_config(config_path: Optional[str]) -> VeilbookConfig:
    try:
        cfg = load_config(config_path)
        cfg.validate()
    except VeilbookError as e:
        raise click.ClickException(str(e))
    return cfg


def _configure_logging(cfg: VeilbookConfig) -> None:
    log_file = Path(cfg.logging.file_path) if cfg.logging.file_path else None
    configure_logging(
        log_level=cfg.logging.level,
        log_file=log_file,
        file_output=cfg.logging.file_output,
    )


@click.group()
@click.version_option(version=ENGINE_VERSION, prog_name="veilbook")
def cli():
    """Veilbook confidential order-batching engine."""
    pass


@cli.command("config")
@click.option("--config", "config_path", type=click.Path(), default=None, help="Path to veilbook.toml")
def config_cmd(config_path: Optional[str]):
    """Print the resolved configuration."""
    cfg = _load_config(config_path)
    click.echo(json.dumps(cfg.to_dict(), indent=2))


@cli.command("simulate")
@click.option("--config", "config_path", type=click.Path(), default=None, help="Path to veilbook.toml")
@click.option("--ask", "asks", type=int, multiple=True, help="Ask order amount (repeatable)")
@click.option("--bid", "bids", type=int, multiple=True, help="Bid order amount (repeatable)")
@click.option("--expire-after", type=int, default=None, help="Orders expire this many blocks after submission")
@click.option("--json", "as_json", is_flag=True, help="Emit machine-readable output")
def simulate_cmd(
    config_path: Optional[str],
    asks: Tuple[int, ...],
    bids: Tuple[int, ...],
    expire_after: Optional[int],
    as_json: bool,
):
    """Run one batch end to end and reveal its aggregate volumes."""
    cfg = _load_config(config_path)
    _configure_logging(cfg)

    if not asks and not bids:
        asks, bids = (100,), (40,)

    backend = ReferenceBackend(bit_width=cfg.oracle.bit_width)
    oracle = LocalDecryptionOracle(backend, key=cfg.oracle.key)
    owner = cfg.engine.owner or SIMULATION_OWNER
    engine = BatchEngine(
        owner=owner,
        backend=backend,
        oracle=oracle,
        address=cfg.engine.address or None,
        cooldown=0,
    )

    try:
        engine.begin_block(1, 1.0)
        engine.add_provider(owner, SIMULATION_PROVIDER)
        batch_id = engine.open_batch(owner).batch_id

        expiry = None
        if expire_after is not None:
            expiry = backend.as_opaque(engine.block_height + expire_after)

        for side, amounts in ((True, asks), (False, bids)):
            for amount in amounts:
                engine.submit_order(
                    SIMULATION_PROVIDER,
                    asset_id=backend.encrypt(1),
                    amount=backend.encrypt(amount),
                    price=backend.encrypt(0),
                    expiry=expiry,
                    is_ask=side,
                )

        engine.close_batch(owner)
        request_id = engine.request_aggregate_decryption(owner, batch_id)
        completed: DecryptionCompleted = oracle.deliver(request_id, engine.on_decryption_result)
    except VeilbookError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}")

    context = engine.get_decryption_context(request_id)
    if as_json:
        click.echo(json.dumps({
            "batchId": batch_id,
            "orders": engine.order_count,
            "context": context.to_dict(),
            "event": completed.to_dict(),
        }, indent=2))
        return

    click.echo(click.style(f"Batch #{batch_id}", fg="cyan", bold=True))
    click.echo(f"Orders:        {engine.order_count}")
    click.echo(f"Request:       #{request_id}")
    click.echo(f"State hash:    0x{context.state_hash.hex()}")
    click.echo(click.style(f"Ask volume:    {completed.ask_volume}", fg="green"))
    click.echo(click.style(f"Bid volume:    {completed.bid_volume}", fg="green"))


def main():
    cli()


if __name__ == "__main__":
    main()
