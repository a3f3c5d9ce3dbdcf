# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/cli/app.py
from __future__ import annotations

import signal
import threading
from pathlib import Path
from typing import List, Optional

import typer

from certcsi.config.loader import load_options
from certcsi.driver.models import PublishVolumeRequest, UnpublishVolumeRequest
from certcsi.driver.nodeserver import new_node_server
from certcsi.errors import CertCSIError
from certcsi.logging.log import init_logging


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="cert-manager CSI node driver")


def _parse_attributes(values: List[str]) -> dict:
    attr = {}
    for item in values:
        if "=" not in item:
            raise typer.BadParameter(f"attribute must be KEY=VALUE, got {item!r}")
        k, v = item.split("=", 1)
        attr[k] = v
    return attr


def _options(config: Optional[Path], node_id: Optional[str], data_root: Optional[str],
             webhook_net_host: Optional[str], kubeconfig: Optional[str]):
    return load_options(
        config,
        node_id=node_id,
        data_root=data_root,
        webhook_net_host=webhook_net_host,
        kubeconfig=kubeconfig,
    )


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def run(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML driver options"),
    node_id: Optional[str] = typer.Option(None, "--node-id", help="node ID"),
    data_root: Optional[str] = typer.Option(None, "--data-root", help="directory to store ephemeral data"),
    webhook_net_host: Optional[str] = typer.Option(
        None, "--webhook-net-host",
        help="optional URL to a server to consume create/renew/destroy webhooks",
    ),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="also write a DEBUG log file here"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Resume renewal for every volume on disk and keep it running until interrupted."""
    logger, _ = init_logging(log_dir=log_dir, verbose=verbose)
    opts = _options(config, node_id, data_root, webhook_net_host, kubeconfig)

    ns = new_node_server(opts)
    logger.info(f"node {opts.node_id} serving {opts.driver_name}, data root {opts.data_root}")

    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    try:
        stop.wait()
    except KeyboardInterrupt:
        pass
    finally:
        ns.renewer.stop()
        logger.info("=== certcsi stopped ===")


@app.command()
def publish(
    volume_id: str = typer.Argument(...),
    target_path: str = typer.Argument(...),
    attribute: List[str] = typer.Option([], "--attribute", "-a", help="volume attribute KEY=VALUE"),
    config: Optional[Path] = typer.Option(None, "--config", "-c"),
    node_id: Optional[str] = typer.Option(None, "--node-id"),
    data_root: Optional[str] = typer.Option(None, "--data-root"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="also write a DEBUG log file here"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Publish one volume, as kubelet would."""
    init_logging(log_dir=log_dir, verbose=verbose)
    opts = _options(config, node_id, data_root, None, kubeconfig)
    ns = new_node_server(opts)
    try:
        ns.publish_volume(
            PublishVolumeRequest(
                volume_id=volume_id,
                target_path=target_path,
                volume_context=_parse_attributes(attribute),
            )
        )
    except CertCSIError as exc:
        typer.secho(f"{exc.code.value}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    finally:
        ns.renewer.stop()
    typer.echo(f"published {volume_id} at {target_path}")


@app.command()
def unpublish(
    volume_id: str = typer.Argument(...),
    target_path: str = typer.Argument(...),
    config: Optional[Path] = typer.Option(None, "--config", "-c"),
    node_id: Optional[str] = typer.Option(None, "--node-id"),
    data_root: Optional[str] = typer.Option(None, "--data-root"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="also write a DEBUG log file here"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Tear down one volume."""
    init_logging(log_dir=log_dir, verbose=verbose)
    opts = _options(config, node_id, data_root, None, kubeconfig)
    ns = new_node_server(opts)
    try:
        ns.unpublish_volume(UnpublishVolumeRequest(volume_id=volume_id, target_path=target_path))
    except CertCSIError as exc:
        typer.secho(f"{exc.code.value}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    finally:
        ns.renewer.stop()
    typer.echo(f"unpublished {volume_id}")


if __name__ == "__main__":
    app()
