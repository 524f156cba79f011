"""
vrng - run the request/fulfill protocol in-process.

Commands:
  simulate   Deploy a consumer, issue requests and fulfill them locally
  methods    List normalization methods and accepted spellings
  version    Print the package version

Global options:
  --log-level TEXT     DEBUG, INFO, WARNING, ERROR (env LOG_LEVEL)
  --log-format TEXT    json or console (env LOG_FORMAT)

Examples:
  vrng simulate --method hash --requests 3 --seed demo
  vrng simulate --method most_normalized --height 300 --json
  vrng methods
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from prometheus_client import CollectorRegistry

from ..config import load_config
from ..errors import VRNGError
from ..history import BlockHistory
from ..host import OwnedRandomConsumer
from ..logging import get_logger, setup_logging
from ..metrics import Metrics, ensure_metrics_server, get_metrics
from ..normalize import aliases_of
from ..provider import LocalProvider, derive_raw_value, provider_address
from ..types import NormalizationMethod
from ..version import __version__

app = typer.Typer(
    name="vrng",
    help="Asynchronous randomness requests: local simulation tools",
    no_args_is_help=True,
    add_completion=False,
)

log = get_logger("vrng.cli")

# Identity of the simulated host operator.
OPERATOR = provider_address("operator")


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)", envvar="LOG_LEVEL"
    ),
    log_format: Optional[str] = typer.Option(
        None, "--log-format", help="Log renderer: json or console", envvar="LOG_FORMAT"
    ),
) -> None:
    """VRNG consumer tools."""
    setup_logging(service_name="vrng-cli", level=log_level, log_format=log_format)


# -------------------- helpers --------------------


def _short_hex(v: int, n: int = 18) -> str:
    h = f"0x{v:064x}"
    return h if len(h) <= n else h[: n - 3] + "..."


def _print_table(rows: List[Dict[str, Any]]) -> None:
    header = f"{'ID':>6}  {'TRACE':>6}  {'RAW':<18}  {'NORMALIZED':<18}  STATUS"
    typer.echo(header)
    typer.echo("-" * len(header))
    for r in rows:
        typer.echo(
            f"{r['request_id']:>6}  {r['trace_id']:>6}  "
            f"{_short_hex(r['raw_value']):<18}  {_short_hex(r['normalized_value']):<18}  "
            f"{r['status']}"
        )


# -------------------- commands --------------------


@app.command("simulate")
def simulate(
    method: Optional[str] = typer.Option(
        None, "--method", "-m", help="Normalization method (name or 0|1|2)"
    ),
    requests: int = typer.Option(3, "--requests", "-n", min=1, help="Number of requests"),
    seed: str = typer.Option("demo", "--seed", help="Seed for the simulated raw values"),
    height: int = typer.Option(
        300, "--height", min=0, help="Blocks to mine before the first request"
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Config file (JSON or YAML)", envvar="VRNG_CONFIG"
    ),
    as_json: bool = typer.Option(False, "--json/--table", help="Output format"),
) -> None:
    """
    Deploy a consumer behind a local provider, issue REQUESTS requests and
    fulfill them with values derived from SEED.
    """
    overrides: Dict[str, Any] = {}
    if method is not None:
        overrides["coordinator"] = {"normalization_method": method}
    try:
        cfg = load_config(config, overrides)
    except VRNGError as e:
        typer.echo(f"error: {e.message}", err=True)
        raise typer.Exit(code=2)

    if cfg.metrics.enabled:
        ensure_metrics_server(cfg.metrics.port, cfg.metrics.addr)
        metrics = get_metrics()
    else:
        metrics = Metrics(registry=CollectorRegistry())

    history = BlockHistory(cfg.coordinator.history_capacity)
    if height > 0:
        history.mine(height)

    provider = LocalProvider(name="simulator", first_id=cfg.coordinator.first_request_id)
    host = OwnedRandomConsumer(
        OPERATOR,
        cfg.coordinator.method,
        history=history,
        metrics=metrics,
        name="simulator",
    )
    provider.attach(host.vrng)
    host.set_provider(provider, caller=OPERATOR)

    ids = [host.roll(trace_id=i) for i in range(requests)]
    provider.fulfill_pending(lambda rid: derive_raw_value(seed, rid))

    rows = [
        {
            "request_id": rid,
            "trace_id": provider.trace_id_of(rid),
            "raw_value": provider.delivered_value(rid),
            "normalized_value": host.request(rid).normalized_value,
            "status": host.request(rid).status.name,
        }
        for rid in ids
    ]
    log.info(
        "simulation_finished",
        method=host.vrng.method.name,
        requests=len(rows),
        height=history.height,
    )

    if as_json:
        typer.echo(
            json.dumps(
                {"method": host.vrng.method.name, "height": history.height, "requests": rows},
                indent=2,
            )
        )
    else:
        typer.echo(f"method={host.vrng.method.name} height={history.height}")
        _print_table(rows)


@app.command("methods")
def methods() -> None:
    """List normalization methods with their accepted names."""
    for m in NormalizationMethod:
        typer.echo(f"{int(m)}  {m.name:<22} {', '.join(aliases_of(m))}")


@app.command("version")
def version() -> None:
    """Print the package version."""
    typer.echo(__version__)


if __name__ == "__main__":  # pragma: no cover
    app()
