# src/signalflow/cli.py
"""signalflow Command Line Interface.

Entry point for the signalflow CLI tool.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from signalflow import __version__
from signalflow.contracts import ConfigurationError, GraphDefinitionError, PipelineContext
from signalflow.core.config import SignalflowSettings, load_settings
from signalflow.core.dag import StageGraph, build_stage_graph

__all__ = ["app"]

DEFAULT_SETTINGS = "settings.yaml"

# Logging flags from the root callback; settings files fill in what these leave unset
_log_flags: dict[str, bool] = {"verbose": False, "json_logs": False}

app = typer.Typer(
    name="signalflow",
    help="signalflow: DAG pipelines for trading signals, with read-only replay audits.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"signalflow version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """signalflow: DAG pipelines for trading signals, with read-only replay audits."""
    # Logging first, so subcommand failures are captured
    from signalflow.core.logging import configure_logging

    _log_flags.update(verbose=verbose, json_logs=json_logs)
    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho("Warning: --env-file ignored because --no-dotenv is set.", fg=typer.colors.YELLOW, err=True)


def _load_settings_or_exit(settings: str) -> SignalflowSettings:
    settings_path = Path(settings).expanduser()
    try:
        config = load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {settings}: {e.problem}", err=True)
        raise typer.Exit(1) from None
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    from signalflow.core.logging import configure_logging

    configure_logging(
        json_output=_log_flags["json_logs"] or config.logging.json_output,
        level="DEBUG" if _log_flags["verbose"] else config.logging.level,
    )
    return config


def _build_graph_or_exit(config: SignalflowSettings) -> StageGraph:
    try:
        return build_stage_graph(config.pipeline.to_stages())
    except ConfigurationError as e:
        typer.echo(f"Stage configuration error: {e}", err=True)
        raise typer.Exit(1) from None
    except GraphDefinitionError as e:
        typer.echo("Pipeline graph errors:", err=True)
        for message in e.errors:
            typer.echo(f"  - {message}", err=True)
        raise typer.Exit(1) from None


@app.command()
def replay(
    signal_id: str = typer.Option(
        ...,
        "--id",
        "--signal-id",
        help="Id of the stored signal to replay.",
    ),
    settings: str = typer.Option(
        DEFAULT_SETTINGS,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output the replay result as JSON.",
    ),
) -> None:
    """Replay a stored signal and report stored-vs-recomputed differences.

    Read-only: the store is opened in read-only mode and never written.
    Exits 1 when the signal is not found or the replay fails.
    """
    from signalflow.replay import ReplayService, render_report, result_to_dict

    config = _load_settings_or_exit(settings)
    try:
        service = ReplayService.from_settings(config)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    with service:
        try:
            outcome = service.replay_signal_by_id(signal_id)
        except ConfigurationError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from None
        except Exception as e:
            typer.echo(f"Replay failed: {type(e).__name__}: {e}", err=True)
            raise typer.Exit(1) from None

    if not outcome.found:
        typer.echo(f"Signal not found: {signal_id}", err=True)
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps(result_to_dict(outcome), indent=2))
    else:
        typer.echo(render_report(outcome))


@app.command()
def validate(
    settings: str = typer.Option(
        DEFAULT_SETTINGS,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Validate settings and the pipeline stage graph without running anything."""
    config = _load_settings_or_exit(settings)
    graph = _build_graph_or_exit(config)

    typer.echo(f"Pipeline '{config.pipeline.display_version}' is valid.")
    typer.echo(f"  Stages: {len(graph)}")
    typer.echo(f"  Edges: {graph.get_nx_graph().number_of_edges()}")
    typer.echo(f"  Roots: {', '.join(graph.roots) or '-'}")
    typer.echo(f"  Sinks: {', '.join(graph.sinks) or '-'}")
    typer.echo(f"  Topology hash: {graph.topology_hash()}")
    typer.echo(f"  Scoring config hash: {config.scoring_config_hash()}")


def _read_payload(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        typer.echo(f"Error: Input file not found: {path}", err=True)
        raise typer.Exit(1) from None
    except json.JSONDecodeError as e:
        typer.echo(f"Error: Input file is not valid JSON: {e}", err=True)
        raise typer.Exit(1) from None


@app.command()
def run(
    settings: str = typer.Option(
        DEFAULT_SETTINGS,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    input_path: Path = typer.Option(
        ...,
        "--input",
        "-i",
        help="JSON file holding the initial payload.",
    ),
    linear: bool = typer.Option(
        False,
        "--linear",
        help="Run stages one after another in declared order.",
    ),
    show_stages: bool = typer.Option(
        False,
        "--stages",
        help="Include per-stage metadata in the output.",
    ),
) -> None:
    """Run the configured stage graph once on a JSON payload.

    Plugin stages are imported from their plugin_path. Internal stages need
    in-process handlers and cannot be run from the command line.
    """
    from signalflow.engine import HandlerRegistry, run_pipeline_dag, run_pipeline_linear

    config = _load_settings_or_exit(settings)
    graph = _build_graph_or_exit(config)
    payload = _read_payload(input_path)
    context = PipelineContext(include_stage_summaries=show_stages)

    try:
        if linear:
            result = run_pipeline_linear(graph.stages, payload, context, HandlerRegistry())
        else:
            result = run_pipeline_dag(
                graph, payload, context, HandlerRegistry(), max_workers=config.concurrency.max_workers
            )
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    except Exception as e:
        typer.echo(f"Error during pipeline execution: {type(e).__name__}: {e}", err=True)
        raise typer.Exit(1) from None

    output: dict[str, Any] = {"payload": result.payload}
    if show_stages:
        output["stages"] = [meta.to_dict() for meta in result.stage_meta]
    typer.echo(json.dumps(output, indent=2, default=str))


if __name__ == "__main__":
    app()
