"""Command-line interface for scanbridge."""

import sys
import tomllib
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from scanbridge.config import ConfigNotFoundError, load_settings
from scanbridge.errors import CancellationError, ScanBridgeError
from scanbridge.log import configure_logging
from scanbridge.service import ScanService

app = typer.Typer(
    name="scanbridge",
    help="Scan text, files, directories and git history for leaked secrets.",
    no_args_is_help=True,
)
console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to scanbridge.toml or pyproject.toml"),
]
LogLevelOption = Annotated[
    Optional[str],
    typer.Option("--log-level", help="Log level (overrides config)"),
]
VerifyOption = Annotated[
    Optional[bool],
    typer.Option("--verify/--no-verify", help="Verify found secrets (default from config)"),
]
IncludeOption = Annotated[
    Optional[list[str]],
    typer.Option("--include", "-i", help="Only run this detector (repeatable)"),
]
ExcludeOption = Annotated[
    Optional[list[str]],
    typer.Option("--exclude", "-e", help="Skip this detector (repeatable)"),
]


def print_error(message: str) -> None:
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False, soft_wrap=True)


def _build_service(config: Path | None, log_level: str | None) -> ScanService:
    try:
        settings = load_settings(config)
    except ConfigNotFoundError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from None
    except tomllib.TOMLDecodeError as e:
        print_error(f"TOML syntax error in {config or 'config file'}: {e}")
        raise typer.Exit(code=1) from None
    except ValidationError as e:
        print_error(f"invalid settings: {e}")
        raise typer.Exit(code=1) from None

    configure_logging(log_level or settings.log_level)
    return ScanService.create(settings)


def _run(operation, *args: Any, **kwargs: Any) -> None:
    """Call a service operation and print its result as JSON."""
    try:
        result = operation(*args, **kwargs)
    except CancellationError as e:
        print_error(f"scan cancelled: {e}")
        raise typer.Exit(code=2) from None
    except ScanBridgeError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from None
    console.print_json(data=result)


def _absolute(path: Path) -> str:
    return str(path.expanduser().absolute())


@app.command("list-detectors")
def list_detectors(
    filter: Annotated[
        str, typer.Option("--filter", "-f", help="Case-insensitive substring of the detector type")
    ] = "",
    config: ConfigOption = None,
) -> None:
    """List the detectors available to scans."""
    service = _build_service(config, None)
    _run(service.list_detectors, filter)


@app.command("detector-info")
def detector_info(
    detector_type: Annotated[str, typer.Argument(help="Detector type (e.g. AWS)")],
    config: ConfigOption = None,
) -> None:
    """Describe one detector."""
    service = _build_service(config, None)
    _run(service.get_detector_info, detector_type)


@app.command("scan-text")
def scan_text(
    text: Annotated[str, typer.Argument(help="Text to scan, or '-' to read stdin")],
    verify: VerifyOption = None,
    include: IncludeOption = None,
    exclude: ExcludeOption = None,
    config: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Scan a piece of text for secrets."""
    service = _build_service(config, log_level)
    if text == "-":
        text = sys.stdin.read()
    _run(
        service.scan_text,
        text,
        verify=verify,
        include_detectors=include,
        exclude_detectors=exclude,
    )


@app.command("scan-file")
def scan_file(
    path: Annotated[Path, typer.Argument(help="File to scan")],
    verify: VerifyOption = None,
    include: IncludeOption = None,
    exclude: ExcludeOption = None,
    config: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Scan a single file for secrets."""
    service = _build_service(config, log_level)
    _run(
        service.scan_file,
        _absolute(path),
        verify=verify,
        include_detectors=include,
        exclude_detectors=exclude,
    )


@app.command("scan-dir")
def scan_dir(
    path: Annotated[Path, typer.Argument(help="Directory to scan recursively")],
    verify: VerifyOption = None,
    include: IncludeOption = None,
    exclude: ExcludeOption = None,
    config: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Scan every file under a directory for secrets."""
    service = _build_service(config, log_level)
    _run(
        service.scan_directory,
        _absolute(path),
        verify=verify,
        include_detectors=include,
        exclude_detectors=exclude,
    )


@app.command("scan-git")
def scan_git(
    uri: Annotated[str, typer.Argument(help="Repository path, file:// URI or remote URL")],
    branch: Annotated[
        Optional[str], typer.Option("--branch", "-b", help="Branch to scan (default HEAD)")
    ] = None,
    since_commit: Annotated[
        Optional[str], typer.Option("--since-commit", help="Only scan commits after this one")
    ] = None,
    max_depth: Annotated[
        int, typer.Option("--max-depth", min=0, help="Maximum commits to scan (0 = all)")
    ] = 0,
    verify: VerifyOption = None,
    include: IncludeOption = None,
    exclude: ExcludeOption = None,
    config: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Scan the commit history of a git repository for secrets."""
    service = _build_service(config, log_level)
    _run(
        service.scan_git_repo,
        uri,
        branch=branch,
        since_commit=since_commit,
        max_depth=max_depth,
        verify=verify,
        include_detectors=include,
        exclude_detectors=exclude,
    )


@app.command()
def verify(
    detector_type: Annotated[str, typer.Argument(help="Detector type (e.g. AWS)")],
    secret: Annotated[str, typer.Argument(help="Candidate secret to check")],
    extra_data: Annotated[
        str, typer.Option("--extra-data", help="Context some detectors need (e.g. a key ID)")
    ] = "",
    config: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Check one candidate secret with one detector."""
    service = _build_service(config, log_level)
    _run(service.verify_secret, detector_type, secret, extra_data=extra_data)


@app.command()
def version() -> None:
    """Show scanbridge version."""
    from scanbridge import __version__

    console.print(f"scanbridge [bold green]{__version__}[/bold green]")


if __name__ == "__main__":
    app()
