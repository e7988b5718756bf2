"""Command line interface for inspecting collected test results."""

import sys
from enum import Enum

import typer

from resultlog import (
    FileOutputStore,
    ResultSerializer,
    TestOutputDestination,
    configure_logging,
)
from resultlog.config import load_settings


class Stream(str, Enum):
    """Captured output streams."""

    STDOUT = "stdout"
    STDERR = "stderr"


app = typer.Typer(help="resultlog command line interface")


def _load(config: str | None):
    cfg = load_settings(config)
    configure_logging(cfg.log_level)
    return cfg


@app.command()
def classes(
    results_dir: str = typer.Argument(..., help="Directory holding results.db"),
    config: str | None = typer.Option(None, help="YAML settings file"),
) -> None:
    """List recorded classes with test, failure and skip counts."""

    _load(config)
    for class_result in ResultSerializer().read(results_dir):
        typer.echo(
            f"{class_result.class_name}\t"
            f"tests={class_result.test_count}\t"
            f"failures={class_result.failures_count}\t"
            f"skipped={class_result.skipped_count}"
        )


@app.command()
def methods(
    results_dir: str = typer.Argument(..., help="Directory holding results.db"),
    class_name: str = typer.Argument(..., help="Fully qualified class name"),
    config: str | None = typer.Option(None, help="YAML settings file"),
) -> None:
    """Print each method result recorded for ``class_name``."""

    _load(config)
    for class_result in ResultSerializer().read(results_dir):
        if class_result.class_name != class_name:
            continue
        for method in class_result.results:
            typer.echo(f"{method.name}\t{method.result_type.value}\t{method.duration}ms")
            for failure in method.failures:
                typer.echo(f"    {failure.message}")
        return
    typer.echo(f"Unknown class: {class_name}", err=True)
    raise typer.Exit(code=1)


@app.command()
def output(
    results_dir: str = typer.Argument(..., help="Directory holding captured output"),
    class_name: str = typer.Argument(..., help="Fully qualified class name"),
    test: str | None = typer.Option(None, help="Only output of this test case"),
    stream: Stream = typer.Option(Stream.STDOUT, help="Output stream to print"),
    config: str | None = typer.Option(None, help="YAML settings file"),
) -> None:
    """Print captured output persisted for ``class_name``."""

    cfg = _load(config)
    store = FileOutputStore(results_dir, encoding=cfg.output_encoding)
    store.copy_to(class_name, TestOutputDestination(stream.value), sys.stdout, test_case=test)


def main(argv: list[str] | None = None) -> None:
    """Entry point for programmatic invocation."""

    from typer.main import get_command

    get_command(app).main(args=argv or sys.argv[1:], standalone_mode=False)


if __name__ == "__main__":
    from typer.main import get_command

    get_command(app).main(args=sys.argv[1:])
