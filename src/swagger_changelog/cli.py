"""CLI entry point for swagger-changelog."""

import json
from pathlib import Path

import click

from swagger_changelog.config import (
    ENGINE_CHOICES,
    Settings,
    build_engine,
    build_renderer,
    configure_logging,
)
from swagger_changelog.errors import ChangelogError, ClientInputError
from swagger_changelog.generator.changelog import GROUP_BY_CHOICES
from swagger_changelog.parser.base import ChangeRecord
from swagger_changelog.pipeline import collect_changes, compare_spec_files, generate_changelog


def _apply(func, options):
    for option in reversed(options):
        func = option(func)
    return func


def _engine_options(func):
    """Options shared by every command that talks to the diff engine."""
    return _apply(func, [
        click.option("--engine", type=click.Choice(ENGINE_CHOICES), default=None, help="Diff engine (default from CHANGELOG_ENGINE, else api)."),
        click.option("--timeout", type=float, default=None, help="Timeout in seconds for each diff engine call."),
        click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ...)."),
    ])


def _archive_options(func):
    """Options for commands that read two spec archives."""
    return _apply(func, [
        click.option("--spec-dir", default=None, help="Directory inside the archives holding the spec files. Empty string matches every file."),
        click.option("--workers", "max_workers", type=int, default=None, help="Number of files diffed in parallel."),
    ])


def _settings(**overrides) -> Settings:
    settings = Settings.from_env(**overrides)
    configure_logging(settings.log_level)
    return settings


def _fail(error: ChangelogError):
    click.echo(json.dumps(error.to_payload()), err=True)
    click.get_current_context().exit(error.exit_code)


def _write(text: str, output: Path | None) -> None:
    if output is None:
        click.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    click.echo(f"Saved to {output}", err=True)


@click.group()
def main():
    """Generate a Markdown changelog from two archives of OpenAPI specs."""
    pass


@main.command()
@click.argument("previous", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Output file for the Markdown changelog (default: stdout).")
@click.option("--work-package", default="", help="Work package label used as the section heading.")
@click.option("--group-by", type=click.Choice(GROUP_BY_CHOICES), default=None, help="Group changes by work package or by API number.")
@click.option("--renderer-url", default=None, help="Hosted changelog renderer to use instead of the built-in one.")
@_engine_options
@_archive_options
def generate(previous: Path, new: Path, output: Path | None, work_package: str, group_by: str | None, renderer_url: str | None, **engine_opts):
    """Generate a Markdown changelog from PREVIOUS and NEW spec archives."""
    try:
        settings = _settings(group_by=group_by, renderer_url=renderer_url, **engine_opts)
        click.echo(f"Comparing {previous.name} with {new.name} (engine: {settings.engine})...", err=True)
        changelog = generate_changelog(
            previous.read_bytes(),
            new.read_bytes(),
            build_engine(settings),
            build_renderer(settings),
            work_package=work_package,
            spec_dir=settings.spec_dir or None,
            max_workers=settings.max_workers,
        )
    except ChangelogError as e:
        _fail(e)
        return
    _write(changelog, output)


@main.command()
@click.argument("previous", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Output file for the JSON changes (default: stdout).")
@_engine_options
@_archive_options
def changes(previous: Path, new: Path, output: Path | None, **engine_opts):
    """List the changes between PREVIOUS and NEW spec archives as JSON."""
    try:
        settings = _settings(**engine_opts)
        result = collect_changes(
            previous.read_bytes(),
            new.read_bytes(),
            build_engine(settings),
            spec_dir=settings.spec_dir or None,
            max_workers=settings.max_workers,
        )
    except ChangelogError as e:
        _fail(e)
        return
    _write(json.dumps(result.to_payload(), indent=2), output)


@main.command()
@click.argument("old_spec", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new_spec", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_engine_options
def diff(old_spec: Path, new_spec: Path, **engine_opts):
    """Compare two standalone spec files (JSON or YAML) and print the changes as JSON."""
    try:
        settings = _settings(**engine_opts)
        records = compare_spec_files(old_spec, new_spec, build_engine(settings))
    except ChangelogError as e:
        _fail(e)
        return
    click.echo(json.dumps([r.model_dump(by_alias=True) for r in records], indent=2))


@main.command()
@click.argument("changes_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Output file for the Markdown changelog (default: stdout).")
@click.option("--version", "version_label", default=None, help="Version for the heading (default: the version stored in the changes file).")
@click.option("--work-package", default="", help="Work package label used as the section heading.")
@click.option("--group-by", type=click.Choice(GROUP_BY_CHOICES), default=None, help="Group changes by work package or by API number.")
@click.option("--renderer-url", default=None, help="Hosted changelog renderer to use instead of the built-in one.")
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ...).")
def render(changes_path: Path, output: Path | None, version_label: str | None, work_package: str, group_by: str | None, renderer_url: str | None, log_level: str | None):
    """Render a changes JSON file (as printed by `changes`) to Markdown."""
    try:
        settings = _settings(group_by=group_by, renderer_url=renderer_url, log_level=log_level)
        version, records = _read_changes(changes_path)
        changelog = build_renderer(settings).render(version_label or version, work_package, records)
    except ChangelogError as e:
        _fail(e)
        return
    _write(changelog, output)


def _read_changes(changes_path: Path) -> tuple[str | None, list[ChangeRecord]]:
    try:
        data = json.loads(changes_path.read_text(encoding="utf-8"))
        if isinstance(data, list):
            data = {"version": None, "changes": data}
        records = [ChangeRecord.model_validate(item) for item in data["changes"]]
    except (ValueError, KeyError, TypeError) as e:
        raise ClientInputError(f'Could not read changes from "{changes_path}": {e}') from e
    return data.get("version"), records
