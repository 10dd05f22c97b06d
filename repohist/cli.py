"""Repohist CLI entrypoint."""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from repohist.config import Config, get_config
from repohist.errors import EXIT_NOT_READY, RepohistError, UserInputError
from repohist.logging import get_logger, setup_logging
from repohist.scm.protocol import HistoryRepository
from repohist.scm.registry import discover_repositories, find_repository, repository_for

logger = get_logger("cli")


def _fail(error: RepohistError) -> None:
    click.echo(f"Error: {error.message}", err=True)
    sys.exit(error.exit_code)


def _require_repository(path: Path, config: Config) -> HistoryRepository:
    """Find the repository containing path and check its tool works."""
    repository = find_repository(path, config)
    if repository is None:
        raise UserInputError(f"Not inside a known repository: {path}")
    logger.debug(f"Using {repository.kind} repository at {repository.root}")
    if not repository.is_available():
        click.echo(f"Error: {repository.kind} client is not available", err=True)
        sys.exit(EXIT_NOT_READY)
    return repository


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: $REPOHIST_CONFIG or ~/.config/repohist/config)",
)
@click.version_option()
@click.pass_context
def repohist(ctx: click.Context, verbose: bool, config_path: Optional[Path]) -> None:
    """Repohist - version control history retrieval for source indexers."""
    setup_logging(verbose=verbose)
    try:
        ctx.obj = get_config(config_path)
    except RepohistError as e:
        _fail(e)


@repohist.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="JSON output")
@click.pass_obj
def discover(config: Config, path: Path, json_output: bool) -> None:
    """
    List repositories found under PATH.

    Only filesystem markers are checked; no backend tool is run.
    """
    repositories = discover_repositories(path, config)

    if json_output:
        click.echo(
            json.dumps(
                [{"kind": r.kind, "root": str(r.root)} for r in repositories],
                indent=2,
                sort_keys=True,
            )
        )
        return

    if not repositories:
        click.echo("No repositories found")
        return
    for repository in repositories:
        click.echo(f"{repository.kind:<10} {repository.root}")


@repohist.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="JSON output")
@click.pass_obj
def info(config: Config, root: Path, json_output: bool) -> None:
    """Show backend, tool version, branch and parent of repository ROOT."""
    repository = repository_for(root, config)
    if repository is None:
        _fail(UserInputError(f"Not a repository root: {root}"))
        return

    available = repository.is_available()
    details: dict[str, object] = {
        "kind": repository.kind,
        "root": str(root),
        "available": available,
        "version": str(repository.get_version()) if available else None,
        "directory_history": repository.has_history_for_directories(),
        "file_based_tags": repository.has_file_based_tags(),
        "branch": None,
        "parent": None,
    }

    if available:
        try:
            details["branch"] = repository.determine_branch(root)
            details["parent"] = repository.determine_parent(root)
        except RepohistError as e:
            _fail(e)

    if json_output:
        click.echo(json.dumps(details, indent=2, sort_keys=True))
        return

    for key, value in details.items():
        click.echo(f"{key + ':':<19}{'-' if value is None else value}")


@repohist.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--since", "since_revision", help="Only revisions after this one")
@click.option("--tags", is_flag=True, help="Show tags on revisions")
@click.option("--json", "json_output", is_flag=True, help="JSON output")
@click.pass_obj
def history(
    config: Config,
    file: Path,
    since_revision: Optional[str],
    tags: bool,
    json_output: bool,
) -> None:
    """Show the history of FILE, newest first."""
    from repohist.render.json import render_history_json
    from repohist.render.text import render_history

    if tags:
        config.tags_enabled = True

    try:
        repository = _require_repository(file, config)
        if not repository.file_has_history(file):
            raise UserInputError(f"No history for {file}")
        result = repository.get_history(file, since_revision)
    except RepohistError as e:
        _fail(e)
        return

    if json_output:
        click.echo(render_history_json(result, str(file)))
    else:
        click.echo(render_history(result))


@repohist.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-r", "--revision", help="Revision to annotate (default: latest)")
@click.option("--json", "json_output", is_flag=True, help="JSON output")
@click.pass_obj
def annotate(config: Config, file: Path, revision: Optional[str], json_output: bool) -> None:
    """Show the revision and author of each line of FILE."""
    from repohist.render.json import render_annotation_json
    from repohist.render.text import render_annotation

    try:
        repository = _require_repository(file, config)
        if not repository.file_has_annotation(file):
            raise UserInputError(f"No annotation for {file}")
        result = repository.annotate(file, revision)
    except RepohistError as e:
        _fail(e)
        return

    if json_output:
        click.echo(render_annotation_json(result))
    else:
        click.echo(render_annotation(result))


@repohist.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="JSON output")
@click.pass_obj
def tags(config: Config, root: Path, json_output: bool) -> None:
    """List the tags of repository ROOT."""
    from repohist.render.json import render_tags_json
    from repohist.render.text import render_tag_table

    try:
        repository = _require_repository(root, config)
    except RepohistError as e:
        _fail(e)
        return

    repository.build_tag_list(root)
    entries = repository.get_tag_list()

    if json_output:
        click.echo(render_tags_json(entries, str(root)))
    else:
        click.echo(render_tag_table(entries))


@repohist.command(name="cat")
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("-r", "--revision", help="Revision (default: latest)")
@click.pass_obj
def cat_file(config: Config, file: Path, revision: Optional[str]) -> None:
    """Write the content of FILE at a revision to stdout."""
    absolute = file.absolute()
    try:
        repository = _require_repository(absolute.parent, config)
    except RepohistError as e:
        _fail(e)
        return

    content = repository.get_file_content(absolute.parent, absolute.name, revision)
    if content is None:
        click.echo(f"Error: could not get {file} at {revision or 'latest'}", err=True)
        sys.exit(1)
    click.echo(content, nl=False)


@repohist.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.pass_obj
def update(config: Config, root: Path) -> None:
    """Pull changes into repository ROOT."""
    try:
        repository = _require_repository(root, config)
        repository.update()
    except RepohistError as e:
        _fail(e)
        return
    click.echo(f"Updated: {root}")


def main() -> None:
    repohist()


if __name__ == "__main__":
    main()
