"""CLI for Trailguide repositories."""

import functools
import json
import logging
from pathlib import Path

import click
from dotenv import load_dotenv

from trailvcs import VCSError, VCSProvider, VCSSettings, get_provider
from trailvcs.trails import serialize_trail

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def setup_logging(verbose: int) -> None:
    """Setup logging."""
    level = logging.DEBUG if verbose >= 2 else logging.INFO if verbose == 1 else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def get_client(ctx: click.Context) -> VCSProvider:
    """Build the provider for the token given on the command line."""
    token = ctx.obj["token"]
    if not token:
        raise click.UsageError("An access token is required (--token or TRAILGUIDE_TOKEN)")
    return get_provider(ctx.obj["provider"], token, settings=ctx.obj["settings"])


def handle_errors(fn):
    """Report VCS errors on stderr and exit with status 1."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except VCSError as e:
            logger.debug("Command failed", exc_info=True)
            click.echo(f"Error ({type(e).__name__}): {e.message}", err=True)
            raise SystemExit(1) from e

    return wrapper


def load_trail(path: Path) -> object:
    """Read a trail definition from a JSON file."""
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except ValueError as e:
        raise click.BadParameter(f"{path} is not valid JSON: {e}") from e


# ============ CLI Group ============

@click.group()
@click.option("--token", envvar="TRAILGUIDE_TOKEN", help="Provider access token")
@click.option(
    "--provider",
    type=click.Choice(["github", "gitlab"]),
    default="github",
    envvar="TRAILGUIDE_PROVIDER",
    show_default=True,
)
@click.option("-v", "--verbose", count=True, help="Verbosity (-v, -vv)")
@click.pass_context
def cli(ctx: click.Context, token: str | None, provider: str, verbose: int) -> None:
    """Trailguide repository CLI."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["provider"] = provider
    ctx.obj["settings"] = VCSSettings()


# ============ Read Commands ============

@cli.command()
@click.pass_context
@handle_errors
def repos(ctx):
    """List repositories."""
    for repo in get_client(ctx).list_repos():
        visibility = "private" if repo.is_private else "public"
        click.echo(f"{repo.full_name}  ({repo.default_branch}, {visibility})")


@cli.command()
@click.argument("owner")
@click.argument("repo")
@click.pass_context
@handle_errors
def branches(ctx, owner, repo):
    """List branches."""
    for name in get_client(ctx).list_branches(owner, repo):
        click.echo(name)


@cli.command()
@click.argument("owner")
@click.argument("repo")
@click.option("-b", "--branch", help="Branch or ref")
@click.pass_context
@handle_errors
def trails(ctx, owner, repo, branch):
    """List trail files."""
    found = get_client(ctx).get_trails(owner, repo, branch)
    if not found:
        click.echo("No trail files found.")
        return
    for item in found:
        click.echo(f"{item.path}  {item.sha}")


@cli.command()
@click.argument("owner")
@click.argument("repo")
@click.argument("path")
@click.option("-b", "--branch", help="Branch or ref")
@click.pass_context
@handle_errors
def show(ctx, owner, repo, path, branch):
    """Print a trail file."""
    trail = get_client(ctx).get_trail(owner, repo, path, branch)
    click.echo(f"sha: {trail.sha}", err=True)
    click.echo(trail.content)


# ============ Write Commands ============

@cli.command()
@click.argument("owner")
@click.argument("repo")
@click.argument("path")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-m", "--message", required=True, help="Commit message")
@click.option("--sha", help="Current sha of the file when updating")
@click.option("-b", "--branch", help="Target branch")
@click.pass_context
@handle_errors
def commit(ctx, owner, repo, path, file, message, sha, branch):
    """Commit a trail file."""
    content = serialize_trail(load_trail(file))
    result = get_client(ctx).commit_file(owner, repo, path, content, message, sha, branch)
    click.echo(f"Committed {result.sha}")
    click.echo(result.url)


@cli.command()
@click.argument("owner")
@click.argument("repo")
@click.argument("path")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-t", "--title", required=True, help="Pull/merge request title")
@click.option("--base", help="Target branch (default: repository default)")
@click.pass_context
@handle_errors
def pr(ctx, owner, repo, path, file, title, base):
    """Propose a trail file through a pull/merge request."""
    trail = load_trail(file)
    result = get_client(ctx).create_trail_pr(owner, repo, trail, path, title, base)
    click.echo(f"#{result.number} {result.title} [{result.state}]")
    click.echo(result.url)


# ============ Server ============

@cli.command()
@click.option("--host", default=DEFAULT_HOST, show_default=True)
@click.option("--port", type=int, default=DEFAULT_PORT, show_default=True)
@click.pass_context
def serve(ctx, host, port):
    """Run the editor API server."""
    import uvicorn

    from .api import create_app

    uvicorn.run(create_app(settings=ctx.obj["settings"]), host=host, port=port)


def main() -> None:
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
