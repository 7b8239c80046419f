"""CLI entrypoint for iptrules."""

import logging
import sys
from pathlib import Path

import click

from . import __version__


def _run(fn, *args, **kwargs) -> None:
    """Call a command implementation and exit with its code."""
    try:
        exit_code = fn(*args, **kwargs)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


_ruleset_path = click.Path(exists=False, dir_okay=False, path_type=Path)


@click.group()
@click.version_option(__version__, prog_name="iptrules")
@click.option("--verbose", "-V", is_flag=True, help="Log every hashed rule (DEBUG level) to stderr")
def cli(verbose: bool) -> None:
    """iptrules - Render iptables rules and compute chain hashes.

    Rulesets are TOML files with [[chains]] of rules.
    """
    if verbose:
        logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
        logging.getLogger("iptrules").setLevel(logging.DEBUG)


@cli.command()
@click.argument("ruleset", type=_ruleset_path)
@click.option("--chain", "chain_name", type=str, default=None, help="Only render this chain")
@click.option(
    "--comment-prefix",
    type=str,
    default="cali:",
    show_default=True,
    help="Prefix of the hash comment added to each rule",
)
@click.option("--no-hash", is_flag=True, help="Render rules without the hash comment")
def render(ruleset: Path, chain_name: str | None, comment_prefix: str, no_hash: bool) -> None:
    """Render chains as iptables-restore append lines.

    Examples:

        iptrules render rules.toml

        iptrules render rules.toml --chain cali-FORWARD --no-hash
    """
    from .commands.chains import run_render

    _run(run_render, ruleset, chain_name=chain_name, comment_prefix=comment_prefix, with_hash=not no_hash)


@cli.command()
@click.argument("ruleset", type=_ruleset_path)
@click.option("--chain", "chain_name", type=str, default=None, help="Only hash this chain")
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
def hashes(ruleset: Path, chain_name: str | None, output_json: bool) -> None:
    """Print the identity hash of every rule."""
    from .commands.chains import run_hashes

    _run(run_hashes, ruleset, chain_name=chain_name, output_json=output_json)


@cli.command()
@click.argument("ruleset", type=_ruleset_path)
@click.option("--chain", "chain_name", type=str, default=None, help="Only scan this chain")
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
def ipsets(ruleset: Path, chain_name: str | None, output_json: bool) -> None:
    """List IP sets referenced with --match-set."""
    from .commands.chains import run_ipsets

    _run(run_ipsets, ruleset, chain_name=chain_name, output_json=output_json)


@cli.command()
@click.argument("desired", type=_ruleset_path)
@click.argument("installed", type=_ruleset_path)
@click.option("--chain", "chain_name", type=str, default=None, help="Only compare this chain")
def diff(desired: Path, installed: Path, chain_name: str | None) -> None:
    """Compare two rulesets chain by chain.

    Reports the first rule position at which INSTALLED stops matching
    DESIRED. Exits 1 if any chain needs updating.
    """
    from .commands.chains import run_diff

    _run(run_diff, desired, installed, chain_name=chain_name)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
