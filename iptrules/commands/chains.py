"""Render, hash and compare the chains of a ruleset file."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console

from ..load import RulesetFile, load_ruleset
from ..rules import Chain, first_divergence, ipset_ids, render_chain, rule_hashes


@dataclass(frozen=True)
class ChainDiff:
    chain: str
    desired: list[str]
    installed: list[str]
    first_divergence: int

    @property
    def in_sync(self) -> bool:
        return self.desired == self.installed


def _select_chains(ruleset: RulesetFile, chain_name: str | None) -> list[Chain]:
    if chain_name is None:
        return list(ruleset.chains)
    chain = ruleset.chain(chain_name)
    if chain is None:
        raise ValueError(f"Unknown chain '{chain_name}' (have: {', '.join(ruleset.chain_names) or 'none'})")
    return [chain]


def run_render(
    path: Path,
    *,
    chain_name: str | None = None,
    comment_prefix: str = "cali:",
    with_hash: bool = True,
) -> int:
    """Print APPEND lines for each selected chain."""
    ruleset = load_ruleset(path)
    for chain in _select_chains(ruleset, chain_name):
        if with_hash:
            lines = render_chain(chain, ruleset.features, comment_prefix=comment_prefix)
        else:
            lines = [rule.render_append(chain.name, "", ruleset.features) for rule in chain.rules]
        for line in lines:
            print(line)
    return 0


def run_hashes(path: Path, *, chain_name: str | None = None, output_json: bool = False) -> int:
    """Print per-rule hashes for each selected chain."""
    ruleset = load_ruleset(path)
    chains = _select_chains(ruleset, chain_name)

    if output_json:
        print(json.dumps({c.name: rule_hashes(c, ruleset.features) for c in chains}, indent=2))
        return 0

    for chain in chains:
        print(f"# {chain.name}")
        for position, h in enumerate(rule_hashes(chain, ruleset.features)):
            print(f"{position} {h}")
    return 0


def run_ipsets(path: Path, *, chain_name: str | None = None, output_json: bool = False) -> int:
    """Print the IP set IDs referenced by each selected chain."""
    ruleset = load_ruleset(path)
    chains = _select_chains(ruleset, chain_name)

    if output_json:
        print(json.dumps({c.name: ipset_ids(c) for c in chains}, indent=2))
        return 0

    for chain in chains:
        for set_id in ipset_ids(chain):
            print(f"{chain.name} {set_id}")
    return 0


def compute_diffs(desired: RulesetFile, installed: RulesetFile, chain_name: str | None = None) -> list[ChainDiff]:
    """Compare hash sequences of same-named chains. A chain missing on one side counts as empty."""
    if chain_name is not None:
        names = [chain_name]
    else:
        names = desired.chain_names + [n for n in installed.chain_names if desired.chain(n) is None]

    diffs: list[ChainDiff] = []
    for name in names:
        want = rule_hashes(desired.chain(name), desired.features)
        have = rule_hashes(installed.chain(name), installed.features)
        diffs.append(ChainDiff(chain=name, desired=want, installed=have, first_divergence=first_divergence(want, have)))
    return diffs


def run_diff(desired_path: Path, installed_path: Path, *, chain_name: str | None = None) -> int:
    """Report where installed chains first diverge from the desired ones."""
    console = Console(stderr=True)

    desired = load_ruleset(desired_path)
    installed = load_ruleset(installed_path)
    if chain_name is not None and desired.chain(chain_name) is None and installed.chain(chain_name) is None:
        raise ValueError(f"Unknown chain '{chain_name}'")

    diffs = compute_diffs(desired, installed, chain_name)
    out_of_sync = [d for d in diffs if not d.in_sync]

    for d in diffs:
        if d.in_sync:
            print(f"{d.chain}: in sync ({len(d.desired)} rules)")
        else:
            print(
                f"{d.chain}: diverges at rule {d.first_divergence} "
                f"(desired {len(d.desired)}, installed {len(d.installed)})"
            )

    if out_of_sync:
        console.print(f"{len(out_of_sync)} of {len(diffs)} chain(s) need updating.", style="yellow")
        return 1

    console.print("All chains in sync.", style="green")
    return 0
