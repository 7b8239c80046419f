"""
Ruleset files.

A ruleset file is TOML: an optional [features] table and a list of
[[chains]], each with a name and a list of rules. Rules are data; the
renderer turns them into iptables-restore text.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from .rules import (
    AcceptAction,
    Action,
    Chain,
    DropAction,
    Features,
    GotoAction,
    JumpAction,
    LiteralAction,
    MasqAction,
    Match,
    NoopAction,
    ReturnAction,
    Rule,
)

_SIMPLE_ACTIONS: dict[str, type] = {
    "accept": AcceptAction,
    "drop": DropAction,
    "return": ReturnAction,
    "masquerade": MasqAction,
}


@dataclass(frozen=True)
class RulesetFile:
    features: Features = field(default_factory=Features)
    chains: tuple[Chain, ...] = ()

    def chain(self, name: str) -> Chain | None:
        """Find a chain by name."""
        for c in self.chains:
            if c.name == name:
                return c
        return None

    @property
    def chain_names(self) -> list[str]:
        return [c.name for c in self.chains]


def _string_list(value: Any, what: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ValueError(f"{what} must be a string or a list of strings")


def _parse_features(raw: Any) -> Features:
    if raw is None:
        return Features()
    if not isinstance(raw, dict):
        raise ValueError("[features] must be a table")

    known = {f.name for f in fields(Features)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown feature(s): {', '.join(unknown)}")

    for key, value in raw.items():
        if not isinstance(value, bool):
            raise ValueError(f"Feature '{key}' must be true or false")
    return Features(**raw)


def _parse_action(raw: Any, where: str) -> Action:
    if raw is None:
        return NoopAction()

    if isinstance(raw, str):
        action_cls = _SIMPLE_ACTIONS.get(raw.strip().lower())
        if action_cls is None:
            raise ValueError(f"{where}: unknown action '{raw}'")
        return action_cls()

    if not isinstance(raw, dict) or len(raw) != 1:
        raise ValueError(f"{where}: action must be a name or a table with exactly one key")

    kind, value = next(iter(raw.items()))
    if kind in ("jump", "goto", "literal"):
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{where}: '{kind}' action needs a non-empty string")
        if kind == "jump":
            return JumpAction(value.strip())
        if kind == "goto":
            return GotoAction(value.strip())
        return LiteralAction(value)

    if kind == "masquerade":
        if not isinstance(value, dict):
            raise ValueError(f"{where}: 'masquerade' action must be a table")
        to_ports = value.get("to_ports", "")
        if not isinstance(to_ports, str):
            raise ValueError(f"{where}: masquerade to_ports must be a string")
        return MasqAction(to_ports=to_ports)

    raise ValueError(f"{where}: unknown action '{kind}'")


def _parse_rule(raw: Any, where: str) -> Rule:
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: rule must be a table")
    return Rule(
        match=Match(_string_list(raw.get("match"), f"{where}: match")),
        action=_parse_action(raw.get("action"), where),
        comment=_string_list(raw.get("comment"), f"{where}: comment"),
    )


def _parse_chain(raw: Any, index: int) -> Chain:
    if not isinstance(raw, dict):
        raise ValueError(f"chains[{index}] must be a table")

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"chains[{index}]: name is required")
    name = name.strip()

    rules_raw = raw.get("rules", [])
    if not isinstance(rules_raw, list):
        raise ValueError(f"chain '{name}': rules must be a list")

    rules = [_parse_rule(r, f"chain '{name}' rule {i}") for i, r in enumerate(rules_raw)]
    return Chain(name=name, rules=tuple(rules))


def loads_ruleset(text: str) -> RulesetFile:
    """Parse a ruleset from TOML text."""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Failed to parse ruleset TOML: {e}") from e

    chains_raw = data.get("chains", [])
    if not isinstance(chains_raw, list):
        raise ValueError("chains must be an array of tables")

    chains = [_parse_chain(c, i) for i, c in enumerate(chains_raw)]

    seen: set[str] = set()
    for c in chains:
        if c.name in seen:
            raise ValueError(f"Duplicate chain name: {c.name}")
        seen.add(c.name)

    return RulesetFile(features=_parse_features(data.get("features")), chains=tuple(chains))


def load_ruleset(path: Path) -> RulesetFile:
    """
    Load a ruleset from a TOML file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a valid ruleset
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Ruleset not found: {path}")
    return loads_ruleset(path.read_text(encoding="utf-8"))
