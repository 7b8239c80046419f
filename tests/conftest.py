"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from iptrules.rules import AcceptAction, Chain, DropAction, LiteralAction, Match, Rule

RULESET_TOML = """
[features]
masq_fully_random = true

[[chains]]
name = "cali-FORWARD"

[[chains.rules]]
match = ["-p tcp", "-m set --match-set cali40s:web src"]
action = "accept"
comment = ["allow web"]

[[chains.rules]]
match = "-m set --match-set cali40s:bad dst"
action = "drop"

[[chains]]
name = "cali-POSTROUTING"

[[chains.rules]]
action = { masquerade = { to_ports = "1024-65535" } }
"""


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def ruleset_path(tmp_path: Path) -> Path:
    """A small ruleset file with two chains."""
    path = tmp_path / "rules.toml"
    _write(path, RULESET_TOML)
    return path


@pytest.fixture
def rule_a() -> Rule:
    return Rule(match=Match(("-p tcp", "--dport 80")), action=AcceptAction())


@pytest.fixture
def rule_b() -> Rule:
    return Rule(match=Match(("-p udp",)), action=DropAction(), comment=("drop udp",))


@pytest.fixture
def rule_c() -> Rule:
    return Rule(action=LiteralAction("-j RETURN"))


@pytest.fixture
def chain_abc(rule_a: Rule, rule_b: Rule, rule_c: Rule) -> Chain:
    return Chain(name="cali-FORWARD", rules=(rule_a, rule_b, rule_c))
