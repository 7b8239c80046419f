"""
Tests for chain-scoped rule hashes.

The hash of rule i folds in the hash of rule i-1 (or the chain name for
rule 0) and the rule's append rendering with the fixed placeholder prefix.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import re

import pytest

from iptrules.rules import (
    HASH_LENGTH,
    AcceptAction,
    Chain,
    Features,
    HashWriteError,
    LiteralAction,
    MasqAction,
    Match,
    Rule,
    first_divergence,
    hash_comment_fragment,
    render_chain,
    rule_hashes,
)

_URLSAFE = re.compile(r"^[A-Za-z0-9_-]{16}$")


def _reference_hashes(name: str, lines: list[str]) -> list[str]:
    digest = hashlib.sha224(name.encode()).digest()
    out = []
    for line in lines:
        digest = hashlib.sha224(digest + line.encode()).digest()
        out.append(base64.urlsafe_b64encode(digest).decode()[:16])
    return out


def test_single_rule_example() -> None:
    chain = Chain(name="cali-FORWARD", rules=(Rule(match=Match(), action=LiteralAction("-j ACCEPT")),))
    hashes = rule_hashes(chain)
    assert len(hashes) == 1
    assert _URLSAFE.match(hashes[0])
    assert hashes == _reference_hashes("cali-FORWARD", ["-A cali-FORWARD HASH -j ACCEPT"])


def test_hashes_follow_documented_fold(chain_abc: Chain) -> None:
    lines = [rule.render_append(chain_abc.name, "HASH") for rule in chain_abc.rules]
    assert rule_hashes(chain_abc) == _reference_hashes(chain_abc.name, lines)


def test_one_hash_per_rule(chain_abc: Chain) -> None:
    hashes = chain_abc.rule_hashes()
    assert len(hashes) == 3
    assert all(len(h) == HASH_LENGTH and _URLSAFE.match(h) for h in hashes)


def test_deterministic(chain_abc: Chain) -> None:
    assert rule_hashes(chain_abc, Features()) == rule_hashes(chain_abc, Features())


def test_position_sensitivity(chain_abc: Chain, rule_a: Rule, rule_c: Rule) -> None:
    other = Chain(name=chain_abc.name, rules=(rule_a, Rule(action=AcceptAction(), comment=("x",)), rule_c))
    before = rule_hashes(chain_abc)
    after = rule_hashes(other)
    assert before[0] == after[0]
    assert before[1] != after[1]
    assert before[2] != after[2]


def test_same_rule_at_different_positions_differs(rule_a: Rule) -> None:
    hashes = rule_hashes(Chain(name="c", rules=(rule_a, rule_a)))
    assert hashes[0] != hashes[1]


def test_chain_name_sensitivity(rule_a: Rule, rule_b: Rule) -> None:
    foo = rule_hashes(Chain(name="foo", rules=(rule_a, rule_b)))
    bar = rule_hashes(Chain(name="bar", rules=(rule_a, rule_b)))
    assert all(f != b for f, b in zip(foo, bar))


def test_removing_a_rule_keeps_earlier_hashes(chain_abc: Chain, rule_a: Rule, rule_c: Rule) -> None:
    shorter = Chain(name=chain_abc.name, rules=(rule_a, rule_c))
    full = rule_hashes(chain_abc)
    trimmed = rule_hashes(shorter)
    assert trimmed[0] == full[0]
    assert trimmed[1] != full[2]


def test_features_flow_into_hash() -> None:
    chain = Chain(name="nat", rules=(Rule(action=MasqAction()),))
    assert rule_hashes(chain, Features()) != rule_hashes(chain, Features(masq_fully_random=True))


def test_absent_and_empty_chain() -> None:
    assert rule_hashes(None) == []
    assert rule_hashes(Chain(name="empty")) == []


def test_observer_sees_every_rule(chain_abc: Chain) -> None:
    seen: list[tuple[str, int, str, str]] = []
    hashes = rule_hashes(chain_abc, observer=lambda *args: seen.append(args))

    assert [s[1] for s in seen] == [0, 1, 2]
    assert [s[3] for s in seen] == hashes
    assert all(s[2] == "cali-FORWARD" for s in seen)
    assert seen[0][0].startswith("-A cali-FORWARD HASH ")


def test_debug_logging(chain_abc: Chain, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="iptrules.rules.chain"):
        hashes = rule_hashes(chain_abc)
    messages = [r.getMessage() for r in caplog.records if r.levelno == logging.DEBUG]
    assert len(messages) == 3
    assert hashes[2] in messages[2]


def test_unencodable_rule_text_is_fatal() -> None:
    chain = Chain(name="c", rules=(Rule(action=AcceptAction()), Rule(action=LiteralAction("-j \udcff"))))
    with pytest.raises(HashWriteError) as excinfo:
        rule_hashes(chain)
    assert excinfo.value.chain == "c"
    assert excinfo.value.position == 1


def test_render_chain_embeds_own_hash(chain_abc: Chain) -> None:
    hashes = rule_hashes(chain_abc)
    lines = render_chain(chain_abc)
    assert len(lines) == 3
    for line, h in zip(lines, hashes):
        assert line.startswith(f'-A cali-FORWARD -m comment --comment "cali:{h}"')


def test_embedding_hash_does_not_change_hashes(chain_abc: Chain) -> None:
    before = rule_hashes(chain_abc)
    render_chain(chain_abc, comment_prefix="tag:")
    assert rule_hashes(chain_abc) == before


def test_hash_comment_fragment() -> None:
    assert hash_comment_fragment("abc") == '-m comment --comment "cali:abc"'
    assert hash_comment_fragment("abc", prefix="x-") == '-m comment --comment "x-abc"'


@pytest.mark.parametrize(
    ("desired", "installed", "expected"),
    [
        (["a", "b", "c"], ["a", "b", "c"], 3),
        (["a", "b", "c"], ["a", "x", "c"], 1),
        (["a", "b"], ["a", "b", "c"], 2),
        (["a", "b", "c"], ["a"], 1),
        ([], ["a"], 0),
        (["a"], ["z"], 0),
    ],
)
def test_first_divergence(desired: list[str], installed: list[str], expected: int) -> None:
    assert first_divergence(desired, installed) == expected


def test_first_divergence_on_real_chains(chain_abc: Chain, rule_a: Rule, rule_c: Rule) -> None:
    installed = Chain(name=chain_abc.name, rules=(rule_a, rule_c))
    assert first_divergence(rule_hashes(chain_abc), rule_hashes(installed)) == 1


def test_hash_comment_prefix_is_escaped() -> None:
    chain = Chain(name="c", rules=(Rule(action=AcceptAction()), Rule(action=AcceptAction())))
    hashes = rule_hashes(chain)
    lines = render_chain(chain, comment_prefix='x" -j DROP -m comment --comment "')
    for line, h in zip(lines, hashes):
        assert line.count('"') == 2
        assert line == f'-A c -m comment --comment "x_ -j DROP -m comment --comment _{h}" --jump ACCEPT'


def test_hash_comment_prefix_is_truncated() -> None:
    fragment = hash_comment_fragment("0123456789abcdef", prefix="p" * 300)
    assert fragment == '-m comment --comment "' + "p" * 256 + '"'


def test_unencodable_chain_name_is_fatal_even_when_empty() -> None:
    with pytest.raises(HashWriteError) as excinfo:
        rule_hashes(Chain(name="bad\udcff"))
    assert excinfo.value.position is None
