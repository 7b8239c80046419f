"""
Rule rendering for iptables-restore input.

A rendered rule is a single line: the directive verb and chain name (plus
a 1-based position for positional directives), an optional prefix
fragment, one comment match per comment, the match criteria and finally
the action. Rendering is a pure function of its inputs.

The only exception `render` raises is a ValueError for a directive and rule
number that do not belong together, a programming error the per-directive
helpers cannot make.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .comments import comment_fragment
from .model import Action, Features, Match, MatchCriteria, NoopAction


class Directive(Enum):
    """How a rendered rule is applied to a chain.

    Values are (verb, takes_rule_number). INSERT and INSERT_AT share a verb,
    so the flag is part of the value to keep the members distinct.
    """

    APPEND = ("-A", False)
    INSERT = ("-I", False)
    INSERT_AT = ("-I", True)
    REPLACE = ("-R", True)

    @property
    def verb(self) -> str:
        return self.value[0]

    @property
    def positional(self) -> bool:
        return self.value[1]


@dataclass(frozen=True)
class Rule:
    """One iptables rule: match criteria, action and comments."""

    match: MatchCriteria = field(default_factory=Match)
    action: Action = field(default_factory=NoopAction)
    comment: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.comment, str):
            object.__setattr__(self, "comment", (self.comment,))
        else:
            object.__setattr__(self, "comment", tuple(self.comment))

    def render_append(self, chain_name: str, prefix_fragment: str = "", features: Features | None = None) -> str:
        return render(self, Directive.APPEND, chain_name, prefix_fragment=prefix_fragment, features=features)

    def render_insert(self, chain_name: str, prefix_fragment: str = "", features: Features | None = None) -> str:
        return render(self, Directive.INSERT, chain_name, prefix_fragment=prefix_fragment, features=features)

    def render_insert_at(
        self,
        chain_name: str,
        rule_num: int,
        prefix_fragment: str = "",
        features: Features | None = None,
    ) -> str:
        return render(
            self, Directive.INSERT_AT, chain_name, rule_num, prefix_fragment=prefix_fragment, features=features
        )

    def render_replace(
        self,
        chain_name: str,
        rule_num: int,
        prefix_fragment: str = "",
        features: Features | None = None,
    ) -> str:
        return render(
            self, Directive.REPLACE, chain_name, rule_num, prefix_fragment=prefix_fragment, features=features
        )


def render(
    rule: Rule,
    directive: Directive,
    chain_name: str,
    rule_num: int | None = None,
    *,
    prefix_fragment: str = "",
    features: Features | None = None,
) -> str:
    """
    Render `rule` as one line of iptables-restore input.

    Args:
        rule: Rule to render
        directive: APPEND, INSERT, INSERT_AT or REPLACE
        chain_name: Chain the rule belongs to
        rule_num: 1-based position, required for INSERT_AT and REPLACE only
        prefix_fragment: Inserted verbatim after the chain/position tokens
        features: Capability descriptor, passed to the action

    Returns:
        Space-joined fragments with no trailing delimiter

    Raises:
        ValueError: If rule_num is missing for a positional directive or
            given for a non-positional one
    """
    if directive.positional and rule_num is None:
        raise ValueError(f"{directive.name} requires a rule number")
    if not directive.positional and rule_num is not None:
        raise ValueError(f"{directive.name} does not take a rule number")

    fragments = [directive.verb, chain_name]
    if rule_num is not None:
        fragments.append(str(rule_num))
    if prefix_fragment:
        fragments.append(prefix_fragment)

    for c in rule.comment:
        fragments.append(comment_fragment(c))

    match_fragment = rule.match.render()
    if match_fragment:
        fragments.append(match_fragment)

    action_fragment = rule.action.to_fragment(features)
    if action_fragment:
        fragments.append(action_fragment)

    return " ".join(fragments)


def render_append(rule: Rule, chain_name: str, prefix_fragment: str = "", features: Features | None = None) -> str:
    return rule.render_append(chain_name, prefix_fragment, features)


def render_insert(rule: Rule, chain_name: str, prefix_fragment: str = "", features: Features | None = None) -> str:
    return rule.render_insert(chain_name, prefix_fragment, features)


def render_insert_at(
    rule: Rule,
    chain_name: str,
    rule_num: int,
    prefix_fragment: str = "",
    features: Features | None = None,
) -> str:
    return rule.render_insert_at(chain_name, rule_num, prefix_fragment, features)


def render_replace(
    rule: Rule,
    chain_name: str,
    rule_num: int,
    prefix_fragment: str = "",
    features: Features | None = None,
) -> str:
    return rule.render_replace(chain_name, rule_num, prefix_fragment, features)
