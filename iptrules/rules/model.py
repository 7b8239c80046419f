"""
Value types consumed by the renderer.

The match language and the action catalogue are owned by whoever builds
rules; the renderer only needs each of them to produce text. `Match` and
the actions below are the small concrete set used by ruleset files and
tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class Features:
    """Capabilities of the target iptables version.

    Only actions look at this; rendering and hashing pass it through.
    """

    masq_fully_random: bool = False


@runtime_checkable
class MatchCriteria(Protocol):
    def render(self) -> str: ...


@runtime_checkable
class Action(Protocol):
    def to_fragment(self, features: Features | None) -> str: ...


@dataclass(frozen=True)
class Match:
    """Match criteria as an ordered sequence of pre-rendered fragments.

    Each fragment is a complete piece of iptables syntax, for example
    ``"-p tcp"`` or ``"-m set --match-set cali40s:abc src"``.
    """

    fragments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.fragments, str):
            object.__setattr__(self, "fragments", (self.fragments,))
        else:
            object.__setattr__(self, "fragments", tuple(self.fragments))

    def extend(self, *fragments: str) -> "Match":
        """Return a new Match with `fragments` appended."""
        return Match(self.fragments + tuple(fragments))

    def render(self) -> str:
        return " ".join(f for f in self.fragments if f)


@dataclass(frozen=True)
class AcceptAction:
    def to_fragment(self, features: Features | None) -> str:
        return "--jump ACCEPT"


@dataclass(frozen=True)
class DropAction:
    def to_fragment(self, features: Features | None) -> str:
        return "--jump DROP"


@dataclass(frozen=True)
class ReturnAction:
    def to_fragment(self, features: Features | None) -> str:
        return "--jump RETURN"


@dataclass(frozen=True)
class JumpAction:
    target: str

    def to_fragment(self, features: Features | None) -> str:
        return f"--jump {self.target}"


@dataclass(frozen=True)
class GotoAction:
    target: str

    def to_fragment(self, features: Features | None) -> str:
        return f"--goto {self.target}"


@dataclass(frozen=True)
class MasqAction:
    to_ports: str = ""

    def to_fragment(self, features: Features | None) -> str:
        fragment = "--jump MASQUERADE"
        if self.to_ports:
            fragment += f" --to-ports {self.to_ports}"
        if features is not None and features.masq_fully_random:
            fragment += " --random-fully"
        return fragment


@dataclass(frozen=True)
class LiteralAction:
    """An action given directly as iptables text, e.g. ``"-j ACCEPT"``."""

    text: str

    def to_fragment(self, features: Features | None) -> str:
        return self.text


@dataclass(frozen=True)
class NoopAction:
    """No action: the rule only counts matching packets."""

    def to_fragment(self, features: Features | None) -> str:
        return ""
