"""
Chain-scoped rule hashing.

Every rule in a chain gets a short identity hash that covers the chain
name, the rule's own rendering and the hash of the rule before it. A
change anywhere in a chain therefore changes the hash of that rule and of
every rule after it, but never of the rules before it. Comparing the
desired and installed hash sequences position by position finds the
first rule that needs rewriting.
"""

from __future__ import annotations

import base64
import hashlib
import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from .comments import comment_fragment
from .model import Features, Match
from .render import Rule

logger = logging.getLogger(__name__)

# 16 chars of base64 is 96 bits: short enough to keep rule text readable,
# long enough to be collision resistant for a single chain.
HASH_LENGTH = 16

# Prefix used while hashing. Never a real hash, so a rule's hash can later be
# embedded in its own rendering without feeding back into the computation.
HASH_PLACEHOLDER = "HASH"

DEFAULT_COMMENT_PREFIX = "cali:"

HashObserver = Callable[[str, int, str, str], None]


class HashWriteError(RuntimeError):
    """Rule text could not be written to the digest.

    The digest is in memory, so this means an internal invariant is broken.
    Callers must not recover from it: a wrong hash drives reconciliation
    against a live dataplane.
    """

    def __init__(self, message: str, *, chain: str, position: int | None = None, fragment: str | None = None):
        super().__init__(message)
        self.chain = chain
        self.position = position
        self.fragment = fragment


def _noop_observer(rendered: str, position: int, chain_name: str, rule_hash: str) -> None:
    return None


@dataclass(frozen=True)
class Chain:
    """A named, ordered sequence of rules."""

    name: str
    rules: tuple[Rule, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))

    def rule_hashes(self, features: Features | None = None, observer: HashObserver | None = None) -> list[str]:
        return rule_hashes(self, features, observer=observer)

    def ipset_ids(self) -> list[str]:
        return ipset_ids(self)


def _encode(text: str, *, chain: str, position: int | None) -> bytes:
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        logger.critical("Failed to write to hash: chain=%s position=%s fragment=%r", chain, position, text)
        raise HashWriteError(
            f"Failed to write to hash for chain {chain!r} at position {position}: {e}",
            chain=chain,
            position=position,
            fragment=text,
        ) from e


def rule_hashes(
    chain: Chain | None,
    features: Features | None = None,
    *,
    observer: HashObserver | None = None,
) -> list[str]:
    """
    Compute the identity hash of every rule in `chain`.

    Args:
        chain: Chain to hash; None is treated as an empty chain
        features: Capability descriptor, passed through to action rendering
        observer: Optional callback invoked per rule with
            (rendered_text, position, chain_name, hash)

    Returns:
        One HASH_LENGTH-character URL-safe base64 string per rule, in order

    Raises:
        HashWriteError: If rule text cannot be fed to the digest. The chain
            name is encoded too, so a name that is not valid UTF-8 fails even
            when the chain has no rules.
    """
    if chain is None:
        return []

    notify = observer or _noop_observer
    debug = logger.isEnabledFor(logging.DEBUG)

    # Seed with the chain name so identical rules in different chains differ.
    digest = hashlib.sha224(_encode(chain.name, chain=chain.name, position=None)).digest()

    hashes: list[str] = []
    for position, rule in enumerate(chain.rules):
        rendered = rule.render_append(chain.name, HASH_PLACEHOLDER, features)
        s = hashlib.sha224()
        s.update(digest)
        s.update(_encode(rendered, chain=chain.name, position=position))
        digest = s.digest()

        rule_hash = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")[:HASH_LENGTH]
        hashes.append(rule_hash)

        if debug:
            logger.debug("Hashed rule: chain=%s position=%d hash=%s rule=%r", chain.name, position, rule_hash, rendered)
        notify(rendered, position, chain.name, rule_hash)

    return hashes


def ipset_ids(chain: Chain | None) -> list[str]:
    """
    Collect IP set IDs referenced by `--match-set` in the chain's match criteria.

    This is a textual scan of the rendered match fragments. Duplicates are
    kept, in rule order.
    """
    if chain is None:
        return []

    ids: list[str] = []
    for rule in chain.rules:
        match = rule.match
        fragments = match.fragments if isinstance(match, Match) else (match.render(),)
        for fragment in fragments:
            words = fragment.split()
            for i, word in enumerate(words):
                if word == "--match-set" and i + 1 < len(words):
                    ids.append(words[i + 1])
    return ids


def hash_comment_fragment(rule_hash: str, prefix: str = DEFAULT_COMMENT_PREFIX) -> str:
    """Comment match that tags an installed rule with its hash.

    The prefix goes through the same escaping and truncation as rule comments.
    """
    return comment_fragment(f"{prefix}{rule_hash}")


def render_chain(
    chain: Chain | None,
    features: Features | None = None,
    *,
    comment_prefix: str = DEFAULT_COMMENT_PREFIX,
) -> list[str]:
    """Render every rule as an APPEND line tagged with its own hash."""
    if chain is None:
        return []
    hashes = rule_hashes(chain, features)
    return [
        rule.render_append(chain.name, hash_comment_fragment(h, comment_prefix), features)
        for rule, h in zip(chain.rules, hashes)
    ]


def first_divergence(desired: Sequence[str], installed: Sequence[str]) -> int:
    """
    Index of the first position where two hash sequences differ.

    If one sequence is a prefix of the other, the length of the shorter one
    is returned; for identical sequences that is their common length.
    """
    for i, (want, have) in enumerate(zip(desired, installed)):
        if want != have:
            return i
    return min(len(desired), len(installed))
