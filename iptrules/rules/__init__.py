"""
Rule rendering and chain hashing.

- comments: escaping and truncation of free-text comments
- model: capability descriptor, match criteria and actions
- render: Rule and the append/insert/replace renderers
- chain: Chain, per-rule identity hashes and IP set references
"""

from .comments import MAX_COMMENT_LEN, comment_fragment, escape_comment, truncate_comment
from .model import (
    AcceptAction,
    Action,
    DropAction,
    Features,
    GotoAction,
    JumpAction,
    LiteralAction,
    MasqAction,
    Match,
    MatchCriteria,
    NoopAction,
    ReturnAction,
)
from .render import (
    Directive,
    Rule,
    render,
    render_append,
    render_insert,
    render_insert_at,
    render_replace,
)
from .chain import (
    DEFAULT_COMMENT_PREFIX,
    HASH_LENGTH,
    HASH_PLACEHOLDER,
    Chain,
    HashObserver,
    HashWriteError,
    first_divergence,
    hash_comment_fragment,
    ipset_ids,
    render_chain,
    rule_hashes,
)

__all__ = [
    # Comments
    "MAX_COMMENT_LEN",
    "comment_fragment",
    "escape_comment",
    "truncate_comment",
    # Model
    "Features",
    "MatchCriteria",
    "Action",
    "Match",
    "AcceptAction",
    "DropAction",
    "ReturnAction",
    "JumpAction",
    "GotoAction",
    "MasqAction",
    "LiteralAction",
    "NoopAction",
    # Rendering
    "Directive",
    "Rule",
    "render",
    "render_append",
    "render_insert",
    "render_insert_at",
    "render_replace",
    # Hashing
    "DEFAULT_COMMENT_PREFIX",
    "HASH_LENGTH",
    "HASH_PLACEHOLDER",
    "Chain",
    "HashObserver",
    "HashWriteError",
    "rule_hashes",
    "ipset_ids",
    "hash_comment_fragment",
    "render_chain",
    "first_divergence",
]
