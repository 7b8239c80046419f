"""
Comment escaping for rule text.

iptables-restore has no quoting mechanism we can rely on inside a
`--comment "..."` argument, so comment text is made safe by replacing
anything outside a small allow-list with an underscore. The conversion is
lossy. Comments are expected to be either IDs generated by higher layers
or short descriptions of what a rule does; neither needs exotic characters.
"""

from __future__ import annotations

import re

MAX_COMMENT_LEN = 256

# \w is ASCII-only here, matching the loader's own definition of a word character.
_SHELL_UNSAFE = re.compile(r"[^\w @%+=:,./-]", re.ASCII)


def escape_comment(text: str) -> str:
    """Replace every unsafe character with `_`."""
    return _SHELL_UNSAFE.sub("_", text)


def truncate_comment(text: str) -> str:
    """Cut `text` to at most MAX_COMMENT_LEN bytes (UTF-8)."""
    raw = text.encode("utf-8")
    if len(raw) <= MAX_COMMENT_LEN:
        return text
    # Escaped comments are ASCII, so this only drops bytes for unescaped input.
    return raw[:MAX_COMMENT_LEN].decode("utf-8", errors="ignore")


def comment_fragment(text: str) -> str:
    """Render a comment-match fragment for one comment string."""
    return f'-m comment --comment "{truncate_comment(escape_comment(text))}"'
