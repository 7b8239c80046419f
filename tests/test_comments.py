from __future__ import annotations

from iptrules.rules import MAX_COMMENT_LEN, comment_fragment, escape_comment, truncate_comment


def test_escape_keeps_safe_characters() -> None:
    text = "Policy abc/def: allow a@b %x +y =z, v1.2-rc_3"
    assert escape_comment(text) == text


def test_escape_replaces_quotes_and_backticks() -> None:
    assert escape_comment('say "hi" `rm -rf`') == "say _hi_ _rm -rf_"


def test_escape_replaces_shell_metacharacters() -> None:
    assert escape_comment("a;b|c&d$e\\f'g\nh\ti") == "a_b_c_d_e_f_g_h_i"


def test_escape_replaces_non_ascii_one_underscore_per_character() -> None:
    assert escape_comment("café ünïcode") == "caf_ _n_code"


def test_truncate_short_comment_unchanged() -> None:
    assert truncate_comment("short") == "short"


def test_truncate_exact_limit_unchanged() -> None:
    text = "x" * MAX_COMMENT_LEN
    assert truncate_comment(text) == text


def test_truncate_long_comment_hard_cut() -> None:
    text = "ab" * 150
    out = truncate_comment(text)
    assert len(out) == 256
    assert out == text[:256]


def test_truncate_never_exceeds_limit_in_bytes() -> None:
    text = "é" * 200  # 400 bytes in UTF-8
    out = truncate_comment(text)
    assert len(out.encode("utf-8")) <= MAX_COMMENT_LEN
    assert out == "é" * 128


def test_comment_fragment_escapes_then_truncates() -> None:
    fragment = comment_fragment('"' * 300)
    assert fragment == '-m comment --comment "' + "_" * 256 + '"'


def test_comment_fragment_has_only_delimiting_quotes() -> None:
    fragment = comment_fragment('he said "no" and `ls`')
    assert fragment.count('"') == 2
    assert "`" not in fragment
    assert fragment == '-m comment --comment "he said _no_ and _ls_"'
