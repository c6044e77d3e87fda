import base64
from hashlib import sha256

from agents.compliance.canonical import canonicalize, digest_base64


def test_canonicalize_normalizes_line_endings_and_inter_tag_whitespace():
    xml = "  <a>\r\n  <b>x y</b>\r<c/>\n</a>  "
    assert canonicalize(xml) == "<a><b>x y</b><c/></a>"


def test_canonicalize_keeps_text_whitespace():
    assert canonicalize("<a> text </a>") == "<a> text </a>"


def test_canonicalize_is_idempotent():
    xml = "<root>\n  <child attr='1'>v</child>\n</root>\n"
    once = canonicalize(xml)
    assert canonicalize(once) == once


def test_digest_base64_matches_sha256():
    expected = base64.b64encode(sha256("<a/>".encode("utf-8")).digest()).decode("ascii")
    assert digest_base64("<a/>") == expected
    assert digest_base64(b"<a/>") == expected


def test_digest_differs_after_whitespace_only_change_inside_text():
    assert digest_base64(canonicalize("<a>x</a>")) != digest_base64(canonicalize("<a> x</a>"))
    assert digest_base64(canonicalize("<a>\n<b/></a>")) == digest_base64(canonicalize("<a><b/></a>"))
