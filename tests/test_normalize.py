import pytest

from concerto_links.normalize import cache_key, normalize


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Don’t Stop (Live)", "dont stop"),
        ("  Bohemian   Rhapsody  ", "bohemian rhapsody"),
        ("“Heroes” (2017 Remaster)", "heroes"),
        ("AC/DC", "acdc"),
        ("Guns N' Roses", "guns n roses"),
        ("Song (Live) (Remastered) Tail", "song tail"),
        ("Beyoncé", "beyonc"),
        ("tab\tand\nnewline", "tab and newline"),
        ("", ""),
        (None, ""),
        (42, "42"),
    ],
)
def test_normalize_examples(value, expected):
    assert normalize(value) == expected


@pytest.mark.parametrize(
    "value",
    ["Don’t Stop (Live)", "((nested) paren)", "a(b", "  ‘Quoted’  ", "Sigur Rós", "İstanbul", "x y"],
)
def test_normalize_is_idempotent(value):
    once = normalize(value)
    assert normalize(once) == once


def test_cache_key_ignores_casing_and_punctuation():
    assert cache_key("Queen", "Bohemian Rhapsody") == "queen::bohemian rhapsody"
    assert cache_key(" QUEEN ", "Bohemian Rhapsody (Remastered 2011)") == cache_key("queen", "bohemian rhapsody")


def test_cache_key_handles_missing_artist():
    assert cache_key(None, "Intro") == "::intro"
