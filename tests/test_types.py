import pytest

from concerto_links.links.types import LinkRecord, LinkStatus, ProviderResult, SongQuery


def test_status_derivation():
    assert LinkRecord("s", None, None, 1.0).status is LinkStatus.RESOLVED
    assert LinkRecord(None, "a", None, 1.0).status is LinkStatus.RESOLVED
    assert LinkRecord(None, None, "l", 1.0).status is LinkStatus.PARTIALLY_RESOLVED
    assert LinkRecord.unresolved(1.0).status is LinkStatus.UNRESOLVED


def test_record_dict_roundtrip_keeps_all_fields():
    rec = LinkRecord("https://open.spotify.com/x", None, "https://www.google.com/search?q=x", 1700000000.5)
    data = rec.to_dict()
    assert data["status"] == "resolved"
    assert LinkRecord.from_dict(data) == rec


@pytest.mark.parametrize(
    "data",
    [
        {"spotify_url": None},
        {"fetched_at": "yesterday"},
        {"fetched_at": True},
        {"fetched_at": 1.0, "spotify_url": 123},
    ],
)
def test_from_dict_rejects_malformed(data):
    with pytest.raises(ValueError):
        LinkRecord.from_dict(data)


def test_from_dict_ignores_stored_status():
    rec = LinkRecord.from_dict({"fetched_at": 5, "status": "resolved"})
    assert rec.status is LinkStatus.UNRESOLVED


def test_provider_result_empty():
    assert ProviderResult.empty("x").is_empty
    assert not ProviderResult("x", lyrics_url="l").is_empty


def test_song_query_display_and_key():
    q = SongQuery(artist="Queen", title="Bohemian Rhapsody")
    assert q.display == "Queen - Bohemian Rhapsody"
    assert q.key == "queen::bohemian rhapsody"
    assert SongQuery(artist="", title="Intro").display == "Intro"


def test_song_query_normalizes_once(monkeypatch):
    import concerto_links.links.types as types_mod

    calls = []

    def counting_normalize(value):
        calls.append(value)
        return str(value).lower()

    monkeypatch.setattr(types_mod, "normalize", counting_normalize)
    q = SongQuery(artist="Queen", title="Bohemian Rhapsody")
    assert len(calls) == 2

    for _ in range(10):
        assert q.normalized_artist == "queen"
        assert q.normalized_title == "bohemian rhapsody"
        assert q.key == "queen::bohemian rhapsody"
    assert len(calls) == 2


def test_song_query_equality_ignores_derived_fields():
    assert SongQuery("Queen", "Bohemian Rhapsody") == SongQuery("Queen", "Bohemian Rhapsody")
    assert "normalized" not in repr(SongQuery("Queen", "Bohemian Rhapsody"))
