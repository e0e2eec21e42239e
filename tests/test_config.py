from __future__ import annotations

import pytest

from concerto_links.config import load_config, save_config_track_search


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    for name in (
        "CONCERTO_LINKS_TRACK_SEARCH",
        "CONCERTO_LINKS_PROVIDER_TIMEOUT",
        "CONCERTO_LINKS_RESOLVE_CEILING",
        "CONCERTO_LINKS_UNRESOLVED_RETRY_AFTER",
        "SPOTIFY_CLIENT_ID",
        "SPOTIFY_CLIENT_SECRET",
    ):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults(self, tmp_path):
        cfg = load_config()
        assert cfg.track_search == "itunes"
        assert cfg.provider_timeout_s == 5.0
        assert cfg.resolve_ceiling_s == 8.0
        assert cfg.unresolved_retry_after_s == 0.0
        assert cfg.spotify_client_id is None
        assert cfg.cache_db_path == tmp_path / "cache" / "concerto-links" / "cache.sqlite3"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CONCERTO_LINKS_PROVIDER_TIMEOUT", "2.5")
        monkeypatch.setenv("CONCERTO_LINKS_UNRESOLVED_RETRY_AFTER", "3600")
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "abc")
        cfg = load_config()
        assert cfg.provider_timeout_s == 2.5
        assert cfg.unresolved_retry_after_s == 3600.0
        assert cfg.spotify_client_id == "abc"


class TestTrackSearchSetting:
    def test_save_and_load(self):
        save_config_track_search("Spotify")
        assert load_config().track_search == "spotify"
        save_config_track_search("itunes")
        assert load_config().track_search == "itunes"

    def test_config_file_wins_over_env(self, monkeypatch):
        save_config_track_search("itunes")
        monkeypatch.setenv("CONCERTO_LINKS_TRACK_SEARCH", "spotify")
        assert load_config().track_search == "itunes"

    def test_env_when_no_config_file(self, monkeypatch):
        monkeypatch.setenv("CONCERTO_LINKS_TRACK_SEARCH", "spotify")
        assert load_config().track_search == "spotify"

    def test_unknown_env_value_falls_back(self, monkeypatch):
        monkeypatch.setenv("CONCERTO_LINKS_TRACK_SEARCH", "tidal")
        assert load_config().track_search == "itunes"

    def test_rejects_unknown_value(self):
        with pytest.raises(ValueError):
            save_config_track_search("tidal")

    def test_corrupt_config_file_is_ignored(self, tmp_path):
        cfg_file = tmp_path / "config" / "concerto-links" / "config.json"
        cfg_file.parent.mkdir(parents=True)
        cfg_file.write_text("{oops", encoding="utf-8")
        assert load_config().track_search == "itunes"
        save_config_track_search("spotify")
        assert load_config().track_search == "spotify"
