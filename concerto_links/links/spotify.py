from __future__ import annotations

import base64
import logging
import threading
import time

import requests

from concerto_links.errors import ProviderTransientFailure

from .base import TrackSearchSource, select_best_candidate
from .types import SongQuery, TrackCandidate, TrackRef

logger = logging.getLogger(__name__)

SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_SEARCH_URL = "https://api.spotify.com/v1/search"


class SpotifySearchSource(TrackSearchSource):
    """Track search against the Spotify Web API using client credentials."""

    name = "spotify"

    def __init__(self, *, client_id: str, client_secret: str, limit: int = 5, **kwargs):
        super().__init__(**kwargs)
        self.client_id = client_id
        self.client_secret = client_secret
        self.limit = limit
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    def _get_token(self) -> str:
        with self._token_lock:
            now = time.time()
            if self._token and now < self._token_expires_at:
                return self._token

            auth = base64.b64encode(f"{self.client_id}:{self.client_secret}".encode("utf-8")).decode("ascii")
            try:
                r = self.session.post(
                    SPOTIFY_TOKEN_URL,
                    data={"grant_type": "client_credentials"},
                    headers={"Authorization": f"Basic {auth}"},
                    timeout=self.timeout_s,
                )
            except requests.RequestException as e:
                raise ProviderTransientFailure(self.name, f"token request failed: {e}") from e
            if r.status_code != 200:
                raise ProviderTransientFailure(self.name, f"token request failed: HTTP {r.status_code}")
            try:
                payload = r.json()
            except ValueError as e:
                raise ProviderTransientFailure(self.name, f"invalid token JSON: {e}") from e
            token = payload.get("access_token") if isinstance(payload, dict) else None
            if not token:
                raise ProviderTransientFailure(self.name, "token response without access_token")
            expires_in = int(payload.get("expires_in") or 0)
            self._token = token
            # refresh a little early so a token never expires mid-request
            self._token_expires_at = now + max(0, expires_in - 30)
            return token

    def _search_tracks(self, query: SongQuery) -> dict:
        q = f"track:{query.title} artist:{query.artist}" if query.artist else f"track:{query.title}"
        params = {"type": "track", "limit": self.limit, "q": q}
        r = self._get(SPOTIFY_SEARCH_URL, params=params, headers={"Authorization": f"Bearer {self._get_token()}"})
        if r.status_code == 401:
            with self._token_lock:
                self._token = None
            r = self._get(SPOTIFY_SEARCH_URL, params=params, headers={"Authorization": f"Bearer {self._get_token()}"})
        if not 200 <= r.status_code < 300:
            raise ProviderTransientFailure(self.name, f"HTTP {r.status_code}")
        try:
            data = r.json()
        except ValueError as e:
            raise ProviderTransientFailure(self.name, f"invalid JSON: {e}") from e
        return data if isinstance(data, dict) else {}

    def search(self, query: SongQuery) -> TrackRef | None:
        items = (self._search_tracks(query).get("tracks") or {}).get("items") or []
        candidates = []
        for item in items:
            if not isinstance(item, dict):
                continue
            artists = [a.get("name") for a in item.get("artists") or [] if isinstance(a, dict) and a.get("name")]
            candidates.append(
                TrackCandidate(
                    artist_name=", ".join(artists),
                    track_name=str(item.get("name") or ""),
                    track_url=(item.get("external_urls") or {}).get("spotify") or None,
                )
            )
        best = select_best_candidate(candidates, query)
        if best is None:
            logger.debug("Spotify: no candidates for %s", query.display)
            return None
        return TrackRef(
            url=str(best.track_url),
            source=self.name,
            artist_name=best.artist_name,
            track_name=best.track_name,
        )
