"""
Minimal stand-in for requests.Session used by the HTTP adapters.

Routes are matched by URL prefix; each route holds a list of responses that
are served in order (the last one repeats). A response may be an exception
instance, which is raised instead.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import requests


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        if self._payload is None and self.text:
            return json.loads(self.text)
        return self._payload


@dataclass
class Call:
    method: str
    url: str
    params: dict | None
    headers: dict | None
    data: dict | None
    timeout: float | None


@dataclass
class FakeSession:
    routes: dict[str, list[Any]] = field(default_factory=dict)
    calls: list[Call] = field(default_factory=list)

    def route(self, prefix: str, *responses: Any) -> FakeSession:
        self.routes[prefix] = list(responses)
        return self

    def _serve(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append(
            Call(
                method=method,
                url=url,
                params=kwargs.get("params"),
                headers=kwargs.get("headers"),
                data=kwargs.get("data"),
                timeout=kwargs.get("timeout"),
            )
        )
        for prefix, queue in self.routes.items():
            if url.startswith(prefix):
                resp = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(resp, BaseException):
                    raise resp
                return resp
        raise requests.ConnectionError(f"no route for {url}")

    def get(self, url: str, **kwargs) -> FakeResponse:
        return self._serve("GET", url, **kwargs)

    def post(self, url: str, **kwargs) -> FakeResponse:
        return self._serve("POST", url, **kwargs)

    def calls_to(self, prefix: str) -> list[Call]:
        return [c for c in self.calls if c.url.startswith(prefix)]
