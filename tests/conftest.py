"""Shared fixtures: a controllable clock, a stub upstream origin, and config helpers."""

import json

import httpx
import pytest

from streamgate.services.config_service import ConfigService

START_TIME = 1_700_000_000.0


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubUpstream:
    """httpx.MockTransport handler playing the IPTV origin.

    Every probe answers ``302`` with a CDN ``Location`` unless a path is
    given a different response in ``responses``.  Non-probe fetches (the
    channel playlists) are answered from ``playlists``.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, object] = {}
        self.playlists: dict[str, str] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url in self.playlists:
            return httpx.Response(200, text=self.playlists[url])
        override = self.responses.get(request.url.path)
        if isinstance(override, Exception):
            raise override
        if isinstance(override, httpx.Response):
            return override
        return httpx.Response(302, headers={"Location": f"https://cdn.example.com{request.url.path}?token=t1"})

    @property
    def probes(self) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) not in self.playlists]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def write_config(data_dir, **sections) -> None:
    (data_dir / "config.json").write_text(json.dumps(sections))


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def upstream():
    return StubUpstream()


@pytest.fixture()
def config_service(tmp_path):
    write_config(
        tmp_path,
        upstream={"base_url": "http://origin.test:80", "timeout": 5},
        options={"max_devices": 20, "cache_ttl": 60},
    )
    cfg = ConfigService(str(tmp_path))
    cfg.load()
    return cfg
