import io
import json
from datetime import date

import pytest

from ci import generate_matrix

RUBY_CYCLES = [
    {"cycle": "3.4", "releaseDate": "2024-12-25", "eol": "2028-03-31", "latest": "3.4.1"},
    {"cycle": "3.3", "releaseDate": "2023-12-25", "eol": "2027-03-31", "latest": "3.3.6"},
    {"cycle": "3.2", "releaseDate": "2022-12-25", "eol": "2026-03-31", "latest": "3.2.6"},
    {"cycle": "3.1", "releaseDate": "2021-12-25", "eol": "2025-03-31", "latest": "3.1.6"},
]

# 3.1 is past EOL on this day, the other cycles are supported
TODAY = date(2025, 6, 1)


class FrozenDate(date):
    @classmethod
    def today(cls):
        return cls(TODAY.year, TODAY.month, TODAY.day)


class FakeResponse(io.BytesIO):
    def __init__(self, payload):
        super().__init__(json.dumps(payload).encode("utf-8"))


@pytest.fixture
def eol_api(monkeypatch):
    """Serve RUBY_CYCLES in place of endoflife.date and record the requests."""
    requests = []

    def fake_urlopen(req, timeout=None):
        requests.append(req)
        return FakeResponse(RUBY_CYCLES)

    monkeypatch.setattr(generate_matrix.urllib.request, "urlopen", fake_urlopen)
    monkeypatch.setattr(generate_matrix, "date", FrozenDate)
    monkeypatch.delenv("EOL_API_URL", raising=False)
    return requests
