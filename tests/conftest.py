"""
Pytest configuration and fixtures
"""
import base64
import json
import sys
from pathlib import Path

import httpx
import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from trendscope.config import Settings
from trendscope.gemini_helper import GeminiGateway

PNG_BYTES = b"\x89PNG\r\n\x1a\n"
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")

CHART_REPLY = {
    "trend": "Bullish",
    "confidence": 72,
    "support_levels": [100],
    "resistance_levels": [110],
    "insight": "x",
    "zones_explanation": "y",
    "disclaimer": "z",
}

PAIR_REPLY = {
    "symbol": "BTCUSD",
    "trend": "Sideways",
    "support": ["64000", "62500"],
    "resistance": ["68000"],
    "scenario": "Range between support and resistance",
    "explanation": "Price is consolidating after the ETF news",
}

PATTERN_REPLY = {
    "name": "Hammer",
    "meaning": "Buyers rejected lower prices",
    "example": "Bottom of a downtrend",
    "action": "Buy",
}


def gemini_body(text, **candidate_extra) -> dict:
    """Minimal generateContent response body carrying ``text``"""
    candidate = {"content": {"role": "model", "parts": [{"text": text}]}}
    candidate.update(candidate_extra)
    return {"candidates": [candidate]}


def fenced(payload: dict) -> str:
    return "```json\n" + json.dumps(payload) + "\n```"


class RecordingHandler:
    """MockTransport handler that records requests and replies with a fixed response"""

    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc(f"{self.exc.__name__} from mock", request=request)
        return self.response

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def settings() -> Settings:
    return Settings(GEMINI_API_KEY="test-key", _env_file=None)


@pytest.fixture
def make_gateway(settings):
    def _make(handler, settings_override=None):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return GeminiGateway(settings_override or settings, client=client)
    return _make


@pytest.fixture
def reply_with():
    """Build a RecordingHandler answering every call with the given model text"""
    def _reply(text, status_code=200, **candidate_extra):
        return RecordingHandler(
            response=httpx.Response(status_code, json=gemini_body(text, **candidate_extra))
        )
    return _reply
