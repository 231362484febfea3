"""
Tests for the HTTP surface
"""
import pytest
from fastapi.testclient import TestClient

from trendscope.app import create_app, get_gateway
from trendscope.config import Settings
from trendscope.errors import (
    EmptyResponse,
    MalformedResponse,
    MissingCredentials,
    TransportError,
    UnexpectedResultShape,
)
from trendscope.models import (
    AnalysisResult,
    ImageAnalysisRequest,
    PairAnalysisResult,
    PatternExplainRequest,
    PatternExplanation,
    SymbolAnalysisRequest,
)
from tests.conftest import CHART_REPLY, PAIR_REPLY, PATTERN_REPLY, PNG_DATA_URL


class StubGateway:
    """Stands in for GeminiGateway; validates input the same way and returns canned results"""

    def __init__(self, exc=None):
        self.exc = exc
        self.calls = []

    async def analyze_chart_data_url(self, data_url, locale):
        request = ImageAnalysisRequest.from_data_url(data_url, locale)
        self.calls.append(("chart", request.mime_type, locale))
        if self.exc is not None:
            raise self.exc
        return AnalysisResult(**CHART_REPLY)

    async def analyze_symbol(self, symbol, locale):
        request = SymbolAnalysisRequest(symbol=symbol, locale=locale)
        self.calls.append(("symbol", request.symbol, locale))
        if self.exc is not None:
            raise self.exc
        return PairAnalysisResult(**PAIR_REPLY)

    async def explain_pattern(self, pattern_name, locale):
        request = PatternExplainRequest(pattern_name=pattern_name, locale=locale)
        self.calls.append(("pattern", request.pattern_name, locale))
        if self.exc is not None:
            raise self.exc
        return PatternExplanation(**PATTERN_REPLY)


@pytest.fixture
def make_client():
    def _make(gateway):
        app = create_app(Settings(GEMINI_API_KEY="test-key", _env_file=None))
        app.dependency_overrides[get_gateway] = lambda: gateway
        return TestClient(app)
    return _make


def test_health(make_client):
    client = make_client(StubGateway())
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_list_patterns(make_client):
    client = make_client(StubGateway())
    response = client.get("/api/patterns")
    assert response.status_code == 200
    assert len(response.json()) == 9

    response = client.get("/api/patterns", params={"category": "Indecision"})
    assert [p["id"] for p in response.json()] == ["doji"]


def test_pattern_detail(make_client):
    client = make_client(StubGateway())
    response = client.get("/api/patterns/morning-star")
    assert response.status_code == 200
    assert response.json()["details"]["stop_loss"] == "Below the low of the middle candle (star)."

    assert client.get("/api/patterns/nope").status_code == 404


def test_analyze_chart(make_client):
    gateway = StubGateway()
    client = make_client(gateway)
    response = client.post("/api/analyze-chart", json={"image": PNG_DATA_URL, "language": "bn"})
    assert response.status_code == 200
    body = response.json()
    assert body["trend"] == "Bullish"
    assert body["confidence"] == 72
    assert gateway.calls[0][0] == "chart"
    assert gateway.calls[0][2].value == "bn"


def test_analyze_chart_rejects_non_image(make_client):
    client = make_client(StubGateway())
    response = client.post("/api/analyze-chart", json={"image": "data:text/plain;base64,aGVsbG8="})
    assert response.status_code == 400


def test_analyze_symbol_normalizes(make_client):
    gateway = StubGateway()
    client = make_client(gateway)
    response = client.post("/api/analyze-symbol", json={"symbol": "btcusd  "})
    assert response.status_code == 200
    assert response.json()["symbol"] == "BTCUSD"
    assert gateway.calls == [("symbol", "BTCUSD", gateway.calls[0][2])]


def test_analyze_symbol_rejects_blank(make_client):
    client = make_client(StubGateway())
    assert client.post("/api/analyze-symbol", json={"symbol": "   "}).status_code == 400
    assert client.post("/api/analyze-symbol", json={}).status_code == 422


def test_validation_errors_do_not_echo_input(make_client):
    client = make_client(StubGateway())

    secret_payload = "data:text/plain;base64,c2VjcmV0LXBheWxvYWQ="
    response = client.post("/api/analyze-chart", json={"image": secret_payload})
    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid chart image"}

    response = client.post("/api/explain-pattern", json={"pattern": "   "})
    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid pattern name"}


def test_explain_pattern(make_client):
    client = make_client(StubGateway())
    response = client.post("/api/explain-pattern", json={"pattern": "Hammer"})
    assert response.status_code == 200
    assert response.json() == PATTERN_REPLY


@pytest.mark.parametrize("exc,status_code", [
    (TransportError("down"), 503),
    (TransportError("slow", timeout=True), 504),
    (EmptyResponse("empty"), 502),
    (MalformedResponse("bad", raw_text="I cannot analyze this."), 502),
    (UnexpectedResultShape("shape", raw_text="{}"), 502),
    (MissingCredentials("no key"), 500),
])
def test_gateway_errors_map_to_generic_failures(make_client, exc, status_code):
    client = make_client(StubGateway(exc=exc))
    response = client.post("/api/explain-pattern", json={"pattern": "Doji"})
    assert response.status_code == status_code
    assert response.json() == {"detail": "Service temporarily unavailable"}
