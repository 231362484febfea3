"""
TrendScope FastAPI Application
Chart vision, live symbol scanning and candlestick pattern lessons
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware

from trendscope import __version__
from trendscope.config import Settings, get_settings
from trendscope.errors import (
    EmptyResponse,
    GatewayError,
    MalformedResponse,
    MissingCredentials,
    TransportError,
)
from trendscope.gemini_helper import GeminiGateway
from trendscope.models import (
    AnalysisResult,
    ChartAnalysisBody,
    PairAnalysisResult,
    PatternCatalogEntry,
    PatternExplainBody,
    PatternExplanation,
    SymbolAnalysisBody,
)
from trendscope.patterns import get_pattern, load_catalog, patterns_by_category

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "TrendScope API"
GENERIC_FAILURE = "Service temporarily unavailable"


def get_gateway(request: Request) -> GeminiGateway:
    return request.app.state.gateway


def _raise_http_error(exc: GatewayError, label: str) -> None:
    """Translate a gateway failure into an HTTPException with a generic detail"""
    if isinstance(exc, MissingCredentials):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    elif isinstance(exc, TransportError):
        code = status.HTTP_504_GATEWAY_TIMEOUT if exc.timeout else status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(exc, (EmptyResponse, MalformedResponse)):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    logger.error(f"{label} failed: {type(exc).__name__}")
    raise HTTPException(status_code=code, detail=GENERIC_FAILURE) from exc


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.getLogger("trendscope").setLevel(settings.LOG_LEVEL.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.gateway = GeminiGateway(settings)
        try:
            yield
        finally:
            await app.state.gateway.aclose()

    app = FastAPI(
        title="TrendScope - AI Chart & Market Commentary",
        description="Chart screenshot analysis, live symbol scanning and candlestick pattern lessons",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # =============================
    # MIDDLEWARE
    # =============================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        """Add security headers to all responses"""
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.REQUIRE_HTTPS:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # =============================
    # PUBLIC ENDPOINTS
    # =============================

    @app.get("/api/health")
    async def health_check():
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/")
    async def root():
        return {"status": "ok", "service": SERVICE_NAME, "docs": "/docs", "version": __version__}

    # =============================
    # PATTERN CATALOGUE
    # =============================

    @app.get("/api/patterns", response_model=List[PatternCatalogEntry])
    async def list_patterns(category: Optional[str] = None):
        if category:
            return patterns_by_category(category)
        return load_catalog()

    @app.get("/api/patterns/{pattern_id}", response_model=PatternCatalogEntry)
    async def pattern_detail(pattern_id: str):
        try:
            return get_pattern(pattern_id)
        except KeyError:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown pattern: {pattern_id}"
            )

    # =============================
    # AI ANALYSIS
    # =============================

    @app.post("/api/analyze-chart", response_model=AnalysisResult)
    async def analyze_chart(body: ChartAnalysisBody, gateway: GeminiGateway = Depends(get_gateway)):
        """Analyze an uploaded chart screenshot (data URL)"""
        try:
            return await gateway.analyze_chart_data_url(body.image, body.language)
        except ValueError as e:
            logger.warning(f"Validation error in analyze_chart: {type(e).__name__}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid chart image")
        except GatewayError as e:
            _raise_http_error(e, "Chart analysis")

    @app.post("/api/analyze-symbol", response_model=PairAnalysisResult)
    async def analyze_symbol(body: SymbolAnalysisBody, gateway: GeminiGateway = Depends(get_gateway)):
        """Analyze a currency pair or crypto symbol using live search grounding"""
        try:
            return await gateway.analyze_symbol(body.symbol, body.language)
        except ValueError as e:
            logger.warning(f"Validation error in analyze_symbol: {type(e).__name__}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid market symbol")
        except GatewayError as e:
            _raise_http_error(e, "Symbol analysis")

    @app.post("/api/explain-pattern", response_model=PatternExplanation)
    async def explain_pattern(body: PatternExplainBody, gateway: GeminiGateway = Depends(get_gateway)):
        try:
            return await gateway.explain_pattern(body.pattern, body.language)
        except ValueError as e:
            logger.warning(f"Validation error in explain_pattern: {type(e).__name__}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid pattern name")
        except GatewayError as e:
            _raise_http_error(e, "Pattern explanation")

    return app


app = create_app()
