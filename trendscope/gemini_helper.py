"""
Gemini Gateway
Sends chart, symbol and pattern prompts to Gemini and turns the JSON text it
returns into typed results
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from trendscope.config import Settings
from trendscope.errors import (
    EmptyResponse,
    MalformedResponse,
    MissingCredentials,
    TransportError,
    UnexpectedResultShape,
)
from trendscope.models import (
    AnalysisRequest,
    AnalysisResult,
    GroundingSource,
    ImageAnalysisRequest,
    Locale,
    PairAnalysisResult,
    PatternExplainRequest,
    PatternExplanation,
    SymbolAnalysisRequest,
)
from trendscope.prompts import build_prompt

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", flags=re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


# =========================
# REPLY PARSING
# =========================

def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence"""
    candidate = text.strip()
    candidate = _FENCE_OPEN.sub("", candidate)
    candidate = _FENCE_CLOSE.sub("", candidate)
    return candidate.strip()


def extract_json_object(text: str) -> Optional[str]:
    """Extract the first balanced JSON object from text."""
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : idx + 1]
    return None


def parse_model_json(text: str) -> Any:
    """
    Parse the model reply as JSON

    Args:
        text: Raw reply text, possibly wrapped in code fences

    Returns:
        The decoded JSON value

    Raises:
        EmptyResponse: If the reply has no text
        MalformedResponse: If no JSON could be decoded; carries the raw text
    """
    if not text or not text.strip():
        raise EmptyResponse("No response from Gemini")
    candidate = strip_code_fences(text)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        fragment = extract_json_object(candidate)
        if fragment is not None:
            try:
                return json.loads(fragment)
            except json.JSONDecodeError:
                pass
    raise MalformedResponse("Gemini reply is not valid JSON", raw_text=text)


def extract_reply_text(body: Dict[str, Any]) -> str:
    if not isinstance(body, dict):
        return ""
    candidates = body.get("candidates") or []
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    return "".join(
        part["text"]
        for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str) and not part.get("thought")
    )


def extract_grounding_sources(body: Dict[str, Any]) -> List[GroundingSource]:
    """Pull web sources from Gemini grounding metadata."""
    sources: List[GroundingSource] = []
    if not isinstance(body, dict):
        return sources
    candidates = body.get("candidates")
    if not isinstance(candidates, list):
        return sources
    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        metadata = candidate.get("groundingMetadata")
        chunks = metadata.get("groundingChunks") if isinstance(metadata, dict) else None
        if not isinstance(chunks, list):
            continue
        for chunk in chunks:
            web = chunk.get("web") if isinstance(chunk, dict) else None
            if not isinstance(web, dict):
                continue
            uri = web.get("uri")
            title = web.get("title")
            if isinstance(uri, str) and uri:
                sources.append(GroundingSource(uri=uri, title=title if isinstance(title, str) else ""))
    return sources


# =========================
# GATEWAY
# =========================

class GeminiGateway:
    """
    Gemini model gateway

    One outbound call per operation. No caching, retries or deduplication;
    every failure is logged and raised as a GatewayError subclass.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.GEMINI_TIMEOUT)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _generate(
        self,
        parts: List[Dict[str, Any]],
        *,
        model: str,
        use_search: bool = False,
    ) -> Dict[str, Any]:
        """
        POST a generateContent request and return the decoded response body

        Raises:
            MissingCredentials: If GEMINI_API_KEY is not configured
            TransportError: If the call fails or returns a non-200 status
        """
        if not self.settings.GEMINI_API_KEY:
            logger.error("GEMINI_API_KEY not configured")
            raise MissingCredentials("GEMINI_API_KEY is not set")

        payload: Dict[str, Any] = {
            "contents": [{"parts": parts}],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        if use_search:
            payload["tools"] = [{"google_search": {}}]

        headers = {
            "x-goog-api-key": self.settings.GEMINI_API_KEY,
            "Content-Type": "application/json",
        }

        try:
            response = await self.client.post(
                self.settings.model_url(model),
                headers=headers,
                json=payload,
            )
        except httpx.TimeoutException as e:
            logger.error("Gemini API timeout")
            raise TransportError("Gemini API timeout", timeout=True) from e
        except httpx.HTTPError as e:
            logger.error(f"Gemini API HTTP error: {type(e).__name__}")
            raise TransportError(f"Gemini API HTTP error: {type(e).__name__}") from e

        if response.status_code != 200:
            logger.error(f"Gemini API error: {response.status_code}")
            raise TransportError(
                f"Gemini API returned status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error("Gemini API returned a non-JSON body")
            raise TransportError("Gemini API returned a non-JSON body", status_code=200) from e

    def _to_result(self, text: str, result_type: Type[ResultT], label: str) -> ResultT:
        try:
            data = parse_model_json(text)
        except EmptyResponse:
            logger.error(f"Gemini {label} error: empty reply")
            raise
        except MalformedResponse:
            logger.error(f"Gemini {label} error: reply is not JSON ({len(text)} chars)")
            logger.debug(f"Raw Gemini reply: {text!r}")
            raise

        try:
            return result_type.model_validate(data)
        except ValidationError as e:
            logger.error(
                f"Gemini {label} error: reply does not match {result_type.__name__} "
                f"({e.error_count()} errors)"
            )
            raise UnexpectedResultShape(
                f"Gemini reply does not match {result_type.__name__}",
                raw_text=text,
                errors=e.errors(include_url=False),
            ) from e

    # =========================
    # OPERATIONS
    # =========================

    async def analyze_chart(
        self,
        image_bytes: bytes,
        mime_type: str,
        locale: Locale = Locale.EN,
    ) -> AnalysisResult:
        """
        Analyze a chart screenshot with the vision model

        Args:
            image_bytes: Raw image content
            mime_type: Image mime type, e.g. "image/png"
            locale: Language for the narrative fields

        Returns:
            AnalysisResult parsed from the model reply
        """
        request = ImageAnalysisRequest(image_bytes=image_bytes, mime_type=mime_type, locale=locale)
        return await self._analyze_image(request)

    async def analyze_chart_data_url(self, data_url: str, locale: Locale = Locale.EN) -> AnalysisResult:
        request = ImageAnalysisRequest.from_data_url(data_url, locale)
        return await self._analyze_image(request)

    async def _analyze_image(self, request: ImageAnalysisRequest) -> AnalysisResult:
        parts = [
            {"inline_data": {"mime_type": request.mime_type, "data": request.image_base64}},
            {"text": build_prompt(request)},
        ]
        logger.info(f"Chart analysis requested ({request.mime_type}, {len(request.image_bytes)} bytes)")
        body = await self._generate(parts, model=self.settings.GEMINI_VISION_MODEL)
        return self._to_result(extract_reply_text(body), AnalysisResult, "Vision")

    async def analyze_symbol(self, symbol: str, locale: Locale = Locale.EN) -> PairAnalysisResult:
        """
        Analyze a market symbol with Google Search grounding enabled

        The symbol is trimmed and upper-cased before the prompt is built.
        Grounding sources reported by Gemini are attached to the result.
        """
        request = SymbolAnalysisRequest(symbol=symbol, locale=locale)
        return await self._analyze_symbol(request)

    async def _analyze_symbol(self, request: SymbolAnalysisRequest) -> PairAnalysisResult:
        logger.info(f"Symbol analysis requested for {request.symbol}")
        body = await self._generate(
            [{"text": build_prompt(request)}],
            model=self.settings.GEMINI_MODEL,
            use_search=True,
        )
        result = self._to_result(extract_reply_text(body), PairAnalysisResult, "Text")
        sources = extract_grounding_sources(body)
        if sources:
            result.sources = sources
        return result

    async def explain_pattern(self, pattern_name: str, locale: Locale = Locale.EN) -> PatternExplanation:
        request = PatternExplainRequest(pattern_name=pattern_name, locale=locale)
        return await self._explain_pattern(request)

    async def _explain_pattern(self, request: PatternExplainRequest) -> PatternExplanation:
        logger.info(f"Pattern explanation requested for {request.pattern_name!r}")
        body = await self._generate(
            [{"text": build_prompt(request)}],
            model=self.settings.GEMINI_MODEL,
        )
        return self._to_result(extract_reply_text(body), PatternExplanation, "Education")

    async def analyze(self, request: AnalysisRequest):
        """Run whichever operation matches the request variant"""
        if isinstance(request, ImageAnalysisRequest):
            return await self._analyze_image(request)
        if isinstance(request, SymbolAnalysisRequest):
            return await self._analyze_symbol(request)
        if isinstance(request, PatternExplainRequest):
            return await self._explain_pattern(request)
        raise TypeError(f"Unsupported analysis request: {type(request).__name__}")
