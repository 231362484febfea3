import base64
import binascii
import math
import re
from enum import Enum
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field, field_validator

#=========================
#ENUMS
#=========================
DATA_URL_REGEX = re.compile(r"^data:(.+);base64,(.+)$", re.DOTALL)
DEFAULT_IMAGE_MIME_TYPE = "image/png"
YOUTUBE_EMBED_URL = "https://www.youtube.com/embed/"


class Locale(str, Enum):
    EN = "en"
    BN = "bn"

    @property
    def language_name(self) -> str:
        return "Bangla (Bengali)" if self is Locale.BN else "English"

    @property
    def short_name(self) -> str:
        return "Bangla" if self is Locale.BN else "English"

    def toggled(self) -> "Locale":
        return Locale.EN if self is Locale.BN else Locale.BN


class Trend(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    SIDEWAYS = "Sideways"


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def split_data_url(value: str) -> tuple[str, str]:
    """
    Split a data URL into (mime_type, base64 payload)

    Input without a ``data:<mime>;base64,`` prefix is treated as a bare
    payload with the default image mime type.
    """
    match = DATA_URL_REGEX.match(value)
    if not match:
        return DEFAULT_IMAGE_MIME_TYPE, value
    return match.group(1), match.group(2)


def _coerce_trend(value):
    if isinstance(value, str):
        for trend in Trend:
            if value.strip().lower() == trend.value.lower():
                return trend
    return value


#=========================
#REQUEST MODELS - WITH VALIDATION
#=========================
class ImageAnalysisRequest(BaseModel):
    kind: Literal["image"] = "image"
    image_bytes: bytes = Field(..., min_length=1)
    mime_type: str = DEFAULT_IMAGE_MIME_TYPE
    locale: Locale = Locale.EN

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v):
        v = v.strip().lower()
        if not v.startswith("image/"):
            raise ValueError("Only image uploads can be analyzed")
        return v

    @classmethod
    def from_data_url(cls, data_url: str, locale: Locale = Locale.EN) -> "ImageAnalysisRequest":
        mime_type, payload = split_data_url(data_url.strip())
        try:
            image_bytes = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Image payload is not valid base64")
        return cls(image_bytes=image_bytes, mime_type=mime_type, locale=locale)

    @property
    def image_base64(self) -> str:
        return base64.b64encode(self.image_bytes).decode("ascii")


class SymbolAnalysisRequest(BaseModel):
    kind: Literal["symbol"] = "symbol"
    symbol: str = Field(..., min_length=1, max_length=40)
    locale: Locale = Locale.EN

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v):
        v = normalize_symbol(v)
        if not v:
            raise ValueError("Symbol cannot be empty")
        if not v.isprintable():
            raise ValueError("Invalid market symbol format")
        return v


class PatternExplainRequest(BaseModel):
    kind: Literal["pattern"] = "pattern"
    pattern_name: str = Field(..., min_length=1, max_length=100)
    locale: Locale = Locale.EN

    @field_validator('pattern_name')
    @classmethod
    def validate_pattern_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Pattern name cannot be empty")
        return v


AnalysisRequest = Annotated[
    Union[ImageAnalysisRequest, SymbolAnalysisRequest, PatternExplainRequest],
    Field(discriminator="kind"),
]


class ChartAnalysisBody(BaseModel):
    """Chart screenshot as a data URL (``data:image/png;base64,...``)"""
    image: str = Field(..., min_length=1)
    language: Locale = Locale.EN


class SymbolAnalysisBody(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=40)
    language: Locale = Locale.EN


class PatternExplainBody(BaseModel):
    pattern: str = Field(..., min_length=1, max_length=100)
    language: Locale = Locale.EN


#=========================
#RESULT MODELS
#=========================
class AnalysisResult(BaseModel):
    trend: Trend
    confidence: int = Field(..., ge=0, le=100)
    support_levels: List[float] = Field(default_factory=list)
    resistance_levels: List[float] = Field(default_factory=list)
    insight: str
    zones_explanation: str
    disclaimer: str

    @field_validator('trend', mode='before')
    @classmethod
    def coerce_trend(cls, v):
        return _coerce_trend(v)

    @field_validator('confidence', mode='before')
    @classmethod
    def round_confidence(cls, v):
        # models sometimes answer 72.5 or "72"
        if isinstance(v, str):
            v = v.strip().rstrip("%")
            try:
                v = float(v)
            except ValueError:
                return v
        if isinstance(v, float):
            if not math.isfinite(v):
                raise ValueError("Confidence must be a finite number")
            return round(v)
        return v


class GroundingSource(BaseModel):
    uri: str
    title: str = ""


class PairAnalysisResult(BaseModel):
    symbol: str
    trend: Trend
    support: List[str] = Field(default_factory=list)
    resistance: List[str] = Field(default_factory=list)
    scenario: str
    explanation: str
    sources: List[GroundingSource] = Field(default_factory=list)

    @field_validator('trend', mode='before')
    @classmethod
    def coerce_trend(cls, v):
        return _coerce_trend(v)

    @field_validator('support', 'resistance', mode='before')
    @classmethod
    def stringify_levels(cls, v):
        if isinstance(v, list):
            return [str(level) for level in v]
        return v


class PatternExplanation(BaseModel):
    name: str
    meaning: str
    example: str
    action: str


#=========================
#CATALOGUE MODELS
#=========================
class PatternDetails(BaseModel):
    meaning: str
    example: str
    action: str
    stop_loss: str


class PatternCatalogEntry(BaseModel):
    id: str
    name: str
    category: str
    description: str
    image: str
    video_id: str
    details: PatternDetails
    color: Literal["emerald", "rose", "yellow"]

    @property
    def video_url(self) -> str:
        return f"{YOUTUBE_EMBED_URL}{self.video_id}"
