"""
Prompts sent to Gemini for chart vision, symbol scanning and pattern lessons
"""
from trendscope.models import (
    AnalysisRequest,
    ImageAnalysisRequest,
    Locale,
    PatternExplainRequest,
    SymbolAnalysisRequest,
)

TREND_LABELS = '"Bullish" | "Bearish" | "Sideways"'


def chart_analysis_prompt(locale: Locale) -> str:
    return f"""
Analyze this trading chart image. You are a professional technical analyst.
Return the response in strict JSON format without any markdown formatting.

Language: {locale.language_name}

Output Schema:
{{
  "trend": {TREND_LABELS},
  "confidence": integer percentage (0-100),
  "support_levels": [number],
  "resistance_levels": [number],
  "insight": "Simple beginner-friendly explanation of what to do",
  "zones_explanation": "Brief explanation of key zones",
  "disclaimer": "Standard financial advice disclaimer in {locale.short_name}"
}}
"""


def pair_analysis_prompt(symbol: str, locale: Locale) -> str:
    return f"""
Analyze the currency pair/crypto symbol: {symbol}.
IMPORTANT: Use the Google Search tool to find the LATEST LIVE PRICE, news, and technical sentiment for right now.
Do not rely on old training data. Base the analysis on the search results found.

Return the response in strict JSON format without any markdown formatting.

Language: {locale.language_name}

Output Schema:
{{
  "symbol": "{symbol}",
  "trend": {TREND_LABELS},
  "support": ["current support levels"],
  "resistance": ["current resistance levels"],
  "scenario": "Likely future movement based on live data",
  "explanation": "Explanation citing current price action/news"
}}
"""


def candlestick_explain_prompt(pattern_name: str, locale: Locale) -> str:
    return f"""
Explain the candlestick pattern: "{pattern_name}".
Provide trading meaning and an example scenario.
Return the response in strict JSON format without any markdown formatting.

Language: {locale.language_name}

Output Schema:
{{
  "name": "{pattern_name}",
  "meaning": "What this pattern indicates",
  "example": "Real world example scenario",
  "action": "What traders usually do (Buy/Sell/Wait)"
}}
"""


def build_prompt(request: AnalysisRequest) -> str:
    if isinstance(request, ImageAnalysisRequest):
        return chart_analysis_prompt(request.locale)
    if isinstance(request, SymbolAnalysisRequest):
        return pair_analysis_prompt(request.symbol, request.locale)
    if isinstance(request, PatternExplainRequest):
        return candlestick_explain_prompt(request.pattern_name, request.locale)
    raise TypeError(f"Unsupported analysis request: {type(request).__name__}")
