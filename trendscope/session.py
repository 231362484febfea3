"""
Analysis Session
Per-screen state for a single caller: selected language, busy flag and the
last result or error
"""
import logging
from typing import Any, Awaitable, Callable, Optional

from trendscope.errors import GatewayError, RequestInFlight
from trendscope.gemini_helper import GeminiGateway
from trendscope.models import Locale

logger = logging.getLogger(__name__)


class AnalysisSession:
    """
    At most one gateway call is outstanding per session. A dismissed call is
    not aborted; its reply is dropped when it arrives.
    """

    def __init__(self, gateway: GeminiGateway, locale: Locale = Locale.EN):
        self.gateway = gateway
        self.locale = locale
        self.busy = False
        self.result: Any = None
        self.error: Optional[GatewayError] = None
        self._generation = 0

    def toggle_locale(self) -> Locale:
        self.locale = self.locale.toggled()
        return self.locale

    def dismiss(self) -> None:
        self._generation += 1
        self.result = None
        self.error = None

    async def _run(self, call: Callable[[], Awaitable[Any]]) -> Any:
        if self.busy:
            raise RequestInFlight("An analysis is already in progress")

        self.busy = True
        generation = self._generation
        self.error = None
        try:
            result = await call()
        except GatewayError as e:
            if generation == self._generation:
                logger.warning(f"Analysis failed: {type(e).__name__}")
                self.error = e
            return None
        finally:
            self.busy = False

        if generation != self._generation:
            logger.info("Discarding reply for a dismissed analysis")
            return None
        self.result = result
        return result

    async def analyze_chart(self, data_url: str):
        return await self._run(lambda: self.gateway.analyze_chart_data_url(data_url, self.locale))

    async def analyze_symbol(self, symbol: str):
        return await self._run(lambda: self.gateway.analyze_symbol(symbol, self.locale))

    async def explain_pattern(self, pattern_name: str):
        return await self._run(lambda: self.gateway.explain_pattern(pattern_name, self.locale))
