from __future__ import annotations

from datetime import datetime, timezone

from loguru import logger

from websense.config import Settings
from websense.llm_client import LMStudioClient
from websense.models.schemas import HealthChecks, HealthResponse
from websense.research_core.errors import WebSenseError
from websense.tools.search_provider import build_search_provider

# Google API keys are typically 39 characters; search engine ids are longer than 10.
MIN_GOOGLE_KEY_CHARS = 30
MIN_GOOGLE_CX_CHARS = 10


def search_config_looks_valid(settings: Settings) -> bool:
    provider = settings.search_provider.lower().strip()
    if provider == "google_cse":
        return (
            len(settings.google_cse_api_key) >= MIN_GOOGLE_KEY_CHARS
            and len(settings.google_cse_cx) >= MIN_GOOGLE_CX_CHARS
        )
    if provider == "brave":
        return bool(settings.brave_api_key)
    return False


class HealthService:
    def __init__(self, settings: Settings, llm: LMStudioClient | None = None):
        self.settings = settings
        self._llm = llm

    async def check(self) -> HealthResponse:
        checks = HealthChecks(
            search=await self.check_search(),
            llm=await self.check_llm(),
        )
        return HealthResponse(
            status="healthy" if checks.search and checks.llm else "unhealthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            checks=checks,
        )

    async def check_search(self) -> bool:
        if not search_config_looks_valid(self.settings):
            logger.warning("Search provider configuration appears invalid")
            return False
        try:
            await build_search_provider(self.settings).search("test", 1)
        except (WebSenseError, ValueError) as exc:
            logger.warning(f"Search health check failed: {exc}")
            return False
        return True

    async def check_llm(self) -> bool:
        if not self.settings.lmstudio_base_url or not self.settings.lmstudio_model:
            logger.warning("LM Studio configuration appears invalid")
            return False
        llm = self._llm or LMStudioClient(self.settings)
        try:
            await llm.list_models()
        except Exception as exc:
            logger.warning(f"LM Studio health check failed: {exc}")
            return False
        return True
