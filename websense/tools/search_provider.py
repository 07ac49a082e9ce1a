from __future__ import annotations

from websense.config import Settings
from websense.research_core.models.interfaces import SearchCapability
from websense.tools.brave_search import BraveSearch
from websense.tools.google_cse import GoogleCseSearch

SUPPORTED_PROVIDERS = ("google_cse", "brave")


def build_search_provider(settings: Settings) -> SearchCapability:
    provider = settings.search_provider.lower().strip()

    if provider == "google_cse":
        return GoogleCseSearch(
            api_key=settings.google_cse_api_key,
            cx=settings.google_cse_cx,
            timeout_ms=settings.search_timeout_ms,
            page_delay_ms=settings.search_page_delay_ms,
        )

    if provider == "brave":
        return BraveSearch(
            api_key=settings.brave_api_key,
            timeout_ms=settings.search_timeout_ms,
        )

    raise ValueError(
        f"Unsupported SEARCH_PROVIDER: {settings.search_provider} "
        f"(expected one of {', '.join(SUPPORTED_PROVIDERS)})"
    )
