from __future__ import annotations

from fastapi import Depends

from websense.agents.orchestrator import AnswerOrchestrator
from websense.config import Settings, get_settings
from websense.services.health import HealthService


def get_orchestrator(settings: Settings = Depends(get_settings)) -> AnswerOrchestrator:
    return AnswerOrchestrator.from_settings(settings)


def get_health_service(settings: Settings = Depends(get_settings)) -> HealthService:
    return HealthService(settings)
