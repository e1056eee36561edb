from __future__ import annotations

from fastapi import Request

from learnsync.container import Container
from learnsync.services.scheduler import ReconciliationScheduler
from learnsync.services.sync_orchestrator import SyncOrchestrator


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_orchestrator(request: Request) -> SyncOrchestrator:
    return get_container(request).orchestrator


def get_scheduler(request: Request) -> ReconciliationScheduler:
    return get_container(request).scheduler
