"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from todosync.server.api import health, items, jobs, lists, sync

router = APIRouter()

# Include all API routers
router.include_router(health.router)
router.include_router(lists.router)
router.include_router(items.router)
router.include_router(jobs.router)
router.include_router(sync.router)
