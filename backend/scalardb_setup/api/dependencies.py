"""API dependencies: DB sessions and shared installer services."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from scalardb_setup.db.database import get_session
from scalardb_setup.services.installation_orchestrator import InstallationOrchestrator

# ---------------------------------------------------------------------------
# Database dependency
# ---------------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in get_session():
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db)]

# ---------------------------------------------------------------------------
# Installer services
# ---------------------------------------------------------------------------


def get_orchestrator(request: Request) -> InstallationOrchestrator:
    """The orchestrator created in the installer app's lifespan."""
    return request.app.state.orchestrator


Orchestrator = Annotated[InstallationOrchestrator, Depends(get_orchestrator)]
