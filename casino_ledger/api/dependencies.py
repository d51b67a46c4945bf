"""FastAPI dependencies.

The service lives on ``app.state.service`` (set by the lifespan or by test
fixtures). The acting agent is resolved explicitly from the Bearer
credential and handed to each endpoint.
"""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from casino_ledger.core.agents import Agent
from casino_ledger.service import CasinoService

bearer = HTTPBearer(auto_error=False)


def get_service(request: Request) -> CasinoService:
    """Dependency that provides the CasinoService.

    Usage in endpoints:
        @router.get("/stats")
        def stats(service: CasinoService = Depends(get_service)):
            ...
    """
    return request.app.state.service


def get_current_agent(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    service: CasinoService = Depends(get_service),
) -> Agent:
    """Resolve ``Authorization: Bearer <api key>`` to its agent.

    Raises UnauthorizedError (401 ``invalid_api_key``) for a missing or
    unknown credential.
    """
    return service.authenticate(credentials.credentials if credentials else None)
