"""Centralized FastAPI dependency type aliases.

Each alias corresponds to a single ``get_*`` factory and can be
overridden in tests via ``app.dependency_overrides[get_xxx] = ...``.
"""

from typing import Annotated

from fastapi import Depends

from copilot.core.deps import get_orchestrator
from copilot.core.orchestrator import Orchestrator
from copilot.infra.real_ip import get_real_ip

OrchestratorDep = Annotated[Orchestrator, Depends(get_orchestrator)]
RealIPDep = Annotated[str, Depends(get_real_ip)]
