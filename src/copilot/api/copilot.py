"""Copilot API endpoints."""

from fastapi import APIRouter

from copilot.core.models import CopilotTurn

from .deps import OrchestratorDep, RealIPDep
from .models import CopilotRequest, CopilotResponse, ErrorResponse

router = APIRouter(tags=["copilot"])


@router.post(
    "/copilot",
    response_model=CopilotResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def copilot(
    copilot_request: CopilotRequest,
    orchestrator: OrchestratorDep,
    real_ip: RealIPDep,
) -> CopilotResponse:
    """Answer one widget message.

    Always returns a readable ``message``: upstream outages turn into an
    apology with next-step links rather than an error status.
    """
    result = await orchestrator.run(
        CopilotTurn(
            message=copilot_request.message,
            session_id=copilot_request.session_id,
            client_ip=real_ip,
            page=copilot_request.page,
            persona=copilot_request.persona,
        )
    )
    return CopilotResponse.from_result(result)


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}
