from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.api.routes.chat import get_chat_service
from app.core.config import settings
from app.schemas.diagnostics import UpstreamDiagnosticsResponse
from app.services.chat_service import ChatService

router = APIRouter(tags=["Diagnostics"])


@router.get(
    "/diagnostics/upstream",
    response_model=UpstreamDiagnosticsResponse,
    response_model_exclude_none=True,
)
async def upstream_diagnostics(
    service: ChatService = Depends(get_chat_service),
) -> UpstreamDiagnosticsResponse:
    """Check which configured model names the upstream API accepts.

    Sends a short test prompt to each model in ``PERPLEXITY_PROBE_MODELS``
    and stops at the first one that answers. Disabled with
    ``APP_DIAGNOSTICS_ENABLED=false``.
    """
    if not settings.app.diagnostics_enabled:
        raise HTTPException(status_code=404, detail="Not found")

    return await service.probe_models(settings.upstream.probe_model_list)
