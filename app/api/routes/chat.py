from fastapi import APIRouter, Depends

from app.adapters.llm.factory import create_chat_client
from app.core.rate_limit import enforce_rate_limit
from app.schemas.chat import ChatRequest, ChatResponse, ErrorResponse
from app.services.chat_service import ChatService

router = APIRouter(tags=["Chat"])

_chat_service = ChatService(client_factory=create_chat_client)


def get_chat_service() -> ChatService:
    """Dependency returning the shared chat service (overridable in tests)."""
    return _chat_service


@router.post(
    "/chat",
    response_model=ChatResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid message"},
        405: {"model": ErrorResponse, "description": "Method not allowed"},
        429: {"model": ErrorResponse, "description": "Rate limited (client or upstream)"},
        500: {"model": ErrorResponse, "description": "Configuration or upstream failure"},
    },
)
async def chat(
    payload: ChatRequest,
    service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    """Answer a question about Northstowe.

    The request gate runs before the body is validated, so throttled clients
    get 429 even when their payload is malformed. Out-of-scope questions are
    answered with a refusal flagged ``notRelated`` and never reach the
    upstream API.

    Args:
        payload: Request body with the user's ``message``.
        service: Chat service handling filtering and the upstream call.

    Returns:
        ChatResponse: ``{"response": ...}`` or ``{"response": ..., "notRelated": true}``.
    """
    return await service.answer(payload.message)
