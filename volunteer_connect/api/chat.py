"""Chat API router: proxies messages to the configured LLM provider."""

from fastapi import APIRouter, Depends, Request

from volunteer_connect.core.config import settings
from volunteer_connect.core.rate_limiter import limiter
from volunteer_connect.core.security import get_current_user
from volunteer_connect.models.user import User
from volunteer_connect.schemas.schemas import ChatRequest, ok
from volunteer_connect.services.chat_service import chat_service
from volunteer_connect.services.permission_service import RequirePermission, AI_CHAT

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("")
@limiter.limit(settings.CHAT_RATE_LIMIT)
async def chat(
    request: Request,
    body: ChatRequest,
    user: User = Depends(RequirePermission(AI_CHAT)),
):
    result = await chat_service.reply(
        body.message,
        body.conversation_history,
        {"model": body.model, "temperature": body.temperature, "max_tokens": body.max_tokens},
    )
    return ok(data=result)


@router.get("/status")
async def chat_status(user: User = Depends(get_current_user)):
    configured = chat_service.is_configured
    return ok(
        data={"configured": configured, "model": settings.OPENAI_MODEL if configured else None},
        message="AI chat is available" if configured else "AI chat is not configured",
    )
