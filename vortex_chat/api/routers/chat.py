import logging

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import StreamingResponse

from vortex_chat.api.dependencies.auth import get_optional_auth_context, get_required_auth_context
from vortex_chat.api.dependencies.hints import get_request_hints
from vortex_chat.api.schemas.auth import SessionUser
from vortex_chat.api.schemas.chat import Chat, ChatRequest, RequestHints
from vortex_chat.core.errors import ChatError
from vortex_chat.dependency_injection import get_container
from vortex_chat.services.chat_stream import encode_sse_stream
from vortex_chat.services.contracts import ChatServiceProtocol
from vortex_chat.services.resumable_stream import StreamContextProvider

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chat", tags=["chat"])

_SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


@router.post(
    "",
    summary="Start a chat generation",
    description="Persists the user message, then streams the assistant generation as server-sent events.",
)
async def create_chat_generation(
    payload: ChatRequest,
    request: Request,
    auth_context: SessionUser = Depends(get_required_auth_context),
    hints: RequestHints = Depends(get_request_hints),
) -> StreamingResponse:
    chat_service = get_container(request).resolve(ChatServiceProtocol)
    logger.info(
        "chat generation request",
        extra={"user_id": auth_context.user_id, "chat_id": str(payload.id), "model": payload.selected_chat_model},
    )
    # Everything that can fail the request runs before the response starts streaming.
    events = await chat_service.create_generation(principal=auth_context, payload=payload, hints=hints)
    return StreamingResponse(encode_sse_stream(events), media_type="text/event-stream", headers=_SSE_HEADERS)


@router.get(
    "",
    summary="Resume the latest chat generation",
    response_model=None,
)
async def resume_chat_generation(
    request: Request,
    chat_id: str | None = Query(default=None),
    auth_context: SessionUser | None = Depends(get_optional_auth_context),
) -> StreamingResponse | Response:
    container = get_container(request)
    stream_context = await container.resolve(StreamContextProvider).get()
    if stream_context is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    if not chat_id:
        raise ChatError("bad_request:api", "Parameter chat_id is required.")
    if auth_context is None:
        raise ChatError("unauthorized:chat")

    chat_service = container.resolve(ChatServiceProtocol)
    events = await chat_service.resume_generation(principal=auth_context, chat_id=chat_id)
    return StreamingResponse(encode_sse_stream(events), media_type="text/event-stream", headers=_SSE_HEADERS)


@router.delete("", summary="Delete a chat owned by the caller")
async def delete_chat(
    request: Request,
    id: str | None = Query(default=None),
    auth_context: SessionUser = Depends(get_required_auth_context),
) -> Chat:
    if not id:
        raise ChatError("bad_request:api", "Parameter id is required.")
    chat_service = get_container(request).resolve(ChatServiceProtocol)
    return await chat_service.delete_chat(principal=auth_context, chat_id=id)
