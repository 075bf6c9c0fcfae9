"""FastAPI routes for blueprint chat.

Chat and confirm-edit live under ``/api/blueprint/{document_id}``; the
health check is mounted at the root.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from blueprint_chat.api.dependencies import (
    get_edit_confirmation,
    get_orchestrator,
    get_retriever,
    get_store,
)
from blueprint_chat.api.schemas import (
    ConfirmEditRequest,
    ConfirmEditResponse,
    HealthResponse,
)
from blueprint_chat.models.chat import ChatTurnRequest, ChatTurnResponse
from blueprint_chat.providers.base import BaseBlueprintStore, BaseRetrieverProvider
from blueprint_chat.services.edit_confirmation import EditConfirmationService
from blueprint_chat.services.exceptions import (
    BlueprintNotFoundError,
    InvalidEditError,
    MessageRequiredError,
)
from blueprint_chat.services.orchestrator import ChatOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blueprint", tags=["Blueprint Chat"])
health_router = APIRouter(tags=["Health"])


@router.post(
    "/{document_id}/chat",
    response_model=ChatTurnResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def chat(
    document_id: str,
    request: ChatTurnRequest,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Run one chat turn against a blueprint."""
    try:
        response = await orchestrator.handle_turn(document_id, request)
    except MessageRequiredError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except Exception as exc:
        logger.exception("Chat turn failed for blueprint %s", document_id)
        return JSONResponse(
            {"error": "Failed to process chat message", "details": str(exc)},
            status_code=500,
        )
    return JSONResponse(response.to_payload())


@router.post(
    "/{document_id}/confirm-edit",
    response_model=ConfirmEditResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def confirm_edit(
    document_id: str,
    request: ConfirmEditRequest,
    service: EditConfirmationService = Depends(get_edit_confirmation),
) -> JSONResponse:
    """Apply or discard an edit proposed by an earlier chat turn."""
    if request.decision == "cancel":
        await service.cancel(document_id, request.conversation_id)
        result = ConfirmEditResponse(success=True, message="Edit cancelled")
        return JSONResponse(result.to_payload())

    edit = request.edit_result
    try:
        applied = await service.apply(
            document_id, edit.section, edit.field_path, edit.new_value
        )
    except InvalidEditError as exc:
        result, status = ConfirmEditResponse(success=False, message=str(exc)), 400
    except BlueprintNotFoundError as exc:
        result, status = ConfirmEditResponse(success=False, message=str(exc)), 404
    except Exception as exc:
        logger.exception("Applying edit failed for blueprint %s", document_id)
        result = ConfirmEditResponse(
            success=False, message=f"Failed to apply edit: {exc}"
        )
        status = 500
    else:
        result = ConfirmEditResponse(
            success=True,
            message="Edit applied",
            version_id=applied.version_id,
            version_number=applied.version_number,
        )
        status = 200
    return JSONResponse(result.to_payload(), status_code=status)


@health_router.get("/health", response_model=HealthResponse)
async def health(
    retriever: BaseRetrieverProvider = Depends(get_retriever),
    store: BaseBlueprintStore = Depends(get_store),
) -> HealthResponse:
    """Health check: reports the configured retriever and store providers."""
    return HealthResponse(status="ok", retriever=retriever.name, store=store.name)
