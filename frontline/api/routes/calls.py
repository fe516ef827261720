"""Call lifecycle endpoints used by the telephony layer."""

from fastapi import APIRouter, Query, status

from frontline.api.dependencies import CallServiceDep
from frontline.api.exceptions import CallNotFoundAPIError, TurnCancelledAPIError
from frontline.api.models import (
    EndCallResponse,
    InterruptionRequest,
    InterruptionResponse,
    StartCallRequest,
    StartCallResponse,
    TurnRequest,
    TurnResponse,
)
from frontline.observability.logging import get_logger
from frontline.service import CallNotFoundError, TurnCancelledError

logger = get_logger(__name__)

router = APIRouter(prefix="/calls")


@router.post("/{call_id}", response_model=StartCallResponse, status_code=status.HTTP_201_CREATED)
async def start_call(
    call_id: str,
    request: StartCallRequest,
    service: CallServiceDep,
) -> StartCallResponse:
    """Create session state for a call that has just been answered."""
    state = await service.start_call(call_id, request.tenant_id)
    return StartCallResponse(
        call_id=state.call_id,
        tenant_id=state.tenant_id,
        turn_count=state.turn_count,
    )


@router.post("/{call_id}/turns", response_model=TurnResponse)
async def process_turn(
    call_id: str,
    request: TurnRequest,
    service: CallServiceDep,
    audit: bool = Query(default=False, description="Include the decision trail"),
) -> TurnResponse:
    """Process one caller utterance and return what to say and do next."""
    try:
        outcome = await service.process_turn(call_id, request.utterance, signals=request.signals)
    except CallNotFoundError as e:
        raise CallNotFoundAPIError(str(e), call_id=call_id) from e
    except TurnCancelledError as e:
        raise TurnCancelledAPIError(str(e), call_id=call_id) from e

    return TurnResponse(
        call_id=outcome.call_id,
        turn_number=outcome.turn_number,
        response_text=outcome.response_text,
        action=outcome.action,
        transfer_target=outcome.transfer_target,
        side_effects=outcome.side_effects,
        short_circuited=outcome.short_circuited,
        audit=outcome.audit if audit else None,
    )


@router.post("/{call_id}/interruptions", response_model=InterruptionResponse)
async def interrupt(
    call_id: str,
    request: InterruptionRequest,
    service: CallServiceDep,
) -> InterruptionResponse:
    """Report speech captured while the agent was talking."""
    try:
        decision = await service.handle_interruption(call_id, request.fragment)
    except CallNotFoundError as e:
        raise CallNotFoundAPIError(str(e), call_id=call_id) from e
    return InterruptionResponse(
        kind=decision.kind,
        suppress_output=decision.suppress_output,
        acknowledgment=decision.acknowledgment,
        matched_keyword=decision.matched_keyword,
    )


@router.delete("/{call_id}", response_model=EndCallResponse)
async def end_call(call_id: str, service: CallServiceDep) -> EndCallResponse:
    """Discard the call's state once the caller hangs up or is transferred."""
    ended = await service.end_call(call_id)
    return EndCallResponse(call_id=call_id, ended=ended)
