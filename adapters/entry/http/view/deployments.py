# adapters/entry/http/view/deployments.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from adapters.entry.http.dtos.deployment_dtos import (
    ConfirmDeploymentRequest,
    DeploymentConfirmationOut,
    DeploymentOutcomeOut,
    RegisterDeploymentRequest,
    RegisterDeploymentResponse,
    TonConnectRequestOut,
)
from adapters.entry.http.view.dependencies import get_gate_context
from core.services.exceptions import (
    BroadcastError,
    ChainClientError,
    MalformedAddressNetworkError,
    UnauthorizedDeployerError,
)
from core.use_cases.deployment_confirmation_usecase import DeploymentConfirmationUseCase
from core.use_cases.deployment_registration_usecase import DeploymentRegistrationUseCase
from core.use_cases.deployment_transaction_usecase import DeploymentTransactionUseCase
from core.use_cases.gate_context import GateContext

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/deployments",
    tags=["deployments"],
)


def get_registration_use_case(ctx: GateContext = Depends(get_gate_context)) -> DeploymentRegistrationUseCase:
    try:
        return DeploymentRegistrationUseCase.from_context(ctx)
    except RuntimeError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def get_transaction_use_case(ctx: GateContext = Depends(get_gate_context)) -> DeploymentTransactionUseCase:
    return DeploymentTransactionUseCase.from_context(ctx)


def get_confirmation_use_case(ctx: GateContext = Depends(get_gate_context)) -> DeploymentConfirmationUseCase:
    return DeploymentConfirmationUseCase.from_context(ctx)


# ---------------------------------------------------------------------------
# Registration (backend wallet signs)
# ---------------------------------------------------------------------------


@router.post(
    "/register",
    response_model=RegisterDeploymentResponse,
    response_model_by_alias=True,
    summary="Register deployment params in the factory and wait until readable on-chain",
)
async def register_deployment(
    body: RegisterDeploymentRequest,
    use_case: DeploymentRegistrationUseCase = Depends(get_registration_use_case),
    tx_use_case: DeploymentTransactionUseCase = Depends(get_transaction_use_case),
):
    try:
        result = await use_case.register_deployment(
            channel_id=body.channel_id,
            user_wallet=body.user_wallet,
            price_ton=body.price_ton,
        )
    except MalformedAddressNetworkError as exc:
        logger.error("Address network mismatch: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except UnauthorizedDeployerError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except BroadcastError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except ChainClientError as exc:
        raise HTTPException(status_code=502, detail=f"TON API error: {exc}") from exc

    transaction = None
    if result.confirmed:
        transaction = TonConnectRequestOut.model_validate(tx_use_case.build_request().model_dump())

    return RegisterDeploymentResponse(
        status=result.status,
        channel_id=result.channel_id,
        user_wallet=result.user_wallet,
        price_nano=result.price_nano,
        submitted_seqno=result.submitted_seqno,
        accepted_after_sec=result.accepted_after_sec,
        visible_after_sec=result.visible_after_sec,
        wallet_explorer_url=result.wallet_explorer_url,
        transaction=transaction,
    )


# ---------------------------------------------------------------------------
# User transaction (user wallet signs)
# ---------------------------------------------------------------------------


@router.get(
    "/transaction",
    response_model=TonConnectRequestOut,
    response_model_by_alias=True,
    summary="TON Connect request for the user's 'deploy' transaction",
)
async def get_deploy_transaction(
    use_case: DeploymentTransactionUseCase = Depends(get_transaction_use_case),
):
    try:
        req = use_case.build_request()
    except MalformedAddressNetworkError as exc:
        logger.error("Factory address network mismatch: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return TonConnectRequestOut.model_validate(req.model_dump())


# ---------------------------------------------------------------------------
# Confirmation
# ---------------------------------------------------------------------------


@router.post(
    "/{channel_id}/confirm",
    response_model=DeploymentConfirmationOut,
    summary="Poll the factory until the channel contract is active (or report UNKNOWN)",
)
async def confirm_deployment(
    channel_id: int,
    body: ConfirmDeploymentRequest | None = None,
    use_case: DeploymentConfirmationUseCase = Depends(get_confirmation_use_case),
):
    timeout = body.timeout_sec if body is not None else None
    try:
        res = await use_case.poll_deployment_confirmation(channel_id=channel_id, timeout=timeout)
    except ChainClientError as exc:
        raise HTTPException(status_code=502, detail=f"TON API error: {exc}") from exc
    return DeploymentConfirmationOut(**res.model_dump())


@router.get(
    "",
    response_model=List[DeploymentOutcomeOut],
    summary="Deployment outcomes not yet ACTIVE or FAILED, newest first",
)
async def list_open_deployment_outcomes(
    limit: int = Query(100, ge=1, le=1000),
    ctx: GateContext = Depends(get_gate_context),
):
    return [
        DeploymentOutcomeOut(**o.model_dump(include=set(DeploymentOutcomeOut.model_fields)))
        for o in ctx.outcomes.list_open(limit=limit)
    ]


@router.get(
    "/{channel_id}",
    response_model=DeploymentOutcomeOut,
    summary="Last known deployment outcome for a channel",
)
async def get_deployment_outcome(
    channel_id: int,
    ctx: GateContext = Depends(get_gate_context),
):
    outcome = ctx.outcomes.get(channel_id=channel_id)
    if outcome is None:
        raise HTTPException(status_code=404, detail=f"No deployment outcome for channel {channel_id}")
    return DeploymentOutcomeOut(**outcome.model_dump(include=set(DeploymentOutcomeOut.model_fields)))


@router.delete(
    "/{channel_id}",
    summary="Acknowledge (drop) a stored deployment outcome",
)
async def acknowledge_deployment_outcome(
    channel_id: int,
    use_case: DeploymentConfirmationUseCase = Depends(get_confirmation_use_case),
):
    return {"deleted": use_case.acknowledge(channel_id=channel_id)}
