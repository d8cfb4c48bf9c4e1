# adapters/entry/http/view/payments.py
from fastapi import APIRouter, Depends, HTTPException, Query

from adapters.entry.http.dtos.payment_dtos import PaymentMatchOut, SubscriptionStatusOut, VerifyPaymentRequest
from adapters.entry.http.view.dependencies import get_gate_context
from core.services.exceptions import ChainClientError, GetterDecodeError, MalformedAddressNetworkError
from core.use_cases.gate_context import GateContext
from core.use_cases.payment_verification_usecase import PaymentVerificationUseCase

router = APIRouter(
    prefix="/payments",
    tags=["payments"],
)


def get_use_case(ctx: GateContext = Depends(get_gate_context)) -> PaymentVerificationUseCase:
    return PaymentVerificationUseCase.from_context(ctx)


@router.post(
    "/verify",
    response_model=PaymentMatchOut,
    summary="Find an inbound purchase payment on a channel contract",
)
async def verify_payment(
    body: VerifyPaymentRequest,
    use_case: PaymentVerificationUseCase = Depends(get_use_case),
):
    try:
        match = await use_case.verify_payment(
            contract_address=body.contract_address,
            expected_amount=body.expected_amount_ton,
            since_timestamp=body.since_timestamp,
        )
    except MalformedAddressNetworkError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ChainClientError as exc:
        raise HTTPException(status_code=502, detail=f"TON API error: {exc}") from exc

    amount = match.amount
    return PaymentMatchOut(
        **match.model_dump(),
        amount_ton=None if amount is None else str(amount),
    )


@router.get(
    "/subscription",
    response_model=SubscriptionStatusOut,
    summary="Read isActive/getExpiry for a subscriber on a channel contract",
)
async def get_subscription_status(
    contract_address: str = Query(...),
    subscriber: str = Query(...),
    use_case: PaymentVerificationUseCase = Depends(get_use_case),
):
    try:
        status = await use_case.subscription_status(contract_address=contract_address, subscriber=subscriber)
    except MalformedAddressNetworkError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except (ChainClientError, GetterDecodeError) as exc:
        raise HTTPException(status_code=502, detail=f"TON API error: {exc}") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return SubscriptionStatusOut(contract_address=contract_address, subscriber=subscriber, **status)
