# adapters/entry/http/view/factory.py
from fastapi import APIRouter, Depends, HTTPException

from adapters.entry.http.dtos.factory_dtos import FactoryRolesOut
from adapters.entry.http.view.dependencies import get_gate_context
from core.services.exceptions import ChainClientError
from core.use_cases.factory_roles_usecase import FactoryRolesUseCase
from core.use_cases.gate_context import GateContext

router = APIRouter(
    prefix="/factory",
    tags=["factory"],
)


def get_use_case(ctx: GateContext = Depends(get_gate_context)) -> FactoryRolesUseCase:
    return FactoryRolesUseCase.from_context(ctx)


@router.get(
    "/roles",
    response_model=FactoryRolesOut,
    summary="Factory owner/deployer and the role of this backend's wallet",
)
async def get_factory_roles(
    use_case: FactoryRolesUseCase = Depends(get_use_case),
):
    try:
        roles = await use_case.describe()
    except ChainClientError as exc:
        raise HTTPException(status_code=502, detail=f"TON API error: {exc}") from exc
    return FactoryRolesOut(**roles)
