from typing import Optional

from pydantic import BaseModel

from core.domain.enums.deployment_enums import FactoryRole


class FactoryRolesOut(BaseModel):
    factory: str
    owner: Optional[str] = None
    deployer: Optional[str] = None
    backend_wallet: Optional[str] = None
    backend_role: Optional[FactoryRole] = None
