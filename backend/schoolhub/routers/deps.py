"""FastAPI dependencies binding a domain service to the request."""

from typing import Callable, Type

from fastapi import Depends
from sqlalchemy.orm import Session

from ..auth.service import get_principal
from ..database import get_db
from ..realtime import RoomHub, get_hub
from ..security.principal import Principal
from ..services.base import DomainService


def service(cls: Type[DomainService]) -> Callable[..., DomainService]:
    """Build a dependency that yields ``cls`` for the calling principal."""

    def dependency(
        db: Session = Depends(get_db),
        principal: Principal = Depends(get_principal),
        hub: RoomHub = Depends(get_hub),
    ) -> DomainService:
        return cls(db, principal, hub)

    dependency.__name__ = f"get_{cls.__name__}"
    return dependency


def ok(data=None) -> dict:
    return {"success": True, "data": {} if data is None else data}
