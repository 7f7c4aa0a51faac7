"""Shared plumbing for the per-entity domain services."""

import logging
from typing import Dict, Optional, Type

from sqlalchemy.orm import Query, Session

from ..config import get_settings
from ..effects import EffectDispatcher
from ..errors import NotFound
from ..query import QueryCompiler
from ..realtime import RoomHub
from ..schemas.common import CamelModel
from ..security.principal import Principal
from ..security.scope import get_visible, scoped

logger = logging.getLogger(__name__)


class DomainService:
    """Binds a session and a principal to one entity's scope, schema and effects."""

    model: Type = None
    schema: Type[CamelModel] = None
    entity: str = None
    default_sort: str = "-createdAt"

    def __init__(self, db: Session, principal: Principal, hub: Optional[RoomHub] = None):
        self.db = db
        self.principal = principal
        self.effects = EffectDispatcher(db, hub)

    def serialize(self, obj) -> Dict:
        return self.schema.model_validate(obj).dump()

    def compiler(self, model: Type = None, default_sort: str = None) -> QueryCompiler:
        return QueryCompiler(
            model or self.model,
            default_sort or self.default_sort,
            strict=get_settings().query_strict,
        )

    def visible(self) -> Query:
        return scoped(self.db, self.principal, self.model)

    def list(self, params: Dict[str, str], base: Optional[Query] = None) -> Dict:
        """List the visible rows matching ``params``."""
        if base is None:
            base = self.visible()
        return self.compiler().execute(base, params, self.serialize)

    def get(self, id: str):
        return get_visible(self.db, self.principal, self.model, id, self.entity)

    def load(self, model: Type, id: str, entity: str = None):
        """Fetch by id without scope checks, for targets of policy decisions."""
        obj = self.db.get(model, id)
        if obj is None:
            raise NotFound(entity or model.__name__, id)
        return obj
