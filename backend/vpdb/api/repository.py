"""Lookups of a user's relation (rating, star) to an entity"""
from typing import Generic, Optional, Tuple, Type, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Session

from vpdb.api.helpers import get_or_404
from vpdb.models.user import User

EntityT = TypeVar("EntityT")
RelationT = TypeVar("RelationT")


class RelationRepository(Generic[EntityT, RelationT]):
    """Finds an entity by public ID together with the current user's relation to it.

    Relations are rows keyed by ``(user_pk, entity_type, entity_pk)``, like
    :class:`~vpdb.models.social.Rating` and :class:`~vpdb.models.social.Star`.
    """

    def __init__(self, model: Type[EntityT], relation_model: Type[RelationT], entity_type: str, title_attr: str = "id"):
        self.model = model
        self.relation_model = relation_model
        self.entity_type = entity_type
        self.title_attr = title_attr

    def find(self, db: Session, entity_id: str, user: User) -> Tuple[EntityT, Optional[RelationT]]:
        entity = get_or_404(db, self.model, entity_id, self.entity_type)
        return entity, self.relation(db, entity, user)

    def relation(self, db: Session, entity: EntityT, user: User) -> Optional[RelationT]:
        return self._query(db, entity).filter(self.relation_model.user_pk == user.pk).first()

    def add(self, db: Session, entity: EntityT, user: User, **values) -> RelationT:
        relation = self.relation_model(user_pk=user.pk, entity_type=self.entity_type, entity_pk=entity.pk, **values)
        db.add(relation)
        return relation

    def average(self, db: Session, entity: EntityT, column) -> Tuple[float, int]:
        """Mean of ``column`` over all relations to the entity, and their number"""
        avg, votes = db.query(func.avg(column), func.count(self.relation_model.pk)).filter(
            self.relation_model.entity_type == self.entity_type,
            self.relation_model.entity_pk == entity.pk,
        ).one()
        return round(float(avg or 0.0), 3), int(votes or 0)

    def title(self, entity: EntityT) -> str:
        return str(getattr(entity, self.title_attr))

    def _query(self, db: Session, entity: EntityT):
        return db.query(self.relation_model).filter(
            self.relation_model.entity_type == self.entity_type,
            self.relation_model.entity_pk == entity.pk,
        )
