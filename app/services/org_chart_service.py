from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import dataclass
from threading import Lock
from typing import Any, ClassVar

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from app.domain.errors import (
    AlreadyRegisteredError,
    CycleDetectedError,
    ForbiddenError,
    InvalidNodeTypeError,
    NodeNotFoundError,
    ParentNotFoundError,
    UnauthenticatedError,
    ValidationFailedError,
)
from app.domain.models import (
    DEFAULT_NODE_PHOTO,
    EventEnvelope,
    OrgNode,
    OrgNodeCreate,
    OrgNodeRead,
    OrgNodeType,
    OrgNodeUpdate,
    now_utc,
)
from app.domain.org_tree import (
    ChartNode,
    ParentOption,
    normalize_forest,
    parent_options,
    reaches_node,
    to_chart_nodes,
)
from app.domain.permissions import can_manage_node
from app.infra.cache import get_org_chart_cache
from app.infra.db import get_engine
from app.infra.events import ORG_NODE_CREATED, ORG_NODE_DELETED, ORG_NODE_UPDATED, event_bus
from app.services.seed_service import get_org_chart_seeder

logger = logging.getLogger(__name__)

_OPTIONAL_TEXT_FIELDS = ("department", "description", "linked_user_id")


@dataclass(frozen=True)
class NodeChange:
    node: OrgNode
    parent_before: str | None
    reparented_children: tuple[str, ...] = ()

    @property
    def parent_after(self) -> str | None:
        return self.node.parent_id


class OrgChartService:
    # Within one process, parent links only change under this lock, so the
    # parent check and cycle walk never act on a stale read.
    _tree_write_lock: ClassVar[Lock] = Lock()

    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def _actor_id(self, claims: dict[str, Any] | None) -> str:
        user_id = claims.get("sub") if claims else None
        if not isinstance(user_id, str) or not user_id:
            raise UnauthenticatedError("Unauthorized")
        return user_id

    def _node_snapshot(self, node: OrgNode) -> dict[str, Any]:
        return OrgNodeRead.model_validate(node).model_dump(mode="json")

    def _parent_of(self, session: Session, node_id: str) -> str | None:
        return session.exec(select(OrgNode.parent_id).where(OrgNode.id == node_id)).first()

    def _require_parent(self, session: Session, parent_id: str) -> None:
        if session.exec(select(OrgNode.id).where(OrgNode.id == parent_id)).first() is None:
            raise ParentNotFoundError("Parent not found")

    def _get_node(self, session: Session, node_id: str) -> OrgNode:
        node = session.get(OrgNode, node_id)
        if node is None:
            raise NodeNotFoundError("Not found")
        return node

    def _require_manage(self, claims: dict[str, Any], node: OrgNode, action: str) -> None:
        if not can_manage_node(claims, node):
            logger.info("denied %s on org node %s for %s", action, node.id, claims.get("sub"))
            raise ForbiddenError("Forbidden")

    def _person_node_for(self, session: Session, user_id: str) -> OrgNode | None:
        return session.exec(
            select(OrgNode)
            .where(OrgNode.node_type == OrgNodeType.PERSON)
            .where(OrgNode.user_id == user_id)
        ).first()

    def assert_no_cycle(self, session: Session, candidate_parent_id: str | None, node_id: str) -> None:
        if candidate_parent_id is None:
            return
        if candidate_parent_id == node_id:
            raise CycleDetectedError("Node cannot be its own parent")
        if reaches_node(candidate_parent_id, node_id, lambda item_id: self._parent_of(session, item_id)):
            raise CycleDetectedError("Node cannot move under its own descendant")

    def list_nodes(self) -> list[OrgNodeRead]:
        cache = get_org_chart_cache()
        cached = cache.get_nodes()
        if cached is not None:
            return cached

        get_org_chart_seeder().ensure()
        generation = cache.generation()
        with self._session() as session:
            nodes = session.exec(select(OrgNode).order_by(col(OrgNode.created_at), col(OrgNode.id))).all()
            result = [OrgNodeRead.model_validate(node) for node in nodes]
        cache.set_nodes(result, generation)
        return result

    def get_node(self, node_id: str) -> OrgNodeRead:
        with self._session() as session:
            return OrgNodeRead.model_validate(self._get_node(session, node_id))

    def chart_nodes(self) -> list[ChartNode]:
        return normalize_forest(to_chart_nodes(self.list_nodes()))

    def parent_options(self, node_id: str | None = None) -> list[ParentOption]:
        return parent_options(to_chart_nodes(self.list_nodes()), node_id)

    def _commit_change(
        self,
        session: Session,
        event_type: str,
        snapshot: dict[str, Any],
        actor_id: str,
    ) -> EventEnvelope:
        # The event row commits with the mutation or not at all.
        event = EventEnvelope(event_type=event_type, actor_id=actor_id, payload=snapshot)
        event_bus.record(event, session)
        session.commit()
        get_org_chart_cache().invalidate()
        return event

    def create_node(self, claims: dict[str, Any] | None, payload: OrgNodeCreate) -> NodeChange:
        actor_id = self._actor_id(claims)
        get_org_chart_seeder().ensure()
        owner_id = payload.linked_user_id or actor_id
        guard = self._tree_write_lock if payload.parent_id is not None else nullcontext()

        with guard, self._session() as session:
            if payload.parent_id is not None:
                self._require_parent(session, payload.parent_id)
            if self._person_node_for(session, owner_id) is not None:
                raise AlreadyRegisteredError("Account already has a person node")

            node = OrgNode(
                name=payload.name,
                role_title=payload.role_title,
                department=payload.department,
                description=payload.description,
                photo_url=payload.photo_url or DEFAULT_NODE_PHOTO,
                parent_id=payload.parent_id,
                node_type=OrgNodeType.PERSON,
                created_by_id=actor_id,
                linked_user_id=owner_id,
                user_id=owner_id,
            )
            session.add(node)
            try:
                session.flush()
                event = self._commit_change(session, ORG_NODE_CREATED, self._node_snapshot(node), actor_id)
            except IntegrityError as exc:
                session.rollback()
                raise AlreadyRegisteredError("Account already has a person node") from exc

        event_bus.dispatch(event)
        return NodeChange(node=node, parent_before=None)

    def update_node(self, claims: dict[str, Any] | None, payload: OrgNodeUpdate) -> NodeChange:
        actor_id = self._actor_id(claims)
        fields = payload.model_fields_set
        guard = self._tree_write_lock if "parent_id" in fields else nullcontext()

        with guard, self._session() as session:
            node = self._get_node(session, payload.node_id)
            self._require_manage(claims or {}, node, "update")
            parent_before = node.parent_id

            if "parent_id" in fields and payload.parent_id != node.parent_id:
                if payload.parent_id is not None:
                    self._require_parent(session, payload.parent_id)
                    self.assert_no_cycle(session, payload.parent_id, node.id)
                node.parent_id = payload.parent_id

            if payload.name is not None:
                node.name = payload.name
            if payload.role_title is not None:
                node.role_title = payload.role_title
            for field_name in _OPTIONAL_TEXT_FIELDS:
                if field_name in fields:
                    setattr(node, field_name, getattr(payload, field_name))
            if "photo_url" in fields:
                node.photo_url = payload.photo_url or DEFAULT_NODE_PHOTO

            node.updated_at = now_utc()
            session.add(node)
            event = self._commit_change(session, ORG_NODE_UPDATED, self._node_snapshot(node), actor_id)

        event_bus.dispatch(event)
        return NodeChange(node=node, parent_before=parent_before)

    def delete_node(self, claims: dict[str, Any] | None, node_id: str | None) -> NodeChange:
        actor_id = self._actor_id(claims)
        if not node_id:
            raise ValidationFailedError("Missing id")

        with self._tree_write_lock, self._session() as session:
            node = self._get_node(session, node_id)
            if node.node_type != OrgNodeType.PERSON:
                raise InvalidNodeTypeError("Only person nodes can be deleted")
            self._require_manage(claims or {}, node, "delete")

            snapshot = self._node_snapshot(node)
            children = session.exec(select(OrgNode).where(OrgNode.parent_id == node.id)).all()
            for child in children:
                child.parent_id = node.parent_id
                child.updated_at = now_utc()
                session.add(child)
            session.delete(node)
            moved = tuple(child.id for child in children)
            snapshot["reparented_children"] = list(moved)
            event = self._commit_change(session, ORG_NODE_DELETED, snapshot, actor_id)

        event_bus.dispatch(event)
        return NodeChange(node=node, parent_before=node.parent_id, reparented_children=moved)
