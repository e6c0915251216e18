from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import dataclass
from threading import Lock

from sqlmodel import Session, col, select

from app.domain.models import SYSTEM_ACCOUNT_ID, OrgNode, OrgNodeType, now_utc
from app.infra.db import get_engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedNode:
    key: str
    name: str
    role_title: str
    department: str
    description: str | None = None
    parent_key: str | None = None


# Parents must come before their children.
ORG_CHART_SEED: tuple[SeedNode, ...] = (
    SeedNode(
        key="credit-suisse-group",
        name="Credit Suisse Group",
        role_title="Executive Board",
        department="Group Headquarters",
        description="Central leadership team",
    ),
    SeedNode(
        key="global-wealth",
        parent_key="credit-suisse-group",
        name="Global Wealth Management",
        role_title="Division",
        department="Wealth Management",
        description="Advisory for ultra-high-net-worth clients",
    ),
    SeedNode(
        key="swiss-bank",
        parent_key="credit-suisse-group",
        name="Swiss Bank",
        role_title="Division",
        department="Retail & SME",
        description="Domestic banking franchise",
    ),
    SeedNode(
        key="investment-bank",
        parent_key="credit-suisse-group",
        name="Investment Bank",
        role_title="Division",
        department="Markets & Advisory",
        description="Capital markets and advisory services",
    ),
    SeedNode(
        key="asset-management",
        parent_key="credit-suisse-group",
        name="Asset Management",
        role_title="Division",
        department="Investment Products",
        description="Active and alternative investment strategies",
    ),
    SeedNode(
        key="corporate-functions",
        parent_key="credit-suisse-group",
        name="Corporate Functions",
        role_title="Division",
        department="Finance, HR & Operations",
        description="Enterprise services and governance",
    ),
)


def seed_org_chart(seed: tuple[SeedNode, ...] = ORG_CHART_SEED) -> dict[str, str]:
    """Materialize the DIVISION baseline and return node ids by seed key.

    Existing divisions are matched by name and updated in place, so repeated
    runs converge on one node per seed definition.
    """
    name_by_key = {node.key: node.name for node in seed}
    with Session(get_engine(), expire_on_commit=False) as session:
        existing = session.exec(
            select(OrgNode)
            .where(OrgNode.node_type == OrgNodeType.DIVISION)
            .where(col(OrgNode.name).in_([node.name for node in seed]))
            .order_by(col(OrgNode.created_at), col(OrgNode.id))
        ).all()
        by_name: dict[str, OrgNode] = {}
        for division in existing:
            by_name.setdefault(division.name, division)

        ids_by_key: dict[str, str] = {}
        created = 0
        for definition in seed:
            parent_id: str | None = None
            if definition.parent_key is not None:
                parent_id = ids_by_key.get(definition.parent_key)
                if parent_id is None:
                    parent = by_name.get(name_by_key.get(definition.parent_key, ""))
                    parent_id = parent.id if parent is not None else None

            node = by_name.get(definition.name)
            if node is None:
                node = OrgNode(
                    name=definition.name,
                    created_by_id=SYSTEM_ACCOUNT_ID,
                    role_title=definition.role_title,
                    node_type=OrgNodeType.DIVISION,
                )
                by_name[definition.name] = node
                created += 1
            node.parent_id = parent_id
            node.role_title = definition.role_title
            node.department = definition.department
            node.description = definition.description
            node.node_type = OrgNodeType.DIVISION
            node.updated_at = now_utc()
            session.add(node)
            # Flush so children created later in this run see a real row.
            session.flush()
            ids_by_key[definition.key] = node.id

        session.commit()

    logger.info("org chart seed applied: %d created, %d updated", created, len(seed) - created)
    return ids_by_key


class OrgChartSeeder:
    """Runs the seed at most once per process.

    Concurrent callers wait on the same in-flight attempt. A failed attempt is
    forgotten so the next call starts a fresh one.
    """

    def __init__(self, seed: tuple[SeedNode, ...] = ORG_CHART_SEED) -> None:
        self._seed = seed
        self._lock = Lock()
        self._attempt: Future[dict[str, str]] | None = None

    @property
    def done(self) -> bool:
        attempt = self._attempt
        return attempt is not None and attempt.done() and attempt.exception() is None

    def ensure(self) -> dict[str, str]:
        with self._lock:
            attempt = self._attempt
            owner = attempt is None
            if attempt is None:
                attempt = Future()
                self._attempt = attempt

        if not owner:
            return attempt.result()

        try:
            ids_by_key = seed_org_chart(self._seed)
        except Exception as exc:
            logger.exception("org chart seed failed")
            with self._lock:
                self._attempt = None
            attempt.set_exception(exc)
            raise
        attempt.set_result(ids_by_key)
        return ids_by_key


org_chart_seeder = OrgChartSeeder()


def get_org_chart_seeder() -> OrgChartSeeder:
    return org_chart_seeder
