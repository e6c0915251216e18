from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.api.deps import Claims
from app.domain.errors import OrgChartError
from app.domain.models import DeleteResult, OrgNodeCreate, OrgNodeRead, OrgNodeUpdate
from app.domain.org_tree import ChartNode, ParentOption
from app.infra.audit import record_action, record_node_change
from app.services.org_chart_service import OrgChartService

router = APIRouter()


def get_org_chart_service() -> OrgChartService:
    return OrgChartService()


Service = Annotated[OrgChartService, Depends(get_org_chart_service)]


def _handle_org_chart_error(
    request: Request,
    action: str,
    exc: OrgChartError,
    node_id: str | None = None,
) -> None:
    record_action(request, action, node_id=node_id, reason=exc.code)
    raise HTTPException(
        status_code=exc.status_code,
        detail={"message": exc.message, "code": exc.code},
    ) from exc


@router.get("", response_model=list[OrgNodeRead])
def list_nodes(service: Service) -> list[OrgNodeRead]:
    return service.list_nodes()


@router.post("", response_model=OrgNodeRead, status_code=status.HTTP_201_CREATED)
def create_node(payload: OrgNodeCreate, request: Request, claims: Claims, service: Service) -> OrgNodeRead:
    try:
        change = service.create_node(claims, payload)
    except OrgChartError as exc:
        _handle_org_chart_error(request, "org_chart.create", exc)
        raise
    record_node_change(
        request,
        "org_chart.create",
        change.node.id,
        parent_before=None,
        parent_after=change.parent_after,
        owner=change.node.user_id,
    )
    return OrgNodeRead.model_validate(change.node)


@router.patch("", response_model=OrgNodeRead)
def update_node(payload: OrgNodeUpdate, request: Request, claims: Claims, service: Service) -> OrgNodeRead:
    try:
        change = service.update_node(claims, payload)
    except OrgChartError as exc:
        _handle_org_chart_error(request, "org_chart.update", exc, payload.node_id)
        raise
    record_node_change(
        request,
        "org_chart.update",
        change.node.id,
        parent_before=change.parent_before,
        parent_after=change.parent_after,
        fields=sorted(payload.model_fields_set - {"node_id"}),
    )
    return OrgNodeRead.model_validate(change.node)


@router.delete("", response_model=DeleteResult)
def delete_node(
    request: Request,
    claims: Claims,
    service: Service,
    node_id: Annotated[str | None, Query(alias="id", max_length=64)] = None,
) -> DeleteResult:
    try:
        change = service.delete_node(claims, node_id)
    except OrgChartError as exc:
        _handle_org_chart_error(request, "org_chart.delete", exc, node_id)
        raise
    record_node_change(
        request,
        "org_chart.delete",
        change.node.id,
        parent_before=change.parent_before,
        parent_after=None,
        reparented_children=list(change.reparented_children) or None,
    )
    return DeleteResult(ok=True)


@router.get("/tree", response_model=list[ChartNode])
def chart_tree(service: Service) -> list[ChartNode]:
    return service.chart_nodes()


@router.get("/parent-options", response_model=list[ParentOption])
def list_parent_options(
    service: Service,
    node_id: Annotated[str | None, Query(alias="nodeId", max_length=64)] = None,
) -> list[ParentOption]:
    return service.parent_options(node_id)


@router.get("/{node_id}", response_model=OrgNodeRead)
def get_node(node_id: str, service: Service) -> OrgNodeRead:
    try:
        return service.get_node(node_id)
    except OrgChartError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail={"message": exc.message, "code": exc.code},
        ) from exc
