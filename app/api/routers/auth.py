from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.api.deps import Claims
from app.domain.errors import OrgChartError
from app.domain.models import AccountRead, AccountRegister, LoginRequest, TokenResponse
from app.infra.audit import record_action
from app.infra.auth import create_access_token
from app.services.account_service import AccountService

router = APIRouter()


def get_account_service() -> AccountService:
    return AccountService()


Service = Annotated[AccountService, Depends(get_account_service)]


def _handle_account_error(exc: OrgChartError) -> None:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    raise HTTPException(
        status_code=exc.status_code,
        detail={"message": exc.message, "code": exc.code},
        headers=headers,
    ) from exc


@router.post("/register", response_model=AccountRead, status_code=status.HTTP_201_CREATED)
def register(payload: AccountRegister, request: Request, service: Service) -> AccountRead:
    entry = record_action(request, "auth.register", username=payload.username)
    try:
        account = service.register(payload)
    except OrgChartError as exc:
        entry.detail["reason"] = exc.code
        _handle_account_error(exc)
        raise
    entry.actor_id = account.id
    return AccountRead.model_validate(account)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, request: Request, service: Service) -> TokenResponse:
    entry = record_action(request, "auth.login")
    try:
        account = service.login(payload.identifier, payload.password)
    except OrgChartError as exc:
        entry.detail["reason"] = exc.code
        _handle_account_error(exc)
        raise
    entry.actor_id = account.id
    token = create_access_token(user_id=account.id, role=account.role.value)
    return TokenResponse(access_token=token, user_id=account.id, role=account.role)


@router.get("/me", response_model=AccountRead)
def me(claims: Claims, service: Service) -> AccountRead:
    try:
        account = service.get_account(claims["sub"])
        return AccountRead.model_validate(account)
    except OrgChartError as exc:
        _handle_account_error(exc)
        raise
