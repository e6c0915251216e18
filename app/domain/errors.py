from __future__ import annotations


class OrgChartError(Exception):
    code = "ORG_CHART_ERROR"
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class UnauthenticatedError(OrgChartError):
    code = "UNAUTHENTICATED"
    status_code = 401


class ForbiddenError(OrgChartError):
    code = "FORBIDDEN"
    status_code = 403


class ValidationFailedError(OrgChartError):
    code = "VALIDATION_FAILED"
    status_code = 400


class ParentNotFoundError(OrgChartError):
    code = "PARENT_NOT_FOUND"
    status_code = 404


class CycleDetectedError(OrgChartError):
    code = "CYCLE_DETECTED"
    status_code = 400


class InvalidNodeTypeError(OrgChartError):
    code = "INVALID_NODE_TYPE"
    status_code = 400


class NodeNotFoundError(OrgChartError):
    code = "NOT_FOUND"
    status_code = 404


class AlreadyRegisteredError(OrgChartError):
    code = "ALREADY_REGISTERED"
    status_code = 409


class AccountExistsError(OrgChartError):
    code = "ACCOUNT_EXISTS"
    status_code = 409


class AuthError(UnauthenticatedError):
    pass
