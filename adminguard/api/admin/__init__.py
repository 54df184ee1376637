"""Privileged admin actions and the admin request layer."""

from adminguard.api.admin.actions import (
    DeleteUserAction,
    ExportUserDataAction,
    ToggleUploadsAction,
    UpdateRoleAction,
)
from adminguard.api.admin.executor import (
    ActionDependencies,
    ActionExecutor,
    ActionOutcome,
    RequestContext,
)
from adminguard.api.admin.results import Err, ErrorKind, Ok, Result

__all__ = [
    "DeleteUserAction",
    "ExportUserDataAction",
    "ToggleUploadsAction",
    "UpdateRoleAction",
    "ActionDependencies",
    "ActionExecutor",
    "ActionOutcome",
    "RequestContext",
    "Err",
    "ErrorKind",
    "Ok",
    "Result",
]
