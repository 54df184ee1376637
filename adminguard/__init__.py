"""
ADMINGUARD: access control and audit trail for privileged admin operations.

Core Components:
    - RBAC: Admin roles and the role -> permission table
    - Access Guard: Role, account state, MFA and credential freshness checks
    - Audit Log: Append-only record of every privileged action attempt
    - Action Executors: Guarded, audited side effects (delete, toggle, export)

Example:
    from adminguard.api.admin.actions import DeleteUserAction

    result = await DeleteUserAction(deps).execute(token, user_id)
"""

__version__ = "1.0.0"
