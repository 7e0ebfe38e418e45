"""
Audit trail helper
"""
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.orm import Session

from inventory_core.models.audit import AuditLog


def log_user_action(
    db: Session,
    user: str,
    action: str,
    timestamp: datetime,
    table: Optional[str] = None,
    key: Optional[str] = None,
    old_values: Optional[Dict] = None,
    new_values: Optional[Dict] = None,
    module: Optional[str] = None
) -> AuditLog:
    """Log user action to audit trail inside the caller's unit of work"""
    return AuditLog.log_action(
        db,
        audit_timestamp=timestamp,
        audit_user=user or "system",
        audit_action=action,
        audit_table=table,
        audit_key=key,
        audit_old_values=old_values,
        audit_new_values=new_values,
        audit_module=module,
    )
