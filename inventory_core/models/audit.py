"""
Audit Trail Model
State changes of transfers and purchase orders
"""
from sqlalchemy import Column, String, Integer, DateTime, JSON

from inventory_core.core.database import Base


class AuditLog(Base):
    """Audit trail for document state changes"""
    __tablename__ = "audit_log"

    audit_id = Column(Integer, primary_key=True, autoincrement=True)
    audit_timestamp = Column(DateTime, nullable=False, index=True)
    audit_user = Column(String(50), nullable=False, index=True)
    audit_action = Column(String(30), nullable=False, index=True)  # CREATE, APPROVE, PROCESS, RECEIVE, etc
    audit_table = Column(String(50), index=True)
    audit_key = Column(String(100))
    audit_old_values = Column(JSON)
    audit_new_values = Column(JSON)
    audit_module = Column(String(20))  # TRANSFER, PURCHASE, STOCK

    @classmethod
    def log_action(cls, db_session, **kwargs):
        """
        Add an audit entry to the session.

        Does not commit: the entry belongs to the caller's unit of work and
        rolls back with it.
        """
        audit_entry = cls(**kwargs)
        db_session.add(audit_entry)
        return audit_entry
