"""
Database layer for storing bills, audit results and dispute letters.
"""

from medbill_auditor.db.base import Base
from medbill_auditor.db.session import SessionLocal, create_db_engine, get_db, init_db
from medbill_auditor.db.store import load_bill, save_audit_result, save_bill

__all__ = [
    "Base",
    "SessionLocal",
    "create_db_engine",
    "get_db",
    "init_db",
    "load_bill",
    "save_audit_result",
    "save_bill",
]
