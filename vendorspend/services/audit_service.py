"""
Audit trail writes for changes and operational errors.
"""

import logging
import traceback
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vendorspend.models.audit import AuditLog

logger = logging.getLogger(__name__)

ERROR_LOG_TABLE = "error_log"


class AuditService:
    """Writes AuditLog rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        table_name: str,
        record_id: Any,
        action: str,
        changed_by: Any = None,
        reason: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """Stage an audit entry in the current transaction."""
        entry = AuditLog(
            table_name=table_name,
            record_id=str(record_id) if record_id is not None else None,
            action=action,
            changed_by=changed_by,
            reason=reason,
            payload=payload,
        )
        self.db.add(entry)
        return entry

    async def log_error(self, error: BaseException, operation: str, **context: Any) -> None:
        """
        Persist an error with its operation context.

        Runs in its own commit so it survives the caller's rollback. A failure
        to write the entry is logged and does not mask the original error.
        """
        user_id = context.get("user_id")
        safe_context = {k: str(v) for k, v in context.items() if v is not None}
        try:
            await self.record(
                table_name=ERROR_LOG_TABLE,
                record_id=safe_context.get("invoice_id") or safe_context.get("document_id") or "error",
                action="ERROR",
                changed_by=user_id,
                reason=f"Error in {operation}: {error}",
                payload={
                    "error": str(error),
                    "error_type": type(error).__name__,
                    "traceback": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
                    "operation": operation,
                    "context": safe_context,
                },
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to write error audit entry for {operation}: {e}")
