import uuid
from datetime import datetime
from typing import Any, Dict, Optional
from loguru import logger
from sqlmodel import Session
from app.db.schema import AdminAction, AdminActionType

from app.db import core


def _perform_admin_log(
    admin_id: uuid.UUID,
    action_type: AdminActionType,
    target_type: str,
    target_id: uuid.UUID,
    description: str,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
):
    """
    Background worker.
    Creates its OWN session using the global engine, because the request
    session is closed by the time background tasks run.
    """
    try:
        with Session(core.engine) as session:
            entry = AdminAction(
                admin_id=admin_id,
                action_type=action_type,
                target_type=target_type,
                target_id=target_id,
                description=description,
                details=details or {},
                ip_address=ip_address,
                timestamp=datetime.utcnow()
            )
            session.add(entry)
            session.commit()

    except Exception as e:
        logger.error(
            f"Admin action log failed ({action_type.value} on {target_type} {target_id}): {e}")
