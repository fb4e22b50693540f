from sqlalchemy.orm import Session
from facility_api.models.audit_log import AuditLog


def log_action(
    db: Session,
    user_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    description: str | None = None,
) -> AuditLog:
    """
    Stage a history entry in the caller's transaction.

    Nothing is committed here: the entry lands together with the record
    change it describes, or not at all. Request actions in lifecycle order:
    CREATE_DRAFT, UPDATE_DRAFT, SUBMIT / CREATE, ASSIGN, REASSIGN, UNASSIGN,
    START, NOTE, UPDATE, COMPLETE, CANCEL, DELETE.

        log_action(db, actor.id, "ASSIGN", "MaintenanceRequest", m.id,
                   f"Assigned to {technician.name}")
        request_store.commit(db, m)
    """
    entry = AuditLog(
        userId=user_id,
        action=action,
        entityType=entity_type,
        entityId=entity_id,
        description=description,
    )
    db.add(entry)
    return entry
