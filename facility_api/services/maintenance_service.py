import logging
from datetime import datetime
from typing import Mapping, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from facility_api.models.asset import Asset
from facility_api.models.audit_log import AuditLog
from facility_api.models.maintenance_request import (
    MaintenanceRequest, MaintenanceStatus, MaintenancePriority,
)
from facility_api.models.user import User
from facility_api.schemas.maintenance import (
    MaintenanceFilter, MaintenanceUpdateRequest, DRAFT_FORM_FIELDS, submission_errors,
)
from facility_api.services import assignment_engine
from facility_api.services.assignment_engine import Technician
from facility_api.services.request_store import request_store, serialize, snapshot
from facility_api.services.transition_validator import allowed_targets, require_transition
from facility_api.utils.audit import log_action
from facility_api.utils.exceptions import (
    NotFoundException, ForbiddenException, ForbiddenRoleException, NotDraftException,
    RequestValidationException, InvalidTransitionException, AlreadyTerminalException,
)
from facility_api.utils.permissions import Actor, Capability, technician_roles

logger = logging.getLogger(__name__)

ENTITY = "MaintenanceRequest"


# ─── Helpers ──────────────────────────────────────────────────────────────────
def _normalize_form(fields: Mapping) -> dict:
    """Coerce raw form values (API bodies or editor state) to column values."""
    out = {}
    for name in DRAFT_FORM_FIELDS:
        if name not in fields:
            continue
        value = fields[name]
        if isinstance(value, str):
            value = value.strip()
        if name in ("title", "description"):
            value = value or ""
        elif name == "assetId":
            value = int(value) if value else None
        elif name == "priority":
            value = MaintenancePriority(value) if value else None
        elif name == "expectedCompletionTime":
            if isinstance(value, str):
                value = datetime.fromisoformat(value) if value else None
        out[name] = value
    return out


def _asset_snapshot(db: Session, asset_id: Optional[int]) -> dict:
    if asset_id is None:
        return {"assetId": None, "assetName": None, "assetCode": None}
    asset = db.query(Asset).filter(Asset.id == asset_id).first()
    if not asset:
        raise NotFoundException("Asset")
    return {"assetId": asset.id, "assetName": asset.name, "assetCode": asset.code}


def _resolve_technician(db: Session, technician_id: int) -> Technician:
    user = db.query(User).filter(User.id == technician_id).first()
    if not user:
        raise NotFoundException("Technician")
    if not user.isActive or user.role not in technician_roles():
        raise RequestValidationException(
            [{"field": "technicianId", "message": f"{user.name} cannot be assigned maintenance work"}],
        )
    return Technician(id=user.id, name=user.name)


def _can_view(actor: Actor, m: MaintenanceRequest) -> bool:
    if m.isDraft:
        return m.requestedBy == actor.id
    return actor.can(Capability.SUPERVISE) or actor.id in (m.requestedBy, m.assignedTo)


def _with_status_options(m: MaintenanceRequest, actor: Actor) -> dict:
    """Serialized record plus the statuses `actor` may pick next from its current one."""
    data = serialize(m)
    data["allowedStatuses"] = [
        s.value for s in allowed_targets(m.status, actor.roles_for(snapshot(m)))
    ]
    return data


def _owned_draft(db: Session, request_id: int, actor: Actor) -> MaintenanceRequest:
    m = request_store.get(db, request_id)
    if not m.isDraft:
        raise NotDraftException("This request has already been submitted")
    if m.requestedBy != actor.id:
        raise ForbiddenRoleException("Only the creator of a draft can change it")
    return m


def _require_complete(fields: Mapping) -> None:
    errors = submission_errors(fields)
    if errors:
        raise RequestValidationException(errors, "Please fill in all required fields before submitting")


class MaintenanceService:

    # ─── Queries ──────────────────────────────────────────────────────────────
    def list_requests(
        self, db: Session, actor: Actor, filters: MaintenanceFilter, page: int, limit: int,
    ) -> tuple[list[dict], int]:
        scope = []
        # Role-based visibility
        if not actor.can(Capability.SUPERVISE):
            scope.append(or_(
                MaintenanceRequest.requestedBy == actor.id,
                MaintenanceRequest.assignedTo == actor.id,
            ))
        items, total = request_store.page(db, filters, page, limit, scope)
        return [serialize(m) for m in items], total

    def get_request(self, db: Session, request_id: int, actor: Actor) -> dict:
        m = request_store.get(db, request_id)
        if not _can_view(actor, m):
            raise ForbiddenException("You can only view your own or assigned requests")
        return _with_status_options(m, actor)

    def list_my_requests(self, db: Session, actor: Actor) -> list[dict]:
        items = request_store.find(db, MaintenanceFilter(requestedBy=actor.id))
        return [serialize(m) for m in items]

    def list_my_drafts(self, db: Session, actor: Actor) -> list[dict]:
        items = request_store.find(
            db, MaintenanceFilter(requestedBy=actor.id, isDraft=True), include_drafts=True,
        )
        return [serialize(m) for m in items]

    def list_assigned_requests(
        self, db: Session, actor: Actor, filters: Optional[MaintenanceFilter] = None,
    ) -> list[dict]:
        filters = (filters or MaintenanceFilter()).model_copy(update={"assignedTo": actor.id})
        return [_with_status_options(m, actor) for m in request_store.find(db, filters)]

    def get_history(self, db: Session, request_id: int, actor: Actor) -> list[dict]:
        m = request_store.get(db, request_id)
        if not _can_view(actor, m):
            raise ForbiddenException("You can only view your own or assigned requests")
        logs = db.query(AuditLog).filter(
            AuditLog.entityType == ENTITY, AuditLog.entityId == request_id,
        ).order_by(AuditLog.createdAt.asc(), AuditLog.id.asc()).all()
        return [{
            "id":          l.id,
            "action":      l.action,
            "user":        {"id": l.user.id, "name": l.user.name} if l.user else None,
            "description": l.description,
            "createdAt":   l.createdAt.isoformat() if l.createdAt else None,
        } for l in logs]

    # ─── Submission ───────────────────────────────────────────────────────────
    def create_request(self, db: Session, fields: Mapping, actor: Actor) -> dict:
        """Submit a brand-new request straight to pending."""
        form = _normalize_form(fields)
        _require_complete(form)
        require_transition(None, actor.roles_for(None), MaintenanceStatus.PENDING)

        m = request_store.add(db, {
            **form,
            **_asset_snapshot(db, form["assetId"]),
            "requestedBy":     actor.id,
            "requestedByName": actor.name,
            "status":          MaintenanceStatus.PENDING,
            "isDraft":         False,
        })
        log_action(db, actor.id, "CREATE", ENTITY, m.id,
                   f"{actor.name} submitted request '{m.title}' for {m.assetName}")
        request_store.commit(db, m)
        logger.info(f"Request #{m.id} submitted by user {actor.id}")
        return serialize(m)

    # ─── Drafts ───────────────────────────────────────────────────────────────
    def create_draft(self, db: Session, fields: Mapping, actor: Actor) -> dict:
        form = _normalize_form(fields)
        require_transition(None, actor.roles_for(None), MaintenanceStatus.DRAFT)

        values = {"title": "", "description": "", **form}
        values.update(_asset_snapshot(db, form.get("assetId")))
        m = request_store.add(db, {
            **values,
            "requestedBy":     actor.id,
            "requestedByName": actor.name,
            "status":          MaintenanceStatus.DRAFT,
            "isDraft":         True,
        })
        log_action(db, actor.id, "CREATE_DRAFT", ENTITY, m.id, f"{actor.name} saved a draft")
        request_store.commit(db, m)
        logger.info(f"Draft #{m.id} created by user {actor.id}")
        return serialize(m)

    def update_draft(self, db: Session, request_id: int, fields: Mapping, actor: Actor) -> dict:
        m = _owned_draft(db, request_id, actor)
        state = snapshot(m)
        require_transition(m.status, actor.roles_for(state), MaintenanceStatus.DRAFT)

        form = _normalize_form(fields)
        if "assetId" in form:
            form.update(_asset_snapshot(db, form["assetId"]))
        changes = request_store.apply(db, m, {**state, **form})
        if changes:
            log_action(db, actor.id, "UPDATE_DRAFT", ENTITY, m.id,
                       f"Draft updated ({', '.join(sorted(changes))})")
            request_store.commit(db, m)
        return serialize(m)

    def submit_draft(
        self, db: Session, request_id: int, actor: Actor, fields: Optional[Mapping] = None,
    ) -> dict:
        """Promote a draft in place: same id, isDraft cleared, status pending."""
        m = _owned_draft(db, request_id, actor)
        state = snapshot(m)
        merged = {**state, **_normalize_form(fields or {})}
        _require_complete(merged)
        require_transition(m.status, actor.roles_for(state), MaintenanceStatus.PENDING)

        merged.update(_asset_snapshot(db, merged["assetId"]))
        merged.update({
            "status":          MaintenanceStatus.PENDING,
            "isDraft":         False,
            "requestedBy":     actor.id,
            "requestedByName": actor.name,
        })
        request_store.apply(db, m, merged)
        log_action(db, actor.id, "SUBMIT", ENTITY, m.id, f"{actor.name} submitted draft '{m.title}'")
        request_store.commit(db, m)
        logger.info(f"Draft #{m.id} submitted by user {actor.id}")
        return serialize(m)

    def delete_request(self, db: Session, request_id: int, actor: Actor) -> None:
        m = request_store.get(db, request_id)
        if not m.isDraft:
            raise NotDraftException("Submitted requests cannot be deleted; cancel them instead")
        if m.requestedBy != actor.id:
            raise ForbiddenRoleException("Only the creator of a draft can delete it")
        log_action(db, actor.id, "DELETE", ENTITY, request_id, f"Deleted draft #{request_id}")
        request_store.remove(db, m)
        request_store.commit(db)

    # ─── Assignment & work status ─────────────────────────────────────────────
    def assign_technician(
        self, db: Session, request_id: int, technician_id: Optional[int], actor: Actor,
        expected_status: Optional[MaintenanceStatus] = None,
    ) -> dict:
        m = request_store.get(db, request_id)
        if m.is_terminal:
            raise AlreadyTerminalException(m.status.value)
        state = snapshot(m)
        technician = _resolve_technician(db, technician_id) if technician_id else None

        nxt = assignment_engine.assign_technician(state, technician, actor)
        if expected_status is not None and MaintenanceStatus(expected_status) != nxt["status"]:
            raise InvalidTransitionException(m.status.value, MaintenanceStatus(expected_status).value)

        changes = request_store.apply(db, m, nxt)
        if not changes:
            return serialize(m)

        if technician is None:
            action, text = "UNASSIGN", f"Technician removed; request #{m.id} back to pending"
        elif "status" in changes:
            action, text = "ASSIGN", f"Assigned to {technician.name}; request approved"
        else:
            action, text = "REASSIGN", f"Reassigned to {technician.name}"
        log_action(db, actor.id, action, ENTITY, m.id, text)
        request_store.commit(db, m)
        logger.info(f"Request #{m.id} {action.lower()} by user {actor.id} → status={m.status.value}")
        return serialize(m)

    def update_status(
        self, db: Session, request_id: int, target: MaintenanceStatus, actor: Actor,
        notes: Optional[str] = None,
    ) -> dict:
        m = request_store.get(db, request_id)
        nxt = assignment_engine.advance_status(snapshot(m), target, actor, notes)

        changes = request_store.apply(db, m, nxt)
        if not changes:
            return serialize(m)

        action = {
            MaintenanceStatus.IN_PROGRESS: "START",
            MaintenanceStatus.COMPLETED:   "COMPLETE",
        }.get(MaintenanceStatus(target), "UPDATE")
        if "status" not in changes:
            action = "NOTE"
        log_action(db, actor.id, action, ENTITY, m.id,
                   f"Status {m.status.value}" + (f". Notes: {notes.strip()}" if notes and notes.strip() else ""))
        request_store.commit(db, m)
        logger.info(f"Request #{m.id} moved to {m.status.value} by technician {actor.id}")
        return serialize(m)

    def cancel_request(self, db: Session, request_id: int, actor: Actor, note: Optional[str] = None) -> dict:
        m = request_store.get(db, request_id)
        nxt = assignment_engine.cancel_request(snapshot(m), actor)

        request_store.apply(db, m, nxt)
        log_action(db, actor.id, "CANCEL", ENTITY, m.id,
                   f"Request #{m.id} cancelled" + (f". Reason: {note.strip()}" if note and note.strip() else ""))
        request_store.commit(db, m)
        logger.info(f"Request #{m.id} cancelled by user {actor.id}")
        return serialize(m)

    def update_request(
        self, db: Session, request_id: int, body: MaintenanceUpdateRequest, actor: Actor,
    ) -> dict:
        """
        Generic PUT: an assignedTo key routes to the assignment engine (status is
        derived there), cancelled routes to cancel, any other status to the
        technician's status update. Notes belong to the technician's update and
        cannot ride along with an assignment change.
        """
        if body.touches_assignment:
            if body.notes and body.notes.strip():
                raise RequestValidationException(
                    [{"field": "notes", "message": "Notes cannot be sent together with assignedTo"}],
                )
            return self.assign_technician(db, request_id, body.assignedTo or None, actor,
                                          expected_status=body.status)
        if body.status == MaintenanceStatus.CANCELLED:
            return self.cancel_request(db, request_id, actor, body.notes)
        if body.status is not None:
            return self.update_status(db, request_id, body.status, actor, body.notes)
        if body.notes:
            current = request_store.get(db, request_id).status
            return self.update_status(db, request_id, current, actor, body.notes)
        return self.get_request(db, request_id, actor)


maintenance_service = MaintenanceService()
