from datetime import datetime, time, timedelta
from typing import Iterable, Mapping, Optional

from sqlalchemy.orm import Session

from facility_api.models.maintenance_request import MaintenanceRequest
from facility_api.schemas.maintenance import MaintenanceFilter
from facility_api.services.transition_validator import invariant_violations
from facility_api.utils.exceptions import NotFoundException, InvariantViolationException

# Fields the lifecycle may rewrite; id, requester identity and timestamps
# managed by the database are not in here.
MUTABLE_FIELDS = (
    "assetId", "assetName", "assetCode",
    "requestedBy", "requestedByName",
    "title", "description", "priority",
    "status", "isDraft",
    "assignedTo", "assignedToName",
    "expectedCompletionTime", "notes", "completedAt",
)

SNAPSHOT_FIELDS = ("id",) + MUTABLE_FIELDS + ("createdAt", "updatedAt")


def _iso(value):
    return value.isoformat() if value else None


def _enum_value(value):
    return value.value if value is not None and hasattr(value, "value") else value


def snapshot(m: MaintenanceRequest) -> dict:
    """Raw field values of a record, used as lifecycle input."""
    return {field: getattr(m, field) for field in SNAPSHOT_FIELDS}


def serialize(m: MaintenanceRequest) -> dict:
    return {
        "id":                     m.id,
        "assetId":                m.assetId,
        "assetName":              m.assetName,
        "assetCode":              m.assetCode,
        "requestedBy":            m.requestedBy,
        "requestedByName":        m.requestedByName,
        "title":                  m.title,
        "description":            m.description,
        "priority":               _enum_value(m.priority),
        "status":                 _enum_value(m.status),
        "isDraft":                m.isDraft,
        "assignedTo":             m.assignedTo,
        "assignedToName":         m.assignedToName,
        "expectedCompletionTime": _iso(m.expectedCompletionTime),
        "notes":                  m.notes,
        "createdAt":              _iso(m.createdAt),
        "updatedAt":              _iso(m.updatedAt),
        "completedAt":            _iso(m.completedAt),
    }


def _day_start(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _day_end(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value + timedelta(days=1), time.min)


class RequestStore:
    """
    Canonical collection of maintenance request records.

    Reads return ORM objects; writes go through `add` / `apply` / `remove`
    and are committed by `commit`, so the caller can add its audit entry to
    the same transaction. One call touches one record.
    """

    # ─── Reads ────────────────────────────────────────────────────────────────
    def get(self, db: Session, request_id: int) -> MaintenanceRequest:
        m = db.query(MaintenanceRequest).filter(MaintenanceRequest.id == request_id).first()
        if not m:
            raise NotFoundException("Maintenance request")
        return m

    def query(self, db: Session, filters: Optional[MaintenanceFilter] = None, include_drafts: bool = False):
        q = db.query(MaintenanceRequest)
        if not include_drafts:
            q = q.filter(MaintenanceRequest.isDraft == False)  # noqa: E712
        if filters is None:
            return q

        if filters.status:      q = q.filter(MaintenanceRequest.status == filters.status)
        if filters.priority:    q = q.filter(MaintenanceRequest.priority == filters.priority)
        if filters.assignedTo:  q = q.filter(MaintenanceRequest.assignedTo == filters.assignedTo)
        if filters.requestedBy: q = q.filter(MaintenanceRequest.requestedBy == filters.requestedBy)
        if filters.isDraft is not None:
            q = q.filter(MaintenanceRequest.isDraft == filters.isDraft)
        if filters.dateFrom:    q = q.filter(MaintenanceRequest.createdAt >= _day_start(filters.dateFrom))
        if filters.dateTo:      q = q.filter(MaintenanceRequest.createdAt < _day_end(filters.dateTo))
        if filters.assetName:
            q = q.filter(MaintenanceRequest.assetName.ilike(f"%{filters.assetName.strip()}%"))
        return q

    def find(
        self, db: Session,
        filters: Optional[MaintenanceFilter] = None,
        include_drafts: bool = False,
    ) -> list[MaintenanceRequest]:
        q = self.query(db, filters, include_drafts)
        return q.order_by(MaintenanceRequest.createdAt.desc(), MaintenanceRequest.id.desc()).all()

    def page(
        self, db: Session, filters: Optional[MaintenanceFilter], page: int, limit: int,
        scope: Optional[Iterable] = None,
    ) -> tuple[list[MaintenanceRequest], int]:
        q = self.query(db, filters)
        for criterion in scope or ():
            q = q.filter(criterion)
        total = q.count()
        items = q.order_by(MaintenanceRequest.createdAt.desc(), MaintenanceRequest.id.desc())\
                 .offset((page - 1) * limit).limit(limit).all()
        return items, total

    # ─── Writes ───────────────────────────────────────────────────────────────
    def add(self, db: Session, values: Mapping) -> MaintenanceRequest:
        self._guard(values)
        m = MaintenanceRequest(**{k: v for k, v in values.items() if k in MUTABLE_FIELDS})
        db.add(m)
        db.flush()
        return m

    def apply(self, db: Session, m: MaintenanceRequest, next_state: Mapping) -> dict:
        """
        Write the fields of `next_state` that differ from the stored record.
        Returns the changed fields (empty for a no-op).
        """
        self._guard({**snapshot(m), **next_state})
        changes = {
            field: next_state[field]
            for field in MUTABLE_FIELDS
            if field in next_state and next_state[field] != getattr(m, field)
        }
        for field, value in changes.items():
            setattr(m, field, value)
        if changes:
            db.flush()
        return changes

    def remove(self, db: Session, m: MaintenanceRequest) -> None:
        db.delete(m)
        db.flush()

    def commit(self, db: Session, m: Optional[MaintenanceRequest] = None) -> None:
        db.commit()
        if m is not None:
            db.refresh(m)

    @staticmethod
    def _guard(state: Mapping) -> None:
        violations = invariant_violations(state)
        if violations:
            raise InvariantViolationException(violations)


request_store = RequestStore()
