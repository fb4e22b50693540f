from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from facility_api.database import get_db
from facility_api.dependencies import get_current_actor
from facility_api.models.maintenance_request import MaintenanceStatus, MaintenancePriority
from facility_api.schemas.maintenance import (
    MaintenanceCreateRequest, MaintenanceDraftRequest, MaintenanceUpdateRequest,
    AssignTechnicianRequest, StatusUpdateRequest, CancelRequest, MaintenanceFilter,
)
from facility_api.schemas.common import success_response, paginated_response, LIFECYCLE_ERROR_RESPONSES
from facility_api.services.maintenance_service import maintenance_service
from facility_api.utils.permissions import Actor

router = APIRouter(prefix="/maintenance", responses=LIFECYCLE_ERROR_RESPONSES)


# ─── Listings ─────────────────────────────────────────────────────────────────
@router.get("", summary="List submitted requests (role-filtered)")
def list_requests(
    page:       int                           = Query(1, ge=1),
    limit:      int                           = Query(20, ge=1, le=100),
    status:     Optional[MaintenanceStatus]   = Query(None),
    priority:   Optional[MaintenancePriority] = Query(None),
    assignedTo: Optional[int]                 = Query(None),
    dateFrom:   Optional[date]                = Query(None),
    dateTo:     Optional[date]                = Query(None),
    assetName:  Optional[str]                 = Query(None, description="Substring match on asset name"),
    db:         Session                       = Depends(get_db),
    actor:      Actor                         = Depends(get_current_actor),
):
    filters = MaintenanceFilter(
        status=status, priority=priority, assignedTo=assignedTo,
        dateFrom=dateFrom, dateTo=dateTo, assetName=assetName,
    )
    data, total = maintenance_service.list_requests(db, actor, filters, page, limit)
    return paginated_response("Maintenance requests retrieved", data, total, page, limit)


@router.get("/my-requests", summary="List my submitted requests")
def list_my_requests(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return success_response("Your requests retrieved", maintenance_service.list_my_requests(db, actor))


@router.get("/my-drafts", summary="List my drafts")
def list_my_drafts(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return success_response("Your drafts retrieved", maintenance_service.list_my_drafts(db, actor))


@router.get("/assigned", summary="List requests assigned to me (technician)")
def list_assigned_requests(
    status:    Optional[MaintenanceStatus]   = Query(None),
    priority:  Optional[MaintenancePriority] = Query(None),
    assetName: Optional[str]                 = Query(None),
    db:        Session                       = Depends(get_db),
    actor:     Actor                         = Depends(get_current_actor),
):
    filters = MaintenanceFilter(status=status, priority=priority, assetName=assetName)
    return success_response("Assigned requests retrieved",
                            maintenance_service.list_assigned_requests(db, actor, filters))


# ─── Drafts ───────────────────────────────────────────────────────────────────
@router.post("/draft", status_code=status.HTTP_201_CREATED, summary="Save a new draft")
def create_draft(
    body:  MaintenanceDraftRequest,
    db:    Session = Depends(get_db),
    actor: Actor   = Depends(get_current_actor),
):
    data = maintenance_service.create_draft(db, body.form_fields(), actor)
    return success_response("Draft saved", data)


@router.put("/draft/{request_id}", summary="Update a draft (isDraft=false submits it)")
def update_draft(
    request_id: int,
    body:       MaintenanceDraftRequest,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    if body.isDraft is False:
        data = maintenance_service.submit_draft(db, request_id, actor, body.form_fields())
        return success_response("Request submitted", data)
    data = maintenance_service.update_draft(db, request_id, body.form_fields(), actor)
    return success_response("Draft updated", data)


@router.post("/draft/{request_id}/submit", summary="Submit a draft")
def submit_draft(
    request_id: int,
    body:       MaintenanceDraftRequest = MaintenanceDraftRequest(),
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    data = maintenance_service.submit_draft(db, request_id, actor, body.form_fields())
    return success_response("Request submitted", data)


# ─── Single request ───────────────────────────────────────────────────────────
@router.post("", status_code=status.HTTP_201_CREATED, summary="Submit a new request")
def create_request(
    body:  MaintenanceCreateRequest,
    db:    Session = Depends(get_db),
    actor: Actor   = Depends(get_current_actor),
):
    data = maintenance_service.create_request(db, body.model_dump(), actor)
    return success_response("Maintenance request submitted", data)


@router.get("/{request_id}", summary="Get request detail")
def get_request(request_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return success_response("Request retrieved", maintenance_service.get_request(db, request_id, actor))


@router.get("/{request_id}/history", summary="Request audit trail")
def get_history(request_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return success_response("History retrieved", maintenance_service.get_history(db, request_id, actor))


@router.put("/{request_id}", summary="Update / transition a request")
def update_request(
    request_id: int,
    body:       MaintenanceUpdateRequest,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    data = maintenance_service.update_request(db, request_id, body, actor)
    return success_response("Maintenance request updated", data)


@router.post("/{request_id}/assign", summary="Assign or clear the technician (Supervisor/Manager)")
def assign_technician(
    request_id: int,
    body:       AssignTechnicianRequest,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    data = maintenance_service.assign_technician(db, request_id, body.technicianId, actor)
    return success_response("Assignment updated", data)


@router.post("/{request_id}/status", summary="Advance work status (assigned technician)")
def update_status(
    request_id: int,
    body:       StatusUpdateRequest,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    data = maintenance_service.update_status(db, request_id, body.status, actor, body.notes)
    return success_response("Status updated", data)


@router.post("/{request_id}/cancel", summary="Cancel a request (Supervisor/Manager)")
def cancel_request(
    request_id: int,
    body:       CancelRequest = CancelRequest(),
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    data = maintenance_service.cancel_request(db, request_id, actor, body.note)
    return success_response("Request cancelled", data)


@router.delete("/{request_id}", summary="Delete a draft")
def delete_request(request_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    maintenance_service.delete_request(db, request_id, actor)
    return success_response("Draft deleted", None)
