from pydantic import BaseModel, field_validator
from typing import Mapping, Optional
from datetime import date, datetime

from facility_api.models.maintenance_request import MaintenanceStatus, MaintenancePriority

# Form fields a request must carry before it can leave the draft state
REQUIRED_ON_SUBMIT = ("assetId", "title", "description", "priority")

# Form fields whose content counts as "unsaved work" in the editor
DRAFT_FORM_FIELDS = ("assetId", "title", "description", "priority", "expectedCompletionTime")


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def submission_errors(fields: Mapping) -> list[dict]:
    """Field-level errors that block submitting `fields` as a pending request."""
    messages = {
        "assetId":     "Please select an asset",
        "title":       "Title is required",
        "description": "Description is required",
        "priority":    "Priority is required",
    }
    return [
        {"field": name, "message": messages[name]}
        for name in REQUIRED_ON_SUBMIT
        if _is_blank(fields.get(name))
    ]


def has_content(fields: Mapping) -> bool:
    return any(not _is_blank(fields.get(name)) for name in DRAFT_FORM_FIELDS)


class MaintenanceCreateRequest(BaseModel):
    assetId:                int
    title:                  str
    description:            str
    priority:               MaintenancePriority
    expectedCompletionTime: Optional[datetime] = None

    @field_validator("title", "description")
    @classmethod
    def check_text(cls, v):
        if not v.strip(): raise ValueError("Field cannot be empty")
        return v.strip()


class MaintenanceDraftRequest(BaseModel):
    """Partial form data; anything may be missing while the request is a draft."""
    assetId:                Optional[int]                 = None
    title:                  Optional[str]                 = None
    description:            Optional[str]                 = None
    priority:               Optional[MaintenancePriority] = None
    expectedCompletionTime: Optional[datetime]            = None
    # False on an update turns the draft into a submitted request
    isDraft:                Optional[bool]                = None

    @field_validator("assetId")
    @classmethod
    def check_asset(cls, v):
        # The form sends 0 when no asset has been picked yet
        return v or None

    def form_fields(self) -> dict:
        """Only the fields the client actually sent."""
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if k != "isDraft"}


class MaintenanceUpdateRequest(BaseModel):
    """Generic PUT body: assignment (assignedTo null/0 clears) and/or status change."""
    status:     Optional[MaintenanceStatus] = None
    assignedTo: Optional[int]               = None
    notes:      Optional[str]               = None

    @property
    def touches_assignment(self) -> bool:
        return "assignedTo" in self.model_fields_set


class AssignTechnicianRequest(BaseModel):
    technicianId: Optional[int] = None

    @field_validator("technicianId")
    @classmethod
    def check_technician(cls, v):
        return v or None


class StatusUpdateRequest(BaseModel):
    status: MaintenanceStatus
    notes:  Optional[str] = None


class CancelRequest(BaseModel):
    note: Optional[str] = None


class MaintenanceFilter(BaseModel):
    status:      Optional[MaintenanceStatus]   = None
    priority:    Optional[MaintenancePriority] = None
    assignedTo:  Optional[int]                 = None
    requestedBy: Optional[int]                 = None
    isDraft:     Optional[bool]                = None
    dateFrom:    Optional[date]                = None
    dateTo:      Optional[date]                = None
    assetName:   Optional[str]                 = None
