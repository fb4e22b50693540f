# facility_api/tests/test_maintenance_service.py
from __future__ import annotations

import pytest

from facility_api.models.maintenance_request import MaintenanceStatus, MaintenancePriority
from facility_api.schemas.maintenance import MaintenanceFilter, MaintenanceUpdateRequest
from facility_api.services.maintenance_service import maintenance_service as service
from facility_api.tests.support import (
    actor, stored, record_count,
    MANAGER_ID, ADMIN_ID, INACTIVE_ID, TECH_ID, OTHER_TECH_ID, REQUESTER_ID, ASSET_ID, FULL_FORM,
)
from facility_api.utils.exceptions import (
    AlreadyTerminalException, ForbiddenException, ForbiddenRoleException, InvalidTransitionException,
    NotDraftException, NotFoundException, RequestValidationException,
)


# ------------------------ helpers ------------------------

@pytest.fixture
def submit(db, requester):
    def _submit(**overrides) -> dict:
        return service.create_request(db, {**FULL_FORM, **overrides}, requester)
    return _submit


@pytest.fixture
def approved(db, submit, supervisor):
    rid = submit()["id"]
    return service.assign_technician(db, rid, TECH_ID, supervisor)


@pytest.fixture
def completed(db, approved, tech):
    rid = approved["id"]
    service.update_status(db, rid, MaintenanceStatus.IN_PROGRESS, tech)
    return service.update_status(db, rid, MaintenanceStatus.COMPLETED, tech, "Replaced valve")


def assert_unchanged(db, before: dict):
    m = stored(db, before["id"])
    assert m.status.value == before["status"]
    assert m.isDraft == before["isDraft"]
    assert m.assignedTo == before["assignedTo"]
    assert m.notes == before["notes"]


def actions(db, request_id: int, who) -> list[str]:
    return [h["action"] for h in service.get_history(db, request_id, who)]


# ------------------------ drafts ------------------------

def test_empty_draft_is_saved_but_cannot_be_submitted(db, requester):
    draft = service.create_draft(db, {"title": "", "assetId": None}, requester)
    assert draft["status"] == "draft"
    assert draft["isDraft"] is True
    assert draft["assetId"] is None

    with pytest.raises(RequestValidationException) as exc:
        service.submit_draft(db, draft["id"], requester)
    assert {d["field"] for d in exc.value.details} == {"assetId", "title", "description", "priority"}
    assert_unchanged(db, draft)


def test_complete_draft_submits_to_pending(db, requester):
    draft = service.create_draft(db, FULL_FORM, requester)
    assert draft["assetName"] == "Water pipe"
    assert draft["assetCode"] == "PIPE-003"

    result = service.submit_draft(db, draft["id"], requester)
    assert result["id"] == draft["id"]
    assert result["status"] == "pending"
    assert result["isDraft"] is False
    assert record_count(db) == 1


def test_submit_with_last_minute_edits(db, requester):
    draft = service.create_draft(db, {"title": "Leaking pipe"}, requester)
    result = service.submit_draft(db, draft["id"], requester, {
        "assetId": ASSET_ID, "description": "Pipe in room 4 leaking", "priority": "urgent",
    })
    assert result["status"] == "pending"
    assert result["priority"] == "urgent"
    assert result["title"] == "Leaking pipe"


def test_update_draft_keeps_it_a_draft(db, requester):
    draft = service.create_draft(db, {"title": "Aircon"}, requester)
    updated = service.update_draft(db, draft["id"], {"assetId": 1, "priority": "low"}, requester)
    assert updated["status"] == "draft"
    assert updated["assetName"] == "Air conditioner"
    assert updated["title"] == "Aircon"


def test_whitespace_title_blocks_submit(db, requester):
    draft = service.create_draft(db, {**FULL_FORM, "title": "   "}, requester)
    with pytest.raises(RequestValidationException):
        service.submit_draft(db, draft["id"], requester)
    assert stored(db, draft["id"]).status == MaintenanceStatus.DRAFT


def test_only_the_creator_touches_a_draft(db, requester, supervisor, tech):
    draft = service.create_draft(db, FULL_FORM, requester)
    with pytest.raises(ForbiddenRoleException):
        service.update_draft(db, draft["id"], {"title": "Mine now"}, tech)
    with pytest.raises(ForbiddenRoleException):
        service.submit_draft(db, draft["id"], supervisor)
    with pytest.raises(ForbiddenException):
        service.get_request(db, draft["id"], supervisor)


def test_submitted_request_is_no_longer_a_draft(db, submit, requester):
    rid = submit()["id"]
    with pytest.raises(NotDraftException):
        service.update_draft(db, rid, {"title": "Changed"}, requester)
    with pytest.raises(NotDraftException):
        service.submit_draft(db, rid, requester)


def test_unknown_asset(db, requester):
    with pytest.raises(NotFoundException):
        service.create_draft(db, {"assetId": 404}, requester)
    assert record_count(db) == 0


def test_delete_only_own_drafts(db, submit, requester, tech):
    draft = service.create_draft(db, FULL_FORM, requester)
    with pytest.raises(ForbiddenRoleException):
        service.delete_request(db, draft["id"], tech)
    service.delete_request(db, draft["id"], requester)
    assert record_count(db) == 0

    rid = submit()["id"]
    with pytest.raises(NotDraftException):
        service.delete_request(db, rid, requester)


# ------------------------ submission ------------------------

def test_create_request_goes_straight_to_pending(submit):
    result = submit()
    assert result["status"] == "pending"
    assert result["isDraft"] is False
    assert result["requestedBy"] == REQUESTER_ID
    assert result["requestedByName"] == "Linh Pham"
    assert result["assignedTo"] is None


def test_create_request_with_missing_priority_writes_nothing(db, requester):
    with pytest.raises(RequestValidationException):
        service.create_request(db, {**FULL_FORM, "priority": None}, requester)
    assert record_count(db) == 0


# ------------------------ assignment ------------------------

def test_assign_then_clear(db, submit, supervisor):
    rid = submit()["id"]
    result = service.assign_technician(db, rid, TECH_ID, supervisor)
    assert result["status"] == "approved"
    assert result["assignedTo"] == TECH_ID
    assert result["assignedToName"] == "Quang Vo"

    result = service.assign_technician(db, rid, None, supervisor)
    assert result["status"] == "pending"
    assert result["assignedTo"] is None
    assert stored(db, rid).assignedTo is None


def test_clearing_in_progress_work(db, approved, supervisor, tech):
    service.update_status(db, approved["id"], MaintenanceStatus.IN_PROGRESS, tech)
    result = service.assign_technician(db, approved["id"], None, supervisor)
    assert result["status"] == "pending"


def test_reassign_keeps_approved(db, approved, supervisor):
    result = service.assign_technician(db, approved["id"], OTHER_TECH_ID, supervisor)
    assert result["status"] == "approved"
    assert result["assignedTo"] == OTHER_TECH_ID


def test_manager_can_assign(db, submit):
    rid = submit()["id"]
    result = service.assign_technician(db, rid, TECH_ID, actor(db, MANAGER_ID))
    assert result["status"] == "approved"


def test_staff_cannot_assign(db, submit, requester):
    before = submit()
    with pytest.raises(ForbiddenRoleException):
        service.assign_technician(db, before["id"], TECH_ID, requester)
    assert_unchanged(db, before)


@pytest.mark.parametrize("user_id", [ADMIN_ID, INACTIVE_ID])
def test_ineligible_technicians(db, submit, supervisor, user_id):
    rid = submit()["id"]
    with pytest.raises(RequestValidationException):
        service.assign_technician(db, rid, user_id, supervisor)
    assert stored(db, rid).status == MaintenanceStatus.PENDING


def test_unknown_technician(db, submit, supervisor):
    rid = submit()["id"]
    with pytest.raises(NotFoundException):
        service.assign_technician(db, rid, 999, supervisor)


def test_reassigning_completed_request_is_rejected(db, completed, supervisor):
    with pytest.raises(AlreadyTerminalException):
        service.assign_technician(db, completed["id"], OTHER_TECH_ID, supervisor)
    assert_unchanged(db, completed)


@pytest.mark.parametrize("technician_id", [999, ADMIN_ID])
def test_terminal_request_rejected_before_technician_lookup(db, completed, supervisor, technician_id):
    with pytest.raises(AlreadyTerminalException):
        service.assign_technician(db, completed["id"], technician_id, supervisor)
    assert_unchanged(db, completed)


def test_same_assignment_writes_no_history(db, approved, supervisor):
    service.assign_technician(db, approved["id"], TECH_ID, supervisor)
    assert actions(db, approved["id"], supervisor) == ["CREATE", "ASSIGN"]


# ------------------------ work status ------------------------

def test_technician_completes_with_notes(completed):
    assert completed["status"] == "completed"
    assert completed["notes"] == "Replaced valve"
    assert completed["completedAt"] is not None
    assert completed["assignedTo"] == TECH_ID


def test_completed_at_only_on_completion(db, approved, tech):
    result = service.update_status(db, approved["id"], MaintenanceStatus.IN_PROGRESS, tech)
    assert result["completedAt"] is None


def test_other_users_cannot_move_the_work(db, approved, supervisor, requester):
    for who in (supervisor, requester, actor(db, OTHER_TECH_ID)):
        with pytest.raises(ForbiddenRoleException):
            service.update_status(db, approved["id"], MaintenanceStatus.IN_PROGRESS, who)
    assert_unchanged(db, approved)


def test_pending_request_cannot_start(db, submit, tech):
    rid = submit()["id"]
    with pytest.raises(ForbiddenRoleException):
        service.update_status(db, rid, MaintenanceStatus.IN_PROGRESS, tech)


def test_completed_request_rejects_notes(db, completed, tech):
    with pytest.raises(AlreadyTerminalException):
        service.update_status(db, completed["id"], MaintenanceStatus.COMPLETED, tech, "Oops")
    assert_unchanged(db, completed)


def test_cancel(db, approved, supervisor):
    rid = approved["id"]
    assert service.cancel_request(db, rid, supervisor, "Duplicate")["status"] == "cancelled"
    with pytest.raises(AlreadyTerminalException):
        service.cancel_request(db, rid, supervisor)
    with pytest.raises(AlreadyTerminalException):
        service.assign_technician(db, rid, None, supervisor)


def test_cancel_requires_supervisor(db, submit, requester):
    before = submit()
    with pytest.raises(ForbiddenRoleException):
        service.cancel_request(db, before["id"], requester)
    assert_unchanged(db, before)


# ------------------------ generic update ------------------------

def test_put_with_assignee_approves(db, submit, supervisor):
    rid = submit()["id"]
    body = MaintenanceUpdateRequest(assignedTo=TECH_ID, status="approved")
    result = service.update_request(db, rid, body, supervisor)
    assert result["status"] == "approved"
    assert result["assignedTo"] == TECH_ID


def test_put_with_zero_assignee_clears(db, approved, supervisor):
    result = service.update_request(db, approved["id"], MaintenanceUpdateRequest(assignedTo=0), supervisor)
    assert result["status"] == "pending"
    assert result["assignedTo"] is None


def test_put_with_contradicting_status(db, submit, supervisor):
    before = submit()
    body = MaintenanceUpdateRequest(assignedTo=TECH_ID, status="in_progress")
    with pytest.raises(InvalidTransitionException):
        service.update_request(db, before["id"], body, supervisor)
    assert_unchanged(db, before)


def test_put_status_routes_to_technician_update(db, approved, tech):
    body = MaintenanceUpdateRequest(status="in_progress", notes="On my way")
    result = service.update_request(db, approved["id"], body, tech)
    assert result["status"] == "in_progress"
    assert result["notes"] == "On my way"


def test_put_cancel(db, submit, supervisor):
    rid = submit()["id"]
    result = service.update_request(db, rid, MaintenanceUpdateRequest(status="cancelled"), supervisor)
    assert result["status"] == "cancelled"


def test_put_notes_only(db, approved, tech):
    rid = approved["id"]
    service.update_status(db, rid, MaintenanceStatus.IN_PROGRESS, tech)
    service.update_request(db, rid, MaintenanceUpdateRequest(notes="Ordered parts"), tech)
    result = service.update_request(db, rid, MaintenanceUpdateRequest(notes="Parts arrived"), tech)
    assert result["status"] == "in_progress"
    assert result["notes"] == "Ordered parts\nParts arrived"
    assert actions(db, rid, tech)[-2:] == ["NOTE", "NOTE"]


def test_put_assignee_with_notes_is_rejected(db, approved, supervisor):
    body = MaintenanceUpdateRequest(assignedTo=OTHER_TECH_ID, notes="Bao knows this pipe")
    with pytest.raises(RequestValidationException) as exc:
        service.update_request(db, approved["id"], body, supervisor)
    assert exc.value.details[0]["field"] == "notes"
    assert_unchanged(db, approved)
    assert actions(db, approved["id"], supervisor) == ["CREATE", "ASSIGN"]


# ------------------------ queries ------------------------

def test_listings_hide_drafts(db, submit, requester, supervisor, tech):
    service.create_draft(db, {"title": "Half done"}, requester)
    rid = submit()["id"]

    items, total = service.list_requests(db, supervisor, MaintenanceFilter(), 1, 20)
    assert total == 1
    assert [i["id"] for i in items] == [rid]
    assert len(service.list_my_requests(db, requester)) == 1
    assert len(service.list_my_drafts(db, requester)) == 1
    assert service.list_my_drafts(db, tech) == []


def test_staff_only_see_their_own_or_assigned(db, submit, requester, supervisor, tech):
    mine = submit()["id"]
    other = service.create_request(db, FULL_FORM, actor(db, OTHER_TECH_ID))["id"]
    service.assign_technician(db, other, TECH_ID, supervisor)

    items, _ = service.list_requests(db, requester, MaintenanceFilter(), 1, 20)
    assert [i["id"] for i in items] == [mine]

    items, _ = service.list_requests(db, tech, MaintenanceFilter(), 1, 20)
    assert [i["id"] for i in items] == [other]

    with pytest.raises(ForbiddenException):
        service.get_request(db, other, requester)
    assert service.get_request(db, other, tech)["id"] == other


def test_filters(db, submit, supervisor):
    submit()
    submit(assetId=1, priority="low")

    items, total = service.list_requests(db, supervisor, MaintenanceFilter(priority=MaintenancePriority.LOW), 1, 20)
    assert total == 1
    assert items[0]["assetName"] == "Air conditioner"

    items, total = service.list_requests(db, supervisor, MaintenanceFilter(assetName="pipe"), 1, 20)
    assert total == 1
    assert items[0]["assetCode"] == "PIPE-003"


def test_pagination(db, submit, supervisor):
    ids = [submit()["id"] for _ in range(3)]
    items, total = service.list_requests(db, supervisor, MaintenanceFilter(), 2, 2)
    assert total == 3
    assert [i["id"] for i in items] == [ids[0]]


def test_assigned_list(db, approved, submit):
    submit()
    assert [i["id"] for i in service.list_assigned_requests(db, actor(db, TECH_ID))] == [approved["id"]]
    assert service.list_assigned_requests(db, actor(db, OTHER_TECH_ID)) == []


def test_status_options_depend_on_the_viewer(db, approved, requester, supervisor, tech):
    rid = approved["id"]
    assert approved.get("allowedStatuses") is None
    assert service.get_request(db, rid, tech)["allowedStatuses"] == ["in_progress", "completed"]
    assert service.get_request(db, rid, supervisor)["allowedStatuses"] == ["cancelled"]
    assert service.get_request(db, rid, requester)["allowedStatuses"] == []

    service.update_status(db, rid, MaintenanceStatus.IN_PROGRESS, tech)
    assert service.list_assigned_requests(db, tech)[0]["allowedStatuses"] == ["completed"]

    service.update_status(db, rid, MaintenanceStatus.COMPLETED, tech)
    assert service.get_request(db, rid, tech)["allowedStatuses"] == []


def test_history_in_order(db, requester, supervisor):
    rid = service.create_draft(db, {"title": "Leaking pipe"}, requester)["id"]
    service.update_draft(db, rid, FULL_FORM, requester)
    service.submit_draft(db, rid, requester)
    service.assign_technician(db, rid, TECH_ID, supervisor)
    service.assign_technician(db, rid, OTHER_TECH_ID, supervisor)
    service.assign_technician(db, rid, None, supervisor)
    service.cancel_request(db, rid, supervisor, "No longer needed")

    history = service.get_history(db, rid, supervisor)
    assert [h["action"] for h in history] == [
        "CREATE_DRAFT", "UPDATE_DRAFT", "SUBMIT", "ASSIGN", "REASSIGN", "UNASSIGN", "CANCEL",
    ]
    assert history[0]["user"]["name"] == "Linh Pham"
    assert "No longer needed" in history[-1]["description"]


def test_missing_request(db, supervisor):
    with pytest.raises(NotFoundException):
        service.get_request(db, 12345, supervisor)
