"""
Draft preservation for the maintenance-request editor.

The host (browser shell, desktop client, test) owns the lifecycle hooks and
calls into `DraftManager` at the right moments:

- before the document unloads   → `confirm_unload()`
- before an in-app navigation   → `request_navigation(target)`
- after the user answers prompt → `resolve_navigation(choice)`

All decisions are made synchronously from the live form state; persistence
goes through the maintenance service (create / update / submit draft).
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from facility_api.schemas.maintenance import DRAFT_FORM_FIELDS, has_content, submission_errors
from facility_api.services.maintenance_service import MaintenanceService, maintenance_service
from facility_api.utils.exceptions import RequestValidationException
from facility_api.utils.permissions import Actor

logger = logging.getLogger(__name__)


class NavigationChoice(str, enum.Enum):
    SAVE_DRAFT = "save_draft"
    DISCARD    = "discard"
    STAY       = "stay"


@dataclass(frozen=True)
class NavigationOutcome:
    proceed: bool                  # host may carry out the navigation now
    target:  Optional[str] = None  # where to go when proceeding
    prompt:  bool = False          # host must ask save / discard / stay
    record:  Optional[dict] = None # persisted draft, when one was saved


def _empty_form() -> dict:
    return {name: None for name in DRAFT_FORM_FIELDS}


def _form_of(record: dict) -> dict:
    return {name: record.get(name) for name in DRAFT_FORM_FIELDS}


class DraftManager:
    """
    Tracks one open request form for one actor.

    Pass `draft` (a serialized draft record) to edit an existing draft; saves
    then update that record instead of creating a new one.
    """

    def __init__(
        self,
        db: Session,
        actor: Actor,
        draft: Optional[dict] = None,
        service: MaintenanceService = maintenance_service,
    ):
        self.db = db
        self.actor = actor
        self.service = service
        self.draft_id: Optional[int] = draft["id"] if draft else None
        self.form: dict = _form_of(draft) if draft else _empty_form()
        self._baseline: dict = dict(self.form)
        self._pending_target: Optional[str] = None

    # ─── Form state ───────────────────────────────────────────────────────────
    def edit(self, **fields: Any) -> None:
        unknown = set(fields) - set(DRAFT_FORM_FIELDS)
        if unknown:
            raise ValueError(f"Unknown form fields: {', '.join(sorted(unknown))}")
        self.form.update(fields)

    @property
    def has_unsaved_changes(self) -> bool:
        return has_content(self.form) and self.form != self._baseline

    @property
    def pending_target(self) -> Optional[str]:
        return self._pending_target

    def _mark_clean(self) -> None:
        self._baseline = dict(self.form)

    # ─── Host hooks ───────────────────────────────────────────────────────────
    def confirm_unload(self) -> bool:
        """True when the host must show its blocking "leave page?" confirmation."""
        return self.has_unsaved_changes

    def request_navigation(self, target: str) -> NavigationOutcome:
        if not self.has_unsaved_changes:
            return NavigationOutcome(proceed=True, target=target)
        self._pending_target = target
        return NavigationOutcome(proceed=False, target=target, prompt=True)

    def resolve_navigation(self, choice: NavigationChoice) -> NavigationOutcome:
        if self._pending_target is None:
            raise ValueError("No navigation is waiting for a decision")
        choice = NavigationChoice(choice)
        target = self._pending_target

        if choice == NavigationChoice.STAY:
            self._pending_target = None
            return NavigationOutcome(proceed=False)

        record = None
        if choice == NavigationChoice.SAVE_DRAFT:
            # A failed save propagates; the navigation stays parked for a retry or another choice
            record = self.save_draft()
        else:
            self.discard()
        self._pending_target = None
        return NavigationOutcome(proceed=True, target=target, record=record)

    # ─── Actions ──────────────────────────────────────────────────────────────
    def save_draft(self) -> dict:
        if self.draft_id is None:
            record = self.service.create_draft(self.db, self.form, self.actor)
            self.draft_id = record["id"]
        else:
            record = self.service.update_draft(self.db, self.draft_id, self.form, self.actor)
        self._mark_clean()
        logger.info(f"Draft #{self.draft_id} saved for user {self.actor.id}")
        return record

    def discard(self) -> None:
        """Drop edits made since the last save (or since the form was opened)."""
        self.form = dict(self._baseline)

    def submit(self) -> dict:
        """
        Send the request. Missing required fields are reported before anything
        is written; an existing draft is promoted in place.
        """
        errors = submission_errors(self.form)
        if errors:
            raise RequestValidationException(errors, "Please fill in all required fields before submitting")

        if self.draft_id is None:
            record = self.service.create_request(self.db, self.form, self.actor)
        else:
            record = self.service.submit_draft(self.db, self.draft_id, self.actor, self.form)
        self._mark_clean()
        return record
