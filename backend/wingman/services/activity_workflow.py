from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from wingman.domain.canonical import parse_ts
from wingman.domain.journey import build_journey
from wingman.domain.models import (
    MAX_TAGS,
    MAX_TYPES,
    Activity,
    Budget,
    Duration,
    GeoPoint,
    LocationType,
    SocialVibe,
)
from wingman.infra.api.activities_client import ActivitiesApiClient, ApiError
from wingman.services.map_surface import MapSurfaceController

logger = logging.getLogger(__name__)

TITLE_REQUIRED = "Title is required"
LOCATION_REQUIRED = "Select a location on the map or enter valid coordinates"
ALREADY_PENDING = "This action is already in progress"

_CHOICES = {
    "budget": Budget,
    "duration": Duration,
    "location_type": LocationType,
    "social_vibe": SocialVibe,
}


@dataclass
class ActivityForm:
    title: str = ""
    description: str = ""
    location: Optional[GeoPoint] = None
    budget: Optional[str] = None
    types: List[str] = field(default_factory=list)
    duration: Optional[str] = None
    date_time: Optional[str] = None
    location_type: Optional[str] = None
    social_vibe: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    shared_expenses: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ActionResult:
    ok: bool
    activity: Optional[Activity] = None
    error: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    pending: bool = False


class ActivityWorkflow:
    """Form state and submission logic behind the create/join interactions.

    Errors from the API are stored in ``error`` and returned in the
    ``ActionResult``; nothing is raised to the caller.
    """

    def __init__(
        self,
        client: ActivitiesApiClient,
        controller: Optional[MapSurfaceController] = None,
    ) -> None:
        self.client = client
        self.controller = None
        self.form = ActivityForm()
        self.dialog_open = False
        self.error: Optional[str] = None
        self.validation_errors: List[str] = []
        self.activities: List[Activity] = []
        self.journey: List[GeoPoint] = []
        self._pending: set[str] = set()
        if controller is not None:
            self.bind(controller)

    def bind(self, controller: MapSurfaceController) -> None:
        self.controller = controller
        controller.on_location_change = self.select_location
        controller.on_join_requested = self.join

    def open_dialog(self) -> None:
        self.dialog_open = True
        self.error = None

    def close_dialog(self) -> None:
        self.dialog_open = False

    def select_location(self, point: GeoPoint) -> None:
        self.form.location = point

    def set_manual_location(self, lat, lng) -> bool:
        if self.controller is not None and self.controller.is_initialized:
            # the controller reports back through select_location
            return self.controller.set_selected_location(lat, lng)
        if not GeoPoint.is_valid(lat, lng):
            return False
        self.form.location = GeoPoint(lat, lng)
        return True

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def validate(self) -> List[str]:
        errors = []
        if not (self.form.title or "").strip():
            errors.append(TITLE_REQUIRED)
        if not isinstance(self.form.location, GeoPoint):
            errors.append(LOCATION_REQUIRED)
        for name, enum_cls in _CHOICES.items():
            value = getattr(self.form, name)
            if value and value not in {member.value for member in enum_cls}:
                errors.append(f"Invalid {name.replace('_', ' ')}: {value}")
        if self.form.date_time:
            try:
                parse_ts(self.form.date_time)
            except ValueError:
                errors.append("Date and time must be an ISO timestamp")
        return errors

    def build_payload(self) -> Dict[str, Any]:
        form = self.form
        payload: Dict[str, Any] = {
            "name": form.title.strip(),
            "location": form.location.to_dict(),
        }
        optional = {
            "description": (form.description or "").strip() or None,
            "budget": form.budget or None,
            "types": list(form.types)[:MAX_TYPES] or None,
            "duration": form.duration or None,
            "dateTime": form.date_time or None,
            "locationType": form.location_type or None,
            "socialVibe": form.social_vibe or None,
            "tags": list(form.tags)[:MAX_TAGS] or None,
            "sharedExpenses": list(form.shared_expenses) or None,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload

    def submit_create(self) -> ActionResult:
        if self.is_pending("create"):
            return ActionResult(ok=False, error=ALREADY_PENDING, pending=True)
        errors = self.validate()
        self.validation_errors = errors
        if errors:
            return ActionResult(ok=False, error=errors[0], errors=errors)

        self._pending.add("create")
        self.error = None
        try:
            activity = self.client.create_activity(self.build_payload())
        except ApiError as exc:
            logger.warning("Activity creation failed: %s", exc.message)
            self.error = exc.message
            return ActionResult(ok=False, error=exc.message)
        finally:
            self._pending.discard("create")

        self.form = ActivityForm()
        self.dialog_open = False
        self.refresh()
        return ActionResult(ok=True, activity=activity)

    def join(self, activity_id: str) -> ActionResult:
        key = f"join:{activity_id}"
        if self.is_pending(key):
            return ActionResult(ok=False, error=ALREADY_PENDING, pending=True)
        self._pending.add(key)
        self.error = None
        try:
            self.client.join_activity(activity_id)
        except ApiError as exc:
            logger.warning("Joining activity %s failed: %s", activity_id, exc.message)
            self.error = exc.message
            return ActionResult(ok=False, error=exc.message)
        finally:
            self._pending.discard(key)
        self.refresh()
        return ActionResult(ok=True)

    def refresh(self) -> ActionResult:
        try:
            activities = self.client.list_activities()
        except ApiError as exc:
            self.error = exc.message
            return ActionResult(ok=False, error=exc.message)
        self.activities = activities
        if self.controller is not None:
            self.controller.set_activities(activities)
        return ActionResult(ok=True)

    def refresh_journey(self) -> ActionResult:
        try:
            mine = self.client.list_activities(mine=True)
        except ApiError as exc:
            self.error = exc.message
            return ActionResult(ok=False, error=exc.message)
        if self.controller is not None:
            self.journey = self.controller.set_journey(mine)
        else:
            self.journey = build_journey(mine)
        return ActionResult(ok=True)
