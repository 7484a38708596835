"""Selection order for a booking form: location, then service, then staff, then slot.

``BookingSelection`` is immutable; each ``select_*`` returns a new selection
with everything downstream of the changed choice cleared.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional


class SelectionState(str, Enum):
    NO_LOCATION = "no_location"
    LOCATION_SELECTED = "location_selected"
    SERVICE_SELECTED = "service_selected"
    STAFF_SELECTED = "staff_selected"
    SLOT_SELECTED = "slot_selected"


class SelectionOrderError(Exception):
    """A choice was made before the one it depends on."""


@dataclass(frozen=True)
class BookingSelection:
    location_id: Optional[object] = None
    service_id: Optional[object] = None
    staff_id: Optional[object] = None
    slot: Optional[object] = None

    @property
    def state(self) -> SelectionState:
        if self.location_id is None:
            return SelectionState.NO_LOCATION
        if self.service_id is None:
            return SelectionState.LOCATION_SELECTED
        if self.staff_id is None:
            return SelectionState.SERVICE_SELECTED
        if self.slot is None:
            return SelectionState.STAFF_SELECTED
        return SelectionState.SLOT_SELECTED

    @property
    def can_submit(self) -> bool:
        return self.state is SelectionState.SLOT_SELECTED

    def select_location(self, location_id) -> "BookingSelection":
        if location_id == self.location_id:
            return self
        return BookingSelection(location_id=location_id)

    def select_service(self, service_id) -> "BookingSelection":
        if self.location_id is None:
            raise SelectionOrderError("select a location before a service")
        return replace(self, service_id=service_id, staff_id=None, slot=None)

    def select_staff(self, staff_id) -> "BookingSelection":
        if self.service_id is None:
            raise SelectionOrderError("select a service before a staff member")
        return replace(self, staff_id=staff_id, slot=None)

    def select_slot(self, slot) -> "BookingSelection":
        if self.staff_id is None:
            raise SelectionOrderError("select a staff member before a time slot")
        return replace(self, slot=slot)

    def services_offered(self, services: Iterable) -> List:
        """Services whose locations include the selected one."""
        if self.location_id is None:
            return []
        return [s for s in services if self.location_id in s.location_ids]

    def staff_offered(self, staff: Iterable) -> List:
        """Staff scheduled at the selected location who perform the selected service."""
        if self.location_id is None or self.service_id is None:
            return []
        return [
            member
            for member in staff
            if self.location_id in member.schedules_by_location
            and self.service_id in member.service_ids
        ]
