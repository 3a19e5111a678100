# backend/rentals/domain/inspection.py
from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Mapping, Optional

# Rooms stored as a single object in technical_inspection_report
SINGLE_ROOMS = [
    "common_areas",
    "entry_hallways",
    "living_room",
    "kitchen",
    "exterior",
    "garage",
    "terrace",
    "storage",
]
# Rooms stored as a list (one entry per bedroom / bathroom)
INDEXED_ROOMS = ["bedrooms", "bathrooms"]
ALL_ROOMS = SINGLE_ROOMS + INDEXED_ROOMS

_ALWAYS_PRESENT = ["common_areas", "entry_hallways", "living_room", "kitchen", "exterior"]

NO_GARAGE = "No tiene"

ROOM_INCOMPLETE = "incomplete"
ROOM_GOOD = "good"
ROOM_BLOCKING = "blocking"
ROOM_NON_BLOCKING = "non_blocking"


class InspectionError(ValueError):
    pass


@dataclass(frozen=True)
class RoomRef:
    room: str
    index: Optional[int] = None

    @property
    def key(self) -> str:
        return self.room if self.index is None else f"{self.room}[{self.index}]"


@dataclass(frozen=True)
class RoomState:
    ref: RoomRef
    state: str
    status: Optional[str]

    @property
    def is_complete(self) -> bool:
        return self.state in (ROOM_GOOD, ROOM_NON_BLOCKING)

    def as_dict(self) -> dict:
        return {
            "room": self.ref.room,
            "index": self.ref.index,
            "key": self.ref.key,
            "status": self.status,
            "state": self.state,
            "is_complete": self.is_complete,
        }


def empty_room() -> dict[str, Any]:
    return {
        "status": None,
        "comment": None,
        "affects_commercialization": None,
        "incident_photos": [],
        "marketing_photos": [],
    }


def _count(v: Any) -> int:
    try:
        return max(0, int(v or 0))
    except (TypeError, ValueError):
        return 0


def rooms_for_property(values: Mapping[str, Any]) -> list[RoomRef]:
    """
    Rooms that have to be inspected for this property.

    Bedrooms/bathrooms expand by count; garage only when the property has one,
    terrace only when has_terrace. Storage is never required.
    """
    out = [RoomRef(r) for r in _ALWAYS_PRESENT]
    out += [RoomRef("bedrooms", i) for i in range(_count(values.get("bedrooms")))]
    out += [RoomRef("bathrooms", i) for i in range(_count(values.get("bathrooms")))]

    garage = values.get("garage")
    if garage and str(garage).strip() and str(garage).strip() != NO_GARAGE:
        out.append(RoomRef("garage"))
    if values.get("has_terrace"):
        out.append(RoomRef("terrace"))
    return out


def get_room_data(report: Optional[Mapping[str, Any]], ref: RoomRef) -> Optional[Mapping[str, Any]]:
    if not isinstance(report, Mapping):
        return None
    data = report.get(ref.room)
    if ref.index is None:
        return data if isinstance(data, Mapping) else None
    if not isinstance(data, list) or ref.index >= len(data):
        return None
    entry = data[ref.index]
    return entry if isinstance(entry, Mapping) else None


def _photos(data: Mapping[str, Any], key: str) -> list:
    v = data.get(key)
    return [x for x in v if x] if isinstance(v, list) else []


def room_state(data: Optional[Mapping[str, Any]]) -> str:
    if not data:
        return ROOM_INCOMPLETE

    status = data.get("status")
    marketing = _photos(data, "marketing_photos")

    if status == "good":
        return ROOM_GOOD if marketing else ROOM_INCOMPLETE

    if status == "incident":
        comment = str(data.get("comment") or "").strip()
        affects = data.get("affects_commercialization")
        if not comment or not _photos(data, "incident_photos") or affects is None:
            return ROOM_INCOMPLETE
        if affects is True:
            return ROOM_BLOCKING
        return ROOM_NON_BLOCKING if marketing else ROOM_INCOMPLETE

    return ROOM_INCOMPLETE


def room_states(values: Mapping[str, Any]) -> list[RoomState]:
    report = values.get("technical_inspection_report")
    out: list[RoomState] = []
    for ref in rooms_for_property(values):
        data = get_room_data(report, ref)
        out.append(RoomState(ref=ref, state=room_state(data), status=(data or {}).get("status")))
    return out


def validate_room(room: str, index: Optional[int]) -> RoomRef:
    if room not in ALL_ROOMS:
        raise InspectionError(f"unknown room: {room}")
    if room in INDEXED_ROOMS:
        if index is None or int(index) < 0:
            raise InspectionError(f"room_index required for {room}")
        return RoomRef(room, int(index))
    return RoomRef(room)


def merge_room(report: Optional[Mapping[str, Any]], ref: RoomRef, patch: Mapping[str, Any]) -> dict:
    """
    Returns a new report with `patch` merged into one room.

    Lists for indexed rooms are padded with empty rooms up to `ref.index`.
    The input report is never mutated (JSON columns only persist on reassign).
    """
    out: dict[str, Any] = copy.deepcopy(dict(report)) if isinstance(report, Mapping) else {}

    if ref.index is None:
        room = dict(out.get(ref.room) or empty_room())
        room.update(patch)
        out[ref.room] = room
        return out

    rooms = list(out.get(ref.room) or [])
    while len(rooms) <= ref.index:
        rooms.append(empty_room())
    room = dict(rooms[ref.index] or empty_room())
    room.update(patch)
    rooms[ref.index] = room
    out[ref.room] = rooms
    return out
