"""
Listing records and the JSON document format they are stored in.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from listings.errors import CorruptStore, RecordNotFound

# Scalar fields a client may set on create and overwrite on update.
TEXT_FIELDS = (
    "kind",
    "type",
    "title",
    "location",
    "price",
    "area",
    "dorm",
    "parking",
    "bath",
)


class _Unset:
    """Marker for a field the caller did not send."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def parse_details(value: Any) -> Any:
    """
    Normalize an incoming ``details`` value.

    Structured values pass through. Text is decoded when it holds a JSON
    object or array and kept verbatim otherwise.
    """
    if value is UNSET or not isinstance(value, str):
        return value
    try:
        parsed = json.loads(value)
    except ValueError:
        return value
    if isinstance(parsed, (dict, list)):
        return parsed
    return value


@dataclass
class Record:
    id: int
    # UNSET keys were never stored and are not written back.
    kind: Any = UNSET
    type: Any = UNSET
    title: Any = UNSET
    location: Any = UNSET
    price: Any = UNSET
    area: Any = UNSET
    dorm: Any = UNSET
    parking: Any = UNSET
    bath: Any = UNSET
    details: Any = field(default_factory=list)
    images: Any = field(default_factory=list)
    # Keys written by other clients that we do not model but must keep.
    extra: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict:
        data: Dict[str, Any] = {"id": self.id}
        for name in TEXT_FIELDS + ("details",):
            value = getattr(self, name)
            if value is not UNSET:
                data[name] = value
        if self.images is not UNSET:
            data["images"] = list(self.images)
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Record":
        if not isinstance(data, Mapping):
            raise CorruptStore(f"Expected an object, got {type(data).__name__}")
        record_id = data.get("id")
        if isinstance(record_id, bool) or not isinstance(record_id, int) or record_id < 1:
            raise CorruptStore(f"Invalid record id: {record_id!r}")
        images = data.get("images", UNSET)
        if images is not UNSET and (
            not isinstance(images, list) or not all(isinstance(i, str) for i in images)
        ):
            raise CorruptStore(f"Invalid images list on record {record_id}")
        known = {"id", "details", "images", *TEXT_FIELDS}
        return cls(
            id=record_id,
            details=data.get("details", UNSET),
            images=images if images is UNSET else list(images),
            extra={k: v for k, v in data.items() if k not in known},
            **{name: data.get(name, UNSET) for name in TEXT_FIELDS},
        )


@dataclass
class RecordFields:
    """
    The client-supplied part of a record. Every attribute left at ``UNSET``
    was not sent and is not touched by an update.
    """

    kind: Any = UNSET
    type: Any = UNSET
    title: Any = UNSET
    location: Any = UNSET
    price: Any = UNSET
    area: Any = UNSET
    dorm: Any = UNSET
    parking: Any = UNSET
    bath: Any = UNSET
    details: Any = UNSET

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RecordFields":
        names = TEXT_FIELDS + ("details",)
        return cls(**{name: data[name] for name in names if name in data})

    def present(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def build(self, record_id: int, images: Sequence[str]) -> Record:
        """Create a new record; absent text fields are left out and details default to []."""
        details = parse_details(self.details)
        return Record(
            id=record_id,
            details=[] if details is UNSET else details,
            images=list(images),
            **{name: getattr(self, name) for name in TEXT_FIELDS},
        )

    def apply_to(self, record: Record) -> Record:
        """Overwrite exactly the fields that were sent."""
        for name, value in self.present().items():
            if name == "details":
                value = parse_details(value)
            setattr(record, name, value)
        return record


def next_record_id(records: Iterable[Record]) -> int:
    return max((r.id for r in records), default=0) + 1


def find_record(records: Sequence[Record], record_id: int) -> Record:
    for record in records:
        if record.id == record_id:
            return record
    raise RecordNotFound(record_id)


def encode_records(records: Iterable[Record]) -> bytes:
    payload = [record.as_dict() for record in records]
    return json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")


def decode_records(raw: bytes) -> List[Record]:
    """Parse store bytes. An empty object is an empty store; anything unparseable is ``CorruptStore``."""
    if not raw.strip():
        return []
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise CorruptStore(f"Store is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise CorruptStore("Store must hold a JSON array of records")

    records = [Record.from_dict(item) for item in payload]
    seen = set()
    for record in records:
        if record.id in seen:
            raise CorruptStore(f"Duplicate record id {record.id}")
        seen.add(record.id)
    return records
