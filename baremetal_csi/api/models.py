"""
Pydantic models for the records persisted by the record store.
"""

from datetime import datetime
from enum import Enum
from typing import ClassVar, List, Optional

from pydantic import BaseModel, Field

KBYTE = 1024
MBYTE = KBYTE * 1024
GBYTE = MBYTE * 1024
TBYTE = GBYTE * 1024


class StorageClass(str, Enum):
    """Storage class values.

    The ``*lvg`` variants are group classes: capacity is drawn from a
    LogicalVolumeGroup and can be partially consumed. The rest describe a
    whole, unpartitioned drive.
    """

    ANY = "any"
    HDD = "hdd"
    SSD = "ssd"
    NVME = "nvme"
    HDDLVG = "hddlvg"
    SSDLVG = "ssdlvg"
    NVMELVG = "nvmelvg"

    @property
    def is_lvg(self) -> bool:
        return self in _LVG_CLASSES

    def lvg_variant(self) -> "StorageClass":
        """Return the group variant of a drive class (identity otherwise)."""
        return _LVG_VARIANTS.get(self, self)


_LVG_VARIANTS = {
    StorageClass.HDD: StorageClass.HDDLVG,
    StorageClass.SSD: StorageClass.SSDLVG,
    StorageClass.NVME: StorageClass.NVMELVG,
}
_LVG_CLASSES = frozenset(_LVG_VARIANTS.values())


class OperationalStatus(str, Enum):
    """Volume lifecycle status values."""

    CREATING = "creating"
    CREATED = "created"
    FAILED_TO_CREATE = "failed_to_create"
    READY_TO_REMOVE = "ready_to_remove"
    REMOVING = "removing"
    REMOVED = "removed"
    FAIL_TO_REMOVE = "fail_to_remove"


# Allowed status moves. Removal may be requested from any state that is not
# already part of the removal path.
_TRANSITIONS = {
    OperationalStatus.CREATING: {
        OperationalStatus.CREATED,
        OperationalStatus.FAILED_TO_CREATE,
        OperationalStatus.REMOVING,
    },
    OperationalStatus.CREATED: {OperationalStatus.READY_TO_REMOVE, OperationalStatus.REMOVING},
    OperationalStatus.FAILED_TO_CREATE: {OperationalStatus.REMOVING},
    OperationalStatus.READY_TO_REMOVE: {OperationalStatus.REMOVING},
    OperationalStatus.REMOVING: {OperationalStatus.REMOVED, OperationalStatus.FAIL_TO_REMOVE},
    OperationalStatus.REMOVED: set(),
    OperationalStatus.FAIL_TO_REMOVE: set(),
}


def can_transition(current: OperationalStatus, new: OperationalStatus) -> bool:
    """Return True if a volume may move from ``current`` to ``new``."""
    if current == new:
        return True
    return new in _TRANSITIONS[current]


class Volume(BaseModel):
    """Volume record. Keyed in the store by ``id``."""

    KIND: ClassVar[str] = "volumes"

    id: str
    node_id: str = ""
    location: str = ""
    storage_class: StorageClass = StorageClass.ANY
    size_bytes: int = Field(0, ge=0)
    status: OperationalStatus = OperationalStatus.CREATING
    created_at: Optional[datetime] = None


class AvailableCapacity(BaseModel):
    """A unit of allocatable capacity: a whole drive or free space in an LVG."""

    KIND: ClassVar[str] = "availablecapacities"

    name: str
    location: str
    node_id: str
    storage_class: StorageClass
    size_bytes: int = Field(..., ge=0)
    # Volumes whose capacity was returned here and whose records may still
    # exist, as "<volume id>/<created_at>".
    reclaimed_volumes: List[str] = Field(default_factory=list)


class LogicalVolumeGroup(BaseModel):
    """Several drives aggregated into one subdividable pool."""

    KIND: ClassVar[str] = "logicalvolumegroups"

    name: str
    node_id: str
    locations: List[str] = Field(default_factory=list)
    size_bytes: int = Field(0, ge=0)


class CreateVolumeRequest(BaseModel):
    """Request model for creating a volume."""

    id: Optional[str] = Field(None, description="Volume id; generated when omitted")
    node_id: str = Field("", description="Node to allocate on; empty means any node")
    size_bytes: int = Field(0, description="Requested size in bytes", ge=0)
    storage_class: StorageClass = Field(StorageClass.ANY, description="Requested storage class")
