"""Volume lifecycle operations.

Volumes are persisted in ``creating`` status and driven forward by the node
agent, which changes their status in the record store. Nothing here calls
the agent; completion is observed by polling the store.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from baremetal_csi.api.models import (
    AvailableCapacity,
    CreateVolumeRequest,
    LogicalVolumeGroup,
    OperationalStatus,
    Volume,
    can_transition,
)
from baremetal_csi.cli.lib.state import RecordStore
from baremetal_csi.common.capacity import CapacityProvider
from baremetal_csi.common.context import REQUEST_ID, RequestContext
from baremetal_csi.common.exceptions import (
    BaremetalCSIException,
    Internal,
    NotFound,
    ResourceExhausted,
)

LOG = logging.getLogger(__name__)

# Volumes still not created this long after their record appeared are stuck.
CREATE_VOLUME_ALLOWANCE = 300.0

DEFAULT_POLL_INTERVAL = 1.0


class VolumeOperations:
    """Create, delete and reclaim volumes through the record store.

    Args:
        store: Record store holding Volume, AvailableCapacity and
            LogicalVolumeGroup records
        capacity_provider: Picks the capacity a new volume is carved from.
            Only ``create_volume`` needs it.
        poll_interval: Seconds between reads in ``wait_status``
    """

    def __init__(
        self,
        store: RecordStore,
        capacity_provider: Optional[CapacityProvider] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.store = store
        self.capacity_provider = capacity_provider
        self.poll_interval = poll_interval

    def create_volume(self, ctx: RequestContext, request: CreateVolumeRequest) -> Volume:
        """Create a volume record, or pick up one created by an earlier call.

        A new volume is returned in ``creating`` status; call ``wait_status``
        to block until the agent finishes it.

        Args:
            ctx: Request context
            request: Volume id (optional), node, size and storage class

        Returns:
            The volume record

        Raises:
            ResourceExhausted: No capacity satisfies the request
            Internal: An existing volume is stuck or failed, or the store failed
        """
        volume_id = request.id
        if volume_id:
            try:
                existing = self.store.read(Volume, volume_id)
            except NotFound:
                existing = None
            except BaremetalCSIException as e:
                LOG.error("Unable to check existence of volume %s: %s", volume_id, e)
                raise Internal(f"Unable to check volume {volume_id} existence")
            if existing is not None:
                return self._wait_existing_volume(ctx, existing)
        else:
            volume_id = f"pvc-{uuid.uuid4()}"

        if self.capacity_provider is None:
            raise Internal("No capacity provider configured")

        LOG.info(
            "Creating volume %s (node=%r, size=%d, storage_class=%s)",
            volume_id,
            request.node_id,
            request.size_bytes,
            request.storage_class.value,
        )
        ctx_with_id = ctx.with_value(REQUEST_ID, volume_id)
        ac = self.capacity_provider.search_ac(
            ctx_with_id, request.node_id, request.size_bytes, request.storage_class
        )
        if ac is None:
            LOG.warning("No available capacity for volume %s", volume_id)
            raise ResourceExhausted(f"There is no suitable drive for volume {volume_id}")

        # A drive cannot be split outside of a group, so whole-drive volumes
        # take the entire capacity.
        if ac.storage_class.is_lvg:
            size_bytes = request.size_bytes
        else:
            size_bytes = ac.size_bytes

        volume = Volume(
            id=volume_id,
            node_id=ac.node_id,
            location=ac.location,
            storage_class=ac.storage_class,
            size_bytes=size_bytes,
            status=OperationalStatus.CREATING,
        )
        try:
            volume = self.store.create(volume_id, volume)
        except BaremetalCSIException as e:
            LOG.error("Unable to create volume record %s: %s", volume_id, e)
            raise Internal(f"Unable to create volume record {volume_id}")

        LOG.info(
            "Volume %s allocated on %s (node=%s, size=%d, storage_class=%s)",
            volume_id,
            volume.location,
            volume.node_id,
            volume.size_bytes,
            volume.storage_class.value,
        )
        return volume

    def _wait_existing_volume(self, ctx: RequestContext, volume: Volume) -> Volume:
        if volume.status == OperationalStatus.CREATED:
            LOG.info("Volume %s is already created", volume.id)
            return volume

        if _seconds_since(volume.created_at) > CREATE_VOLUME_ALLOWANCE:
            LOG.error("Volume %s is stuck in %s status", volume.id, volume.status.value)
            raise Internal("Unable to create volume in allocated time")

        LOG.info("Volume %s exists with status %s, waiting for creation", volume.id, volume.status.value)
        reached, status = self.wait_status(
            ctx, volume.id, OperationalStatus.CREATED, OperationalStatus.FAILED_TO_CREATE
        )
        if not reached or status != OperationalStatus.CREATED:
            LOG.error("Volume %s was not created (reached=%s, status=%s)", volume.id, reached, status)
            raise Internal(f"Unable to create volume {volume.id}")

        try:
            return self.store.read(Volume, volume.id)
        except BaremetalCSIException as e:
            LOG.error("Unable to read volume %s after creation: %s", volume.id, e)
            raise Internal(f"Unable to read volume {volume.id}")

    def delete_volume(self, ctx: RequestContext, name: str) -> None:
        """Request removal of a volume.

        The agent removes the volume asynchronously and then sets its status
        to ``removed`` or ``fail_to_remove``. Calling this again while removal
        is in progress or done has no effect.

        Raises:
            NotFound: The volume does not exist
            Internal: The volume reached ``fail_to_remove`` or the store failed
        """

        def mark_removing(volume: Volume) -> Optional[Volume]:
            if volume.status == OperationalStatus.FAIL_TO_REMOVE:
                LOG.error("Volume %s has reached FailToRemove status", name)
                raise Internal("volume has reached FailToRemove status")
            if volume.status in (OperationalStatus.REMOVING, OperationalStatus.REMOVED):
                LOG.info("Volume %s is already %s", name, volume.status.value)
                return None
            volume.status = OperationalStatus.REMOVING
            return volume

        try:
            updated = self.store.update_with(Volume, name, mark_removing)
        except NotFound:
            LOG.warning("Volume %s not found (request_id=%s)", name, ctx.value(REQUEST_ID))
            raise
        except Internal:
            raise
        except BaremetalCSIException as e:
            LOG.error("Unable to set removing status for volume %s: %s", name, e)
            raise Internal(f"Unable to update volume {name}")
        if updated is not None:
            LOG.info("Volume %s status set to removing", name)

    def wait_status(
        self, ctx: RequestContext, name: str, *statuses: OperationalStatus
    ) -> Tuple[bool, Optional[OperationalStatus]]:
        """Poll a volume until its status is one of ``statuses``.

        Stops early when the context is done or the volume cannot be read.

        Returns:
            ``(True, status)`` when a target status was reached, otherwise
            ``(False, None)``
        """
        targets = set(statuses)
        while True:
            if ctx.done():
                LOG.warning("Context is done while waiting for volume %s status", name)
                return False, None

            try:
                volume = self.store.read(Volume, name)
            except BaremetalCSIException as e:
                LOG.error("Unable to read volume %s while waiting for status: %s", name, e)
                return False, None

            if volume.status in targets:
                return True, volume.status

            self._sleep(ctx)

    def _sleep(self, ctx: RequestContext) -> None:
        interval = self.poll_interval
        deadline = ctx.deadline
        if deadline is not None:
            interval = max(0.0, min(interval, deadline - time.monotonic()))
        time.sleep(interval)

    def update_crs_after_volume_deletion(self, ctx: RequestContext, name: str) -> None:
        """Reclaim a removed volume's capacity and drop its record.

        Group-class capacity goes back to the AvailableCapacity record at the
        volume's location, which is recreated if the group was exhausted.
        Whole-drive capacity is not touched here. The whole call holds the
        store lock, and the capacity record remembers which volumes it got
        back, so concurrent or repeated calls return the capacity once.

        Raises:
            Internal: The store failed. The volume record is kept so the call
                can be retried.
        """
        try:
            with self.store.locked():
                deleted = self._reclaim_and_delete(name)
        except Internal:
            raise
        except BaremetalCSIException as e:
            LOG.error("Unable to lock the record store for volume %s: %s", name, e)
            raise Internal(f"Unable to reclaim volume {name}")
        if deleted:
            LOG.info("Volume %s deleted (request_id=%s)", name, ctx.value(REQUEST_ID))

    def _reclaim_and_delete(self, name: str) -> bool:
        try:
            volume = self.store.read(Volume, name)
        except NotFound:
            LOG.info("Volume %s not found, nothing to reclaim", name)
            return False
        except BaremetalCSIException as e:
            LOG.error("Unable to read volume %s: %s", name, e)
            raise Internal(f"Unable to read volume {name}")

        if volume.storage_class.is_lvg:
            try:
                self._reclaim_capacity(volume)
            except BaremetalCSIException as e:
                LOG.error("Unable to reclaim capacity of volume %s: %s", name, e)
                raise Internal(f"Unable to reclaim capacity of volume {name}")

        try:
            self.store.delete(Volume, name)
        except NotFound:
            LOG.debug("Volume %s was already deleted", name)
        except BaremetalCSIException as e:
            LOG.error("Unable to delete volume %s: %s", name, e)
            raise Internal(f"Unable to delete volume {name}")
        return True

    def _reclaim_capacity(self, volume: Volume) -> None:
        try:
            lvg = self.store.read(LogicalVolumeGroup, volume.location)
            LOG.debug("Returning %d bytes to LVG %s on node %s", volume.size_bytes, lvg.name, lvg.node_id)
        except NotFound:
            LOG.debug("No LVG record at location %s", volume.location)

        key = _reclaim_key(volume)
        for ac in self.store.list(AvailableCapacity):
            if ac.location != volume.location:
                continue
            if key in ac.reclaimed_volumes:
                LOG.info("Capacity of volume %s was already returned to %s", volume.id, ac.name)
                return
            # Volumes whose records are gone can no longer be retried.
            live = {_reclaim_key(v) for v in self.store.list(Volume)}
            ac.reclaimed_volumes = [k for k in ac.reclaimed_volumes if k in live] + [key]
            ac.size_bytes += volume.size_bytes
            self.store.update(ac.name, ac)
            LOG.info("AvailableCapacity %s grown to %d bytes", ac.name, ac.size_bytes)
            return

        ac_name = str(uuid.uuid4())
        ac = AvailableCapacity(
            name=ac_name,
            location=volume.location,
            node_id=volume.node_id,
            storage_class=volume.storage_class,
            size_bytes=volume.size_bytes,
            reclaimed_volumes=[key],
        )
        self.store.create(ac_name, ac)
        LOG.info("AvailableCapacity %s created at %s with %d bytes", ac_name, ac.location, ac.size_bytes)

    def read_volume_and_change_status(self, name: str, new_status: OperationalStatus) -> None:
        """Set the status of a volume, leaving every other field alone.

        The move is checked against the stored status under the store lock,
        so a concurrent writer cannot be overwritten with a move the
        lifecycle does not allow.

        Raises:
            NotFound: The volume does not exist
            Internal: The move is not allowed from the current status, or the
                store failed
        """

        def change_status(volume: Volume) -> Volume:
            if not can_transition(volume.status, new_status):
                raise Internal(
                    f"Volume {name} cannot move from {volume.status.value} to {new_status.value}"
                )
            volume.status = new_status
            return volume

        try:
            self.store.update_with(Volume, name, change_status)
        except NotFound:
            raise NotFound(f"Volume {name} not found")
        except Internal:
            raise
        except BaremetalCSIException as e:
            LOG.error("Unable to change status of volume %s: %s", name, e)
            raise Internal(f"Unable to update volume {name}")
        LOG.info("Volume %s status set to %s", name, new_status.value)

    def get_volume(self, name: str) -> Volume:
        return self.store.read(Volume, name)

    def list_volumes(self, node_id: Optional[str] = None) -> List[Volume]:
        volumes = self.store.list(Volume)
        if node_id:
            volumes = [v for v in volumes if v.node_id == node_id]
        return volumes


def _seconds_since(timestamp: Optional[datetime]) -> float:
    if timestamp is None:
        return 0.0
    if timestamp.tzinfo is None:
        # Naive timestamps are local time.
        timestamp = timestamp.astimezone()
    return (datetime.now(timezone.utc) - timestamp).total_seconds()


def _reclaim_key(volume: Volume) -> str:
    # A volume recreated under the same id gets a new timestamp.
    created_at = volume.created_at.isoformat() if volume.created_at else ""
    return f"{volume.id}/{created_at}"
