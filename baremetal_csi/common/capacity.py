"""Base class for capacity providers."""

from abc import ABC, abstractmethod
from typing import Optional

from baremetal_csi.api.models import AvailableCapacity, StorageClass
from baremetal_csi.common.context import RequestContext


class CapacityProvider(ABC):
    """Abstract base class for capacity providers.

    A capacity provider picks the AvailableCapacity record a new volume is
    carved from. The selection policy belongs to the provider.
    """

    @abstractmethod
    def search_ac(
        self, ctx: RequestContext, node_id: str, required_bytes: int, storage_class: StorageClass
    ) -> Optional[AvailableCapacity]:
        """Find capacity for a volume.

        Args:
            ctx: Request context; carries the volume id under ``REQUEST_ID``
            node_id: Node to search on; empty string searches every node
            required_bytes: Requested volume size in bytes
            storage_class: Requested storage class. The provider may return
                capacity of the group variant of this class.

        Returns:
            Matching AvailableCapacity, or None if nothing fits
        """
        pass
