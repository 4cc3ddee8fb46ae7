"""
baremetal-csi - volume lifecycle orchestration for node-local storage.

This package manages Volume, AvailableCapacity and LogicalVolumeGroup records:
capacity allocation, asynchronous provisioning tracking, deletion and
capacity reclamation.
"""

__version__ = "0.1.0"
__all__ = ["api", "cli", "common"]
