"""Periphery detection: programmatic relabeling of undersized clusters."""

from typing import Mapping

import numpy as np

from ..models import PERIPHERY_LABEL, ClusterAssignment


def periphery_clusters(sizes: Mapping[int, int], fraction: float) -> tuple[int, ...]:
    """Labels whose size is below ``fraction`` times the mean cluster size.

    The mean is taken over all k clusters, empty ones included. A fraction of
    0 disables the rule.
    """
    counted = {c: s for c, s in sizes.items() if c != PERIPHERY_LABEL}
    if fraction <= 0 or not counted:
        return ()
    threshold = fraction * sum(counted.values()) / len(counted)
    return tuple(sorted(c for c, s in counted.items() if s < threshold))


def reassign_periphery(assignment: ClusterAssignment, fraction: float) -> ClusterAssignment:
    """Return a new assignment with periphery clusters merged into ``PERIPHERY_LABEL``."""
    periphery = periphery_clusters(assignment.sizes(), fraction)
    labels = np.where(np.isin(assignment.labels, periphery), PERIPHERY_LABEL, assignment.labels)
    details = dict(assignment.details, periphery_fraction=fraction)
    return assignment.derive(labels=labels, periphery=periphery, details=details)
