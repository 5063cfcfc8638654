"""
Resolution of pack definitions against a set of detections.
"""

import logging
from collections import Counter
from typing import Dict, Mapping

from .models import DetectionRecord, DetectionType, PackDefinition

logger = logging.getLogger(__name__)


def detection_set_lookup(
    detections: Mapping[str, DetectionRecord],
    definition: PackDefinition,
) -> Dict[str, DetectionRecord]:
    """
    Select the detections a pack definition refers to.

    Ids that are not in ``detections`` are logged and skipped, so a pack that
    references a detection missing from the release simply omits it.
    """
    items: Dict[str, DetectionRecord] = {}
    for detection_id in definition.ids:
        detection = detections.get(detection_id)
        if detection is None:
            logger.warning(f"Pack references detection that does not exist: {detection_id}")
            continue
        items[detection_id] = detection
    return items


def detection_type_counts(detections: Mapping[str, DetectionRecord]) -> Dict[DetectionType, int]:
    """Count detections per type."""
    return dict(Counter(detection.type for detection in detections.values()))
