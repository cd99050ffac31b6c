"""
Greedy clustering of raw detections.

Detections are visited in the order the search produced them. Each one is
compared with the cluster representatives kept so far; the first
representative within merge_radius on both axes absorbs it, keeping
whichever of the two has the higher confidence. This is an axis-aligned
approximation, not overlap-based non-max suppression.
"""

from __future__ import annotations

from typing import Iterable, List

from models.detection import WINDOW_SIZE, Detection

DEFAULT_MERGE_RADIUS = WINDOW_SIZE * 0.75


def merge_detections(
    detections: Iterable[Detection],
    merge_radius: float = DEFAULT_MERGE_RADIUS,
) -> List[Detection]:
    """
    Keep the strongest detection per cluster.
    
    Args:
        detections: Raw detections in search order.
        merge_radius: Per-axis distance below which two detections merge.
    
    Returns:
        Cluster representatives in order of first appearance.
    """
    representatives: List[Detection] = []

    for det in detections:
        for i, rep in enumerate(representatives):
            if abs(det.x - rep.x) < merge_radius and abs(det.y - rep.y) < merge_radius:
                if det.confidence > rep.confidence:
                    representatives[i] = det
                break
        else:
            representatives.append(det)

    return representatives
