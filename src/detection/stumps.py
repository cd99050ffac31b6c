"""
Weak classifiers (decision stumps) and the immutable bank that holds them.

Training exports use the following JSON record layout:

    {
        "feature": {"Type": 2, "Width": 6, "Height": 4, "PosX": 3, "PosY": 8},
        "threshold": -0.41,
        "error": 0.21,
        "polarity": 1,
        "amountOfSay": 0.66
    }

The descriptive spelling ("shape", "width", "height", "offsetX", "offsetY",
"weight") is accepted as well.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Sequence, Tuple

import numpy as np

from .haar import FeatureType, HaarFeature

_FEATURE_KEYS = {
    "shape": ("Type", "shape", "type"),
    "width": ("Width", "width"),
    "height": ("Height", "height"),
    "offset_x": ("PosX", "offsetX", "offset_x", "posX"),
    "offset_y": ("PosY", "offsetY", "offset_y", "posY"),
}

_STUMP_KEYS = {
    "threshold": ("threshold",),
    "polarity": ("polarity",),
    "weight": ("amountOfSay", "weight", "amount_of_say"),
}


@dataclass(frozen=True)
class Stump:
    """
    A depth-1 weak classifier.
    
    Attributes:
        feature: Haar feature this stump thresholds.
        threshold: Decision threshold at scale 1.
        polarity: +1 or -1, selects which side of the threshold votes +1.
        weight: Trained "amount of say" added to the cascade score.
        error: Training error. Not used for inference.
    """
    feature: HaarFeature
    threshold: float
    polarity: int
    weight: float
    error: float = 0.0

    def scaled_threshold(self, scale_factor: float) -> float:
        # Responses are area sums, so the threshold grows with the square of the scale.
        return self.threshold * scale_factor * scale_factor

    def vote(self, response: float, scale_factor: float) -> int:
        """Return +1 if the response falls on the face side of the threshold, else -1."""
        if self.polarity * response <= self.polarity * self.scaled_threshold(scale_factor):
            return 1
        return -1

    def votes(self, responses: np.ndarray, scale_factor: float) -> np.ndarray:
        """Element-wise vote() over an array of responses."""
        threshold = self.polarity * self.scaled_threshold(scale_factor)
        return np.where(self.polarity * responses <= threshold, 1, -1)


def _pick(record: Mapping[str, Any], keys: Tuple[str, ...], name: str) -> Any:
    for key in keys:
        if key in record:
            return record[key]
    raise ValueError(f"Stump record is missing '{name}' (expected one of {', '.join(keys)})")


def stump_from_record(record: Mapping[str, Any]) -> Stump:
    """
    Build a Stump from one training record.
    
    Raises:
        ValueError: If a required key is missing, the shape is unknown or the
            feature has a non-positive size.
    """
    feature_rec = record.get("feature")
    if not isinstance(feature_rec, Mapping):
        raise ValueError("Stump record is missing 'feature'")

    fields = {name: _pick(feature_rec, keys, name) for name, keys in _FEATURE_KEYS.items()}
    feature = HaarFeature(
        shape=FeatureType.parse(fields["shape"]),
        width=int(fields["width"]),
        height=int(fields["height"]),
        offset_x=int(fields["offset_x"]),
        offset_y=int(fields["offset_y"]),
    )
    if feature.width <= 0 or feature.height <= 0:
        raise ValueError(f"Feature size must be positive, got {feature.width}x{feature.height}")

    polarity = int(_pick(record, _STUMP_KEYS["polarity"], "polarity"))
    if polarity not in (1, -1):
        raise ValueError(f"Stump polarity must be 1 or -1, got {polarity}")

    return Stump(
        feature=feature,
        threshold=float(_pick(record, _STUMP_KEYS["threshold"], "threshold")),
        polarity=polarity,
        weight=float(_pick(record, _STUMP_KEYS["weight"], "weight")),
        error=float(record.get("error", 0.0)),
    )


class StumpBank(Sequence[Stump]):
    """
    Ordered, read-only collection of stumps in training order.

    A bank is never mutated after construction; reloading training data
    means building a new bank and swapping it in.
    """

    def __init__(self, stumps: Iterable[Stump] = ()):
        self._stumps: Tuple[Stump, ...] = tuple(stumps)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "StumpBank":
        """Build a bank from parsed training records."""
        return cls(stump_from_record(r) for r in records)

    @classmethod
    def from_json(cls, text: str) -> "StumpBank":
        data = json.loads(text)
        if isinstance(data, dict):
            data = data.get("stumps", [])
        return cls.from_records(data)

    @classmethod
    def load(cls, path: str) -> "StumpBank":
        """
        Load a bank from a JSON file.

        A missing file yields an empty bank; the detector then reports no
        faces rather than failing.
        """
        if not path or not os.path.exists(path):
            logging.warning(f"No training data found at {path!r}; detection will report no faces")
            return cls()
        with open(path, "r") as f:
            bank = cls.from_json(f.read())
        logging.info(f"Loaded {len(bank)} stumps from {path}")
        return bank

    def __getitem__(self, index):
        if isinstance(index, slice):
            return StumpBank(self._stumps[index])
        return self._stumps[index]

    def __len__(self) -> int:
        return len(self._stumps)

    def __iter__(self) -> Iterator[Stump]:
        return iter(self._stumps)

    def __repr__(self) -> str:
        return f"StumpBank({len(self._stumps)} stumps)"

    def to_records(self) -> List[Dict[str, Any]]:
        """Serialize back to the training export layout."""
        return [
            {
                "feature": {
                    "Type": int(s.feature.shape),
                    "Width": s.feature.width,
                    "Height": s.feature.height,
                    "PosX": s.feature.offset_x,
                    "PosY": s.feature.offset_y,
                },
                "threshold": s.threshold,
                "error": s.error,
                "polarity": s.polarity,
                "amountOfSay": s.weight,
            }
            for s in self._stumps
        ]
