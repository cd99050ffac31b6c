"""
Face Detection - Detection Module

Viola-Jones style detection over Haar-like features: integral images,
feature evaluation, the stump cascade, multi-scale search and merging.
"""

from .base import Detector
from .integral import IntegralImageBuilder, IntegralImages, build_integral_images
from .haar import FeatureType, HaarFeature, region_sum
from .stumps import Stump, StumpBank, stump_from_record
from .cascade import CascadeEvaluator, CascadeResult, STAGE_CHECKPOINTS
from .search import MultiScaleSearch, SearchCancelled, SearchParams
from .merge import merge_detections, DEFAULT_MERGE_RADIUS
from .haar_detector import HaarCascadeDetector, find_faces

__all__ = [
    'Detector',
    'IntegralImageBuilder',
    'IntegralImages',
    'build_integral_images',
    'FeatureType',
    'HaarFeature',
    'region_sum',
    'Stump',
    'StumpBank',
    'stump_from_record',
    'CascadeEvaluator',
    'CascadeResult',
    'STAGE_CHECKPOINTS',
    'MultiScaleSearch',
    'SearchCancelled',
    'SearchParams',
    'merge_detections',
    'DEFAULT_MERGE_RADIUS',
    'HaarCascadeDetector',
    'find_faces',
]
