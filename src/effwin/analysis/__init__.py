"""
Effective window inference.
"""

from .flow_key import derive_flow_key
from .window_scale import WindowScaleLearner, scale_window, scale_window_iterative
from .congestion import CongestionEstimator
from .effective_window import compute
from .engine import EffectiveWindowEngine

__all__ = [
    'derive_flow_key',
    'WindowScaleLearner',
    'scale_window',
    'scale_window_iterative',
    'CongestionEstimator',
    'compute',
    'EffectiveWindowEngine',
]
