"""
Tests for the heuristic Cwnd estimator and the effective window calculation.
Run with: python -m pytest tests/test_congestion.py
"""
import os
import sys

# Add src to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
src_path = os.path.join(project_root, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from effwin.analysis.congestion import CongestionEstimator
from effwin.analysis.effective_window import compute
from effwin.analysis.flow_key import derive_flow_key
from effwin.analysis.window_scale import UINT32_MAX
from effwin.models import CalcType

FLOW = derive_flow_key(3, "10.0.0.1", 443, "10.0.0.2", 52234)


def test_seed_from_bytes_in_flight():
    est = CongestionEstimator()
    assert est.update(FLOW, 2000) == 2000
    assert est.update(FLOW, 500) == 1625


def test_seed_zero_without_bytes_in_flight():
    est = CongestionEstimator()
    assert est.update(FLOW, None) == 0
    assert est.peek(FLOW) == 0
    assert est.update(FLOW, 1000) == 1000


def test_missing_value_leaves_estimate_unchanged():
    est = CongestionEstimator()
    est.update(FLOW, 2000)
    est.update(FLOW, 500)
    assert est.update(FLOW, None) == 1625
    assert est.peek(FLOW) == 1625


def test_growth_is_tracked_exactly():
    est = CongestionEstimator()
    for bif in (100, 250, 900, 4000, 12000):
        assert est.update(FLOW, bif) == bif


def test_decay_never_goes_negative():
    est = CongestionEstimator()
    est.update(FLOW, 10000)
    value = None
    for _ in range(100):
        value = est.update(FLOW, 0)
        assert value >= 0
    assert value < 1


def test_peek_does_not_create_state():
    est = CongestionEstimator()
    assert est.peek(FLOW) is None
    assert len(est) == 0


def test_reset_returns_first_observation_defaults():
    est = CongestionEstimator()
    est.update(FLOW, 2000)
    est.reset()
    assert est.peek(FLOW) is None
    assert est.update(FLOW, 500) == 500


def test_compute_full():
    result = compute(65535, 40000.0, 10000)
    assert result.value == 30000
    assert result.calc_type is CalcType.FULL
    assert result.calc_type.value == "min(Rwnd,Cwnd_est)-BytesInFlight"
    assert result.detail == "Rwnd=65535, Cwnd_est=40000, BytesInFlight=10000"


def test_compute_full_is_never_negative():
    result = compute(1000, 1625.0, 5000)
    assert result.value == 0


def test_compute_zero_estimate_is_a_real_estimate():
    result = compute(65535, 0.0, 100)
    assert result.value == 0
    assert result.calc_type is CalcType.FULL


def test_compute_rwnd_only():
    result = compute(8192, 0.0, None)
    assert result.value == 8192
    assert result.calc_type is CalcType.RWND_ONLY
    assert result.detail == "BytesInFlight unavailable"


def test_compute_bytes_in_flight_only():
    result = compute(None, 0.0, 300)
    assert result.value == 0
    assert result.calc_type is CalcType.BIF_ONLY
    assert result.detail == "BytesInFlight=300 (Rwnd unknown)"


def test_compute_nothing_known():
    assert compute(None, 0.0, None) is None


def test_compute_bounds():
    result = compute(UINT32_MAX, float(UINT32_MAX) * 4, 0)
    assert result.value == UINT32_MAX
