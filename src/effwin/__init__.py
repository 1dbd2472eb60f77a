"""
effwin - TCP effective window estimation for packet captures.

    EffectiveWindow = max(0, min(Rwnd, Cwnd_est) - BytesInFlight)
"""

__version__ = "0.1.0"
