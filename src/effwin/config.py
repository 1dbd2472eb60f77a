"""
Resolved settings consumed by the engine and exporter.
"""
from dataclasses import dataclass

DEFAULT_CSV_PATH = "/tmp/tcp_effwin.csv"


@dataclass
class EffWinConfig:
    """Settings for one analysis session."""
    show_in_info: bool = True
    """Append [EffWin:x] to the packet summary on the primary pass"""

    enable_cwnd_est: bool = True
    """Estimate the congestion window from bytes in flight"""

    enable_csv: bool = False
    """Write per-packet values to csv_path"""

    csv_path: str = DEFAULT_CSV_PATH

    csv_every_n: int = 1
    """Throttle CSV writes (1 = every packet)"""

    def __post_init__(self):
        # A throttle below 1 means "every packet".
        if self.csv_every_n is None or self.csv_every_n < 1:
            self.csv_every_n = 1
