"""
Per-packet effective window engine.

Owns every piece of per-flow state for one analysis session and runs the
pipeline for each observation:

    flow key -> window scale -> scaled Rwnd -> Cwnd estimate -> effective window

followed by the annotation and, when enabled, the CSV export.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from ..config import EffWinConfig
from ..exceptions import ReadOnlyFieldError
from ..export.csv_sink import CsvExportSink
from ..models.packet import PacketObservation, PassKind
from ..models.result import Annotation, PacketSummary
from . import effective_window
from .congestion import CongestionEstimator
from .window_scale import WindowScaleLearner, scale_window

logger = logging.getLogger(__name__)


class EffectiveWindowEngine:
    """
    Stateful effective window inference for a single capture session.

    Observations must arrive in capture order. Per-flow state is only
    mutated on the PRIMARY pass; a REPLAY pass serves the result computed
    earlier so late consumers (the exporter) still see it.

    The replay cache keeps one Annotation per annotated packet until the
    next reset, so memory grows with the size of the capture.
    """

    def __init__(self, config: Optional[EffWinConfig] = None,
                 sink: Optional[CsvExportSink] = None):
        self.config = config or EffWinConfig()
        self.scales = WindowScaleLearner()
        self.congestion = CongestionEstimator()
        if sink is None and self.config.enable_csv:
            sink = CsvExportSink(self.config.csv_path, self.config.csv_every_n)
        self.sink = sink
        self._results: Dict[int, Annotation] = {}
        self._packets_processed = 0

    # -- session lifecycle -------------------------------------------------

    def start_session(self) -> None:
        """Clear state from any previous capture and open the export."""
        self.reset()
        if self.sink is not None:
            self.sink.close()
            if self.config.enable_csv:
                self.sink.open()
        logger.debug("Session started (cwnd_est=%s, csv=%s)",
                     self.config.enable_cwnd_est, self.config.enable_csv)

    def reload(self) -> None:
        self.start_session()

    def end_session(self) -> None:
        logger.debug("Session ended: %s", self.stats)
        if self.sink is not None:
            self.sink.close()
        self.reset()

    def reset(self) -> None:
        self.scales.reset()
        self.congestion.reset()
        self._results.clear()
        self._packets_processed = 0

    # -- per packet --------------------------------------------------------

    def process(self, observation: PacketObservation,
                pass_kind: PassKind = PassKind.PRIMARY,
                summary: Optional[PacketSummary] = None) -> Optional[Annotation]:
        if pass_kind is PassKind.REPLAY:
            annotation = self._results.get(observation.packet_id)
            if annotation is None:
                annotation = self._compute(observation, mutate=False)
        else:
            self._packets_processed += 1
            annotation = self._compute(observation, mutate=True)
            if annotation is not None:
                self._results[observation.packet_id] = annotation
                if self.config.show_in_info and summary is not None:
                    self._append_info(summary, annotation)

        if annotation is not None and self.sink is not None and self.config.enable_csv:
            self.sink.record(observation.timestamp, annotation)

        return annotation

    def _compute(self, obs: PacketObservation, mutate: bool) -> Optional[Annotation]:
        key = obs.flow_key

        if mutate:
            scale = self.scales.learn_or_get(key, obs.is_syn, obs.scale_hint)
        else:
            scale = self.scales.get(key)
        rwnd = scale_window(obs.raw_window, scale)

        cwnd_est = None
        if self.config.enable_cwnd_est:
            if mutate:
                cwnd_est = self.congestion.update(key, obs.bytes_in_flight)
            else:
                cwnd_est = self.congestion.peek(key)
        if cwnd_est is None:
            cwnd_est = float(rwnd or 0)

        result = effective_window.compute(rwnd, cwnd_est, obs.bytes_in_flight)
        if result is None:
            return None
        return Annotation.from_result(obs.packet_id, obs.timestamp, str(key), result)

    @staticmethod
    def _append_info(summary: PacketSummary, annotation: Annotation) -> bool:
        try:
            summary.append(annotation.info_text)
        except ReadOnlyFieldError:
            return False
        return True

    # -- introspection -----------------------------------------------------

    @property
    def stats(self) -> Dict[str, int]:
        return {
            'packets_processed': self._packets_processed,
            'annotations': len(self._results),
            'flows_scaled': len(self.scales),
            'flows_estimated': len(self.congestion),
            'rows_exported': self.sink.rows_written if self.sink is not None else 0,
        }
