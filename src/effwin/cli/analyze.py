"""
CLI command for effective window analysis of a capture file.
"""
import json
import logging
from typing import Optional

import click

from ..analysis.engine import EffectiveWindowEngine
from ..capture.dissector import TcpDissector
from ..config import DEFAULT_CSV_PATH, EffWinConfig
from ..exceptions import CaptureReadError
from ..logger_config import setup_logger
from ..models.packet import PassKind
from ..models.result import PacketSummary
from ..pcap_loader.pcap_reader import PcapFileSource

logger = logging.getLogger(__name__)


def _format_row(annotation, summary: PacketSummary) -> str:
    return (
        f"{annotation.packet_id:<5} {annotation.timestamp:<11.6f} {annotation.flow:<46} "
        f"{annotation.value:<11} {annotation.calc_type.value:<34} {annotation.cwnd_est:<10} {summary.info}"
    )


@click.command()
@click.argument("filepath", type=click.Path(exists=True, dir_okay=False))
@click.option("--limit", "limit", type=int, default=0, show_default=True,
              help="Max TCP packets to analyze (0 = no limit)")
@click.option("--format", "format", type=click.Choice(["table", "json", "jsonl"]),
              default="table", show_default=True, help="Output format")
@click.option("--output", "output", type=click.Path(dir_okay=False),
              help="Write JSON/JSONL output to file")
@click.option("--csv", "csv_path", type=click.Path(dir_okay=False),
              help=f"Enable CSV export to this path (e.g. {DEFAULT_CSV_PATH})")
@click.option("--every-n", "every_n", type=int, default=1, show_default=True,
              help="Throttle CSV writes (1 = every packet)")
@click.option("--no-cwnd-est", is_flag=True, help="Disable heuristic Cwnd estimation")
@click.option("--no-info", is_flag=True, help="Do not append [EffWin:x] to the summary")
@click.option("--no-streams", is_flag=True, help="Do not track TCP stream indices")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
              default="WARNING", show_default=True)
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also log to this file")
def analyze(filepath: str, limit: int, format: str, output: Optional[str], csv_path: Optional[str],
            every_n: int, no_cwnd_est: bool, no_info: bool, no_streams: bool,
            log_level: str, log_file: Optional[str]):
    """
    Estimate the TCP effective window of every segment in a capture.

    \b
    EffectiveWindow = max(0, min(Rwnd, Cwnd_est) - BytesInFlight)

    Examples:
      effwin analyze trace.pcapng --limit 20
      effwin analyze trace.pcap --csv /tmp/tcp_effwin.csv --every-n 10
    """
    setup_logger("effwin", log_file=log_file, level=getattr(logging, log_level))

    config = EffWinConfig(
        show_in_info=not no_info,
        enable_cwnd_est=not no_cwnd_est,
        enable_csv=csv_path is not None,
        csv_path=csv_path or DEFAULT_CSV_PATH,
        csv_every_n=every_n,
    )
    engine = EffectiveWindowEngine(config)
    dissector = TcpDissector(track_streams=not no_streams)

    engine.start_session()
    if config.enable_csv and not engine.sink.enabled:
        click.echo(f"Warning: CSV export disabled, cannot write {config.csv_path}", err=True)

    records = [] if format == "json" else None
    file_handle = None
    try:
        if format == "jsonl" and output:
            file_handle = open(output, "w", encoding="utf-8")

        if format == "table":
            click.echo(f"{'ID':<5} {'Time':<11} {'Flow':<46} {'EffWin':<11} {'Type':<34} {'Cwnd_est':<10} Info")
            click.echo("-" * 130)

        count = 0
        frames_read = 0
        with PcapFileSource(filepath) as source:
            for packet in source:
                observation = dissector.dissect(packet)
                if observation is None:
                    continue

                summary = PacketSummary()
                annotation = engine.process(observation, PassKind.PRIMARY, summary)
                count += 1
                if annotation is not None:
                    if format == "table":
                        click.echo(_format_row(annotation, summary))
                    elif format == "json":
                        records.append(annotation.to_dict())
                    else:
                        line = json.dumps(annotation.to_dict(), separators=(",", ":"), ensure_ascii=True)
                        if file_handle:
                            file_handle.write(line + "\n")
                        else:
                            click.echo(line)

                if limit > 0 and count >= limit:
                    break
            frames_read = source.packet_count

        if format == "json":
            payload = json.dumps(records, separators=(",", ":"), ensure_ascii=True)
            if output:
                with open(output, "w", encoding="utf-8") as f:
                    f.write(payload)
            else:
                click.echo(payload)
    except (CaptureReadError, OSError) as e:
        raise click.ClickException(str(e))
    finally:
        if file_handle:
            file_handle.close()
        stats = engine.stats
        engine.end_session()

    logger.info("Read %d frames, analyzed %d TCP packets, %d annotated, %d CSV rows",
                frames_read, stats['packets_processed'], stats['annotations'], stats['rows_exported'])
    if format == "table":
        click.echo("-" * 130)
        click.echo(f"Frames read: {frames_read}  "
                   f"TCP packets: {stats['packets_processed']}  "
                   f"Annotated: {stats['annotations']}  "
                   f"Skipped (non-TCP): {dissector.skipped}")
        if config.enable_csv:
            click.echo(f"CSV rows written: {stats['rows_exported']} -> {config.csv_path}")
