"""Main application entry point for RecentAudio."""

import sys
import time
import argparse
import logging
from pathlib import Path

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn
from rich.table import Table

from . import __version__
from .audio.wav import read_wav, write_wav
from .config import RecentAudioConfig
from .services.buffer_service import BufferingService
from .storage.file_manager import FileManager
from .vad.processor import DEFAULT_MERGE_GAP_MS, DEFAULT_PADDING_MS, USE_PARALLEL_PIPELINE, VADProcessor
from .vad.segments import DEFAULT_SPEECH_THRESHOLD
from .vad.silero import SileroVadClassifier

logger = logging.getLogger(__name__)

console = Console()


def setup_logging(config: RecentAudioConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/recentaudio.log')
    console_output = config.get('logging.console_output', True)

    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - only warnings and above so progress output stays readable
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info(f"RecentAudio {__version__} starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_processor(config: RecentAudioConfig) -> VADProcessor:
    """Create the speech extraction pipeline described by the configuration."""
    classifier = SileroVadClassifier(config.get_model_path())
    return VADProcessor(
        classifier,
        speech_threshold=config.get('vad.speech_threshold', DEFAULT_SPEECH_THRESHOLD),
        max_workers=config.get('vad.max_workers'),
        file_manager=FileManager(config.get_data_directory()),
    )


def _progress_bar() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
    )


def cmd_record(args: argparse.Namespace, config: RecentAudioConfig) -> int:
    """Buffer microphone audio for a while, then save the recent speech."""
    processor = build_processor(config)
    service = BufferingService.from_config(config, processor, processor.file_manager)
    try:
        service.start_buffering()
        console.print(f"Buffering for {args.duration}s, press Ctrl+C to stop early...")
        try:
            time.sleep(args.duration)
        except KeyboardInterrupt:
            console.print("Stopping early")
        service.stop_buffering()

        with _progress_bar() as progress:
            task = progress.add_task("Extracting speech", total=1.0)
            path = service.save_recent_audio(
                speech_only=not args.all,
                on_progress=lambda value: progress.update(task, completed=value),
            )
        console.print(f"Saved [bold]{path}[/bold]")
        return 0
    finally:
        service.shutdown()
        processor.close()


def cmd_process(args: argparse.Namespace, config: RecentAudioConfig) -> int:
    """Extract the speech from a WAV file."""
    padding_ms = (args.padding_ms if args.padding_ms is not None
                  else config.get('vad.padding_ms', DEFAULT_PADDING_MS))
    merge_gap_ms = (args.merge_gap_ms if args.merge_gap_ms is not None
                    else config.get('vad.merge_gap_ms', DEFAULT_MERGE_GAP_MS))
    use_parallel = not args.sequential and config.get('vad.use_parallel', USE_PARALLEL_PIPELINE)

    pcm, audio_config = read_wav(args.input)
    processor = build_processor(config)
    try:
        with _progress_bar() as progress:
            task = progress.add_task(f"Processing {Path(args.input).name}", total=1.0)
            speech = processor.process(
                pcm, audio_config,
                padding_ms=padding_ms,
                merge_gap_ms=merge_gap_ms,
                use_parallel=use_parallel,
                on_progress=lambda value: progress.update(task, completed=value),
                debug_file_base_name=args.debug_name,
            )
    finally:
        processor.close()

    output = args.output or str(Path(args.input).with_name(Path(args.input).stem + "_speech.wav"))
    write_wav(output, speech, audio_config)
    kept = len(speech) / len(pcm) * 100 if pcm else 0.0
    console.print(f"Saved [bold]{output}[/bold]: {len(speech)} of {len(pcm)} bytes kept ({kept:.1f}%)")
    return 0


def cmd_benchmark(args: argparse.Namespace, config: RecentAudioConfig) -> int:
    """Time the pipeline on a WAV file."""
    pcm, audio_config = read_wav(args.input)
    processor = build_processor(config)
    try:
        result = processor.measure_processing_ms_for_buffer(pcm, audio_config, runs=args.runs,
                                                            warmup=args.warmup)
    finally:
        processor.close()

    audio_seconds = len(pcm) / audio_config.bytes_per_second
    table = Table(title=f"Benchmark: {Path(args.input).name}")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Audio length", f"{audio_seconds:.1f} s")
    table.add_row("Runs", str(args.runs))
    table.add_row("Average time", f"{result.avg_ms:.1f} ms")
    table.add_row("Real-time factor", f"{result.avg_ms / 1000 / audio_seconds:.3f}" if audio_seconds else "-")
    table.add_row("Average allocation", f"{result.avg_alloc_bytes / (1024 * 1024):.2f} MB")
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="RecentAudio - keep the last minutes of audio, save only the speech",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: recentaudio.yaml)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config, default: INFO)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"RecentAudio v{__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    record = subparsers.add_parser("record", help="Buffer from the microphone, then save the speech")
    record.add_argument("--duration", type=int, default=30,
                        help="Seconds to buffer before saving (default: 30)")
    record.add_argument("--all", action="store_true",
                        help="Save the whole buffer instead of only the speech")
    record.set_defaults(handler=cmd_record)

    process = subparsers.add_parser("process", help="Extract the speech from a WAV file")
    process.add_argument("input", help="Mono 8- or 16-bit PCM WAV file")
    process.add_argument("-o", "--output", help="Output WAV (default: <input>_speech.wav)")
    process.add_argument("--padding-ms", type=int,
                         help="Audio kept around each speech segment (default: vad.padding_ms)")
    process.add_argument("--merge-gap-ms", type=int,
                         help="Bridge silences up to this long (default: vad.merge_gap_ms)")
    process.add_argument("--sequential", action="store_true",
                         help="Classify on a single thread (overrides vad.use_parallel)")
    process.add_argument("--debug-name", help="Also dump intermediate WAVs with this base name")
    process.set_defaults(handler=cmd_process)

    benchmark = subparsers.add_parser("benchmark", help="Time the pipeline on a WAV file")
    benchmark.add_argument("input", help="Mono 8- or 16-bit PCM WAV file")
    benchmark.add_argument("--runs", type=int, default=3)
    benchmark.add_argument("--warmup", type=int, default=1)
    benchmark.set_defaults(handler=cmd_benchmark)

    return parser


def main() -> None:
    """Main entry point for RecentAudio application."""
    args = build_parser().parse_args()

    try:
        config = RecentAudioConfig(args.config)
        setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))
        sys.exit(args.handler(args, config))
    except KeyboardInterrupt:
        console.print("\nGoodbye!")
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
