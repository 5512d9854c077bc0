"""Main application entry point for cornerspeech."""

import sys
import time
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, BarColumn, TextColumn

from cornerspeech import __version__
from cornerspeech.config import CornerSpeechConfig
from cornerspeech.errors import CornerSpeechError
from cornerspeech.models.events import TranscriptFragment
from cornerspeech.services.speech_service import SpeechService
from cornerspeech.transcription.aggregator import TranscriptAggregator

logger = logging.getLogger(__name__)

console = Console()


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = CornerSpeechConfig(config_path)
        # Command line overrides config
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.service = SpeechService(self.config)
        self.should_exit = False

    def record(self, duration: Optional[int]) -> None:
        if not self.service.check_model():
            console.print("Whisper model is missing. Run `cornerspeech download` first.", style="red")
            return

        aggregator = TranscriptAggregator(
            self.service.transcript_publisher.topic,
            on_fragment=self._print_fragment,
        )
        try:
            self.service.start_recording()
            console.print("🎙️  Recording... press Ctrl+C to stop", style="green")
            if duration:
                time.sleep(duration)
            else:
                while not self.should_exit:
                    time.sleep(1)
        except KeyboardInterrupt:
            pass
        finally:
            if self.service.is_recording:
                self.service.stop_recording()
            aggregator.wait_for_final(timeout=5.0)
            console.rule("Full transcription")
            console.print(aggregator.get_full_transcription() or "(no speech)")
            aggregator.shutdown()

    @staticmethod
    def _print_fragment(fragment: TranscriptFragment) -> None:
        if not fragment.is_final:
            console.print(fragment.text)

    def download(self) -> None:
        with Progress(TextColumn("Downloading model"), BarColumn(),
                      TextColumn("{task.percentage:>5.1f}%"), console=console) as progress:
            task = progress.add_task("download", total=100.0)
            path = asyncio.run(self.service.download_model(
                lambda pct: progress.update(task, completed=pct)))
        console.print(f"✅ Model ready at {path}", style="green")

    def check(self) -> bool:
        valid = self.service.check_model()
        if valid:
            console.print(f"✅ Model OK: {self.service.model_store.model_path()}", style="green")
        else:
            console.print("❌ Model missing or invalid", style="red")
        return valid

    def size(self) -> None:
        size = self.service.get_model_size()
        console.print(f"{size} bytes ({size / (1024 * 1024):.2f} MB)")

    def delete(self) -> None:
        self.service.delete_model()
        console.print("Model deleted")

    def cleanup(self):
        self.service.shutdown()


FILE_LOG_FORMAT = '%(asctime)s %(levelname)-7s %(name)s:%(lineno)d %(message)s'


def setup_logging(config, level: str = "INFO") -> None:
    """Route log records to the configured file and, for warnings, to the console."""
    log_file_path = config.get('logging.file_path')

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))

    if log_file_path:
        Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        root_logger.addHandler(file_handler)

    # Transcript lines go to stdout via rich; only problems reach stderr
    if config.get('logging.console_output', True):
        console_handler = RichHandler(console=Console(stderr=True), show_path=False)
        console_handler.setLevel(logging.WARNING)
        root_logger.addHandler(console_handler)

    logger.info(f"cornerspeech {__version__} starting (level={level}, log file={log_file_path})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="cornerspeech - local streaming speech-to-text",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"cornerspeech v{__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    record = subparsers.add_parser("record", help="Record from the microphone and print the transcript")
    record.add_argument(
        "--duration",
        type=int,
        help="Stop after this many seconds (default: until Ctrl+C)"
    )

    subparsers.add_parser("download", help="Download and verify the Whisper model")
    subparsers.add_parser("check", help="Verify the model file, removing it if corrupt")
    subparsers.add_parser("size", help="Print the model file size")
    subparsers.add_parser("delete", help="Delete the model file")
    return parser


def main() -> None:
    """Main entry point for cornerspeech."""
    args = build_parser().parse_args()

    server = Server(args.config, args.log_level)
    exit_code = 0
    try:
        if args.command == "record":
            server.record(args.duration)
        elif args.command == "download":
            server.download()
        elif args.command == "check":
            exit_code = 0 if server.check() else 1
        elif args.command == "size":
            server.size()
        elif args.command == "delete":
            server.delete()
    except KeyboardInterrupt:
        console.print("\n👋 Goodbye!")
    except CornerSpeechError as e:
        console.print(f"❌ Error: {e}", style="red")
        logger.error(f"Application error: {e}")
        exit_code = 1
    finally:
        server.cleanup()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
