import datetime
import os
import shutil
import sys
import time
import traceback
from colorama import Fore, Style, init

init(autoreset=True)

LOG_DIR = os.environ.get(
    "DEPFETCH_LOG_DIR",
    os.path.join(os.path.expanduser("~"), ".depfetch", "logs"),
)


def _format_size(num_bytes):
    for unit, factor in (("GB", 1024 ** 3), ("MB", 1024 ** 2), ("KB", 1024)):
        if num_bytes >= factor:
            return f"{num_bytes / factor:.1f} {unit}"
    return f"{int(num_bytes)} B"


class Logger:
    """Console logger that mirrors every line into a per-run log file."""

    def __init__(self, log_dir=LOG_DIR):
        self.log_dir = log_dir
        self.log_file = os.path.join(
            log_dir,
            f"depfetch_{datetime.datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        )
        self.verbose = False

    def _write_file(self, line):
        # log file is optional, console output is authoritative
        try:
            os.makedirs(self.log_dir, exist_ok=True)
            with open(self.log_file, "a") as f:
                f.write(line)
        except OSError:
            pass

    def _log(self, level, message, color, stream=None, prefix="", show_timestamp=True):
        stream = stream or sys.stdout
        if show_timestamp:
            stamp = datetime.datetime.now().strftime("%H:%M:%S")
            print(f"{color}{Style.BRIGHT}[{stamp}]{Style.RESET_ALL} {color}{prefix}{message}{Style.RESET_ALL}", file=stream)
            self._write_file(f"[{stamp}] [{level}] {message}\n")
        else:
            print(f"{color}{prefix}{message}{Style.RESET_ALL}", file=stream)
            self._write_file(f"[{level}] {prefix}{message}\n")

    def info(self, message):
        self._log("INFO", message, Fore.CYAN)

    def step_info(self, message, indent=0):
        self._log("STEP", message, Fore.CYAN, prefix=" " * indent, show_timestamp=False)

    def success(self, message):
        self._log("SUCCESS", message, Fore.GREEN, prefix="✓ ")

    def warning(self, message):
        self._log("WARNING", message, Fore.YELLOW, stream=sys.stderr, prefix="⚠ ")

    def error(self, message):
        self._log("ERROR", message, Fore.RED, stream=sys.stderr, prefix="✖ ")

    def debug(self, message):
        if self.verbose:
            self._log("DEBUG", message, Fore.WHITE + Style.DIM)
        else:
            self._write_file(f"[DEBUG] {message}\n")

    def progress(self, chunks, description="Downloading", total=0, bar_length=30):
        """Yield ``chunks`` unchanged while drawing a byte progress bar."""
        if not total or not sys.stdout.isatty():
            yield from chunks
            return

        start = time.time()
        done = 0
        line = ""
        print(f"{description}...")
        for chunk in chunks:
            yield chunk
            done += len(chunk)
            elapsed = time.time() - start
            ratio = min(1.0, done / total)
            filled = int(bar_length * ratio)
            bar = Fore.GREEN + "━" * filled + Style.RESET_ALL + "━" * (bar_length - filled)
            speed = done / elapsed if elapsed > 0 else 0
            line = (
                f"{ratio * 100:3.0f}% | {bar} | "
                f"{_format_size(done)}/{_format_size(total)} • "
                f"{speed / (1024 * 1024):.1f} MB/s"
            )
            width = shutil.get_terminal_size().columns
            sys.stdout.write("\r" + line[:width])
            sys.stdout.flush()
        if line:
            sys.stdout.write("\n")
            sys.stdout.flush()

    def exception(self, exc_type, exc_value, exc_traceback):
        self.error(f"An unhandled exception occurred: {exc_value}")
        for block in traceback.format_exception(exc_type, exc_value, exc_traceback):
            for sub_line in block.splitlines():
                if sub_line.strip():
                    self._log("TRACEBACK", f">> {sub_line}", Fore.RED, stream=sys.stderr)


logger = Logger()


def get_latest_log_file(log_dir=LOG_DIR):
    """Return the path to the latest log file, or None."""
    if not os.path.isdir(log_dir):
        return None
    log_files = [os.path.join(log_dir, f) for f in os.listdir(log_dir) if f.endswith(".log")]
    if not log_files:
        return None
    return max(log_files, key=os.path.getmtime)
