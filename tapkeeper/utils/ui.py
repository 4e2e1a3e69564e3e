"""Terminal output helpers for tapkeeper."""

import sys
import time
import threading
import re
import signal
import atexit

ANSI_RE = re.compile(r'\x1b\[[0-9;]*m')


# Terminal colors for better output
class Colors:
    BOLD = "\033[1m"
    RESET = "\033[0m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    ORANGE = "\033[38;5;208m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    DIM = "\033[2m"


def visible_length(text) -> int:
    """Length of a string as displayed, ignoring ANSI color codes."""
    return len(ANSI_RE.sub('', str(text)))


class ProgressIndicator:
    """Simple progress indicator with spinner or progress bar with thread safety"""

    # Class-level registry to track active progress indicators for cleanup
    _active_indicators = set()
    _registry_lock = threading.Lock()

    def __init__(self, message, total=None):
        self.message = message
        self.total = total
        self.current = 0
        self.spinner_chars = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
        self.spinner_index = 0
        self.running = False
        self.thread = None
        self._lock = threading.Lock()
        self._cursor_hidden = False

        self._setup_signal_handlers()

    def _setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown"""
        with ProgressIndicator._registry_lock:
            ProgressIndicator._active_indicators.add(self)

        # Setup signal handlers (only once)
        if not hasattr(ProgressIndicator, '_handlers_setup'):
            def cleanup_all_indicators(signum=None, frame=None):
                """Cleanup all active progress indicators"""
                with ProgressIndicator._registry_lock:
                    indicators_to_cleanup = list(ProgressIndicator._active_indicators)

                for indicator in indicators_to_cleanup:
                    indicator._emergency_cleanup()

                if signum is not None:
                    raise SystemExit(128 + signum)

            try:
                signal.signal(signal.SIGINT, cleanup_all_indicators)
                signal.signal(signal.SIGTERM, cleanup_all_indicators)
                atexit.register(cleanup_all_indicators)
                ProgressIndicator._handlers_setup = True
            except (ValueError, OSError):
                # Signal handling is only available in the main thread
                pass

    def _emergency_cleanup(self):
        """Emergency cleanup of progress indicator"""
        try:
            with self._lock:
                self.running = False
                if self._cursor_hidden:
                    sys.stdout.write("\033[?25h")  # Restore cursor
                    sys.stdout.flush()
                    self._cursor_hidden = False
        except (OSError, ValueError):
            pass

    def start(self):
        """Start the progress indicator"""
        with self._lock:
            if self.running:
                return
            self.running = True
            try:
                sys.stdout.write("\033[?25l")
                sys.stdout.flush()
                self._cursor_hidden = True
            except (OSError, IOError):
                # stdout isn't a terminal
                pass

        self.thread = threading.Thread(target=self._animate)
        self.thread.daemon = True
        self.thread.start()

    def update(self, current=None, message=None):
        """Update progress (thread-safe)"""
        with self._lock:
            if current is not None:
                self.current = current
            if message is not None:
                self.message = message

    def stop(self, final_message=None):
        """Stop the progress indicator (thread-safe)"""
        with self._lock:
            if not self.running:
                return
            self.running = False

        if self.thread:
            self.thread.join()

        with self._lock:
            try:
                sys.stdout.write("\033[2K\033[0G")  # Clear line and move to beginning
                sys.stdout.write(f"{Colors.GREEN}[OK]{Colors.RESET} {final_message or self.message}\n")
                sys.stdout.flush()
                if self._cursor_hidden:
                    sys.stdout.write("\033[?25h")
                    self._cursor_hidden = False
                    sys.stdout.flush()
            except (OSError, IOError):
                pass

        with ProgressIndicator._registry_lock:
            ProgressIndicator._active_indicators.discard(self)

    def _animate(self):
        """Animation loop (thread-safe)"""
        while True:
            with self._lock:
                if not self.running:
                    break
                current_message = self.message
                current_total = self.total
                current_current = self.current

            if current_total:
                # Progress bar mode
                percentage = (current_current / current_total) * 100
                bar_length = 20
                filled_length = min(bar_length, int(bar_length * current_current // current_total))
                bar = "█" * filled_length + "░" * (bar_length - filled_length)
                output = f"[{bar}] {percentage:.0f}% {current_message}"
            else:
                spinner = self.spinner_chars[self.spinner_index % len(self.spinner_chars)]
                output = f"{Colors.CYAN}{spinner}{Colors.RESET} {current_message}"
                self.spinner_index += 1

            try:
                sys.stdout.write(f"\033[2K\033[0G{output}")
                sys.stdout.flush()
            except (OSError, IOError):
                break

            time.sleep(0.2)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.stop(f"Error: {str(exc_val)}")
        else:
            self.stop()
        return False


class PerformanceTimer:
    """Timing utility for reporting how long a command took."""

    def __init__(self, description: str, show_logs: bool = True):
        """Initialize the timer.

        Args:
            description: Description of what is being timed
            show_logs: Whether to print timing logs
        """
        self.description = description
        self.show_logs = show_logs
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.time()
        if self.show_logs:
            print(f"{Colors.DIM}[..] Starting: {self.description}{Colors.RESET}", file=sys.stderr)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.time()
        duration = self.end_time - self.start_time

        if self.show_logs:
            print(f"{Colors.DIM}[OK] Completed: {self.description} ({duration:.2f}s){Colors.RESET}",
                  file=sys.stderr)

    def get_duration(self) -> float:
        """Get the measured duration in seconds.

        Returns:
            Duration in seconds, or None if timing not started
        """
        if self.start_time is None:
            return None
        end = self.end_time if self.end_time is not None else time.time()
        return end - self.start_time


class StatusIcons:
    """Status icons for consistent visual feedback across the application"""
    SUCCESS = "✓"
    FAILED = "✗"
    WARNING = "⚠"
    INFO = "ℹ"
    ARROW = "→"
    BULLET = "•"


class SectionDivider:
    """Format section headers and dividers for consistent UI"""

    @staticmethod
    def format_header(title, width=60, color=None):
        """Format a main section header

        Args:
            title: The title text
            width: Total width of the header line
            color: Optional color code from Colors class

        Returns:
            Formatted header string
        """
        return f"\n{color or Colors.BOLD}{title}{Colors.RESET}\n{'─' * width}"


class BoxChars:
    """Unicode box drawing characters for tables"""
    # Heavy borders (for header)
    TOP_LEFT = '┏'
    TOP_RIGHT = '┓'
    TOP_SEP = '┳'
    HEAVY_HORIZONTAL = '━'
    HEAVY_VERTICAL = '┃'

    # Mixed borders (header/content separator)
    HEADER_LEFT = '┡'
    HEADER_RIGHT = '┩'
    HEADER_SEP = '╇'

    # Light borders (for content)
    BOTTOM_LEFT = '└'
    BOTTOM_RIGHT = '┘'
    BOTTOM_SEP = '┴'
    HORIZONTAL = '─'
    VERTICAL = '│'


class AsciiBoxChars:
    """ASCII fallback with the same attribute names as BoxChars"""
    TOP_LEFT = TOP_RIGHT = TOP_SEP = '+'
    HEADER_LEFT = HEADER_RIGHT = HEADER_SEP = '+'
    BOTTOM_LEFT = BOTTOM_RIGHT = BOTTOM_SEP = '+'
    HEAVY_HORIZONTAL = HORIZONTAL = '-'
    HEAVY_VERTICAL = VERTICAL = '|'


class TableFormatter:
    """Format data as a nicely bordered table"""

    def __init__(self, use_unicode=True):
        """Initialize table formatter

        Args:
            use_unicode: Whether to use Unicode box drawing characters
        """
        self.box = BoxChars() if use_unicode else AsciiBoxChars()
        self.use_unicode = use_unicode

    def format_table(self, headers, rows):
        """Format data as a bordered table

        Args:
            headers: List of column headers
            rows: List of row tuples/lists

        Returns:
            Formatted table string
        """
        if not headers or not rows:
            return ""

        box = self.box

        # Calculate column widths
        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row):
                if i < len(widths):
                    widths[i] = max(widths[i], visible_length(cell))

        # Add padding
        widths = [w + 2 for w in widths]

        def _cells(values):
            cells = []
            for i, value in enumerate(values):
                if i >= len(widths):
                    break
                text = str(value)
                padding = widths[i] - 2 - visible_length(text)
                cells.append(f" {text}{' ' * padding} ")
            return cells

        lines = []
        heavy = [box.HEAVY_HORIZONTAL * w for w in widths]
        light = [box.HORIZONTAL * w for w in widths]

        lines.append(box.TOP_LEFT + box.TOP_SEP.join(heavy) + box.TOP_RIGHT)
        lines.append(box.HEAVY_VERTICAL + box.HEAVY_VERTICAL.join(_cells(headers)) + box.HEAVY_VERTICAL)
        lines.append(box.HEADER_LEFT + box.HEADER_SEP.join(heavy) + box.HEADER_RIGHT)
        for row in rows:
            lines.append(box.VERTICAL + box.VERTICAL.join(_cells(row)) + box.VERTICAL)
        lines.append(box.BOTTOM_LEFT + box.BOTTOM_SEP.join(light) + box.BOTTOM_RIGHT)

        return '\n'.join(lines)
