"""Rich Console that degrades to ASCII on terminals without UTF-8."""
from typing import Any, Iterable

from rich.console import Console

from symbolranges.emitter.facts import Diagnostic
from .logger import format_diagnostic, is_utf8_capable, sanitize_for_terminal


class SafeConsole(Console):
    """Console wrapper that sanitizes Unicode output.

    Inherits from Rich's Console and overrides print() to replace Unicode
    symbols with ASCII equivalents on non-UTF-8 terminals.
    """

    def __init__(self, *args, **kwargs):
        self._needs_sanitization = not is_utf8_capable()

        if self._needs_sanitization:
            kwargs['legacy_windows'] = True

        super().__init__(*args, **kwargs)

    def print(self, *objects: Any, **kwargs) -> None:
        """Print with automatic Unicode sanitization (same arguments as Console.print)."""
        if self._needs_sanitization:
            objects = tuple(sanitize_for_terminal(obj) if isinstance(obj, str) else obj for obj in objects)
        super().print(*objects, **kwargs)

    def print_diagnostics(self, diagnostics: Iterable[Diagnostic], min_severity: str = 'info',
                          show_path: bool = True) -> int:
        """Print diagnostics at or above ``min_severity``.

        Returns:
            Number of diagnostics printed
        """
        ranks = {'info': 0, 'warning': 1, 'failure': 2}
        threshold = ranks.get(min_severity, 0)
        printed = 0
        for diagnostic in diagnostics:
            if ranks.get(diagnostic.severity, 0) >= threshold:
                self.print(format_diagnostic(diagnostic, show_path=show_path))
                printed += 1
        return printed
