"""Terminal-safe text for diagnostics and summaries.

Detects whether the terminal can print UTF-8 and provides ASCII stand-ins
for the few symbols the CLI uses, so output never crashes a legacy
Windows console.
"""
import locale
import sys

from rich.markup import escape

from symbolranges.emitter.facts import FAILURE, INFO, WARNING, Diagnostic

# Unicode to ASCII mapping for non-UTF-8 terminals
ICON_MAP = {
    '✓': '[OK]',
    '✗': '[FAIL]',
    '⚠': '[WARN]',
    '→': '->',
    '←': '<-',
    '…': '...',
    '•': '*',
    '│': '|',
    '─': '-',
}

# Rich markup and leading icon per diagnostic severity
SEVERITY_STYLES = {
    INFO: ('dim', '•'),
    WARNING: ('yellow', '⚠'),
    FAILURE: ('bold red', '✗'),
}


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding.

    Returns:
        str: Encoding name in lower case, 'ascii' if nothing is known
    """
    if hasattr(sys.stdout, 'encoding') and sys.stdout.encoding:
        return sys.stdout.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (ValueError, LookupError):
        return 'ascii'


def is_utf8_capable() -> bool:
    """Check if the terminal can handle UTF-8 characters."""
    return detect_terminal_encoding().replace('-', '').replace('_', '') == 'utf8'


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode symbols with ASCII equivalents on non-UTF-8 terminals.

    Args:
        text: Text potentially containing Unicode symbols

    Returns:
        str: Text safe for the current terminal
    """
    if is_utf8_capable():
        return text

    sanitized = text
    for unicode_char, ascii_replacement in ICON_MAP.items():
        sanitized = sanitized.replace(unicode_char, ascii_replacement)
    return sanitized


def format_diagnostic(diagnostic: Diagnostic, show_path: bool = True) -> str:
    """Render a diagnostic as one line of rich markup.

    Square brackets in the message are escaped so walker output such as
    ``Node(reference, ...)`` isn't read as markup.
    """
    style, icon = SEVERITY_STYLES.get(diagnostic.severity, ('', '•'))
    location = f"{escape(diagnostic.source_path)}: " if show_path and diagnostic.source_path else ''
    line = f"{icon} {location}{escape(diagnostic.message)}"
    return f"[{style}]{line}[/{style}]" if style else line
