"""Configuration management for SymbolRanges.

Loads environment variables and provides centralized config access.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

__version__ = "0.3.0"

FAIL_POLICIES = ("method", "unit")

DEFAULT_EXCLUDED_DIRS = (
    '.git', '.svn', '.hg', '.idea', '.gradle', '.mvn',
    'build', 'target', 'out', 'bin', 'dist',
    'node_modules', 'generated-sources',
)


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_path: str | Path | None = None):
        """Initialize config by loading .env file.

        Args:
            env_path: Explicit .env file; defaults to the project root's
        """
        if env_path is None:
            env_path = Path(__file__).parent.parent / ".env"
        load_dotenv(env_path)

        self._validate()

    def _validate(self):
        """Fail early on values the walker can't use.

        Raises:
            ValueError: If the offset or failure policy is invalid
        """
        # Properties raise on malformed values
        self.added_index_offset
        policy = self.fail_policy
        if policy not in FAIL_POLICIES:
            raise ValueError(
                f"SYMBOLRANGES_FAIL_POLICY must be one of {', '.join(FAIL_POLICIES)}, got {policy!r}"
            )

    @property
    def added_index_offset(self) -> int:
        """First index assigned to variables declared inside modified regions.

        Returns:
            Positive integer, 100 unless SYMBOLRANGES_ADDED_INDEX_OFFSET is set
        """
        raw = os.getenv("SYMBOLRANGES_ADDED_INDEX_OFFSET", "100")
        try:
            offset = int(raw)
        except ValueError:
            raise ValueError(f"SYMBOLRANGES_ADDED_INDEX_OFFSET must be an integer, got {raw!r}")
        if offset <= 0:
            raise ValueError(f"SYMBOLRANGES_ADDED_INDEX_OFFSET must be positive, got {offset}")
        return offset

    @property
    def fail_policy(self) -> str:
        """What an unresolved reference aborts.

        ``method`` (default) abandons only the failing method walk;
        ``unit`` stops processing the whole compilation unit.
        """
        return os.getenv("SYMBOLRANGES_FAIL_POLICY", "method").strip().lower()

    @property
    def output_path(self) -> str:
        """Default output file for ``scan``."""
        return os.getenv("SYMBOLRANGES_OUTPUT", "symbol_ranges.jsonl")

    @property
    def excluded_dirs(self) -> set[str]:
        """Directory names skipped while collecting source files."""
        raw = os.getenv("SYMBOLRANGES_EXCLUDED_DIRS")
        if raw is None:
            return set(DEFAULT_EXCLUDED_DIRS)
        return {part.strip() for part in raw.split(",") if part.strip()}


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config():
    """Drop the cached instance so the next get_config() re-reads the environment."""
    global _config
    _config = None
