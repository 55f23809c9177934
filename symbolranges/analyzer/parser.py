"""Tree-sitter parser for Java compilation units."""
from pathlib import Path
from typing import Optional
from tree_sitter import Language, Parser, Tree
import tree_sitter_java as tsjava


class LanguageParser:
    """Java parser using the tree-sitter v0.22+ API."""

    SUPPORTED_LANGUAGES = {
        '.java': 'java',
    }

    def __init__(self, language: str = 'java'):
        """Initialize parser for given language.

        Args:
            language: Only 'java' is supported

        Raises:
            ValueError: If language is not supported
        """
        self.language = language
        self.parser = self._create_parser()

    def _create_parser(self) -> Parser:
        """Factory method using the Parser(Language(capsule)) API.

        Raises:
            ValueError: If language is not supported
        """
        if self.language == 'java':
            lang = Language(tsjava.language())
        else:
            raise ValueError(f"Unsupported language: {self.language}")

        return Parser(lang)

    def parse_source(self, source_code: bytes) -> Tree:
        """Parse in-memory source bytes."""
        return self.parser.parse(source_code)

    @classmethod
    def from_file_extension(cls, file_path: str | Path) -> Optional['LanguageParser']:
        """Create parser based on file extension, or None if unsupported."""
        extension = Path(file_path).suffix.lower()

        language = cls.SUPPORTED_LANGUAGES.get(extension)
        if language:
            return cls(language)
        return None
