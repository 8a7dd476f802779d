"""Registry of package source parsers."""

from pathlib import Path
from typing import Dict, List, Optional

from .base import BaseParser, ParsedPackages


class ParserRegistry:
    """Registry mapping parser types to parser instances."""

    def __init__(self) -> None:
        """Initialize the parser registry."""
        self._parsers: Dict[str, BaseParser] = {}

    def register(self, parser_type: str, parser: BaseParser) -> None:
        """Register a parser.

        Args:
            parser_type: Parser type (e.g., 'yarn', 'pnpm')
            parser: Parser instance to register
        """
        self._parsers[parser_type] = parser

    def get_parser(self, parser_type: str) -> Optional[BaseParser]:
        """Get the parser registered for a type.

        Args:
            parser_type: Parser type

        Returns:
            Parser instance or None if not found
        """
        return self._parsers.get(parser_type)

    def find_parser_for_file(self, file_path: Path) -> Optional[BaseParser]:
        """Find a parser that can handle the given file.

        Args:
            file_path: Path to the file

        Returns:
            Parser that can handle the file or None
        """
        for parser in self._parsers.values():
            if parser.can_parse(file_path):
                return parser
        return None

    def get_supported_parser_types(self) -> List[str]:
        return list(self._parsers)

    def parse_text(
        self,
        parser_type: str,
        raw_text: str,
        location_prefix: str,
        source_file: Optional[Path] = None
    ) -> ParsedPackages:
        """Parse raw text with the parser registered for a type.

        Args:
            parser_type: Parser type
            raw_text: File contents
            location_prefix: Location identifier prefix
            source_file: File the text was read from, recorded on the result

        Returns:
            Parsed packages

        Raises:
            KeyError: If no parser is registered for the type
        """
        parser = self._parsers.get(parser_type)
        if parser is None:
            raise KeyError(f"No parser registered for type: {parser_type}")
        parsed = parser.parse(raw_text, location_prefix)
        parsed.source_file = source_file
        return parsed
