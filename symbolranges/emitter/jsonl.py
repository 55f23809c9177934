"""JSON Lines fact sink."""
import json
from pathlib import Path
from typing import Dict, Iterator

from .facts import Diagnostic, Fact, FactEmitter


class JsonlFactWriter(FactEmitter):
    """Write each fact and diagnostic as one JSON object per line.

    Records carry a ``record`` key (``fact`` or ``diagnostic``) so a single
    file holds both streams in emission order.

    Args:
        output_path: File to write; parent directories are created
        append: Keep existing content instead of truncating
        keep_in_memory: Also collect records in memory
    """

    def __init__(self, output_path: str | Path, append: bool = False, keep_in_memory: bool = False):
        super().__init__(keep_in_memory=keep_in_memory)
        self.output_path = Path(output_path)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.output_path, 'a' if append else 'w', encoding='utf-8')

    def _write(self, record: Dict):
        self._file.write(json.dumps(record, ensure_ascii=False))
        self._file.write('\n')

    def _write_fact(self, fact: Fact):
        self._write({'record': 'fact', **fact.to_dict()})

    def _write_diagnostic(self, diagnostic: Diagnostic):
        self._write({'record': 'diagnostic', **diagnostic.to_dict()})

    def close(self):
        """Flush and close the output file."""
        if self._file and not self._file.closed:
            self._file.close()


def read_jsonl(input_path: str | Path) -> Iterator[Dict]:
    """Yield records from a file written by JsonlFactWriter.

    Blank and malformed lines are skipped.
    """
    with open(input_path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue
