"""SQLite fact store.

Facts go into a ``facts`` table (attributes serialized as JSON), diagnostics
into ``diagnostics``. One database can hold many scans; ``clear()`` empties
it.
"""
import json
import sqlite3
from pathlib import Path
from typing import Dict, List, Optional

from .facts import Diagnostic, Fact, FactEmitter


class SqliteFactStore(FactEmitter):
    """Fact sink backed by a SQLite database."""

    def __init__(self, db_path: str | Path, keep_in_memory: bool = False):
        """Open (and create if needed) the fact database.

        Args:
            db_path: Database file
            keep_in_memory: Also collect records in memory
        """
        super().__init__(keep_in_memory=keep_in_memory)
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path))
        self._init_database()

    def _init_database(self):
        """Create tables if they don't exist."""
        cursor = self.conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS facts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                kind TEXT NOT NULL,
                source_path TEXT NOT NULL,
                start_byte INTEGER NOT NULL,
                end_byte INTEGER NOT NULL,
                line INTEGER NOT NULL,
                text TEXT NOT NULL,
                attributes TEXT NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS diagnostics (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                severity TEXT NOT NULL,
                message TEXT NOT NULL,
                source_path TEXT NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_facts_path_kind
            ON facts(source_path, kind)
        ''')

        self.conn.commit()

    def _write_fact(self, fact: Fact):
        self.conn.execute('''
            INSERT INTO facts (kind, source_path, start_byte, end_byte, line, text, attributes)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        ''', (fact.kind, fact.source_path, fact.start, fact.end, fact.line, fact.text,
              json.dumps(fact.attributes)))

    def _write_diagnostic(self, diagnostic: Diagnostic):
        self.conn.execute('''
            INSERT INTO diagnostics (severity, message, source_path)
            VALUES (?, ?, ?)
        ''', (diagnostic.severity, diagnostic.message, diagnostic.source_path))

    def begin_unit(self, source_path: str):
        # One transaction per unit
        self.conn.commit()
        super().begin_unit(source_path)

    def query_facts(self, source_path: Optional[str] = None, kind: Optional[str] = None) -> List[Fact]:
        """Stored facts, optionally filtered by file and kind, in insertion order."""
        clauses, params = [], []
        if source_path is not None:
            clauses.append('source_path = ?')
            params.append(str(source_path))
        if kind is not None:
            clauses.append('kind = ?')
            params.append(kind)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ''

        cursor = self.conn.cursor()
        cursor.execute(f'''
            SELECT kind, source_path, start_byte, end_byte, line, text, attributes
            FROM facts {where} ORDER BY id
        ''', params)

        facts = []
        for kind_, path, start, end, line, text, attributes in cursor.fetchall():
            try:
                decoded = json.loads(attributes)
            except json.JSONDecodeError:
                decoded = {}
            facts.append(Fact(kind_, path, start, end, line, text, decoded))
        return facts

    def stats(self) -> Dict[str, int]:
        """Fact counts per kind plus totals."""
        cursor = self.conn.cursor()
        cursor.execute('SELECT kind, COUNT(*) FROM facts GROUP BY kind ORDER BY kind')
        stats = {kind: count for kind, count in cursor.fetchall()}

        cursor.execute('SELECT COUNT(DISTINCT source_path) FROM facts')
        stats['files'] = cursor.fetchone()[0]
        cursor.execute('SELECT COUNT(*) FROM facts')
        stats['total_facts'] = cursor.fetchone()[0]
        cursor.execute("SELECT COUNT(*) FROM diagnostics WHERE severity = 'warning'")
        stats['warnings'] = cursor.fetchone()[0]
        cursor.execute("SELECT COUNT(*) FROM diagnostics WHERE severity = 'failure'")
        stats['failures'] = cursor.fetchone()[0]
        return stats

    def clear(self):
        """Delete all stored facts and diagnostics."""
        cursor = self.conn.cursor()
        cursor.execute('DELETE FROM facts')
        cursor.execute('DELETE FROM diagnostics')
        self.conn.commit()

    def close(self):
        """Commit and close database connection."""
        if self.conn:
            self.conn.commit()
            self.conn.close()
            self.conn = None
