"""Creates the bracket tables from the SQL files shipped with the package."""

import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

# Parent tables first, indexes last
TABLE_FILES = (
    "tournaments.sql",
    "tournament_participants.sql",
    "tournament_matches.sql",
    "indexes.sql",
)


class SchemaManager:
    """Runs the table files in ``tables/`` in dependency order."""

    def __init__(self, tables_dir: Path | None = None):
        self.tables_dir = tables_dir or Path(__file__).parent / "tables"
        self.table_files = TABLE_FILES

    def missing_files(self) -> list[str]:
        return [name for name in self.table_files if not (self.tables_dir / name).exists()]

    def validate_schema_files(self) -> bool:
        """True when every table file is present."""
        missing = self.missing_files()
        if missing:
            logger.error(f"Missing schema files: {missing}")
            return False
        return True

    def statements(self, filename: str) -> Iterator[str]:
        """Split one table file into individual statements."""
        path = self.tables_dir / filename
        if not path.exists():
            raise FileNotFoundError(f"Schema file not found: {path}")

        for statement in path.read_text(encoding="utf-8").split(";"):
            if statement.strip():
                yield statement.strip()

    def initialize_database_schema(self, cursor: sqlite3.Cursor) -> None:
        """Create every table and index that does not exist yet."""
        for filename in self.table_files:
            try:
                for statement in self.statements(filename):
                    cursor.execute(statement)
            except sqlite3.Error as e:
                logger.error(f"Failed to apply {filename}: {e}")
                raise
            logger.debug(f"Applied schema file {filename}")
