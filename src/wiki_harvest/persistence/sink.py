# ABOUTME: JSON file sink persisting harvested agent records
# ABOUTME: Serializes through a pydantic TypeAdapter so the file round-trips into AgentRecord

from pathlib import Path

from pydantic import TypeAdapter

from wiki_harvest.core.models import AgentRecord
from wiki_harvest.utils.logging import get_logger

RECORDS_ADAPTER = TypeAdapter(list[AgentRecord])


class JsonFileSink:
    """Writes the successful records of a run to one JSON file."""

    def __init__(self, path: Path | str, indent: int = 2):
        self.path = Path(path)
        self.indent = indent
        self.logger = get_logger(__name__)

    async def write(self, records: list[AgentRecord]) -> None:
        """Write records, replacing any previous file.

        Raises:
            OSError: If the file cannot be written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = RECORDS_ADAPTER.dump_json(records, indent=self.indent)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_bytes(payload)
        tmp_path.replace(self.path)

        self.logger.info("Wrote records", path=str(self.path), records=len(records), bytes=len(payload))

    def read(self) -> list[AgentRecord]:
        """Load records previously written by this sink."""
        return RECORDS_ADAPTER.validate_json(self.path.read_bytes())
