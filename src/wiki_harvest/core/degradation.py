# ABOUTME: Builds minimal, schema-valid agent records from entry metadata alone
# ABOUTME: Last resort for entries whose payload could not be mapped

from wiki_harvest.core.errors import FatalEntryError
from wiki_harvest.core.models import AgentRecord, Attributes, Entry, LocalizedName
from wiki_harvest.utils.logging import get_logger


class DegradationBuilder:
    """Synthesizes a degraded record using only the entry id and display name."""

    def __init__(self):
        self.logger = get_logger(__name__)

    def build_minimal(self, entry: Entry) -> AgentRecord:
        """Build a degraded record for an entry.

        Every field other than id and name takes its model default: zeroed
        curves, default enums, no factions.

        Raises:
            FatalEntryError: If the entry has no id
        """
        if entry is None or not entry.id or not entry.id.strip():
            raise FatalEntryError("cannot degrade an entry without an id", field="id")

        name = entry.display_name.strip() or entry.id
        record = AgentRecord(
            id=entry.id,
            page_id=entry.source_ref,
            name=LocalizedName(ja=name, en=name),
            attributes=Attributes(),
            degraded=True,
        )

        self.logger.warning("Built degraded record", entry_id=entry.id, display_name=name)
        return record
