# ABOUTME: Loader for the entry list a harvest run works through
# ABOUTME: Reads a JSON array of {id, source_ref, display_name} objects into Entry models

from pathlib import Path

from pydantic import TypeAdapter

from wiki_harvest.core.models import Entry

ENTRIES_ADAPTER = TypeAdapter(list[Entry])


def load_entries(path: Path | str) -> list[Entry]:
    """Load entries from a JSON file.

    Raises:
        OSError: If the file cannot be read
        pydantic.ValidationError: If the file is not a list of entries
    """
    return ENTRIES_ADAPTER.validate_json(Path(path).read_bytes())
