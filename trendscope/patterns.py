"""
Candlestick pattern catalogue
Static reference data loaded from data/patterns.json
"""
import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter

from trendscope.models import PatternCatalogEntry

CATALOG_PATH = Path(__file__).resolve().parent / "data" / "patterns.json"

_catalog_adapter = TypeAdapter(List[PatternCatalogEntry])


@lru_cache(maxsize=1)
def _default_catalog() -> tuple:
    return tuple(_read_catalog(CATALOG_PATH))


def _read_catalog(path: Path) -> List[PatternCatalogEntry]:
    with open(path, encoding="utf-8") as fh:
        entries = _catalog_adapter.validate_python(json.load(fh))
    ids = [entry.id for entry in entries]
    if len(ids) != len(set(ids)):
        raise ValueError(f"Duplicate pattern ids in {path}")
    return entries


def load_catalog(path: Optional[Path] = None) -> List[PatternCatalogEntry]:
    """Load the pattern catalogue; the bundled asset is read once per process"""
    if path is None:
        return list(_default_catalog())
    return _read_catalog(Path(path))


def get_pattern(pattern_id: str) -> PatternCatalogEntry:
    for entry in _default_catalog():
        if entry.id == pattern_id:
            return entry
    raise KeyError(pattern_id)


def patterns_by_category(category: str) -> List[PatternCatalogEntry]:
    wanted = category.strip().lower()
    return [entry for entry in _default_catalog() if entry.category.lower() == wanted]
