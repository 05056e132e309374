from __future__ import annotations

from typing import Dict

from glimpse.categories import CATEGORY_PRIORITY, IdentifierCategory
from glimpse.models import IdentifierMap, ScriptIdentifierDetails, ScriptIdentifiers
from glimpse.services.import_analysis import ImportAnalysis


def store_category_for(name: str, imports: ImportAnalysis) -> IdentifierCategory:
    """
    Sub-brand a store-like name by where it was imported from.

    Only an explicit named import counts; anything else stays a generic store.
    """
    if name in imports.pinia_import_names:
        return IdentifierCategory.PINIA
    if name in imports.vuex_import_names:
        return IdentifierCategory.VUEX
    return IdentifierCategory.STORE


class IdentifierCollector:
    """
    Accumulates classified names for one classification pass.

    A single claimed-name registry keeps every name in at most one category;
    the first claim wins.
    """

    def __init__(self) -> None:
        self._maps: Dict[IdentifierCategory, IdentifierMap] = {c: {} for c in CATEGORY_PRIORITY}
        self._claimed: Dict[str, IdentifierCategory] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._claimed

    def claim(self, name: str, category: IdentifierCategory, definition: str) -> bool:
        if name in self._claimed:
            return False
        self._maps[category][name] = ScriptIdentifierDetails(definition=definition)
        self._claimed[name] = category
        return True

    def move(self, name: str, source: IdentifierCategory, target: IdentifierCategory) -> bool:
        """Re-file a name claimed under `source`, keeping its details."""
        if self._claimed.get(name) != source:
            return False
        self._maps[target][name] = self._maps[source].pop(name)
        self._claimed[name] = target
        return True

    def release(self, name: str) -> None:
        category = self._claimed.pop(name, None)
        if category is not None:
            self._maps[category].pop(name, None)

    def build(self) -> ScriptIdentifiers:
        return ScriptIdentifiers.from_categories(self._maps)
