from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from glimpse.categories import CATEGORY_DESCRIPTORS, IDENTIFIER_CATEGORIES, IdentifierCategory


class ScriptIdentifierDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Verbatim text of the declaring statement, e.g. "const count = ref(0)".
    definition: str


IdentifierMap = Dict[str, ScriptIdentifierDetails]


class ScriptIdentifiers(BaseModel):
    """Classified script bindings. A name appears in at most one category."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    props: IdentifierMap = Field(default_factory=dict)
    passthrough: IdentifierMap = Field(default_factory=dict)
    emits: IdentifierMap = Field(default_factory=dict)
    ref: IdentifierMap = Field(default_factory=dict)
    reactive: IdentifierMap = Field(default_factory=dict)
    computed: IdentifierMap = Field(default_factory=dict)
    store: IdentifierMap = Field(default_factory=dict)
    pinia: IdentifierMap = Field(default_factory=dict)
    vuex: IdentifierMap = Field(default_factory=dict)
    methods: IdentifierMap = Field(default_factory=dict)
    local_state: IdentifierMap = Field(default_factory=dict, alias="localState")

    @classmethod
    def from_categories(cls, maps: Mapping[IdentifierCategory, IdentifierMap]) -> "ScriptIdentifiers":
        return cls(
            **{
                CATEGORY_DESCRIPTORS[category].script_property: dict(names)
                for category, names in maps.items()
            }
        )

    def get(self, category: IdentifierCategory) -> IdentifierMap:
        return getattr(self, CATEGORY_DESCRIPTORS[category].script_property)

    def category_of(self, name: str) -> Optional[IdentifierCategory]:
        for descriptor in IDENTIFIER_CATEGORIES:
            if name in self.get(descriptor.key):
                return descriptor.key
        return None

    def __contains__(self, name: str) -> bool:
        return self.category_of(name) is not None

    def items(self) -> Iterator[Tuple[IdentifierCategory, IdentifierMap]]:
        for descriptor in IDENTIFIER_CATEGORIES:
            yield descriptor.key, self.get(descriptor.key)


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: int  # 0-based
    character: int  # 0-based


class IdentifierRange(BaseModel):
    """Half-open `[start, end)` char offsets of one template occurrence."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    category: IdentifierCategory
    start: int
    end: int
    start_position: Position = Field(alias="startPosition")
    end_position: Position = Field(alias="endPosition")


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    props_ranges: List[IdentifierRange] = Field(default_factory=list, alias="propsRanges")
    passthrough_ranges: List[IdentifierRange] = Field(default_factory=list, alias="passthroughRanges")
    emits_ranges: List[IdentifierRange] = Field(default_factory=list, alias="emitsRanges")
    ref_ranges: List[IdentifierRange] = Field(default_factory=list, alias="refRanges")
    reactive_ranges: List[IdentifierRange] = Field(default_factory=list, alias="reactiveRanges")
    computed_ranges: List[IdentifierRange] = Field(default_factory=list, alias="computedRanges")
    store_ranges: List[IdentifierRange] = Field(default_factory=list, alias="storeRanges")
    pinia_ranges: List[IdentifierRange] = Field(default_factory=list, alias="piniaRanges")
    vuex_ranges: List[IdentifierRange] = Field(default_factory=list, alias="vuexRanges")
    methods_ranges: List[IdentifierRange] = Field(default_factory=list, alias="methodsRanges")
    local_state_ranges: List[IdentifierRange] = Field(default_factory=list, alias="localStateRanges")
    script_identifiers: ScriptIdentifiers = Field(
        default_factory=ScriptIdentifiers, alias="scriptIdentifiers"
    )

    @classmethod
    def from_ranges(
        cls,
        ranges: Mapping[IdentifierCategory, List[IdentifierRange]],
        script_identifiers: ScriptIdentifiers,
    ) -> "AnalysisResult":
        return cls(
            script_identifiers=script_identifiers,
            **{
                CATEGORY_DESCRIPTORS[category].result_property: list(items)
                for category, items in ranges.items()
            },
        )

    def ranges_for(self, category: IdentifierCategory) -> List[IdentifierRange]:
        return getattr(self, CATEGORY_DESCRIPTORS[category].result_property)

    def all_ranges(self) -> List[IdentifierRange]:
        found: List[IdentifierRange] = []
        for descriptor in IDENTIFIER_CATEGORIES:
            found.extend(self.ranges_for(descriptor.key))
        return sorted(found, key=lambda r: r.start)


def create_empty_analysis_result() -> AnalysisResult:
    return AnalysisResult()


# --- HTTP payloads ---


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(alias="documentId")
    version: int
    text: str


class AnalyzeResponse(BaseModel):
    status: str  # "ok" | "stale" | "failed"
    error: Optional[str] = None
    result: AnalysisResult


class HoverRequest(AnalyzeRequest):
    offset: int


class HoverInfo(BaseModel):
    name: str
    category: IdentifierCategory
    label: str
    icon: str
    definition: str
    start: int
    end: int


class CategoryInfo(BaseModel):
    key: IdentifierCategory
    label: str
    icon: str
    color: str
    priority: int
