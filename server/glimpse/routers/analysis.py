import json
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query

from glimpse.categories import CATEGORY_PRIORITY
from glimpse.config import (
    CATEGORY_LABELS,
    DEFAULT_CATEGORY_COLORS,
    DEFAULT_CATEGORY_ICONS,
    generate_color_map,
    generate_icon_map,
)
from glimpse.models import AnalyzeRequest, AnalyzeResponse, CategoryInfo, HoverInfo, HoverRequest
from glimpse.services.cache import AnalysisManager
from glimpse.services.hover import find_hover

router = APIRouter(prefix="/api/analysis", tags=["analysis"])

manager = AnalysisManager()


def _parse_overrides(raw: Optional[str], name: str) -> Dict[str, str]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid JSON in '{name}': {e.msg}")
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail=f"'{name}' must be a JSON object")
    return data


# Analysis is CPU bound; plain `def` endpoints run in the threadpool, which is
# why AnalysisManager serializes calls per document.
@router.post("", response_model=AnalyzeResponse)
def analyze_document(request: AnalyzeRequest):
    """
    Analyze a `.vue` document, or return the cached result for this version.
    """
    managed = manager.get_analysis(request.document_id, request.version, request.text)
    return AnalyzeResponse(
        status=managed.status.value,
        error=managed.error_message,
        result=managed.result,
    )


@router.post("/hover", response_model=HoverInfo)
def hover(request: HoverRequest):
    """
    Describe the classified identifier under `offset`.
    """
    if request.offset < 0 or request.offset > len(request.text):
        raise HTTPException(status_code=400, detail="Offset outside document")

    managed = manager.get_analysis(request.document_id, request.version, request.text)
    info = find_hover(managed.result, request.text, request.offset)
    if info is None:
        raise HTTPException(status_code=404, detail="No identifier at offset")
    return info


@router.delete("/documents")
async def remove_document(document_id: str = Query(..., alias="documentId")):
    manager.remove_document(document_id)
    return {"removed": document_id}


@router.delete("/cache")
async def clear_cache():
    manager.clear_cache()
    return {"cleared": True}


@router.get("/categories", response_model=List[CategoryInfo])
async def get_categories(
    icons: Optional[str] = Query(None, description="JSON object of icon overrides by category key"),
    colors: Optional[str] = Query(None, description="JSON object of color overrides by category key"),
):
    """
    Return the categories in display priority order with their presentation.
    """
    icon_map = generate_icon_map(DEFAULT_CATEGORY_ICONS, _parse_overrides(icons, "icons"))
    color_map = generate_color_map(DEFAULT_CATEGORY_COLORS, _parse_overrides(colors, "colors"))
    return [
        CategoryInfo(
            key=category,
            label=CATEGORY_LABELS[category.value],
            icon=icon_map[category.value],
            color=color_map[category.value],
            priority=index,
        )
        for index, category in enumerate(CATEGORY_PRIORITY)
    ]
