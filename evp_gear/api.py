"""FastAPI service for EVP-Gear."""

import logging
from typing import NoReturn, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from .aggregation import weight_breakdown
from .brands import BrandDirectory, brand_initial, logo_url, search_brands
from .config import config
from .gemini_client import GeminiCollaborator, get_collaborator
from .hierarchy import DuplicateTagError, TagError, TagNotFoundError
from .inventory import (
    DuplicateItemError,
    GearInventory,
    InventoryError,
    ItemNotFoundError,
    SearchField,
)
from .models import GearItem, GearItemDraft, TagSuggestion
from .pack import PackSession
from .print_view import render_pack_html
from .repository import InventoryRepository
from .session_manager import SessionManager, session_manager

logger = logging.getLogger(__name__)


app = FastAPI(
    title="EVP-Gear API",
    description="Backpacking gear inventory with AI-assisted tagging and pack analysis",
    version="0.1.0"
)


# ==================== DEPENDENCIES ====================

_repository: InventoryRepository | None = None
_inventory: GearInventory | None = None
_brands: BrandDirectory | None = None


def get_repository() -> InventoryRepository:
    global _repository
    if _repository is None:
        _repository = InventoryRepository()
    return _repository


def get_inventory(
    repository: InventoryRepository = Depends(get_repository),
    collaborator: GeminiCollaborator = Depends(get_collaborator),
) -> GearInventory:
    """Load the inventory once per process."""
    global _inventory
    if _inventory is None:
        _inventory = repository.load(visuals=collaborator)
        logger.info(f"Loaded {len(_inventory)} items from {repository.data_dir}")
    return _inventory


def get_brand_directory(
    collaborator: GeminiCollaborator = Depends(get_collaborator),
) -> BrandDirectory:
    global _brands
    if _brands is None:
        _brands = BrandDirectory(collaborator)
    return _brands


def get_sessions() -> SessionManager:
    return session_manager


def _fail(error: ValueError) -> NoReturn:
    """Map a domain error onto an HTTP status."""
    if isinstance(error, (DuplicateItemError, DuplicateTagError)):
        status = 409
    elif isinstance(error, (ItemNotFoundError, TagNotFoundError)):
        status = 404
    else:
        status = 422
    raise HTTPException(status_code=status, detail=str(error))


def _commit(inventory: GearInventory, repository: InventoryRepository) -> None:
    repository.save(inventory)


# ==================== MODELS ====================

class ItemFields(BaseModel):
    """Editable item fields."""
    name: str
    brand: str = ""
    weight: int = 0
    notes: str = ""
    tt: str = ""
    mt: str = ""
    bt: str = ""


class ItemResponse(ItemFields):
    """Stored item."""
    id: str

    @classmethod
    def from_item(cls, item: GearItem) -> "ItemResponse":
        return cls(**item.to_dict())


class TagRenameRequest(BaseModel):
    """Rename the tag at a 1-3 element path."""
    path: list[str] = Field(min_length=1, max_length=3)
    new_name: str


class TagRenameResponse(BaseModel):
    status: str
    path: list[str]
    items_updated: int


class TagDeleteResponse(BaseModel):
    status: str
    items_removed: int


class SuggestRequest(BaseModel):
    """Item details plus already chosen ancestor tags."""
    name: str
    brand: str = ""
    notes: str = ""
    tt: str = ""
    mt: str = ""


class TagSuggestionResponse(BaseModel):
    """Single tag suggestion."""
    tag: str
    match_percentage: int
    confidence: str
    is_new: bool

    @classmethod
    def from_suggestion(cls, s: TagSuggestion) -> "TagSuggestionResponse":
        return cls(
            tag=s.tag,
            match_percentage=s.match_percentage,
            confidence=s.confidence_label,
            is_new=s.is_new,
        )


class SuggestResponse(BaseModel):
    ai_enabled: bool
    tt: list[TagSuggestionResponse]
    mt: list[TagSuggestionResponse]
    bt: list[TagSuggestionResponse]


class BrandLogoResponse(BaseModel):
    brand: str
    domain: Optional[str]
    logo_url: Optional[str]
    initial: str


class PackSelectRequest(BaseModel):
    item_ids: list[str]


# ==================== STATUS ====================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "service": "EVP-Gear",
        "status": "running",
        "ai_enabled": config.ai_enabled,
    }


@app.get("/status")
async def status(
    inventory: GearInventory = Depends(get_inventory),
    repository: InventoryRepository = Depends(get_repository),
    sessions: SessionManager = Depends(get_sessions),
):
    """Inventory and configuration overview."""
    return {
        "data_dir": str(repository.data_dir),
        "model": config.gemini_model,
        "ai_enabled": config.ai_enabled,
        "items": len(inventory),
        "total_weight": sum(i.weight for i in inventory.items),
        "tags": len(inventory.hierarchy),
        "orphaned_items": [i.id for i in inventory.orphaned_items()],
        "sessions": sessions.get_stats(),
    }


# ==================== ITEMS ====================

@app.get("/items", response_model=list[ItemResponse])
async def list_items(
    q: str = "",
    by: SearchField = SearchField.ITEM,
    inventory: GearInventory = Depends(get_inventory),
):
    """All items sorted by name, or the matches of a search."""
    results = inventory.search(q, by)
    items = inventory.items if results is None else results
    return [ItemResponse.from_item(i) for i in items]


@app.get("/items/grouped")
async def grouped_items(inventory: GearInventory = Depends(get_inventory)):
    """Items nested by Top Tag > Middle Tag > Base Tag."""
    return {
        tt: {
            mt: {bt: [i.to_dict() for i in items] for bt, items in bts.items()}
            for mt, bts in mts.items()
        }
        for tt, mts in inventory.grouped().items()
    }


@app.get("/items/{item_id}", response_model=ItemResponse)
async def get_item(item_id: str, inventory: GearInventory = Depends(get_inventory)):
    try:
        return ItemResponse.from_item(inventory.get_item(item_id))
    except InventoryError as e:
        _fail(e)


@app.post("/items", response_model=ItemResponse, status_code=201)
async def create_item(
    request: ItemFields,
    inventory: GearInventory = Depends(get_inventory),
    repository: InventoryRepository = Depends(get_repository),
):
    """Add an item; missing tags along its path are created."""
    try:
        item = await inventory.add_item(GearItemDraft(**request.model_dump()))
    except (InventoryError, TagError) as e:
        _fail(e)
    _commit(inventory, repository)
    return ItemResponse.from_item(item)


@app.put("/items/{item_id}", response_model=ItemResponse)
async def update_item(
    item_id: str,
    request: ItemFields,
    inventory: GearInventory = Depends(get_inventory),
    repository: InventoryRepository = Depends(get_repository),
):
    try:
        item = await inventory.update_item(GearItem(id=item_id, **request.model_dump()))
    except (InventoryError, TagError) as e:
        _fail(e)
    _commit(inventory, repository)
    return ItemResponse.from_item(item)


@app.delete("/items/{item_id}")
async def delete_item(
    item_id: str,
    inventory: GearInventory = Depends(get_inventory),
    repository: InventoryRepository = Depends(get_repository),
    sessions: SessionManager = Depends(get_sessions),
):
    try:
        item = inventory.delete_item(item_id)
    except InventoryError as e:
        _fail(e)
    _commit(inventory, repository)
    sessions.forget_items({item.id})
    return {"status": "deleted", "id": item.id}


# ==================== TAGS ====================

@app.get("/tags")
async def get_tags(inventory: GearInventory = Depends(get_inventory)):
    """The full hierarchy as a nested document."""
    return inventory.hierarchy.to_dict()


@app.get("/tags/options")
async def tag_options(
    tt: str = "",
    mt: str = "",
    inventory: GearInventory = Depends(get_inventory),
):
    """Choices for each level given the tags picked so far."""
    hierarchy = inventory.hierarchy
    return {
        "tt": hierarchy.names(),
        "mt": hierarchy.names((tt,)) if tt else [],
        "bt": hierarchy.names((tt, mt)) if tt and mt else [],
    }


@app.post("/tags/rename", response_model=TagRenameResponse)
async def rename_tag(
    request: TagRenameRequest,
    inventory: GearInventory = Depends(get_inventory),
    repository: InventoryRepository = Depends(get_repository),
):
    """Rename a tag; every item below it follows."""
    try:
        updated = inventory.rename_tag(request.path, request.new_name)
    except TagError as e:
        _fail(e)
    _commit(inventory, repository)
    new_path = request.path[:-1] + [request.new_name.strip()]
    return TagRenameResponse(status="renamed", path=new_path, items_updated=updated)


@app.delete("/tags", response_model=TagDeleteResponse)
async def delete_tag(
    path: list[str] = Query(...),
    inventory: GearInventory = Depends(get_inventory),
    repository: InventoryRepository = Depends(get_repository),
    sessions: SessionManager = Depends(get_sessions),
):
    """Delete a tag subtree and every item under it."""
    try:
        removed = inventory.delete_tag(path)
    except TagError as e:
        _fail(e)
    _commit(inventory, repository)
    sessions.forget_items({i.id for i in removed})
    return TagDeleteResponse(status="deleted", items_removed=len(removed))


@app.post("/suggestions", response_model=SuggestResponse)
async def suggest_tags(
    request: SuggestRequest,
    inventory: GearInventory = Depends(get_inventory),
    collaborator: GeminiCollaborator = Depends(get_collaborator),
):
    """
    Ranked tag candidates for each level.

    Levels the collaborator cannot answer come back empty.
    """
    if not request.name.strip():
        raise HTTPException(status_code=422, detail="Enter an item name to get suggestions.")

    details = GearItemDraft(name=request.name, brand=request.brand, notes=request.notes)
    results = await collaborator.suggest_all_levels(
        details, inventory.hierarchy, tt=request.tt, mt=request.mt
    )
    return SuggestResponse(
        ai_enabled=collaborator.enabled,
        **{
            level.value: [TagSuggestionResponse.from_suggestion(s) for s in suggestions]
            for level, suggestions in results.items()
        },
    )


# ==================== BRANDS ====================

@app.get("/brands")
async def find_brands(q: str = "", limit: int = 5):
    """Known brands matching a typed prefix or fragment."""
    return [{"name": b.name, "domain": b.domain} for b in search_brands(q, limit)]


@app.get("/brands/{brand_name}/logo", response_model=BrandLogoResponse)
async def brand_logo(
    brand_name: str,
    directory: BrandDirectory = Depends(get_brand_directory),
):
    domain = await directory.resolve_domain(brand_name)
    return BrandLogoResponse(
        brand=brand_name,
        domain=domain,
        logo_url=logo_url(domain),
        initial=brand_initial(brand_name),
    )


# ==================== PACKS ====================

def _require_session(sessions: SessionManager, session_id: str) -> PackSession:
    session = sessions.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Pack session not found or expired")
    return session


@app.post("/packs", status_code=201)
async def create_pack(
    inventory: GearInventory = Depends(get_inventory),
    sessions: SessionManager = Depends(get_sessions),
):
    session = sessions.create_session()
    return session.to_dict(inventory.items)


@app.get("/packs/{session_id}")
async def get_pack(
    session_id: str,
    inventory: GearInventory = Depends(get_inventory),
    sessions: SessionManager = Depends(get_sessions),
):
    return _require_session(sessions, session_id).to_dict(inventory.items)


@app.post("/packs/{session_id}/toggle/{item_id}")
async def toggle_pack_item(
    session_id: str,
    item_id: str,
    inventory: GearInventory = Depends(get_inventory),
    sessions: SessionManager = Depends(get_sessions),
):
    """Add or remove one item; the total is recomputed."""
    session = _require_session(sessions, session_id)
    try:
        inventory.get_item(item_id)
    except InventoryError as e:
        _fail(e)
    selected = session.toggle(item_id)
    return {"selected": selected, **session.to_dict(inventory.items)}


@app.post("/packs/{session_id}/items")
async def select_pack_items(
    session_id: str,
    request: PackSelectRequest,
    inventory: GearInventory = Depends(get_inventory),
    sessions: SessionManager = Depends(get_sessions),
):
    session = _require_session(sessions, session_id)
    known = {i.id for i in inventory.items}
    unknown = [i for i in request.item_ids if i not in known]
    if unknown:
        raise HTTPException(status_code=404, detail=f"Unknown items: {', '.join(unknown)}")
    session.select(request.item_ids)
    return session.to_dict(inventory.items)


@app.delete("/packs/{session_id}/items")
async def clear_pack(
    session_id: str,
    inventory: GearInventory = Depends(get_inventory),
    sessions: SessionManager = Depends(get_sessions),
):
    session = _require_session(sessions, session_id)
    session.clear()
    return session.to_dict(inventory.items)


@app.get("/packs/{session_id}/breakdown")
async def pack_breakdown(
    session_id: str,
    inventory: GearInventory = Depends(get_inventory),
    sessions: SessionManager = Depends(get_sessions),
):
    """Weight per tag computed locally from the selection."""
    session = _require_session(sessions, session_id)
    packed = session.selection.packed(inventory.items)
    return {
        "total_weight": sum(i.weight for i in packed),
        "distribution": [d.to_dict() for d in weight_breakdown(packed)],
    }


@app.post("/packs/{session_id}/analyze")
async def analyze_pack(
    session_id: str,
    inventory: GearInventory = Depends(get_inventory),
    sessions: SessionManager = Depends(get_sessions),
    collaborator: GeminiCollaborator = Depends(get_collaborator),
):
    """AI weight-distribution analysis of the current selection."""
    session = _require_session(sessions, session_id)
    packed = session.selection.packed(inventory.items)
    if not packed:
        raise HTTPException(status_code=422, detail="Select at least one item to analyse")

    token = session.analysis.begin()
    session.summary.invalidate()
    result = await collaborator.analyze_pack(packed)

    if not session.analysis.commit(token, result):
        raise HTTPException(status_code=409, detail="The pack changed while it was being analysed")
    if result is None:
        raise HTTPException(status_code=503, detail="Analysis could not be completed. Please try again.")
    return result.to_dict()


@app.post("/packs/{session_id}/summary")
async def summarize_pack(
    session_id: str,
    sessions: SessionManager = Depends(get_sessions),
    collaborator: GeminiCollaborator = Depends(get_collaborator),
):
    """Further commentary on the latest analysis."""
    session = _require_session(sessions, session_id)
    analysis = session.analysis.value
    if analysis is None:
        raise HTTPException(status_code=409, detail="Analyse the pack first")

    token = session.summary.begin()
    summary = await collaborator.summarize_pack(analysis)

    if not session.summary.commit(token, summary):
        raise HTTPException(status_code=409, detail="The pack changed while it was being summarised")
    if summary is None:
        raise HTTPException(status_code=503, detail="Summary could not be generated")
    return {"summary": summary}


@app.get("/packs/{session_id}/print", response_class=HTMLResponse)
async def print_pack(
    session_id: str,
    inventory: GearInventory = Depends(get_inventory),
    sessions: SessionManager = Depends(get_sessions),
):
    """Printable pack list."""
    session = _require_session(sessions, session_id)
    packed = session.selection.packed(inventory.items)
    return HTMLResponse(render_pack_html(packed, inventory.hierarchy))


@app.post("/packs/cleanup")
async def cleanup_packs(sessions: SessionManager = Depends(get_sessions)):
    """Clean up expired sessions. Called by cron job."""
    removed = sessions.cleanup_expired()
    return {"removed": removed, "stats": sessions.get_stats()}
