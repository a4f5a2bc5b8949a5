"""HTTP client for the Gemini text-generation API.

Every public call is fail-soft: a missing key, a network error or a
malformed answer is logged and turned into None (or the fallback visuals),
never raised.
"""

import asyncio
import json
import logging
import re
from typing import Any
from urllib.parse import urlparse

import httpx

from .config import config
from .hierarchy import TagHierarchy
from .models import (
    FALLBACK_VISUALS,
    DistributionNode,
    GearItem,
    GearItemDraft,
    PackAnalysis,
    TagLevel,
    TagSuggestion,
    TagVisuals,
)

logger = logging.getLogger(__name__)

# Errors that mean "collaborator unavailable" rather than a bug on our side
COLLABORATOR_ERRORS = (httpx.HTTPError, ValueError, KeyError, TypeError, IndexError, AttributeError)

_LEVEL_TASKS = {
    TagLevel.TOP: 'Suggest a Top Tag (TT): a BROAD category such as "Clothing", "Shelter" or "Cookware".',
    TagLevel.MIDDLE: "Suggest a Middle Tag (MT): a sub-category.",
    TagLevel.BASE: "Suggest a Base Tag (BT): a VERY SPECIFIC tag.",
}

SUGGESTION_SCHEMA = {
    "type": "ARRAY",
    "description": "2-5 tag suggestions.",
    "items": {
        "type": "OBJECT",
        "properties": {
            "tag": {"type": "STRING"},
            "matchPercentage": {"type": "INTEGER"},
        },
        "required": ["tag", "matchPercentage"],
    },
}

VISUALS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "color": {"type": "STRING", "description": "Hex color code (e.g., #FF5733)"},
        "emoji": {"type": "STRING", "description": "A single emoji"},
    },
    "required": ["color", "emoji"],
}


def distribution_schema(depth: int = 3) -> dict:
    """Response schema for a distribution nested `depth` levels deep."""
    properties: dict[str, Any] = {
        "tag": {"type": "STRING"},
        "weight": {"type": "INTEGER"},
        "percentage": {"type": "NUMBER"},
    }
    if depth > 1:
        properties["children"] = distribution_schema(depth - 1)
    return {
        "type": "ARRAY",
        "items": {
            "type": "OBJECT",
            "properties": properties,
            "required": ["tag", "weight", "percentage"],
        },
    }


ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "totalWeight": {"type": "INTEGER"},
        "distribution": distribution_schema(3),
        "summary": {"type": "STRING"},
    },
    "required": ["totalWeight", "distribution"],
}


def dedupe_suggestions(raw: list[dict]) -> list[TagSuggestion]:
    """Keep one suggestion per tag name (the highest percentage), best first."""
    best: dict[str, TagSuggestion] = {}
    for entry in raw:
        tag = str(entry["tag"]).strip()
        if not tag:
            continue
        percentage = max(0, min(100, int(entry["matchPercentage"])))
        current = best.get(tag)
        if current is None or percentage > current.match_percentage:
            best[tag] = TagSuggestion(tag=tag, match_percentage=percentage)
    return sorted(best.values(), key=lambda s: s.match_percentage, reverse=True)


def existing_tags_for_level(
    level: TagLevel,
    hierarchy: TagHierarchy,
    tt: str = "",
    mt: str = "",
) -> list[str]:
    """Tag names already used at a level under the chosen ancestors."""
    if level is TagLevel.TOP:
        return hierarchy.names()
    if level is TagLevel.MIDDLE and tt:
        return hierarchy.names((tt,))
    if level is TagLevel.BASE and tt and mt:
        return hierarchy.names((tt, mt))
    return []


def clean_domain(text: str) -> str | None:
    """Reduce a free-text answer like 'https://www.msrgear.com/' to 'msrgear.com'."""
    domain = text.strip().lower()
    domain = re.sub(r"^(https?://)?(www\.)?", "", domain)
    domain = domain.split("/")[0].strip().rstrip(".")
    if "." in domain and " " not in domain:
        return domain
    return None


def parse_distribution(raw: list[dict]) -> list[DistributionNode]:
    return [
        DistributionNode(
            tag=str(entry["tag"]),
            weight=int(entry.get("weight", 0)),
            percentage=float(entry.get("percentage", 0)),
            children=parse_distribution(entry.get("children") or []),
        )
        for entry in raw
    ]


class GeminiCollaborator:
    """Client for the generative-AI features: suggestions, visuals, brands, analysis."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = config.gemini_api_key if api_key is None else api_key
        self.model = model or config.gemini_model
        self.base_url = (base_url or config.gemini_base_url).rstrip("/")
        self.timeout = timeout or config.request_timeout
        self._transport = transport

        if not self.api_key:
            logger.warning("GEMINI_API_KEY not set. AI features will be disabled.")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _generate(self, body: dict) -> dict:
        """POST a generateContent request and return the decoded response."""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/models/{self.model}:generateContent",
                headers={"x-goog-api-key": self.api_key},
                json=body,
            )
            response.raise_for_status()
            return response.json()

    @staticmethod
    def _text(data: dict) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            raise ValueError("Gemini returned no candidates")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text") or "" for part in parts)

    async def _generate_json(self, prompt: str, schema: dict) -> Any:
        data = await self._generate({
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        })
        return json.loads(self._text(data))

    # ---- tag suggestions ----

    async def suggest_tags(
        self,
        level: TagLevel | str,
        details: GearItemDraft,
        hierarchy: TagHierarchy,
        tt: str = "",
        mt: str = "",
    ) -> list[TagSuggestion] | None:
        """
        Ask for ranked tag candidates at one level.

        Args:
            level: Which level to suggest for
            details: Item name, brand and notes
            hierarchy: Current hierarchy, for the existing tag names
            tt: Already chosen Top Tag (context for MT/BT)
            mt: Already chosen Middle Tag (context for BT)

        Returns:
            Suggestions sorted by match percentage, or None if unavailable
        """
        if not self.enabled:
            return None
        level = TagLevel(level)
        existing = existing_tags_for_level(level, hierarchy, tt, mt)

        context = ""
        if level is TagLevel.MIDDLE and tt:
            context = f'The Top Tag is already "{tt}". Suggestions must fit inside it.'
        elif level is TagLevel.BASE and tt and mt:
            context = f'The path is already "{tt}" > "{mt}". Suggestions must fit this path.'

        prompt = (
            "You are an expert backpacker and gear organizer suggesting a tag for a new piece of gear.\n\n"
            f"Item name: {details.name}\n"
            f"Brand: {details.brand}\n"
            f"Notes: {details.notes}\n\n"
            f"{_LEVEL_TASKS[level]}\n{context}\n\n"
            f"Existing tags at this level: [{', '.join(existing) or 'None'}].\n"
            "Reuse existing tags whenever one fits. Only if none fits, propose 1-3 new names "
            "(be specific for a Base Tag).\n"
            "Give each suggestion a strict matchPercentage from 0 to 100: 90-100 a perfect fit, "
            "70-89 a good fit, 40-69 plausible, 0-39 poor. Do not default to high scores.\n"
            'Return ONLY a JSON array of 2-5 unique objects: [{"tag": "Tech", "matchPercentage": 98}]'
        )

        try:
            raw = await self._generate_json(prompt, SUGGESTION_SCHEMA)
            suggestions = dedupe_suggestions(raw)
        except COLLABORATOR_ERRORS as e:
            logger.error(f"Error suggesting tags for level {level.value}: {e}")
            return None

        existing_set = set(existing)
        for suggestion in suggestions:
            suggestion.is_new = suggestion.tag not in existing_set
        return suggestions

    async def suggest_all_levels(
        self,
        details: GearItemDraft,
        hierarchy: TagHierarchy,
        tt: str = "",
        mt: str = "",
    ) -> dict[TagLevel, list[TagSuggestion]]:
        """Run the three level suggestions concurrently; unavailable levels come back empty."""
        results = await asyncio.gather(
            self.suggest_tags(TagLevel.TOP, details, hierarchy),
            self.suggest_tags(TagLevel.MIDDLE, details, hierarchy, tt=tt),
            self.suggest_tags(TagLevel.BASE, details, hierarchy, tt=tt, mt=mt),
        )
        return {level: result or [] for level, result in zip(TagLevel, results)}

    # ---- visuals ----

    async def generate_tag_visuals(self, tag_name: str) -> TagVisuals | None:
        """Color and emoji for a tag; the fallback on errors, None without a key."""
        if not self.enabled:
            return None
        prompt = (
            f'For the backpacking gear category "{tag_name}", provide a unique hex color code '
            "and a single, relevant emoji. The color should be vibrant and readable on a dark UI. "
            "Return ONLY a JSON object."
        )
        try:
            raw = await self._generate_json(prompt, VISUALS_SCHEMA)
            return TagVisuals(color=str(raw["color"]), emoji=str(raw["emoji"]))
        except COLLABORATOR_ERRORS as e:
            logger.error(f"Error generating tag visuals for {tag_name}: {e}")
            return FALLBACK_VISUALS

    # ---- brands ----

    async def find_brand_domain(self, brand_name: str) -> str | None:
        """Best-guess official web domain for a brand."""
        if not self.enabled or not brand_name.strip():
            return None
        prompt = (
            f'What is the official website domain for the brand "{brand_name}"? '
            'For example, for "The North Face" the answer is "thenorthface.com". '
            "Respond with ONLY the domain name."
        )
        try:
            data = await self._generate({
                "contents": [{"parts": [{"text": prompt}]}],
                "tools": [{"google_search": {}}],
            })
            domain = clean_domain(self._text(data))
            if domain:
                return domain

            # Fall back to the first grounding source
            chunks = (
                (data["candidates"][0].get("groundingMetadata") or {}).get("groundingChunks") or []
            )
            if chunks:
                uri = (chunks[0].get("web") or {}).get("uri")
                hostname = urlparse(uri).hostname if uri else None
                if hostname:
                    return re.sub(r"^www\.", "", hostname)
            return None
        except COLLABORATOR_ERRORS as e:
            logger.error(f"Error finding brand domain for {brand_name}: {e}")
            return None

    # ---- pack analysis ----

    async def analyze_pack(self, items: list[GearItem]) -> PackAnalysis | None:
        """Hierarchical weight breakdown of the selected items."""
        if not self.enabled:
            return None
        if not items:
            logger.debug("Skipping pack analysis for an empty pack")
            return None

        payload = [
            {"name": i.name, "weight": i.weight, "tt": i.tt, "mt": i.mt, "bt": i.bt}
            for i in items
        ]
        prompt = (
            "You are analysing a backpacking pack. Each item has a weight in grams and a "
            "Top Tag (tt) > Middle Tag (mt) > Base Tag (bt) category path.\n"
            f"Items: {json.dumps(payload, ensure_ascii=False)}\n\n"
            "Compute the total weight and a distribution mirroring the tag tree: one entry per "
            "Top Tag with its weight and percentage of the total, each with children per Middle "
            "Tag, each with children per Base Tag. Percentages are of the whole pack. "
            "Add a one or two sentence summary."
        )
        try:
            raw = await self._generate_json(prompt, ANALYSIS_SCHEMA)
            return PackAnalysis(
                total_weight=int(raw["totalWeight"]),
                distribution=parse_distribution(raw["distribution"]),
                summary=raw.get("summary") or None,
            )
        except COLLABORATOR_ERRORS as e:
            logger.error(f"Error analysing pack: {e}")
            return None

    async def summarize_pack(self, analysis: PackAnalysis) -> str | None:
        """Short natural-language commentary on an analysis."""
        if not self.enabled:
            return None
        prompt = (
            "You are an experienced ultralight backpacker. Here is the weight distribution of "
            f"a pack as JSON: {json.dumps(analysis.to_dict(), ensure_ascii=False)}\n"
            "In a short paragraph, point out where the weight concentrates and one or two "
            "practical ways to reduce it. Plain text, no markdown."
        )
        try:
            data = await self._generate({"contents": [{"parts": [{"text": prompt}]}]})
            text = self._text(data).strip()
            return text or None
        except COLLABORATOR_ERRORS as e:
            logger.error(f"Error summarizing pack: {e}")
            return None


# Singleton instance for reuse
_collaborator: GeminiCollaborator | None = None


def get_collaborator() -> GeminiCollaborator:
    """Get or create the global collaborator instance."""
    global _collaborator
    if _collaborator is None:
        _collaborator = GeminiCollaborator()
    return _collaborator
