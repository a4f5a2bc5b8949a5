"""
Pytest configuration and shared fixtures for the EVP-Gear tests.
"""
from typing import Callable

import httpx
import pytest

from evp_gear.gemini_client import GeminiCollaborator
from evp_gear.hierarchy import TagHierarchy
from evp_gear.initial_data import default_hierarchy, default_items
from evp_gear.inventory import GearInventory
from evp_gear.models import (
    DistributionNode,
    PackAnalysis,
    TagLevel,
    TagSuggestion,
    TagVisuals,
)


# ============================================================================
# Fakes
# ============================================================================

class FakeVisuals:
    """Visuals provider that records which tag names it was asked about."""

    def __init__(self, visuals: TagVisuals | None = TagVisuals("#112233", "🧭")):
        self.visuals = visuals
        self.calls: list[str] = []

    async def generate_tag_visuals(self, tag_name: str) -> TagVisuals | None:
        self.calls.append(tag_name)
        return self.visuals


class FakeCollaborator(FakeVisuals):
    """Stand-in for GeminiCollaborator in API tests."""

    def __init__(self, enabled: bool = True):
        super().__init__()
        self.enabled = enabled
        self.analysis: PackAnalysis | None = PackAnalysis(
            total_weight=1793,
            distribution=[DistributionNode("Shelter", 1720, 95.9), DistributionNode("Cookware", 73, 4.1)],
            summary="Shelter dominates.",
        )
        self.summary: str | None = "Consider a lighter tent."
        self.domain: str | None = "example-gear.com"
        self.analyzed: list[list[str]] = []

    async def suggest_all_levels(self, details, hierarchy, tt="", mt=""):
        if not self.enabled:
            return {level: [] for level in TagLevel}
        return {
            TagLevel.TOP: [TagSuggestion("Shelter", 95), TagSuggestion("Sleep", 60, is_new=True)],
            TagLevel.MIDDLE: [TagSuggestion("Tent", 90)],
            TagLevel.BASE: [],
        }

    async def analyze_pack(self, items):
        self.analyzed.append([i.id for i in items])
        return self.analysis

    async def summarize_pack(self, analysis):
        return self.summary

    async def find_brand_domain(self, brand_name):
        return self.domain


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def hierarchy() -> TagHierarchy:
    """The bundled starter hierarchy."""
    return default_hierarchy()


@pytest.fixture
def fake_visuals() -> FakeVisuals:
    return FakeVisuals()


@pytest.fixture
def collaborator() -> FakeCollaborator:
    """Enabled fake collaborator with canned answers."""
    return FakeCollaborator()


@pytest.fixture
def inventory(hierarchy, fake_visuals) -> GearInventory:
    """Starter items and tags with a recording visuals provider."""
    return GearInventory(items=default_items(), hierarchy=hierarchy, visuals=fake_visuals)


@pytest.fixture
def mock_gemini() -> Callable[..., GeminiCollaborator]:
    """
    Build a collaborator whose HTTP calls are answered by a handler.

    The returned factory records requests on `collaborator.requests`.
    """
    def factory(handler: Callable[[httpx.Request], httpx.Response], api_key: str = "test-key"):
        requests: list[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        collaborator = GeminiCollaborator(
            api_key=api_key,
            model="gemini-test",
            base_url="https://gemini.test/v1beta",
            timeout=5,
            transport=httpx.MockTransport(recording),
        )
        collaborator.requests = requests
        return collaborator

    return factory
