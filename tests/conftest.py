"""
Shared fixtures for the posterkit test suite.

- Sample event data (with and without visual style)
- A fake AI gateway whose calls are AsyncMocks
- Retry sleeps patched out so backoff tests run instantly
- Settings environment variables cleared for every test
"""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from posterkit.agents.ai_gateway import ProviderType
from posterkit.app.models import ParsedEventData


# ---------------------------------------------------------------------------
# ENVIRONMENT
# ---------------------------------------------------------------------------

SETTINGS_ENV_VARS = (
    "AI_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_VISION_MODEL",
    "OPENAI_TEMPERATURE",
    "AI_TEMPERATURE",
    "AI_REQUEST_TIMEOUT",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "BROWSER_NAVIGATION_TIMEOUT_MS",
    "BROWSER_SETTLE_DELAY_MS",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Settings() sees neither the developer's credentials nor their .env."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# SAMPLE DATA
# ---------------------------------------------------------------------------

SAMPLE_EVENT_WIRE = {
    "name": "TechConf 2025",
    "description": "The AI conference for builders",
    "startDate": "2025-06-15",
    "endDate": "2025-06-17",
    "location": {"venue": "Moscone Center", "city": "San Francisco", "country": "USA", "isVirtual": False},
    "brandColors": {"primary": "#6C5CE7", "secondary": "#A29BFE"},
    "organizerName": "TechConf Events",
    "visualStyle": {
        "style": "modern",
        "typography": {"headingStyle": "sans-serif", "bodyStyle": "sans-serif", "weight": "bold", "letterSpacing": "tight"},
        "gradient": {"type": "linear", "angle": 135, "colors": ["#6C5CE7", "#A29BFE"]},
        "shadow": {"type": "glow", "color": "#A29BFE", "blur": 30, "offsetX": 0, "offsetY": 0},
        "decorativeElements": [{"type": "circle", "position": "top-left", "color": "#FFFFFF", "opacity": 0.1}],
        "designElements": ["gradient", "rounded-corners"],
    },
}


def template_wire(name="Gradient Glow", layout="modern", ids=("event-name", "user-photo", "event-logo")):
    """Minimal valid template in wire (camelCase) form."""
    return {
        "name": name,
        "layout": layout,
        "backgroundColor": "#6C5CE7",
        "elements": [
            {"id": element_id, "type": "image" if element_id == "user-photo" else "text", "zIndex": 10,
             "properties": {"x": 5, "y": 5 + i * 10, "width": 50, "height": 10}}
            for i, element_id in enumerate(ids)
        ],
    }


@pytest.fixture
def sample_event() -> ParsedEventData:
    return ParsedEventData.model_validate(SAMPLE_EVENT_WIRE)


@pytest.fixture
def plain_event() -> ParsedEventData:
    """Event without brand colors or visual style."""
    return ParsedEventData(name="Quarterly Meeting")


@pytest.fixture
def event_json() -> str:
    return json.dumps(SAMPLE_EVENT_WIRE)


# ---------------------------------------------------------------------------
# AI FAKES
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_gateway():
    """Gateway stand-in: every capability is an AsyncMock."""
    gateway = MagicMock()
    gateway.provider = ProviderType.OPENAI
    gateway.complete_text = AsyncMock()
    gateway.complete_vision = AsyncMock()
    gateway.generate_image = AsyncMock()
    return gateway


@pytest.fixture
def no_sleep():
    """Patch the retry executor's wait so tests do not actually sleep."""
    with patch("posterkit.app.retry._sleep", new_callable=AsyncMock) as sleep:
        yield sleep


@pytest.fixture
def make_template():
    """Factory for valid template dicts in wire form."""
    return template_wire
