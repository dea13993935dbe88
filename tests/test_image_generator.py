"""
Tests for poster template and background image generation.
"""
import json

import pytest

from posterkit.app.errors import ErrorKind, PipelineError
from posterkit.app.image_generator import DEFAULT_THEME, ImageGenerator
from posterkit.app.models import BrandColors, ParsedEventData


# ===========================================================================
# TEMPLATES
# ===========================================================================

class TestGenerateTemplates:
    """Tests for ImageGenerator.generate_templates."""

    @pytest.mark.asyncio
    async def test_mock_without_gateway(self, sample_event):
        templates = await ImageGenerator(None).generate_templates(sample_event, 2)

        assert [t.name for t in templates] == ["Classic Professional", "Modern Gradient"]
        assert templates[1].background_color == "#6C5CE7"

    @pytest.mark.asyncio
    async def test_zero_count_skips_ai(self, sample_event, fake_gateway):
        assert await ImageGenerator(fake_gateway).generate_templates(sample_event, 0) == []
        fake_gateway.complete_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ai_templates_sliced_to_count(self, sample_event, fake_gateway, make_template):
        fake_gateway.complete_text.return_value = json.dumps({
            "templates": [make_template(f"T{i}") for i in range(4)]
        })

        templates = await ImageGenerator(fake_gateway).generate_templates(sample_event, 2)

        assert [t.name for t in templates] == ["T0", "T1"]
        prompt = fake_gateway.complete_text.await_args.args[0]
        assert "Create 2 UNIQUE" in prompt
        assert fake_gateway.complete_text.await_args.kwargs == {"json_mode": True}

    @pytest.mark.asyncio
    async def test_fewer_templates_than_requested(self, sample_event, fake_gateway, make_template):
        fake_gateway.complete_text.return_value = json.dumps([make_template()])
        assert len(await ImageGenerator(fake_gateway).generate_templates(sample_event, 3)) == 1

    @pytest.mark.asyncio
    async def test_one_malformed_template_does_not_fail_batch(self, sample_event, fake_gateway, make_template):
        bad = make_template("Broken")
        bad["backgroundColor"] = "linear-gradient(#000, #fff)"
        fake_gateway.complete_text.return_value = json.dumps({
            "templates": [make_template("T0"), bad, make_template("T2")]
        })

        templates = await ImageGenerator(fake_gateway).generate_templates(sample_event, 3)

        assert [t.name for t in templates] == ["T0", "T2"]

    @pytest.mark.asyncio
    async def test_unparseable_reply(self, sample_event, fake_gateway):
        fake_gateway.complete_text.return_value = "Here are your templates!"

        with pytest.raises(PipelineError) as exc_info:
            await ImageGenerator(fake_gateway).generate_templates(sample_event, 3)

        assert exc_info.value.kind == ErrorKind.TEMPLATE_GENERATION_FAILED

    @pytest.mark.asyncio
    async def test_terminal_error_propagates(self, sample_event, fake_gateway):
        fake_gateway.complete_text.side_effect = PipelineError(ErrorKind.CONFIGURATION, "401")

        with pytest.raises(PipelineError) as exc_info:
            await ImageGenerator(fake_gateway).generate_templates(sample_event, 3)

        assert exc_info.value.kind == ErrorKind.CONFIGURATION


# ===========================================================================
# BACKGROUNDS
# ===========================================================================

class TestGenerateBackground:
    """Tests for ImageGenerator.generate_background_image."""

    @pytest.mark.asyncio
    async def test_placeholder_without_gateway(self, sample_event):
        url = await ImageGenerator(None).generate_background_image(sample_event)
        assert url == "https://placehold.co/1080x1350/6C5CE7/A29BFE?text="

    @pytest.mark.asyncio
    async def test_placeholder_default_colors(self, plain_event):
        url = await ImageGenerator(None).generate_background_image(plain_event)
        assert url == "https://placehold.co/1080x1350/6C5CE7/A29BFE?text="

    @pytest.mark.asyncio
    async def test_generated_image(self, sample_event, fake_gateway):
        fake_gateway.generate_image.return_value = "data:image/png;base64,AAAA"

        url = await ImageGenerator(fake_gateway).generate_background_image(sample_event, "bold")

        assert url == "data:image/png;base64,AAAA"
        prompt = fake_gateway.generate_image.await_args.args[0]
        assert 'background for "TechConf 2025" event poster' in prompt
        assert "- PRIMARY: #6C5CE7" in prompt
        assert "- SECONDARY: #A29BFE" in prompt
        assert "bold and vibrant" in prompt
        assert "AI and machine learning" in prompt

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        PipelineError(ErrorKind.RATE_LIMIT, "429"),
        PipelineError(ErrorKind.CONFIGURATION, "401"),
        RuntimeError("content policy violation"),
    ])
    async def test_any_failure_falls_back_to_placeholder(self, sample_event, fake_gateway, error):
        fake_gateway.generate_image.side_effect = error

        url = await ImageGenerator(fake_gateway).generate_background_image(sample_event)

        assert url == "https://placehold.co/1080x1350/6C5CE7/A29BFE?text="

    def test_secondary_defaults_to_primary_in_prompt(self, fake_gateway):
        event = ParsedEventData(name="Night Market", brand_colors=BrandColors(primary="#112233"))
        prompt = ImageGenerator(fake_gateway).build_background_prompt(event, "minimal")

        assert "- SECONDARY: #112233" in prompt
        assert DEFAULT_THEME in prompt


class TestDetectTheme:
    """Tests for ImageGenerator.detect_theme."""

    @pytest.mark.parametrize("context, fragment", [
        ("ai summit 2025", "AI and machine learning"),
        ("Frontend Masters Live", "web development"),
        ("Startup Week", "innovation"),
        ("cloud native days", "cloud computing"),
        ("cyber defense forum", "cybersecurity"),
    ])
    def test_keywords(self, context, fragment):
        assert fragment in ImageGenerator.detect_theme(context)

    def test_first_match_wins(self):
        assert ImageGenerator.detect_theme("machine learning for web").startswith("AI and machine learning")

    def test_default(self):
        assert ImageGenerator.detect_theme("quarterly meeting") == DEFAULT_THEME
