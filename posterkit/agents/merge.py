"""Combine the vision model's answer with what the HTML heuristics found."""
from posterkit.agents.tools import HtmlScraper
from posterkit.app.models import ParsedEventData, ScrapedData


def merge_event_data(ai_result: ParsedEventData, scraped: ScrapedData) -> ParsedEventData:
    """
    Merge AI output with scraped page facts.

    - brand colors: the AI's when present, else the first scraped colors
    - logo: scraped wins (it is a real URL from the page)
    - hero image: AI wins, scraped og:image otherwise
    - everything else passes through from the AI result
    """
    return ai_result.model_copy(update={
        'brand_colors': ai_result.brand_colors or HtmlScraper.to_brand_colors(scraped.colors),
        'logo_url': scraped.logo_url or ai_result.logo_url,
        'hero_image_url': ai_result.hero_image_url or scraped.og_image,
    })
