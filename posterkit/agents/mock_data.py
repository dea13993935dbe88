"""Deterministic stand-in for the AI path when no credential is configured.

Everything is derived from the input URL (and today's date), so the same URL
always yields the same event.
"""
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional
from urllib.parse import urlparse

from posterkit.app.models import (
    BrandColors,
    ElementProperties,
    EventLocation,
    GeneratedTemplate,
    ParsedEventData,
    TemplateElement,
)

COLORS = [
    ('#6C5CE7', '#A29BFE'),
    ('#00B894', '#55EFC4'),
    ('#E17055', '#FAB1A0'),
    ('#0984E3', '#74B9FF'),
    ('#D63031', '#FF7675'),
]

CITIES = [
    {'city': 'San Francisco', 'country': 'USA', 'venue': 'Moscone Center'},
    {'city': 'New York', 'country': 'USA', 'venue': 'Javits Center'},
    {'city': 'London', 'country': 'UK', 'venue': 'ExCeL London'},
    {'city': 'Berlin', 'country': 'Germany', 'venue': 'Messe Berlin'},
    {'city': 'Tokyo', 'country': 'Japan', 'venue': 'Tokyo Big Sight'},
]

FONTS = ['Arial', 'Helvetica', 'Georgia']

DEFAULT_PRIMARY = '#6C5CE7'
DEFAULT_SECONDARY = '#A29BFE'
FALLBACK_EVENT_NAME = 'Conference Event'
ATTENDING_TEXT = "I'm Attending!"

TEMPLATE_CONFIGS = [
    {'name': 'Classic Professional', 'layout': 'classic', 'background': '#FFFFFF', 'text': '#1A1A2E', 'accent': 'primary'},
    {'name': 'Modern Gradient', 'layout': 'modern', 'background': 'primary', 'text': '#FFFFFF', 'accent': 'secondary'},
    {'name': 'Minimal Clean', 'layout': 'minimal', 'background': '#F5F5F7', 'text': '#1A1A2E', 'accent': 'primary'},
]

# Percent coordinates per layout; minimal has no logo slot
LAYOUT_POSITIONS = {
    'classic': {
        'title': {'x': 10, 'y': 10, 'width': 80, 'height': 15, 'font_size': 32},
        'badge': {'x': 10, 'y': 70, 'width': 40, 'height': 10, 'font_size': 24},
        'photo': {'x': 60, 'y': 30, 'width': 30, 'height': 30},
        'logo': {'x': 70, 'y': 5, 'width': 20, 'height': 10},
    },
    'modern': {
        'title': {'x': 10, 'y': 60, 'width': 80, 'height': 15, 'font_size': 28},
        'badge': {'x': 10, 'y': 80, 'width': 40, 'height': 10, 'font_size': 20},
        'photo': {'x': 25, 'y': 10, 'width': 50, 'height': 40},
        'logo': {'x': 5, 'y': 5, 'width': 15, 'height': 8},
    },
    'minimal': {
        'title': {'x': 10, 'y': 75, 'width': 80, 'height': 10, 'font_size': 24},
        'badge': {'x': 10, 'y': 88, 'width': 30, 'height': 8, 'font_size': 16},
        'photo': {'x': 20, 'y': 15, 'width': 60, 'height': 50},
        'logo': None,
    },
}


class MockDataGenerator:
    """Hash-driven mock event data and templates."""

    @staticmethod
    def hash_url(url: str) -> int:
        """Java-style string hash (h*31 + c over UTF-16 code units, int32 wraparound), made non-negative."""
        h = 0
        encoded = url.encode('utf-16-le', errors='surrogatepass')
        for i in range(0, len(encoded), 2):
            unit = encoded[i] | (encoded[i + 1] << 8)
            h = (h * 31 + unit) & 0xFFFFFFFF
        if h >= 0x80000000:
            h -= 0x100000000
        return abs(h)

    @staticmethod
    def extract_event_name(url: str) -> str:
        try:
            parsed = urlparse(url)
            hostname = parsed.hostname or ''
        except ValueError:
            # Malformed authority, e.g. an unclosed IPv6 bracket
            return FALLBACK_EVENT_NAME
        if not parsed.scheme or not parsed.netloc:
            return FALLBACK_EVENT_NAME

        segments = [segment for segment in parsed.path.split('/') if segment]
        if segments:
            words = segments[-1].replace('-', ' ').split(' ')
            name = ' '.join(word[:1].upper() + word[1:] for word in words).strip()
            if name:
                return name

        if hostname.startswith('www.'):
            hostname = hostname[4:]
        return hostname or FALLBACK_EVENT_NAME

    @classmethod
    def generate_event_data(cls, url: str, today: Optional[date] = None) -> ParsedEventData:
        h = cls.hash_url(url)
        primary, secondary = COLORS[h % len(COLORS)]
        city = CITIES[h % len(CITIES)]
        name = cls.extract_event_name(url)

        today = today or datetime.now(timezone.utc).date()
        start_date = today + timedelta(days=h % 180 + 30)
        end_date = start_date + timedelta(days=h % 3 + 1)

        return ParsedEventData(
            name=name,
            description=f"Join us for {name} - the premier event for professionals",
            start_date=start_date,
            end_date=end_date,
            location=EventLocation(is_virtual=h % 5 == 0, **city),
            brand_colors=BrandColors(primary=primary, secondary=secondary),
            organizer_name=f"{name.split(' ')[0]} Events",
        )

    @classmethod
    def generate_templates(cls, event_data: ParsedEventData, count: int) -> List[GeneratedTemplate]:
        brand = event_data.brand_colors
        palette = {
            'primary': (brand.primary if brand else None) or DEFAULT_PRIMARY,
            'secondary': (brand.secondary if brand else None) or DEFAULT_SECONDARY,
        }

        templates = []
        for i, config in enumerate(TEMPLATE_CONFIGS[:max(count, 0)]):
            templates.append(GeneratedTemplate(
                name=config['name'],
                layout=config['layout'],
                background_color=palette.get(config['background'], config['background']),
                elements=cls._generate_elements(
                    event_data.name,
                    text_color=config['text'],
                    accent_color=palette[config['accent']],
                    font_family=FONTS[i % len(FONTS)],
                    layout=config['layout'],
                ),
            ))
        return templates

    @staticmethod
    def _generate_elements(
        event_name: str,
        text_color: str,
        accent_color: str,
        font_family: str,
        layout: str,
    ) -> List[TemplateElement]:
        positions = LAYOUT_POSITIONS[layout]
        title = dict(positions['title'])
        badge = dict(positions['badge'])

        elements = [
            TemplateElement(id='event-name', type='text', properties=ElementProperties(
                content=event_name,
                fill=text_color,
                font_family=font_family,
                **title,
            )),
            TemplateElement(id='badge', type='text', properties=ElementProperties(
                content=ATTENDING_TEXT,
                fill=accent_color,
                font_family=font_family,
                **badge,
            )),
            TemplateElement(id='user-photo', type='image', properties=ElementProperties(**positions['photo'])),
        ]

        if positions['logo'] is not None:
            elements.append(
                TemplateElement(id='event-logo', type='logo', properties=ElementProperties(**positions['logo']))
            )
        return elements
