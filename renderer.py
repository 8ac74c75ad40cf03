import io
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from errors import RenderError
from logger import get_logger
from schemas import isoformat_z

logger = get_logger(__name__)

IMAGE_SIZE = (800, 600)
BG_COLOR = (30, 30, 30)
TEXT_COLOR = (240, 240, 240)
BAR_COLOR = (70, 140, 220)
TOP_N = 5


@dataclass
class SummaryImage:
    content: bytes
    generated_at: datetime
    media_type: str = "image/png"


class SummaryImageCache:
    """Holds the most recently rendered summary image in memory."""

    def __init__(self):
        self._image: Optional[SummaryImage] = None

    def get(self) -> Optional[SummaryImage]:
        return self._image

    def set(self, image: SummaryImage) -> None:
        # Single reference assignment; readers get the old or the new image.
        self._image = image


def _fonts():
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", 28), ImageFont.truetype("DejaVuSans.ttf", 18)
    except OSError:
        return ImageFont.load_default(), ImageFont.load_default()


def render_summary(countries: Sequence, refreshed_at: datetime) -> bytes:
    """
    Draw the snapshot summary and return PNG bytes.

    The image shows the total number of countries, the refresh timestamp, the
    top 5 countries by estimated GDP and a bar chart of countries per region.
    ``countries`` may hold ORM rows or any objects with the same attributes.
    """
    try:
        font_title, font_body = _fonts()
        img = Image.new("RGB", IMAGE_SIZE, color=BG_COLOR)
        draw = ImageDraw.Draw(img)

        padding = 40
        y = padding
        draw.text((padding, y), "Countries Summary", fill=TEXT_COLOR, font=font_title)
        y += 50
        draw.text((padding, y), f"Total countries: {len(countries)}", fill=TEXT_COLOR, font=font_body)
        y += 30
        draw.text((padding, y), f"Last refreshed at: {isoformat_z(refreshed_at)}", fill=TEXT_COLOR, font=font_body)
        y += 40

        top = sorted(
            (c for c in countries if c.estimated_gdp),
            key=lambda c: c.estimated_gdp,
            reverse=True,
        )[:TOP_N]
        draw.text((padding, y), f"Top {TOP_N} countries by estimated GDP:", fill=TEXT_COLOR, font=font_body)
        y += 30
        if not top:
            draw.text((padding + 10, y), "No GDP data available.", fill=TEXT_COLOR, font=font_body)
            y += 24
        for idx, c in enumerate(top, start=1):
            draw.text((padding + 10, y), f"{idx}. {c.name}: {c.estimated_gdp:,.2f}", fill=TEXT_COLOR, font=font_body)
            y += 24

        y += 20
        _draw_region_bars(draw, countries, (padding, y), font_body)

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
    except (OSError, ValueError) as e:
        raise RenderError(str(e)) from e
    return buffer.getvalue()


def _draw_region_bars(draw: ImageDraw.ImageDraw, countries: Sequence, origin, font) -> None:
    x, y = origin
    counts = Counter(c.region or "Unknown" for c in countries)
    draw.text((x, y), "Countries per region:", fill=TEXT_COLOR, font=font)
    y += 30
    if not counts:
        return

    label_width = 180
    max_bar = IMAGE_SIZE[0] - x * 2 - label_width - 50
    row_height = max(10, min(24, (IMAGE_SIZE[1] - y - 10) // len(counts)))
    largest = max(counts.values())
    for region, count in counts.most_common():
        if y + row_height > IMAGE_SIZE[1]:
            break
        bar = max(1, int(max_bar * count / largest))
        draw.text((x, y), region[:20], fill=TEXT_COLOR, font=font)
        draw.rectangle([x + label_width, y + 2, x + label_width + bar, y + row_height - 4], fill=BAR_COLOR)
        draw.text((x + label_width + bar + 6, y), str(count), fill=TEXT_COLOR, font=font)
        y += row_height
