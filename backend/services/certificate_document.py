import io
from datetime import datetime

from PIL import Image, ImageDraw, ImageFont

from backend.core import config

# A4 at 150 dpi
PAGE_WIDTH, PAGE_HEIGHT = 1240, 1754
PAGE_RESOLUTION = 150.0

BORDER_COLOR = (107, 33, 168)
HEADING_COLOR = (0, 0, 0)
BODY_COLOR = (51, 51, 51)
MUTED_COLOR = (102, 102, 102)

SERIF_BOLD_FONT = "/usr/share/fonts/truetype/dejavu/DejaVuSerif-Bold.ttf"
SANS_FONT = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"
SANS_OBLIQUE_FONT = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Oblique.ttf"


def _load_font(path: str, size: int) -> ImageFont.ImageFont:
    try:
        return ImageFont.truetype(path, size)
    except OSError:
        return ImageFont.load_default(size=size)


def render_certificate_pdf(
    student_name: str,
    course_title: str,
    issued_at: datetime,
    certificate_no: str | None = None,
) -> bytes:
    """Draw a single-page certificate of completion and return it as PDF bytes."""
    img = Image.new('RGB', (PAGE_WIDTH, PAGE_HEIGHT), color='white')
    draw = ImageDraw.Draw(img)

    draw.rectangle([40, 40, PAGE_WIDTH - 40, PAGE_HEIGHT - 40], outline=BORDER_COLOR, width=6)

    platform_font = _load_font(SERIF_BOLD_FONT, 38)
    tagline_font = _load_font(SANS_FONT, 24)
    title_font = _load_font(SERIF_BOLD_FONT, 68)
    body_font = _load_font(SANS_FONT, 32)
    name_font = _load_font(SERIF_BOLD_FONT, 60)
    course_font = _load_font(SERIF_BOLD_FONT, 52)
    small_font = _load_font(SANS_FONT, 26)
    footer_font = _load_font(SANS_OBLIQUE_FONT, 24)

    def centered(text, font, y, fill):
        bbox = draw.textbbox((0, 0), text, font=font)
        draw.text(((PAGE_WIDTH - (bbox[2] - bbox[0])) / 2, y), text, fill=fill, font=font)

    centered(config.CERTIFICATE_PLATFORM_NAME, platform_font, 130, BORDER_COLOR)
    centered("Learning Management Platform", tagline_font, 190, MUTED_COLOR)
    centered("Certificate of Completion", title_font, 360, HEADING_COLOR)
    centered("This is to certify that", body_font, 560, BODY_COLOR)
    centered(student_name, name_font, 660, HEADING_COLOR)
    centered("has successfully completed the course", body_font, 800, BODY_COLOR)
    centered(course_title, course_font, 900, HEADING_COLOR)
    centered(f"Issued on: {issued_at.strftime('%a %b %d %Y')}", small_font, 1160, MUTED_COLOR)
    if certificate_no:
        centered(f"Certificate ID: {certificate_no}", small_font, 1210, MUTED_COLOR)

    footer = f"{config.CERTIFICATE_PLATFORM_NAME} LMS"
    bbox = draw.textbbox((0, 0), footer, font=footer_font)
    draw.text((PAGE_WIDTH - 120 - (bbox[2] - bbox[0]), PAGE_HEIGHT - 160), footer, fill=BODY_COLOR, font=footer_font)

    buf = io.BytesIO()
    img.save(buf, format='PDF', resolution=PAGE_RESOLUTION)
    return buf.getvalue()
