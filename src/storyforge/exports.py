"""
PDF export for stories.

Export is split in two steps: ``layout_story`` positions every line of text
on A4 pages (millimetres, measured from the top-left corner) and
``render_pdf`` draws that layout with reportlab's canvas. The canvas runs in
invariant mode, so the same story always produces the same bytes.
"""

import re
import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import List, Optional, Union

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from .models import Story

logger = logging.getLogger(__name__)

PAGE_WIDTH = 210  # A4 width in mm
PAGE_HEIGHT = 297  # A4 height in mm
MARGIN = 20
CONTENT_WIDTH = PAGE_WIDTH - (2 * MARGIN)

TITLE_FONT = ("Helvetica-Bold", 24)
META_FONT = ("Helvetica-Oblique", 12)
HEADING_FONT = ("Helvetica-Bold", 12)
CHARACTER_FONT = ("Helvetica", 12)
BODY_FONT = ("Times-Roman", 12)

TITLE_LINE_HEIGHT = 10
META_LINE_HEIGHT = 8
LINE_HEIGHT = 7
PARAGRAPH_SPACING = 5
CHARACTER_INDENT = 5

_PATH_TRAVERSAL_PATTERN = re.compile(r'\.\.+')
_DANGEROUS_CHARS_PATTERN = re.compile(r'[<>:"|?*\\/;&`$\x00-\x1f]')
_WHITESPACE_PATTERN = re.compile(r'\s+')
_NON_WORD_PATTERN = re.compile(r"[^\w '\-,!.()]")


@dataclass
class TextItem:
    """One line of text placed on a page. ``y`` is the baseline, from the top edge."""
    text: str
    x: float
    y: float
    font: str
    size: int
    align: str = "left"


@dataclass
class Page:
    items: List[TextItem] = field(default_factory=list)


@dataclass
class PdfLayout:
    title: str
    pages: List[Page] = field(default_factory=list)
    paragraphs: List[str] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)


def format_generated_date(story: Story) -> str:
    """Render the generation date as M/D/YYYY."""
    date = story.date_generated
    return f"{date.month}/{date.day}/{date.year}"


def split_paragraphs(content: str) -> List[str]:
    """Split story content on blank lines, dropping empty paragraphs."""
    return [p for p in content.split("\n\n") if p.strip()]


def _wrap(text: str, font, width_mm: float) -> List[str]:
    font_name, font_size = font
    return simpleSplit(text, font_name, font_size, width_mm * mm) or [""]


class _LayoutCursor:
    """Tracks the current page and vertical position while laying out text."""

    def __init__(self, layout: PdfLayout):
        self.layout = layout
        self.page = Page()
        layout.pages.append(self.page)
        self.y: float = MARGIN

    def new_page(self):
        self.page = Page()
        self.layout.pages.append(self.page)
        self.y = MARGIN

    def break_if_past_bottom(self):
        if self.y > PAGE_HEIGHT - MARGIN:
            self.new_page()

    def add(self, text: str, x: float, font, align: str = "left", y: Optional[float] = None):
        font_name, font_size = font
        self.page.items.append(TextItem(
            text=text,
            x=x,
            y=self.y if y is None else y,
            font=font_name,
            size=font_size,
            align=align,
        ))


def layout_story(story: Story) -> PdfLayout:
    """
    Position the title, metadata, characters and body of a story on pages.

    Args:
        story: Story, with ``characters`` attached if they should be listed

    Returns:
        PdfLayout with one Page per PDF page
    """
    layout = PdfLayout(title=story.title)
    cursor = _LayoutCursor(layout)

    # Title, centred; long titles wrap onto extra centred lines
    title_lines = _wrap(story.title, TITLE_FONT, CONTENT_WIDTH)
    for index, line in enumerate(title_lines):
        cursor.add(line, PAGE_WIDTH / 2, TITLE_FONT, align="center", y=MARGIN + index * TITLE_LINE_HEIGHT)
    top = MARGIN + (len(title_lines) - 1) * TITLE_LINE_HEIGHT

    cursor.y = top + 12
    cursor.add(f"Theme: {story.theme[:1].upper()}{story.theme[1:]}", MARGIN, META_FONT)
    cursor.y += META_LINE_HEIGHT
    cursor.add(f"Generated: {format_generated_date(story)}", MARGIN, META_FONT)
    if story.setting:
        for line in _wrap(f"Setting: {story.setting}", META_FONT, CONTENT_WIDTH):
            cursor.y += META_LINE_HEIGHT
            cursor.add(line, MARGIN, META_FONT)
    cursor.y += META_LINE_HEIGHT

    if story.characters:
        cursor.add("Characters:", MARGIN, HEADING_FONT)
        cursor.y += META_LINE_HEIGHT
        for character in story.characters:
            bullet = f"• {character.name}"
            if character.description:
                bullet += f": {character.description}"
            for line in _wrap(bullet, CHARACTER_FONT, CONTENT_WIDTH - CHARACTER_INDENT):
                cursor.break_if_past_bottom()
                cursor.add(line, MARGIN + CHARACTER_INDENT, CHARACTER_FONT)
                cursor.y += LINE_HEIGHT
        cursor.y += PARAGRAPH_SPACING
    else:
        cursor.y += 10

    layout.paragraphs = split_paragraphs(story.content)
    for paragraph in layout.paragraphs:
        cursor.break_if_past_bottom()
        for line in _wrap(paragraph, BODY_FONT, CONTENT_WIDTH):
            # A paragraph that runs past the bottom margin continues on the next page
            cursor.break_if_past_bottom()
            cursor.add(line, MARGIN, BODY_FONT)
            cursor.y += LINE_HEIGHT
        cursor.y += PARAGRAPH_SPACING

    return layout


def render_pdf(layout: PdfLayout) -> bytes:
    """Draw a layout with reportlab and return the PDF bytes."""
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4, invariant=1)
    pdf.setTitle(layout.title)
    pdf.setAuthor("StoryForge")

    for page_number, page in enumerate(layout.pages):
        if page_number:
            pdf.showPage()
        for item in page.items:
            pdf.setFont(item.font, item.size)
            x = item.x * mm
            y = (PAGE_HEIGHT - item.y) * mm
            if item.align == "center":
                pdf.drawCentredString(x, y, item.text)
            else:
                pdf.drawString(x, y, item.text)

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def export_story_pdf(story: Story) -> bytes:
    """
    Export a story as a PDF document.

    Raises:
        Exception: Layout and reportlab errors propagate to the caller
    """
    layout = layout_story(story)
    logger.debug(f"Laid out story {story.id} on {layout.page_count} page(s)")
    return render_pdf(layout)


def sanitize_filename(title: str, story_id: Union[int, str], max_length: int = 100) -> str:
    """
    Sanitize a title for use as a download filename.

    Path separators, traversal sequences, shell metacharacters and characters
    Windows forbids are removed; spaces and letters (including non-ASCII) are
    kept so the name reads like the title.

    Args:
        title: Story title
        story_id: Story ID for the fallback name
        max_length: Maximum length of the result

    Returns:
        Filename without extension
    """
    safe = _PATH_TRAVERSAL_PATTERN.sub('', title or '')
    safe = _DANGEROUS_CHARS_PATTERN.sub('', safe)
    safe = _NON_WORD_PATTERN.sub('', safe)
    safe = _WHITESPACE_PATTERN.sub(' ', safe).strip(' .-')

    if len(safe) > max_length:
        safe = safe[:max_length].rstrip()

    if not safe:
        safe = f"Story_{story_id}"

    return safe
