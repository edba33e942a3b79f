# fasttrack/adapters/outbound/rendering/attestation_renderer.py

"""
Attestation rendering.

The body is a Jinja2 text template; the PDF is laid out with reportlab
in invariant mode so rendering the same data twice gives the same bytes.
"""

import io
from typing import Any, Dict, List

from jinja2 import Environment, PackageLoader, StrictUndefined
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

TEMPLATE_NAME = "attestation.txt.j2"
FONT_NAME = "Helvetica"
TITLE_FONT_NAME = "Helvetica-Bold"
FONT_SIZE = 10
LINE_HEIGHT = 14
MARGIN = 20 * mm
MAX_LINE_CHARS = 95

_env = Environment(
    loader=PackageLoader("fasttrack", "templates"),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    autoescape=False,
)


class AttestationRenderer:
    """Turns an attestation context into text, then into PDF bytes."""

    def __init__(self, environment: Environment = _env):
        self.environment = environment

    def render_text(self, context: Dict[str, Any]) -> str:
        return self.environment.get_template(TEMPLATE_NAME).render(**context)

    @staticmethod
    def _wrap(line: str) -> List[str]:
        if len(line) <= MAX_LINE_CHARS:
            return [line]
        indent = len(line) - len(line.lstrip())
        wrapped, current = [], ""
        for word in line.split():
            candidate = f"{current} {word}" if current else " " * indent + word
            if len(candidate) > MAX_LINE_CHARS and current:
                wrapped.append(current)
                current = " " * (indent + 4) + word
            else:
                current = candidate
        if current:
            wrapped.append(current)
        return wrapped

    def render_pdf(self, text: str, title: str) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4, invariant=1)
        pdf.setTitle(title)
        pdf.setAuthor("Fast Track")
        width, height = A4

        lines = [wrapped for line in text.splitlines() for wrapped in self._wrap(line)]
        y = height - MARGIN
        for index, line in enumerate(lines):
            if y < MARGIN:
                pdf.showPage()
                y = height - MARGIN
            # first line is the document heading
            pdf.setFont(TITLE_FONT_NAME if index == 0 else FONT_NAME, FONT_SIZE + 2 if index == 0 else FONT_SIZE)
            pdf.drawString(MARGIN, y, line)
            y -= LINE_HEIGHT

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    def render(self, context: Dict[str, Any], title: str) -> bytes:
        return self.render_pdf(self.render_text(context), title)


attestation_renderer = AttestationRenderer()
