"""
Thin drawing layer over a ReportLab canvas (A4, Helvetica)
"""
import io

from reportlab.lib.colors import Color
from reportlab.lib.pagesizes import A4
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from skuld.modules.pdf.formatting import wrap_text

W, H = A4  # 595.27 x 841.89
MARGIN = 50
CONTENT_W = W - 2 * MARGIN

BLACK = Color(0, 0, 0)
GRAY = Color(0.4, 0.4, 0.4)
LIGHT_GRAY = Color(0.92, 0.92, 0.92)
WHITE = Color(1, 1, 1)
PRIMARY = Color(0.13, 0.39, 0.68)

REGULAR = "Helvetica"
BOLD = "Helvetica-Bold"


class PdfCanvas:
    """Single-page canvas writing into memory"""

    def __init__(self, title: str = ""):
        self.buffer = io.BytesIO()
        self.c = canvas.Canvas(self.buffer, pagesize=A4)
        if title:
            self.c.setTitle(title)

    def text(self, text, x, y, font=REGULAR, size=10, color=BLACK,
             align="left", max_width=None, line_height=None) -> float:
        """Draw text at (x, y) and return the y of the next line"""
        line_height = line_height or size * 1.4
        lines = wrap_text(text, font, size, max_width) if max_width else [text]
        self.c.setFont(font, size)
        self.c.setFillColor(color)
        for line in lines:
            draw_x = x
            if align == "right":
                draw_x = x - stringWidth(line, font, size)
            elif align == "center":
                draw_x = x - stringWidth(line, font, size) / 2
            self.c.drawString(draw_x, y, line)
            y -= line_height
        return y

    def hline(self, x, y, width, color=GRAY, thickness=0.5):
        self.c.setStrokeColor(color)
        self.c.setLineWidth(thickness)
        self.c.line(x, y, x + width, y)

    def rect(self, x, y, width, height, color):
        self.c.setFillColor(color)
        self.c.rect(x, y, width, height, stroke=0, fill=1)

    def image(self, reader, x, y, width, height):
        self.c.drawImage(reader, x, y, width=width, height=height, mask="auto")

    def to_bytes(self) -> bytes:
        self.c.showPage()
        self.c.save()
        return self.buffer.getvalue()
