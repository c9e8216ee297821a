import logging
import os
from typing import Callable, List, Optional

from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from renderer.core.paginator import PageLayout, PrintPage, paginate
from renderer.core.records import CardRecord
from renderer.core.renderer import CardRenderer

logger = logging.getLogger(__name__)


def export_pdf(
    pages: List[PrintPage],
    renderer: CardRenderer,
    output_path: str,
    layout: PageLayout = PageLayout(),
    cut_marks: bool = False,
    progress: Optional[Callable[[int, int], None]] = None,
) -> str:
    """Write every page of the plan into one PDF.

    Cards are placed at their paginated positions in millimetres; the
    PDF origin is bottom-left so y is flipped.
    """
    if not pages:
        raise ValueError("No pages to export.")

    folder = os.path.dirname(output_path)
    if folder:
        os.makedirs(folder, exist_ok=True)

    page_w, page_h = layout.page_width * mm, layout.page_height * mm
    pdf = canvas.Canvas(output_path, pagesize=(page_w, page_h))

    for page in pages:
        for placement in page.placements:
            image = renderer.render(placement.card)
            x = placement.x * mm
            y = page_h - (placement.y + placement.height) * mm
            pdf.drawImage(ImageReader(image), x, y, width=placement.width * mm, height=placement.height * mm, mask="auto")
            if cut_marks:
                pdf.setLineWidth(0.2)
                pdf.setStrokeGray(0.6)
                pdf.rect(x, y, placement.width * mm, placement.height * mm, stroke=1, fill=0)
        pdf.showPage()
        if progress:
            progress(page.number, len(pages))

    pdf.save()
    logger.info("PDF saved: %s (%d pages)", output_path, len(pages))
    return output_path


def export_cards_pdf(
    records: List[CardRecord],
    renderer: CardRenderer,
    output_path: str,
    layout: PageLayout = PageLayout(),
    cut_marks: bool = False,
) -> str:
    return export_pdf(paginate(records, layout), renderer, output_path, layout, cut_marks)
