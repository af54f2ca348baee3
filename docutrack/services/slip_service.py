"""Tracking slip generation.

Renders a one-page PDF that travels with the physical copy of a document:
a QR code encoding the document id (scanned later to receive it) plus the
title, id, creator, destination office and creation time.

Generation runs as a DocumentCreated subscriber. Any failure is raised as
ExternalServiceFailure and contained by the event bus, so a slip problem
never undoes the document creation that triggered it.
"""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import Union

from reportlab.graphics import renderPDF
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from docutrack.errors import ExternalServiceFailure
from docutrack.models.document import Document
from docutrack.models.events import DocumentCreated

logger = logging.getLogger(__name__)

SLIP_HEADING = "DocuTrack AI - Tracking Slip"
SLIP_FOOTER = "Please attach this slip to the physical copy of the document for tracking purposes."

PAGE_WIDTH, PAGE_HEIGHT = A4
LABEL_X = 20 * mm
VALUE_X = 60 * mm
VALUE_WIDTH = 80 * mm
QR_X, QR_SIZE = 150 * mm, 40 * mm
QR_TOP_MM = 25


def slip_filename(document: Document) -> str:
    """File name for a document's slip, unique per document id.

    Path separators and other unsafe characters in the title collapse to "_",
    so the slip always lands directly in the output directory.
    """
    safe_title = re.sub(r"[^\w.-]+", "_", document.title).strip("._") or "Untitled"
    safe_id = re.sub(r"[^\w-]+", "_", document.id)
    return f"DocuTrack-Slip-{safe_title}-{safe_id}.pdf"


def _top(y_mm: float) -> float:
    """Convert a distance from the top edge (mm) to PDF coordinates."""
    return PAGE_HEIGHT - y_mm * mm


class TrackingSlipGenerator:
    """Renders tracking slips with reportlab into an output directory."""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)

    def render(self, document: Document) -> bytes:
        """Render the slip for document and return the PDF bytes.

        Raises:
            ExternalServiceFailure: If reportlab cannot render the slip
        """
        buffer = io.BytesIO()
        try:
            pdf = canvas.Canvas(buffer, pagesize=A4)
            pdf.setTitle(f"Tracking Slip - {document.title}")
            self._draw(pdf, document)
            pdf.showPage()
            pdf.save()
        except Exception as exc:
            raise ExternalServiceFailure(
                f"Failed to generate PDF tracking slip: {exc}",
                service="slip",
                document_id=document.id,
            ) from exc
        return buffer.getvalue()

    def generate(self, document: Document) -> Path:
        """Render the slip and write it to the output directory.

        Returns:
            Path of the written PDF
        """
        data = self.render(document)
        path = self.output_dir / slip_filename(document)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise ExternalServiceFailure(
                f"Failed to write tracking slip: {exc}", service="slip", document_id=document.id
            ) from exc
        logger.info("Tracking slip for %s written to %s", document.id, path)
        return path

    def on_document_created(self, event: DocumentCreated) -> None:
        """DocumentCreated subscriber."""
        self.generate(event.document)

    def _draw(self, pdf: canvas.Canvas, document: Document) -> None:
        pdf.setFont("Helvetica-Bold", 22)
        pdf.drawCentredString(PAGE_WIDTH / 2, _top(20), SLIP_HEADING)

        self._draw_qr(pdf, document.id)

        self._draw_field(pdf, 40, "Document Title:", document.title)
        self._draw_field(pdf, 60, "Document ID:", document.id)

        creation = document.creation_entry
        self._draw_field(pdf, 80, "Created By:", f"{creation.user.name} ({creation.from_office.value})")
        destination = creation.to_office.value if creation.to_office else "None"
        self._draw_field(pdf, 90, "Sent To:", destination)
        self._draw_field(pdf, 100, "Date Created:", creation.timestamp.strftime("%m/%d/%Y, %I:%M:%S %p"))

        pdf.setLineWidth(0.5 * mm)
        pdf.line(20 * mm, _top(120), 190 * mm, _top(120))

        pdf.setFont("Helvetica-Oblique", 10)
        pdf.drawCentredString(PAGE_WIDTH / 2, _top(130), SLIP_FOOTER)

    def _draw_field(self, pdf: canvas.Canvas, y_mm: float, label: str, value: str) -> None:
        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawString(LABEL_X, _top(y_mm), label)
        pdf.setFont("Helvetica", 12)
        y = _top(y_mm)
        for line in simpleSplit(value, "Helvetica", 12, VALUE_WIDTH):
            pdf.drawString(VALUE_X, y, line)
            y -= 5 * mm

    def _draw_qr(self, pdf: canvas.Canvas, payload: str) -> None:
        widget = QrCodeWidget(payload, barLevel="H")
        x0, y0, x1, y1 = widget.getBounds()
        drawing = Drawing(
            QR_SIZE,
            QR_SIZE,
            transform=[QR_SIZE / (x1 - x0), 0, 0, QR_SIZE / (y1 - y0), 0, 0],
        )
        drawing.add(widget)
        renderPDF.draw(drawing, pdf, QR_X, _top(QR_TOP_MM) - QR_SIZE)
