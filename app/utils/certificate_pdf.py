import io
import os
from datetime import datetime
from typing import Any, Dict, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from app.core.config import settings
from app.db.schema import Certificate, LabTest
from app.utils.qr import render_qr_png


CERTIFICATE_DIR = "certificates"
HEADER_COLOR = colors.HexColor("#2563eb")
BORDER_COLOR = colors.HexColor("#e5e7eb")
LABEL_X = 70
VALUE_X = 250


def certificate_filename(certificate: Certificate) -> str:
    return f"certificate_{certificate.id}.pdf"


def certificate_path(filename: str) -> str:
    return os.path.join(settings.static_dir, CERTIFICATE_DIR, filename)


def _row(pdf: canvas.Canvas, y: float, label: str, value: Any) -> None:
    pdf.setFont("Helvetica-Bold", 12)
    pdf.drawString(LABEL_X, y, label)
    pdf.setFont("Helvetica", 12)
    pdf.drawString(VALUE_X, y, str(value) if value not in (None, "") else "N/A")


def render_certificate_pdf(
    certificate: Certificate,
    test: Optional[LabTest] = None,
    results: Optional[Dict[str, Any]] = None
) -> bytes:
    """
    Draws a one or more page A4 certificate of analysis: header band,
    certificate details, test results and a QR code carrying
    `certificate.qr_code_data`.
    """
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    pdf.setFillColor(HEADER_COLOR)
    pdf.rect(0, height - 120, width, 120, stroke=0, fill=1)

    pdf.setFillColor(colors.white)
    pdf.setFont("Helvetica-Bold", 26)
    pdf.drawCentredString(width / 2, height - 55, "AyuTrace Laboratory")
    pdf.setFont("Helvetica", 16)
    pdf.drawCentredString(width / 2, height - 80, "Certificate of Analysis")
    pdf.setFont("Helvetica", 11)
    pdf.drawCentredString(width / 2, height - 100, "Certified Laboratory - Supply Chain Verified")

    pdf.setFillColor(colors.black)
    pdf.setFont("Helvetica-Bold", 20)
    pdf.drawCentredString(width / 2, height - 170, certificate.certificate_type.value.replace("_", " "))

    pdf.setStrokeColor(BORDER_COLOR)
    pdf.rect(50, height - 430, width - 100, 220, stroke=1, fill=0)

    y = height - 240
    rows = [
        ("Certificate Number:", certificate.certificate_number),
        ("Sample Name:", test.sample_name if test else None),
        ("Test Type:", test.test_type.value if test else None),
        ("Batch Number:", test.batch_number if test else None),
        ("Test Status:", test.status.value if test else None),
        ("Issue Date:", certificate.issue_date.strftime("%Y-%m-%d")),
        ("Valid Until:", certificate.expiry_date.strftime("%Y-%m-%d") if certificate.expiry_date else None),
    ]
    for label, value in rows:
        _row(pdf, y, label, value)
        y -= 25

    if certificate.qr_code_data:
        qr_image = ImageReader(io.BytesIO(render_qr_png(certificate.qr_code_data)))
        pdf.drawImage(qr_image, width - 170, height - 420, width=100, height=100)

    results = results if results is not None else (test.results if test else None)
    if results:
        y = height - 470
        pdf.setFont("Helvetica-Bold", 16)
        pdf.drawString(LABEL_X, y, "Test Results")
        y -= 25
        for key, value in results.items():
            if y < 120:
                pdf.showPage()
                y = height - 60
            _row(pdf, y, f"{key}:", value)
            y -= 20

    pdf.setFont("Helvetica", 9)
    pdf.drawCentredString(
        width / 2, 80,
        "This certificate is digitally generated and verified through the AyuTrace traceability ledger.")
    pdf.drawCentredString(width / 2, 65, f"Generated on: {datetime.utcnow().isoformat()}Z")

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def write_certificate_pdf(certificate: Certificate, test: Optional[LabTest] = None) -> str:
    """
    Renders the certificate into the static certificates directory and
    returns the stored filename.
    """
    filename = certificate_filename(certificate)
    path = certificate_path(filename)
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "wb") as f:
        f.write(render_certificate_pdf(certificate, test))
    return filename
