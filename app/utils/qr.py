import io
import qrcode
import qrcode.image.svg
from app.core.config import settings


SCAN_PATH = "/api/v1/qr-codes/scan"


def scan_url(qr_hash: str) -> str:
    """Public URL a phone lands on when it scans the printed code."""
    return f"{settings.public_url}{SCAN_PATH}/{qr_hash}"


def _build(data: str) -> qrcode.QRCode:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)
    return qr


def render_qr_png(data: str) -> bytes:
    """
    Renders `data` as a PNG QR code and returns the raw bytes.
    """
    img = _build(data).make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer)
    return buffer.getvalue()


def render_qr_svg(data: str) -> bytes:
    img = _build(data).make_image(image_factory=qrcode.image.svg.SvgPathImage)
    buffer = io.BytesIO()
    img.save(buffer)
    return buffer.getvalue()
