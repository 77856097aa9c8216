"""QR code rendering for client share links."""

import base64
import io
import qrcode
from qrcode.constants import ERROR_CORRECT_M

class QRService:
    """Render text payloads as PNG QR codes."""

    def __init__(self, box_size: int = 8, border: int = 4):
        self.box_size = box_size
        self.border = border

    def generate_png(self, data: str) -> bytes:
        """Generate QR code PNG from text."""
        qr = qrcode.QRCode(
            version=None,
            box_size=self.box_size,
            border=self.border,
            error_correction=ERROR_CORRECT_M,
        )
        qr.add_data(data)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()

    def generate_base64(self, data: str) -> str:
        return base64.b64encode(self.generate_png(data)).decode("ascii")
