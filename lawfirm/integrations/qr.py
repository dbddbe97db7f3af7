"""
integrations/qr.py
------------------
QR code rendering to PNG data URLs (invitation links, authenticator setup).
"""

import base64
import io

import qrcode


def qr_code_data_url(payload: str) -> str:
    qr = qrcode.QRCode(version=None, box_size=10, border=4)
    qr.add_data(payload)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
