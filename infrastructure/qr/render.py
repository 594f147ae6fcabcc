"""QR rendering for the health access deep link.

The QR encodes the deep link only; the token itself carries no data.
"""
import io
from datetime import datetime
from typing import Optional

import qrcode
from PIL import Image, ImageDraw, ImageFont


def make_qr_png(data: str, box_size: int = 10) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _load_fonts():
    try:
        return (
            ImageFont.truetype("DejaVuSans-Bold.ttf", 44),
            ImageFont.truetype("DejaVuSans.ttf", 30),
        )
    except OSError:
        return ImageFont.load_default(), ImageFont.load_default()


def render_health_card(
    *,
    pet_name: str,
    deep_link: str,
    expires_at: datetime,
    headline: Optional[str] = None,
) -> bytes:
    """Phone-sized card: pet name, large QR, expiry line."""
    W, H = 720, 1080
    card = Image.new("RGB", (W, H), "white")
    draw = ImageDraw.Draw(card)
    font_title, font_body = _load_fonts()

    margin = 48
    draw.text((margin, margin), pet_name, fill=(20, 20, 20), font=font_title)
    draw.text(
        (margin, margin + 64),
        headline or "Health record access",
        fill=(90, 90, 90),
        font=font_body,
    )

    qr_img = Image.open(io.BytesIO(make_qr_png(deep_link))).convert("RGB")
    target = int(W * 0.8)
    qr_img = qr_img.resize((target, target))
    qr_y = 200
    card.paste(qr_img, ((W - target) // 2, qr_y))

    y = qr_y + target + 48
    draw.text(
        (margin, y),
        f"Valid until {expires_at.strftime('%d/%m/%Y %H:%M')} UTC",
        fill=(30, 30, 30),
        font=font_body,
    )
    draw.text(
        (margin, H - margin - 36),
        "Share only with your pet's professional",
        fill=(120, 120, 120),
        font=font_body,
    )

    out = io.BytesIO()
    card.save(out, format="PNG")
    return out.getvalue()
