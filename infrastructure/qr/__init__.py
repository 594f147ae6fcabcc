"""QR code rendering"""
from .render import make_qr_png, render_health_card

__all__ = ["make_qr_png", "render_health_card"]
