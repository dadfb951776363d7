from __future__ import annotations

import io
from pathlib import Path
from typing import Optional

import qrcode
from PIL import Image

DEFAULT_SETTINGS = {
    "error_correction": qrcode.constants.ERROR_CORRECT_M,
    "box_size": 8,
    "border": 4,
    "fill_color": "black",
    "back_color": "white",
}


def _build(value: str, box_size: int, border: int) -> qrcode.QRCode:
    if not value:
        raise ValueError("Nothing to encode: the live session has no QR value yet.")
    qr = qrcode.QRCode(
        version=None,
        error_correction=DEFAULT_SETTINGS["error_correction"],
        box_size=box_size,
        border=border,
    )
    qr.add_data(value)
    qr.make(fit=True)
    return qr


def render_image(
    value: str,
    *,
    box_size: int = DEFAULT_SETTINGS["box_size"],
    border: int = DEFAULT_SETTINGS["border"],
) -> Image.Image:
    qr = _build(value, box_size, border)
    image = qr.make_image(
        fill_color=DEFAULT_SETTINGS["fill_color"],
        back_color=DEFAULT_SETTINGS["back_color"],
    )
    return image.get_image().convert("RGB") if hasattr(image, "get_image") else image.convert("RGB")


def render_png(value: str, path: Optional[Path] = None, **options: int) -> bytes:
    """Render ``value`` as PNG bytes, also writing them to ``path`` when given."""

    buffer = io.BytesIO()
    render_image(value, **options).save(buffer, format="PNG")
    data = buffer.getvalue()
    if path is not None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    return data


def render_ascii(value: str, *, border: int = 2, invert: bool = False) -> str:
    qr = _build(value, 1, border)
    buffer = io.StringIO()
    qr.print_ascii(out=buffer, invert=invert)
    return buffer.getvalue()
