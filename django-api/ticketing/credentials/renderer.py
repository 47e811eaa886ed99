"""QR code rendering for admission credentials.

The rendered PNG is a convenience copy of the credential string; it can be
regenerated at any time and is never consulted at the gate.
"""

import base64
import io
import logging
import os
from pathlib import Path

import qrcode
from PIL import Image
from qrcode import constants

logger = logging.getLogger(__name__)

ERROR_CORRECTION_LEVELS = {
    "L": constants.ERROR_CORRECT_L,
    "M": constants.ERROR_CORRECT_M,
    "Q": constants.ERROR_CORRECT_Q,
    "H": constants.ERROR_CORRECT_H,
}


class QrRenderer:
    """Stateless renderer; configuration is fixed at construction."""

    def __init__(
        self,
        output_dir: str | os.PathLike,
        box_size: int = 10,
        border: int = 2,
        size: int = 256,
        error_correction: str = "M",
    ) -> None:
        if error_correction not in ERROR_CORRECTION_LEVELS:
            raise ValueError(f"Unknown error correction level: {error_correction!r}")
        self.output_dir = Path(output_dir)
        self.box_size = box_size
        self.border = border
        self.size = size
        self.error_correction = error_correction

    def _image(self, data: str) -> Image.Image:
        qr = qrcode.QRCode(
            version=None,
            error_correction=ERROR_CORRECTION_LEVELS[self.error_correction],
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(data)
        qr.make(fit=True)
        image = qr.make_image(fill_color="black", back_color="white").get_image()
        return image.convert("RGB").resize(
            (self.size, self.size), Image.Resampling.NEAREST
        )

    def render_png(self, data: str) -> bytes:
        buf = io.BytesIO()
        self._image(data).save(buf, format="PNG")
        return buf.getvalue()

    def render_data_uri(self, data: str) -> str:
        encoded = base64.b64encode(self.render_png(data)).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def render_file(self, data: str, name: str) -> str:
        """Write ``<name>.png`` to the output directory and return the file name."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{name}.png"
        self._image(data).save(self.output_dir / filename, format="PNG")
        logger.debug("Rendered QR code %s", filename)
        return filename
