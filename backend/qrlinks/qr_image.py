import base64
import math
from io import BytesIO
import segno
from PIL import Image

TARGET_SIZE = 512
BORDER = 1
ERROR_LEVEL = "m"


def encode_png_data_uri(url: str, size: int = TARGET_SIZE) -> str:
    """Render `url` as a `size` x `size` PNG QR code and return it as a base64 data URI.

    segno only scales by whole pixels per module, so the symbol is rendered at the
    next scale up and resized with nearest-neighbour sampling to keep edges sharp.
    """
    qr = segno.make_qr(url, error=ERROR_LEVEL, boost_error=False)
    modules_x, modules_y = qr.symbol_size(scale=1, border=BORDER)
    scale = max(1, math.ceil(size / max(modules_x, modules_y)))

    out = BytesIO()
    qr.save(out, kind="png", scale=scale, border=BORDER)
    out.seek(0)

    img = Image.open(out)
    if img.size != (size, size):
        img = img.convert("L").resize((size, size), Image.NEAREST)
    png_io = BytesIO()
    img.save(png_io, format="PNG")
    return "data:image/png;base64," + base64.b64encode(png_io.getvalue()).decode("ascii")
