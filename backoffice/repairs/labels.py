"""
Repair ticket labels rendered locally with Pillow and python-barcode.

The label carries the shop line, the Code128 barcode of the repair code,
and the customer and device underneath, so the ticket taped to a device
can be scanned straight back to its order.
"""
import io
import base64
import logging
from typing import Optional

import barcode
from barcode.writer import ImageWriter
from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

LABEL_WIDTH = 400  # 4 inches at 100 DPI
LABEL_HEIGHT = 200
MARGIN = 10


def _load_fonts():
    for bold, regular in (
        ('/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf', '/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf'),
        ('arialbd.ttf', 'arial.ttf'),
    ):
        try:
            return ImageFont.truetype(bold, 16), ImageFont.truetype(regular, 13), ImageFont.truetype(regular, 11)
        except (OSError, IOError):
            continue
    default = ImageFont.load_default()
    return default, default, default


def _centered(draw, y, text, font, width=LABEL_WIDTH):
    bbox = draw.textbbox((0, 0), text, font=font)
    draw.text(((width - (bbox[2] - bbox[0])) // 2, y), text, fill='black', font=font)
    return bbox[3] - bbox[1]


def _truncate(text, limit):
    text = text or ''
    return text if len(text) <= limit else text[:limit] + '...'


def render_barcode(value):
    """Code128 barcode for value as a PIL image, without the human readable text"""
    code128 = barcode.get_barcode_class('code128')
    return code128(value, writer=ImageWriter()).render({
        'write_text': False,
        'module_width': 0.3,
        'module_height': 18.0,
        'quiet_zone': 2.0,
        'font_size': 0,
        'text_distance': 0,
        'background': 'white',
        'foreground': 'black',
    })


def generate_repair_label(
    code: str,
    customer_name: str,
    device_name: Optional[str] = None,
    header: Optional[str] = None,
    creation_date: Optional[str] = None,
) -> str:
    """
    Render the ticket label for a repair order.

    Returns:
        Base64-encoded PNG image as data URL string
    """
    img = Image.new('RGB', (LABEL_WIDTH, LABEL_HEIGHT), color='white')
    draw = ImageDraw.Draw(img)
    font_large, font_medium, font_small = _load_fonts()

    top_line = ' '.join(part for part in (_truncate(header, 24), creation_date) if part)
    y = 6
    if top_line:
        y += _centered(draw, y, top_line, font_medium) + 6

    bottom_line = _truncate(customer_name, 22)
    if device_name:
        bottom_line = f"{bottom_line} - {_truncate(device_name, 18)}"

    try:
        barcode_img = render_barcode(code)
        available = LABEL_HEIGHT - y - 48
        scale = min((LABEL_WIDTH - 2 * MARGIN) / barcode_img.width, available / barcode_img.height)
        size = (int(barcode_img.width * scale), int(barcode_img.height * scale))
        barcode_img = barcode_img.resize(size, Image.Resampling.BILINEAR)
        img.paste(barcode_img, ((LABEL_WIDTH - size[0]) // 2, y))
        y += size[1] + 4
    except Exception as e:
        logger.error(f"Barcode generation failed for '{code}': {str(e)}", exc_info=True)
        y += 4

    y += _centered(draw, y, code, font_large) + 4
    _centered(draw, y, bottom_line, font_small)

    buffer = io.BytesIO()
    img.save(buffer, format='PNG', optimize=False, compress_level=1)
    image_base64 = base64.b64encode(buffer.getvalue()).decode('utf-8')
    buffer.close()
    img.close()
    return f'data:image/png;base64,{image_base64}'


def label_for_order(order, header=None):
    """Label data URL for a RepairOrder"""
    return generate_repair_label(
        code=order.barcode or order.code,
        customer_name=order.customer_name,
        device_name=order.device_name,
        header=header,
        creation_date=order.creation_date.strftime('%d/%m/%Y') if order.creation_date else None,
    )
