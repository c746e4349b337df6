"""Text labels drawn over board cells."""

from pydantic import BaseModel

from PIL.Image import Image
from PIL.Image import new as new_img
from PIL.ImageDraw import Draw
from PIL.ImageFont import load_default

from .hexes import HexCoord, XYCoord


class CellLabel(BaseModel):
    """A boxed piece of text centered on a cell, e.g. its coordinates."""

    cell: HexCoord
    text: str
    offset: XYCoord = (0.0, 0.0)
    font_size: int = 12
    padding: int = 3

    def to_image(self) -> Image:
        """Draw the label on its own transparent image."""
        pad = self.padding
        font = load_default(size=self.font_size)
        _, _, w_txt, h_txt = font.getbbox(self.text)
        w, h = int(w_txt) + 2 * pad, int(h_txt) + 2 * pad

        img = new_img("RGBA", size=(w, h), color=(255, 255, 255, 0))
        d = Draw(img)
        d.rounded_rectangle(
            (0, 0, w - 1, h - 1),
            radius=pad,
            outline=(0, 0, 0, 255),
            fill=(255, 255, 255, 230),
            width=1,
        )
        d.text((pad, pad), self.text, font=font, fill=(0, 0, 0, 255))
        return img

    def paste_onto(self, img: Image, center: XYCoord) -> None:
        """Paste onto `img` so the label sits at `center` plus its offset."""
        label = self.to_image()
        w, h = label.size
        x = int(center[0] + self.offset[0]) - w // 2
        y = int(center[1] + self.offset[1]) - h // 2
        img.paste(label, (x, y), mask=label)
