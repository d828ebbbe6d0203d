from __future__ import annotations

from datetime import date
from io import BytesIO
from typing import Iterable

import qrcode
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from assettrack.domain.records import Asset


TEXT_MIMETYPE = "text/plain; charset=utf-8"

LABEL_WIDTH = 60 * mm
LABEL_HEIGHT = 40 * mm
LABEL_GAP = 5 * mm
COLUMNS = 3
ROWS = 6
QR_SIZE = 22 * mm


def qr_png(data: str) -> BytesIO:
    qr = qrcode.QRCode(version=1, box_size=4, border=1)
    qr.add_data(data)
    qr.make(fit=True)
    qr_img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    qr_img.save(buffer, format="PNG")
    buffer.seek(0)
    return buffer


def build_label_sheet(assets: Iterable[Asset], company_name: str = "AssetTrack Pro") -> BytesIO:
    """Grid of adhesive labels: company, QR code, inventory id, brand - type."""
    bio = BytesIO()
    c = canvas.Canvas(bio, pagesize=A4)
    width, height = A4
    left = (width - (COLUMNS * LABEL_WIDTH + (COLUMNS - 1) * LABEL_GAP)) / 2
    top = height - 15 * mm

    for position, asset in enumerate(assets):
        slot = position % (COLUMNS * ROWS)
        if position and slot == 0:
            c.showPage()
        column, row = slot % COLUMNS, slot // COLUMNS
        x = left + column * (LABEL_WIDTH + LABEL_GAP)
        y = top - (row + 1) * LABEL_HEIGHT - row * LABEL_GAP

        c.setLineWidth(0.5)
        c.roundRect(x, y, LABEL_WIDTH, LABEL_HEIGHT, 2 * mm)
        c.setFont("Helvetica-Bold", 7)
        c.drawCentredString(x + LABEL_WIDTH / 2, y + LABEL_HEIGHT - 5 * mm, company_name[:40])

        qr_value = asset.qr_code or f"QR-{asset.id}"
        c.drawImage(
            ImageReader(qr_png(qr_value)),
            x + (LABEL_WIDTH - QR_SIZE) / 2,
            y + 10 * mm,
            width=QR_SIZE,
            height=QR_SIZE,
        )
        c.setFont("Helvetica-Bold", 10)
        c.drawCentredString(x + LABEL_WIDTH / 2, y + 6 * mm, asset.id)
        c.setFont("Helvetica", 6)
        c.drawCentredString(x + LABEL_WIDTH / 2, y + 2.5 * mm, f"{asset.brand} - {asset.type}"[:48])

    c.showPage()
    c.save()
    bio.seek(0)
    return bio


def build_label_text(assets: Iterable[Asset], company_name: str = "AssetTrack Pro", today: date | None = None) -> str:
    exported = (today or date.today()).strftime("%d/%m/%Y")
    separator = "=" * 30
    blocks = []
    for asset in assets:
        blocks.append(
            "\n".join(
                [
                    separator,
                    f"EMPRESA: {company_name}",
                    f"ID INVENTÁRIO: {asset.id}",
                    f"TIPO: {asset.type}",
                    f"MARCA: {asset.brand}",
                    f"MODELO: {asset.model}",
                    f"QR CODE: {asset.qr_code or f'QR-{asset.id}'}",
                    f"STATUS: {asset.status}",
                    f"DATA EXPORTAÇÃO: {exported}",
                    separator,
                ]
            )
        )
    return "\n\n".join(blocks)
