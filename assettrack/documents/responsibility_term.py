from __future__ import annotations

from datetime import datetime
from io import BytesIO
from typing import Iterable, List

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from assettrack.domain.records import Asset, Employee, LegalEntity


PDF_MIMETYPE = "application/pdf"

TITLE = "TERMO DE RESPONSABILIDADE DE USO DE EQUIPAMENTOS"
DECLARATION = (
    "Declaro ter recebido os equipamentos relacionados acima em perfeito estado de conservacao "
    "e funcionamento, comprometendo-me a zelar por sua guarda e uso exclusivo para fins profissionais. "
    "Em caso de dano, perda ou extravio por mau uso, autorizo a apuracao de responsabilidade conforme "
    "a politica interna da empresa. Ao termino do vinculo ou quando solicitado, devolverei os "
    "equipamentos nas mesmas condicoes em que os recebi."
)
ITEM_COLUMNS = (("ID", 0), ("Tipo", 30), ("Marca/Modelo", 60), ("Serie", 115), ("Valor (R$)", 150))


def _brl(value: float) -> str:
    text = f"{float(value or 0):,.2f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def _wrap(c: canvas.Canvas, text: str, width: float, font: str, size: int) -> List[str]:
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if c.stringWidth(candidate, font, size) <= width:
            current = candidate
            continue
        if current:
            lines.append(current)
        current = word
    if current:
        lines.append(current)
    return lines


class _Page:
    def __init__(self, c: canvas.Canvas) -> None:
        self.c = c
        self.width, self.height = A4
        self.x = 15 * mm
        self.y = self.height - 20 * mm

    def ensure(self, space: float) -> None:
        if self.y - space < 20 * mm:
            self.c.showPage()
            self.y = self.height - 20 * mm

    def line(self, text: str, *, font: str = "Helvetica", size: int = 9, step: float = 5 * mm) -> None:
        self.ensure(step)
        self.c.setFont(font, size)
        self.c.drawString(self.x, self.y, text)
        self.y -= step

    def paragraph(self, text: str, *, size: int = 9) -> None:
        for line in _wrap(self.c, text, self.width - 30 * mm, "Helvetica", size):
            self.line(line, size=size, step=4.5 * mm)


def build_responsibility_term(
    *,
    employee: Employee,
    assets: Iterable[Asset],
    legal_entity: LegalEntity | None = None,
    company_name: str = "AssetTrack Pro",
    include_photos: bool = False,
) -> BytesIO:
    assets = list(assets)
    bio = BytesIO()
    c = canvas.Canvas(bio, pagesize=A4)
    c.setTitle(f"Termo de Responsabilidade - {employee.name}")
    page = _Page(c)

    page.line(legal_entity.name if legal_entity else company_name, font="Helvetica-Bold", size=12, step=6 * mm)
    if legal_entity:
        page.line(f"CNPJ: {legal_entity.cnpj or '-'}")
        page.line(f"Endereco: {legal_entity.address or '-'}")
    page.y -= 4 * mm
    page.line(TITLE, font="Helvetica-Bold", size=13, step=10 * mm)

    page.line("COLABORADOR", font="Helvetica-Bold", size=10, step=6 * mm)
    page.line(f"Nome: {employee.name}")
    page.line(f"CPF: {employee.cpf or '-'}")
    page.line(f"Cargo: {employee.role or '-'}    Setor: {employee.sector or '-'}")
    page.line(f"Matricula: {employee.id}", step=8 * mm)

    page.line("EQUIPAMENTOS", font="Helvetica-Bold", size=10, step=6 * mm)
    c.setFont("Helvetica-Bold", 9)
    for title, offset in ITEM_COLUMNS:
        c.drawString(page.x + offset * mm, page.y, title)
    page.y -= 6 * mm
    total = 0.0
    for asset in assets:
        page.ensure(5 * mm)
        c.setFont("Helvetica", 9)
        cells = (
            asset.id,
            asset.type,
            f"{asset.brand} {asset.model}".strip(),
            asset.serial_number or "-",
            _brl(asset.purchase_value),
        )
        for (_, offset), cell in zip(ITEM_COLUMNS, cells):
            c.drawString(page.x + offset * mm, page.y, str(cell)[:32])
        page.y -= 5 * mm
        total += float(asset.purchase_value or 0)
    page.line(f"Valor total: R$ {_brl(total)}", font="Helvetica-Bold", step=10 * mm)

    page.paragraph(DECLARATION)
    page.y -= 6 * mm
    page.line(f"Data: {datetime.now().strftime('%d/%m/%Y')}", step=20 * mm)

    page.ensure(20 * mm)
    c.line(page.x, page.y, page.x + 75 * mm, page.y)
    c.line(page.x + 95 * mm, page.y, page.x + 170 * mm, page.y)
    page.y -= 5 * mm
    c.setFont("Helvetica", 8)
    c.drawString(page.x, page.y, employee.name)
    c.drawString(page.x + 95 * mm, page.y, "Responsavel TI")

    photo_assets = [asset for asset in assets if asset.photos]
    if include_photos and photo_assets:
        c.showPage()
        page.y = page.height - 20 * mm
        page.line("ANEXO - REGISTRO FOTOGRAFICO", font="Helvetica-Bold", size=11, step=8 * mm)
        for asset in photo_assets:
            page.line(f"{asset.id} - {asset.type} {asset.brand} {asset.model}".strip(), font="Helvetica-Bold")
            for index, photo in enumerate(asset.photos, start=1):
                reference = photo if len(photo) <= 90 else f"{photo[:87]}..."
                page.line(f"  Foto {index}: {reference}", size=8, step=4.5 * mm)
            page.y -= 3 * mm

    c.showPage()
    c.save()
    bio.seek(0)
    return bio
