"""Basket export in various formats."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .errors import ValidationError
from .models import Basket, GroceryItem
from .projector import StableViewProjector, ViewMode
from .scaler import format_quantity

FORMATS = {
    ".json": "json",
    ".md": "md",
    ".markdown": "md",
    ".pdf": "pdf",
}


def _groups(basket: Basket, mode: ViewMode | str) -> dict[str, list[GroceryItem]]:
    projector = StableViewProjector()
    projector.reconcile(basket)
    return projector.project(mode).groups


def export_to_json(
    basket: Basket, filepath: str | Path, *, mode: ViewMode | str = ViewMode.CATEGORY
) -> None:
    """
    Export a basket to JSON format.

    Args:
        basket: Basket snapshot
        filepath: Output file path
        mode: Grouping of the "groups" section (category or recipe)
    """
    data: dict[str, Any] = {
        "exported_at": datetime.now().isoformat(),
        "basket_id": basket.id,
        "name": basket.name,
        "recipes": [
            {
                "recipe_id": entry.recipe_id,
                "title": entry.title,
                "servings": entry.servings,
                "original_servings": entry.original_servings,
            }
            for entry in basket.recipes
        ],
        "items": [item.to_dict() for item in basket.items],
        "groups": {
            name: [item.id for item in items] for name, items in _groups(basket, mode).items()
        },
        "summary": {
            "total_items": len(basket.items),
            "checked": basket.checked_count,
            "remaining": len(basket.items) - basket.checked_count,
        },
    }

    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def export_to_markdown(
    basket: Basket, filepath: str | Path, *, mode: ViewMode | str = ViewMode.CATEGORY
) -> None:
    """
    Export a basket to a Markdown checklist.

    Args:
        basket: Basket snapshot
        filepath: Output file path
        mode: Group items by category or by recipe
    """
    lines: list[str] = []

    lines.append(f"# {basket.name or 'Grocery List'}")
    lines.append("")
    lines.append(f"*Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}*")
    lines.append("")

    if basket.recipes:
        lines.append("## Recipes")
        lines.append("")
        for entry in basket.recipes:
            lines.append(f"- {entry.title} ({entry.servings} servings)")
        lines.append("")

    for name, items in _groups(basket, mode).items():
        lines.append(f"## {name}")
        lines.append("")
        for item in items:
            box = "[x]" if item.checked else "[ ]"
            quantity = format_quantity(item.amount, item.unit)
            lines.append(f"- {box} {item.name}" + (f" ({quantity})" if quantity else ""))
        lines.append("")

    with open(filepath, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))


def export_to_pdf(
    basket: Basket, filepath: str | Path, *, mode: ViewMode | str = ViewMode.CATEGORY
) -> None:
    """
    Export a basket to PDF format.

    Args:
        basket: Basket snapshot
        filepath: Output file path
        mode: Group items by category or by recipe
    """
    doc = SimpleDocTemplate(
        str(filepath),
        pagesize=A4,
        rightMargin=2 * cm,
        leftMargin=2 * cm,
        topMargin=2 * cm,
        bottomMargin=2 * cm,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "CustomTitle",
        parent=styles["Heading1"],
        fontSize=18,
        spaceAfter=12,
    )
    subtitle_style = ParagraphStyle(
        "CustomSubtitle",
        parent=styles["Normal"],
        fontSize=10,
        textColor=colors.grey,
        spaceAfter=20,
    )

    elements: list[Any] = []
    elements.append(Paragraph(basket.name or "Grocery List", title_style))
    elements.append(
        Paragraph(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}", subtitle_style)
    )

    for name, items in _groups(basket, mode).items():
        elements.append(Paragraph(name, styles["Heading2"]))
        elements.append(Spacer(1, 6))

        table_data = [["", "Item", "Quantity"]]
        for item in items:
            quantity = format_quantity(item.amount, item.unit) or "-"
            table_data.append(["☑" if item.checked else "☐", item.name, quantity])

        table = Table(table_data, colWidths=[1 * cm, 10 * cm, 4 * cm])
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("ALIGN", (2, 0), (2, -1), "RIGHT"),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("PADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        elements.append(table)
        elements.append(Spacer(1, 12))

    doc.build(elements)


def export_basket(
    basket: Basket,
    filepath: str | Path,
    *,
    format: str | None = None,
    mode: ViewMode | str = ViewMode.CATEGORY,
) -> str:
    """
    Export a basket to file.

    Format is auto-detected from file extension if not specified.

    Args:
        basket: Basket snapshot
        filepath: Output file path
        format: Output format (json, md, pdf) - auto-detected if None
        mode: Group items by category or by recipe

    Returns:
        The format used for export

    Raises:
        ValidationError: If the format is not supported
    """
    path = Path(filepath)

    if format is None:
        format = FORMATS.get(path.suffix.lower(), "md")

    if format == "json":
        export_to_json(basket, path, mode=mode)
    elif format in ("md", "markdown"):
        export_to_markdown(basket, path, mode=mode)
        format = "md"
    elif format == "pdf":
        export_to_pdf(basket, path, mode=mode)
    else:
        raise ValidationError(f"Unsupported export format: {format}")

    return format
