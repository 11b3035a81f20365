import os
from typing import Callable

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from app.core.config import PDF_OUTPUT_DIR, PDF_BASE_URL
from app.models.enums.quotation_status import DiscountType
from app.models.quotations.quotation_models import Quotation
from app.services.quotations.totals import QuotationTotals
from app.utils.decimal_utils import parse_decimal, to_decimal
from app.utils.logger import get_logger

logger = get_logger(__name__)

# (quotation, totals) -> public URL of the rendered document
QuotationRenderer = Callable[[Quotation, QuotationTotals], str]


def _money(currency: str, value) -> str:
    return f"{currency} {to_decimal(value):,.2f}"


def render_quotation_pdf(quotation: Quotation, totals: QuotationTotals) -> str:
    """
    Write the quotation PDF into PDF_OUTPUT_DIR and return its URL.
    Totals are passed in so the document shows exactly what was persisted.
    """

    # -------------------------------
    # Prepare file
    # -------------------------------
    os.makedirs(PDF_OUTPUT_DIR, exist_ok=True)
    file_name = f"quotation_{quotation.quotation_number}.pdf"
    file_path = os.path.join(PDF_OUTPUT_DIR, file_name)

    doc = SimpleDocTemplate(
        file_path,
        pagesize=A4,
        rightMargin=30,
        leftMargin=30,
        topMargin=30,
        bottomMargin=30,
    )
    styles = getSampleStyleSheet()
    elements = []
    currency = quotation.currency or "USD"

    # -------------------------------
    # Header
    # -------------------------------
    elements.append(Paragraph(f"<b>{quotation.my_company or 'Quotation'}</b>", styles["Title"]))
    elements.append(Spacer(1, 12))

    elements.append(Paragraph(f"<b>Quotation #: </b>{quotation.quotation_number}", styles["Heading2"]))
    elements.append(Paragraph(f"Date: {quotation.date.strftime('%d-%m-%Y')}", styles["Normal"]))
    if quotation.due_date:
        elements.append(Paragraph(f"Valid until: {quotation.due_date.strftime('%d-%m-%Y')}", styles["Normal"]))
    elements.append(Spacer(1, 10))

    # -------------------------------
    # Client
    # -------------------------------
    elements.append(Paragraph("<b>To</b>", styles["Heading3"]))
    elements.append(Paragraph(quotation.company, styles["Normal"]))
    for label, value in (
        ("Address", quotation.to_address),
        ("Attn", quotation.attn),
        ("Project", quotation.project),
        ("Subject", quotation.title),
        ("Reference", quotation.customer_references),
    ):
        if value:
            elements.append(Paragraph(f"{label}: {value}", styles["Normal"]))
    elements.append(Spacer(1, 12))

    # -------------------------------
    # Items
    # -------------------------------
    data = [["#", "System", "Description", "Unit", "Qty", "Rate", "Amount"]]

    for i, item in enumerate(quotation.items, start=1):
        qty = parse_decimal(item.qty)
        rate = parse_decimal(item.amount)
        data.append([
            i,
            item.system or "",
            Paragraph(item.description or "", styles["Normal"]),
            item.unit or "",
            str(qty),
            _money(currency, rate),
            _money(currency, qty * rate),
        ])

    # -------------------------------
    # Totals
    # -------------------------------
    if quotation.discount_type == DiscountType.percentage:
        discount_label = f"Discount ({quotation.discount_value}%)"
    else:
        discount_label = "Discount"

    data.append(["", "", "", "", "", "Subtotal", _money(currency, totals.subtotal)])
    data.append(["", "", "", "", "", discount_label, _money(currency, totals.discount)])
    data.append(["", "", "", "", "", f"Tax ({quotation.tax_rate}%)", _money(currency, totals.tax)])
    data.append(["", "", "", "", "", "Total", _money(currency, totals.total)])

    table = Table(data, colWidths=[20, 70, 170, 40, 40, 80, 80])
    table.setStyle(
        TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTNAME", (5, -1), (-1, -1), "Helvetica-Bold"),
            ("ALIGN", (4, 1), (-1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ])
    )
    elements.append(table)
    elements.append(Spacer(1, 20))

    # -------------------------------
    # Terms
    # -------------------------------
    if quotation.terms:
        elements.append(Paragraph("<b>Terms & Conditions</b>", styles["Heading3"]))
        for n, term in enumerate(quotation.terms, start=1):
            elements.append(Paragraph(f"{n}. {term.content}", styles["Normal"]))
        elements.append(Spacer(1, 12))

    if quotation.payment_terms:
        elements.append(Paragraph(f"<b>Payment terms:</b> {quotation.payment_terms}", styles["Normal"]))
    if quotation.salesperson:
        elements.append(Paragraph(f"Prepared by: {quotation.salesperson}", styles["Normal"]))

    doc.build(elements)
    logger.info("Quotation PDF written", extra={"path": file_path})

    return f"{PDF_BASE_URL}/{file_name}"
