"""PDF documents (offert, arbetsorder, faktura) for a work order."""
import logging
from datetime import datetime, timedelta
from io import BytesIO
from typing import Any, Dict, List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from app.exceptions import BusinessLogicError
from app.models import WorkOrder
from app.services.pricing_engine import ZERO, PricingModel, to_decimal
from app.services.work_order_service import summarize_work_order
from app.utils.formatters import date_sv, money_sv, num_sv, percent_sv

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = {
    'OFFERT': ('OFFERT', 'Offertnummer'),
    'ARBETSORDER': ('ARBETSORDER', 'Arbetsordernummer'),
    'FAKTURA': ('FAKTURA', 'Fakturanummer'),
}

NO_LABOR_NOTE = '(ROT-avdrag ej tillämpat då ingen arbetskostnad (TIM) specificerats)'

UNIT_SUFFIX = {
    PricingModel.PER_UNIT: '',
    PricingModel.PER_LENGTH: '/m',
    PricingModel.PER_AREA: '/m²',
    PricingModel.PER_DURATION: '/tim',
}


def _text(value) -> str:
    return escape(str(value)) if value else ''


def _line_details(line) -> str:
    """Dimension text for a line: '1200mm × 800mm', '2500mm' or '2,50 tim'."""
    model = PricingModel.parse(line.pricing_model_snapshot)
    width, height = to_decimal(line.width_mm), to_decimal(line.height_mm)
    length, hours = to_decimal(line.length_mm), to_decimal(line.duration_hours)
    if model is PricingModel.PER_AREA and width and height:
        return f"{num_sv(width, 0)}mm × {num_sv(height, 0)}mm"
    if model is PricingModel.PER_LENGTH and length:
        return f"{num_sv(length, 0)}mm"
    if model is PricingModel.PER_DURATION and hours:
        return f"{num_sv(hours, 2)} tim"
    return ''


def _line_name(line) -> str:
    return line.catalog_item.name if line.catalog_item else '(borttagen prispost)'


def _customer_rows(order: WorkOrder) -> List[List[str]]:
    customer = order.customer
    rows = [['Kund:', customer.display_name]]
    if customer.is_company:
        if customer.org_number:
            rows.append(['Organisationsnummer:', customer.org_number])
        if customer.contact_first_name:
            rows.append(['Kontaktperson:', f"{customer.contact_first_name} {customer.contact_last_name or ''}".strip()])
        if customer.invoice_address and customer.invoice_address != customer.address:
            rows.append(['Fakturaadress:', customer.invoice_address])
    elif customer.personal_number:
        rows.append(['Personnummer:', customer.personal_number])
    if customer.address:
        rows.append(['Adress:', customer.address])
    if customer.phone:
        rows.append(['Telefon:', customer.phone])
    if customer.email:
        rows.append(['E-post:', customer.email])
    if order.reference:
        rows.append(['Er referens:', order.reference])
    return rows


def render_work_order_pdf(order: WorkOrder, document_type: str, business_info: Dict[str, Any]) -> BytesIO:
    """
    Render a work order document.

    Prices come from the persisted line snapshots and the stored totals; the
    catalog is never consulted, so a reprint shows what the customer was
    offered. ARBETSORDER is the technician's copy and carries no prices.
    """
    document_type = (document_type or 'OFFERT').upper()
    if document_type not in DOCUMENT_TYPES:
        raise BusinessLogicError(f'Ogiltig dokumenttyp: {document_type}')
    title, number_label = DOCUMENT_TYPES[document_type]

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch,
        title=f"{title} {order.id}",
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'DocTitle',
        parent=styles['Heading1'],
        fontSize=22,
        textColor=colors.HexColor('#2C3E50'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )
    header_style = ParagraphStyle(
        'DocHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=4
    )
    section_style = ParagraphStyle(
        'DocSection',
        parent=styles['Heading3'],
        textColor=colors.HexColor('#34495E'),
        spaceBefore=6,
        spaceAfter=6
    )
    small_style = ParagraphStyle('LineNote', parent=styles['Normal'], fontSize=8, textColor=colors.HexColor('#666666'))
    note_style = ParagraphStyle('RotNote', parent=styles['Normal'], fontSize=9, alignment=TA_RIGHT,
                                textColor=colors.HexColor('#555555'))

    # 1. Title and business header
    elements.append(Paragraph(title, title_style))
    if business_info.get('name'):
        elements.append(Paragraph(f"<b>{_text(business_info['name'])}</b>", header_style))
    if business_info.get('address'):
        elements.append(Paragraph(_text(business_info['address']), header_style))
    contact_parts = []
    if business_info.get('phone'):
        contact_parts.append(f"Tel: {business_info['phone']}")
    if business_info.get('email'):
        contact_parts.append(f"E-post: {business_info['email']}")
    if contact_parts:
        elements.append(Paragraph(_text(" | ".join(contact_parts)), header_style))
    if business_info.get('org_number'):
        elements.append(Paragraph(f"Org.nr: {_text(business_info['org_number'])}", header_style))
    elements.append(Spacer(1, 0.25*inch))

    # 2. Document metadata and customer
    issued = business_info.get('issued_at') or datetime.now()
    meta_rows = [[f'{number_label}:', str(order.id)]]
    if document_type == 'FAKTURA':
        meta_rows.append(['Fakturadatum:', date_sv(issued)])
        due = issued + timedelta(days=business_info.get('payment_days', 30))
        meta_rows.append(['Förfallodatum:', date_sv(due)])
    else:
        meta_rows.append(['Datum:', date_sv(order.created_at or issued)])
    meta_rows.extend(_customer_rows(order))

    info_table = Table(meta_rows, colWidths=[2*inch, 4.5*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.25*inch))

    # 3. Specification
    elements.append(Paragraph('Specifikation', section_style))
    if document_type == 'ARBETSORDER':
        table_data = [['Produkt/Tjänst', 'Antal', 'Detaljer']]
        for line in order.lines:
            description = [Paragraph(_text(_line_name(line)), styles['Normal'])]
            if line.comment:
                description.append(Paragraph(_text(line.comment), small_style))
            table_data.append([description, str(line.count), _line_details(line) or '-'])
        col_widths = [3.9*inch, 0.8*inch, 2*inch]
    else:
        table_data = [['Produkt/Tjänst', 'Antal', 'À-pris', 'Rabatt', 'Summa', 'Moms']]
        for line in order.lines:
            model = PricingModel.parse(line.pricing_model_snapshot)
            note = " | ".join(p for p in (_line_details(line), line.comment) if p)
            description = [Paragraph(_text(_line_name(line)), styles['Normal'])]
            if note:
                description.append(Paragraph(_text(note), small_style))
            discount = to_decimal(line.discount_percent)
            table_data.append([
                description,
                str(line.count),
                f"{money_sv(line.unit_price_excl_tax_snapshot)}{UNIT_SUFFIX[model]}",
                percent_sv(discount) if discount else '-',
                money_sv(line.line_total_excl_tax),
                percent_sv(line.vat_rate_snapshot),
            ])
        col_widths = [2.5*inch, 0.5*inch, 1.2*inch, 0.6*inch, 1.2*inch, 0.6*inch]

    items_table = Table(table_data, colWidths=col_widths, repeatRows=1)
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498DB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 10),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Totals and ROT
    if document_type != 'ARBETSORDER':
        # stored order totals are authoritative; lines only feed the ROT figures
        total_excl = to_decimal(order.total_excl_tax) or ZERO
        total_incl = to_decimal(order.total_incl_tax) or ZERO
        totals = summarize_work_order(order)
        total_rows = [
            ['Summa exkl. moms:', money_sv(total_excl)],
            ['Moms:', money_sv(total_incl - total_excl)],
            ['Totalt inkl. moms:', money_sv(total_incl)],
        ]
        if totals.deduction_amount > 0:
            total_rows.append([f"ROT-avdrag ({percent_sv(order.tax_deduction_percent)}):",
                               money_sv(-totals.deduction_amount)])
            total_rows.append(['Att betala:', money_sv(total_incl - totals.deduction_amount)])

        total_table = Table(total_rows, colWidths=[5*inch, 1.6*inch])
        total_table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('TEXTCOLOR', (0, -1), (-1, -1), colors.HexColor('#27AE60')),
            ('LINEABOVE', (0, -1), (-1, -1), 1, colors.HexColor('#27AE60')),
        ]))
        elements.append(total_table)

        if totals.deduction_without_labor:
            elements.append(Paragraph(NO_LABOR_NOTE, note_style))
        elif totals.deduction_amount > 0:
            elements.append(Paragraph(
                f"ROT-avdraget baseras på arbetskostnad inkl. moms: {money_sv(totals.labor_total_incl_tax)}.",
                note_style
            ))
        elements.append(Spacer(1, 0.2*inch))

    if order.material:
        elements.append(Paragraph('Meddelande' if document_type == 'FAKTURA' else 'Anteckningar & Villkor', section_style))
        elements.append(Paragraph(_text(order.material), styles['Normal']))
        elements.append(Spacer(1, 0.2*inch))

    # 5. Footer
    footer_style = ParagraphStyle('Footer', parent=styles['Normal'], fontSize=8,
                                  textColor=colors.HexColor('#95A5A6'), alignment=TA_CENTER)
    footer_lines = [_text(" | ".join(
        p for p in (business_info.get('name'), business_info.get('address'),
                    business_info.get('phone'), business_info.get('email')) if p
    ))]
    if business_info.get('org_number'):
        footer_lines.append(f"Org.nr: {_text(business_info['org_number'])} | Godkänd för F-skatt")
    if document_type == 'OFFERT':
        footer_lines.append(
            f"Offert giltig i {business_info.get('valid_days', 30)} dagar från utskriftsdatum."
        )
    elif document_type == 'FAKTURA':
        payment = f"Betalningsvillkor: {business_info.get('payment_days', 30)} dagar netto."
        if business_info.get('bankgiro'):
            payment += f" Bankgiro: {_text(business_info['bankgiro'])}."
        footer_lines.append(payment)
    footer_lines.append(f"Vid betalning, vänligen ange {number_label.lower()}: {order.id}")
    elements.append(Paragraph("<br/>".join(footer_lines), footer_style))

    doc.build(elements)
    buffer.seek(0)
    logger.info(f"Rendered {document_type} PDF for work order {order.id}")
    return buffer


def business_info_from_config(config) -> Dict[str, Any]:
    """Company header/footer details from app config."""
    return {
        'name': config.get('BUSINESS_NAME'),
        'address': config.get('BUSINESS_ADDRESS'),
        'phone': config.get('BUSINESS_PHONE'),
        'email': config.get('BUSINESS_EMAIL'),
        'org_number': config.get('BUSINESS_ORG_NUMBER'),
        'bankgiro': config.get('BUSINESS_BANKGIRO'),
        'valid_days': config.get('OFFER_VALID_DAYS', 30),
        'payment_days': config.get('INVOICE_PAYMENT_DAYS', 30),
    }
