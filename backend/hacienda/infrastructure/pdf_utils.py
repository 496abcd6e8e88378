"""
Utilidades para generación de PDFs
==================================

Tickets y reportes con estilo consistente:
- Cabecera con nombre del negocio
- Pie de página con fecha de generación y numeración
"""
from io import BytesIO
from datetime import datetime
from typing import List, Dict, Any, Optional
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib.enums import TA_CENTER

COLOR_MARCA = colors.HexColor('#8a5a1c')


def _formato_celda(cell: Any) -> str:
    if isinstance(cell, bool):
        return "Sí" if cell else "No"
    if isinstance(cell, (int, float)):
        return f"{cell:,.2f}"
    return "" if cell is None else str(cell)


def create_report_pdf(
    business_name: str,
    report_title: str,
    data_tables: List[Dict[str, Any]],
    report_subtitle: Optional[str] = None,
    summary_rows: Optional[List[List[Any]]] = None,
    footer_text: Optional[str] = None
) -> BytesIO:
    """
    Crea un PDF con cabecera, tablas de datos, resumen y pie de página.

    Args:
        business_name: Nombre del negocio (cabecera)
        report_title: Título del reporte
        data_tables: Lista de tablas con estructura:
            {
                "title": "Título de la sección",
                "headers": ["Col1", "Col2", ...],
                "rows": [["dato1", 10.5, ...], ...],
                "col_widths": [1.5*inch, 4*inch, ...],  # opcional
            }
        report_subtitle: Subtítulo opcional (fecha, repartidor, etc.)
        summary_rows: Filas [etiqueta, valor] para el bloque de totales
        footer_text: Texto adicional para el pie de página

    Returns:
        BytesIO con el contenido del PDF
    """
    buffer = BytesIO()

    def on_page(canvas_obj, doc):
        canvas_obj.saveState()

        canvas_obj.setFont("Helvetica-Bold", 16)
        canvas_obj.setFillColor(COLOR_MARCA)
        canvas_obj.drawCentredString(A4[0] / 2.0, A4[1] - 1*inch, business_name)

        canvas_obj.setStrokeColor(COLOR_MARCA)
        canvas_obj.setLineWidth(2)
        canvas_obj.line(0.5*inch, A4[1] - 1.2*inch, A4[0] - 0.5*inch, A4[1] - 1.2*inch)

        canvas_obj.setFont("Helvetica", 8)
        canvas_obj.setFillColor(colors.grey)
        date_str = datetime.now().strftime('%d/%m/%Y %H:%M')
        canvas_obj.drawString(0.5*inch, 0.5*inch, f"Generado el {date_str}")
        if footer_text:
            canvas_obj.drawCentredString(A4[0] / 2.0, 0.5*inch, footer_text)
        canvas_obj.drawRightString(A4[0] - 0.5*inch, 0.5*inch, f"Página {canvas_obj.getPageNumber()}")

        canvas_obj.restoreState()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.5*inch,
        leftMargin=0.5*inch,
        topMargin=1.4*inch,
        bottomMargin=1*inch
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'ReportTitle',
        parent=styles['Heading1'],
        fontSize=16,
        textColor=COLOR_MARCA,
        spaceAfter=8,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )
    subtitle_style = ParagraphStyle(
        'ReportSubtitle',
        parent=styles['Normal'],
        fontSize=11,
        textColor=colors.grey,
        spaceAfter=14,
        alignment=TA_CENTER,
    )
    section_style = ParagraphStyle(
        'SectionTitle',
        parent=styles['Heading2'],
        fontSize=12,
        spaceBefore=10,
        spaceAfter=6,
        fontName='Helvetica-Bold'
    )

    elements = [Paragraph(report_title, title_style)]
    if report_subtitle:
        elements.append(Paragraph(report_subtitle, subtitle_style))
    elements.append(Spacer(1, 0.15*inch))

    for table_data in data_tables:
        if table_data.get("title"):
            elements.append(Paragraph(table_data["title"], section_style))

        headers = table_data["headers"]
        rows = table_data["rows"]
        col_widths = table_data.get("col_widths")
        if not col_widths:
            available_width = A4[0] - 1*inch
            col_widths = [available_width / len(headers)] * len(headers)

        contenido = [[Paragraph(str(h), styles['Normal']) for h in headers]]
        for row in rows:
            contenido.append([Paragraph(_formato_celda(c), styles['Normal']) for c in row])
        if not rows:
            contenido.append([Paragraph("Sin registros", styles['Normal'])] + [""] * (len(headers) - 1))

        table = Table(contenido, colWidths=col_widths, repeatRows=1)
        table_style = TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), COLOR_MARCA),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#faf6f0')]),
        ])
        # Columnas numéricas a la derecha
        for col in range(len(headers)):
            if any(col < len(r) and isinstance(r[col], (int, float)) and not isinstance(r[col], bool) for r in rows):
                table_style.add('ALIGN', (col, 1), (col, -1), 'RIGHT')
        table.setStyle(table_style)
        elements.append(table)
        elements.append(Spacer(1, 0.25*inch))

    if summary_rows:
        resumen = Table(
            [[str(etiqueta), _formato_celda(valor)] for etiqueta, valor in summary_rows],
            colWidths=[2.5*inch, 1.5*inch],
            hAlign='RIGHT'
        )
        resumen.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, -1), 'Helvetica-Bold'),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('LINEABOVE', (0, -1), (-1, -1), 1, colors.black),
        ]))
        elements.append(resumen)

    doc.build(elements, onFirstPage=on_page, onLaterPages=on_page)
    buffer.seek(0)
    return buffer
