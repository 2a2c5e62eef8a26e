import io
import re
from abc import ABC, abstractmethod

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

HEADER_TABLE_STYLE = [
    ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
    ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ('FONTSIZE', (0, 0), (-1, 0), 12),
    ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
    ('GRID', (0, 0), (-1, -1), 1, colors.black)
]


def sanitize_file_part(value):
    cleaned = re.sub(r'[^A-Za-z0-9]+', '-', value or '').strip('-').lower()
    return cleaned or 'report'


def build_file_name(shop_name, report_date, report_type, extension='pdf'):
    return f"{sanitize_file_part(shop_name)}-{report_date.isoformat()}-{report_type}.{extension}"


class ReportRenderer(ABC):
    content_type = 'application/octet-stream'
    extension = 'bin'

    @abstractmethod
    def render(self, report: dict) -> bytes:
        pass


class PdfReportRenderer(ReportRenderer):
    content_type = 'application/pdf'
    extension = 'pdf'

    def render(self, report):
        """Render a commission report to PDF bytes.

        ``report`` is a dict with ``shop_name``, ``period_start``, ``period_end``,
        ``employees`` (sorted rows) and ``totals``.
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=letter)
        styles = getSampleStyleSheet()
        elements = []

        header_style = ParagraphStyle(
            'CustomHeader',
            parent=styles['Heading1'],
            fontSize=16,
            spaceAfter=30
        )
        elements.append(Paragraph(f"Commission Report - {report['shop_name']}", header_style))
        elements.append(Paragraph(
            f"Period: {report['period_start'].strftime('%Y-%m-%d %H:%M')} UTC to "
            f"{report['period_end'].strftime('%Y-%m-%d %H:%M')} UTC",
            styles['Normal']
        ))
        elements.append(Spacer(1, 20))

        elements.append(Paragraph("Employee Breakdown", styles['Heading2']))
        table_data = [['Employee', 'Orders', 'Total Sales', 'Commission', 'Shop Share']]
        for row in report['employees']:
            table_data.append([
                row['employee_name'],
                str(row['order_count']),
                f"${row['total_sales']:,.2f}",
                f"${row['commission_amount']:,.2f}",
                f"${row['total_sales'] - row['commission_amount']:,.2f}"
            ])
        if len(table_data) == 1:
            table_data.append(['No sales recorded', '', '', '', ''])

        table = Table(table_data)
        table.setStyle(TableStyle(HEADER_TABLE_STYLE))
        elements.append(table)
        elements.append(Spacer(1, 20))

        totals = report['totals']
        summary_data = [
            ['Metric', 'Value'],
            ['Employees', str(totals['employee_count'])],
            ['Total Sales', f"${totals['total_sales']:,.2f}"],
            ['Total Commission', f"${totals['total_commission']:,.2f}"],
            ['Shop Commission', f"${totals['shop_commission']:,.2f}"]
        ]

        elements.append(Paragraph("Summary", styles['Heading2']))
        summary_table = Table(summary_data)
        summary_table.setStyle(TableStyle(HEADER_TABLE_STYLE + [
            ('BACKGROUND', (0, -1), (-1, -1), colors.lightgrey),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold')
        ]))
        elements.append(summary_table)

        doc.build(elements)
        return buffer.getvalue()
