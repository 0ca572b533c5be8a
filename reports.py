"""
Markdown and PDF reports for a monitoring run
"""
import io
from datetime import datetime
from typing import Any, Dict

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, PageBreak

from ai_clients import PLATFORM_LABELS

SENTIMENT_ICONS = {'positive': '+', 'neutral': '=', 'negative': '-'}


def _escape(text: str) -> str:
    return (text or '').replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


def generate_monitoring_report_markdown(result: Dict[str, Any]) -> str:
    brand = result['brand_name']
    lines = []
    lines.append(f"# AI Visibility Report - {brand}")
    lines.append("")
    if result.get('industry'):
        lines.append(f"**Industry:** {result['industry']}")
        lines.append("")
    lines.append(f"**Visibility Score:** `{result['visibility_score']} / 100`")
    lines.append("")
    lines.append(f"**Mentions:** {result['total_mentions']} across {result.get('responses_analyzed', 0)} responses "
                 f"({result['queries_tested']} queries)")
    lines.append("")
    lines.append(f"**Total Cost:** ${result.get('total_cost', 0):.4f}")
    lines.append("")

    lines.append("## Platforms")
    lines.append("")
    lines.append("| Platform | Mentions | Avg Prominence | Avg Sentiment |")
    lines.append("|----------|----------|----------------|---------------|")
    for p in result.get('platform_results', []):
        label = PLATFORM_LABELS.get(p['platform'], p['platform'])
        lines.append(f"| {label} | {p['mentions']} | {p['avg_prominence']} | {p['avg_sentiment_score']} |")
    lines.append("")

    competitors = result.get('competitor_stats') or []
    if competitors:
        lines.append("## Competitors")
        lines.append("")
        lines.append("| Competitor | Mentions | Visibility | Sentiment (0-1) |")
        lines.append("|------------|----------|------------|-----------------|")
        for c in competitors:
            lines.append(f"| {c['name']} | {c['total_mentions']} | {c['visibility_score']} | {c['avg_sentiment']} |")
        lines.append("")

    sov = result.get('share_of_voice') or {}
    if len(sov) > 1:
        lines.append("## Share of Voice")
        lines.append("")
        for name, pct in sov.items():
            lines.append(f"- {name}: {pct}%")
        lines.append("")

    lines.append("## Per-Query Results")
    lines.append("")
    lines.append("| # | Query | Platform | Mentioned? | Position | Prominence | Sentiment |")
    lines.append("|---|-------|----------|------------|----------|------------|-----------|")
    for i, r in enumerate(result.get('individual_results', []), start=1):
        mentioned = "yes" if r['mentioned'] else "no"
        position = r['position'] if r.get('position') is not None else "-"
        query = r['query'].replace("|", "\\|")
        label = PLATFORM_LABELS.get(r['platform'], r['platform'])
        lines.append(f"| {i} | {query} | {label} | {mentioned} | {position} | {r['prominence']} | "
                     f"{SENTIMENT_ICONS.get(r['sentiment'], '')} {r['sentiment']} |")
    lines.append("")
    return "\n".join(lines)


def _table_style(header_color: str) -> TableStyle:
    return TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(header_color)),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 11),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 10),
        ('GRID', (0, 0), (-1, -1), 1, colors.black),
    ])


def generate_monitoring_pdf(result: Dict[str, Any]) -> io.BytesIO:
    """Generate a PDF report for one monitoring run."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=letter, topMargin=0.75*inch, bottomMargin=0.75*inch)
    story = []

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'CustomTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.HexColor('#667eea'),
        spaceAfter=30,
        alignment=TA_CENTER,
    )
    heading_style = ParagraphStyle(
        'CustomHeading',
        parent=styles['Heading2'],
        fontSize=14,
        textColor=colors.HexColor('#764ba2'),
        spaceAfter=10,
        spaceBefore=10,
    )
    normal_style = styles['Normal']

    story.append(Paragraph("AI Visibility Report", title_style))
    story.append(Paragraph(f"<b>Brand:</b> {_escape(result['brand_name'])}", normal_style))
    if result.get('industry'):
        story.append(Paragraph(f"<b>Industry:</b> {_escape(result['industry'])}", normal_style))
    story.append(Paragraph(f"<b>Generated:</b> {datetime.now().strftime('%B %d, %Y at %I:%M %p')}", normal_style))
    story.append(Spacer(1, 0.2*inch))
    story.append(Paragraph(f"<b>Visibility Score:</b> {result['visibility_score']} / 100", normal_style))
    story.append(Paragraph(f"<b>Mentions:</b> {result['total_mentions']} in {result['queries_tested']} queries",
                           normal_style))
    story.append(Paragraph(f"<b>Total Cost:</b> ${result.get('total_cost', 0):.4f}", normal_style))
    story.append(Spacer(1, 0.2*inch))

    platform_rows = [['Platform', 'Mentions', 'Avg Prominence', 'Avg Sentiment']]
    for p in result.get('platform_results', []):
        platform_rows.append([
            PLATFORM_LABELS.get(p['platform'], p['platform']),
            str(p['mentions']),
            str(p['avg_prominence']),
            f"{p['avg_sentiment_score']:+.2f}",
        ])
    story.append(Paragraph("Platforms", heading_style))
    platform_table = Table(platform_rows, colWidths=[1.8*inch, 1.2*inch, 1.5*inch, 1.5*inch])
    platform_table.setStyle(_table_style('#667eea'))
    story.append(platform_table)

    competitors = result.get('competitor_stats') or []
    if competitors:
        story.append(Paragraph("Competitors", heading_style))
        comp_rows = [['Competitor', 'Mentions', 'Visibility', 'Sentiment']]
        for c in competitors:
            comp_rows.append([c['name'], str(c['total_mentions']), str(c['visibility_score']), str(c['avg_sentiment'])])
        comp_table = Table(comp_rows, colWidths=[2.4*inch, 1.2*inch, 1.2*inch, 1.2*inch])
        comp_table.setStyle(_table_style('#00d2ff'))
        story.append(comp_table)

    individual = result.get('individual_results') or []
    if individual:
        story.append(PageBreak())
        story.append(Paragraph("Per-Query Results", heading_style))
        for idx, r in enumerate(individual, 1):
            label = PLATFORM_LABELS.get(r['platform'], r['platform'])
            story.append(Paragraph(f"<b>{idx}. [{label}]</b> {_escape(r['query'])}", normal_style))
            position = r['position'] if r.get('position') is not None else '-'
            story.append(Paragraph(
                f"<i>Mentioned: {'yes' if r['mentioned'] else 'no'} | Position: {position} | "
                f"Prominence: {r['prominence']} | Sentiment: {r['sentiment']}</i>",
                normal_style,
            ))
            if r.get('context'):
                context = _escape(r['context'][:500])
                story.append(Paragraph(f"<b>Context:</b> {context}", normal_style))
            story.append(Spacer(1, 0.15*inch))

    doc.build(story)
    buffer.seek(0)
    return buffer
