"""PDF export of completed compliance reports."""
from __future__ import annotations

import io
from typing import Any, Dict, List

from reportlab.lib import colors
from reportlab.lib.enums import TA_JUSTIFY, TA_LEFT
from reportlab.lib.pagesizes import letter as rl_letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from gdpr_checker.services.openai_service import GDPR_AREAS

STATUS_LABELS = {"compliant": "Compliant", "partial": "Partial", "missing": "Missing"}


def esc(s: Any) -> str:
    return str(s or "").replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def report_filename(report: Dict[str, Any]) -> str:
    name = (report.get("documentName") or "document").rsplit(".", 1)[0]
    safe = "".join(ch if ch.isalnum() or ch in ("-", "_") else "_" for ch in name).strip("_")
    return f"gdpr_report_{safe or 'document'}.pdf"


def export_report_pdf(report: Dict[str, Any]) -> bytes:
    """Render a completed report (analysis + improvements) as a PDF document."""
    analysis = report.get("analysis") or {}
    improvements = (report.get("improvements") or {}).get("prioritizedImprovements") or []

    styles = getSampleStyleSheet()
    base = ParagraphStyle(
        "base", parent=styles["Normal"], fontName="Helvetica",
        fontSize=9.5, leading=12, spaceAfter=2, alignment=TA_JUSTIFY
    )
    head = ParagraphStyle(
        "head", parent=base, fontName="Helvetica-Bold", fontSize=11,
        spaceBefore=8, spaceAfter=4, alignment=TA_LEFT
    )
    title = ParagraphStyle("title", parent=head, fontSize=15, leading=18, spaceAfter=8)

    def bullets(items: List[str]) -> List[Any]:
        return [Paragraph(f"&bull; {esc(item)}", base) for item in items]

    story: List[Any] = [
        Paragraph("GDPR Compliance Report", title),
        Paragraph(f"<b>Document:</b> {esc(report.get('documentName'))}", base),
        Paragraph(f"<b>Completed:</b> {esc(report.get('completedAt'))}", base),
        Spacer(1, 6),
        Paragraph(
            f"<b>Overall score:</b> {esc(analysis.get('overallScore'))}/100 &nbsp; "
            f"<b>Compliance level:</b> {esc(analysis.get('complianceLevel'))}",
            base,
        ),
    ]
    if analysis.get("summary"):
        story.append(Paragraph("Summary", head))
        story.append(Paragraph(esc(analysis["summary"]), base))

    for label, key in (("Strengths", "strengths"), ("Weaknesses", "weaknesses"), ("Recommendations", "recommendations")):
        if analysis.get(key):
            story.append(Paragraph(label, head))
            story.extend(bullets(analysis[key]))

    detailed = analysis.get("detailedAnalysis") or {}
    if detailed:
        story.append(Paragraph("Detailed Analysis", head))
        rows = [[Paragraph("<b>Area</b>", base), Paragraph("<b>Status</b>", base), Paragraph("<b>Details</b>", base)]]
        for key, label in GDPR_AREAS:
            area = detailed.get(key) or {}
            status = STATUS_LABELS.get(str(area.get("status") or "").lower(), esc(area.get("status")))
            rows.append([Paragraph(esc(label), base), Paragraph(status, base), Paragraph(esc(area.get("details")), base)])
        table = Table(rows, colWidths=[140, 60, 310], repeatRows=1)
        table.setStyle(TableStyle([
            ("GRID", (0, 0), (-1, -1), 0.4, colors.grey),
            ("BACKGROUND", (0, 0), (-1, 0), colors.whitesmoke),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]))
        story.append(table)

    if improvements:
        story.append(Paragraph("Prioritized Improvements", head))
        for item in improvements:
            story.append(Paragraph(
                f"<b>[{esc(item.get('priority'))}] {esc(item.get('area'))}</b> - {esc(item.get('description'))}",
                base,
            ))
            if item.get("implementation"):
                story.append(Paragraph(f"<i>Implementation:</i> {esc(item['implementation'])}", base))
            if item.get("templateText"):
                story.append(Paragraph(f"<i>Suggested text:</i> {esc(item['templateText'])}", base))
            if item.get("timeline"):
                story.append(Paragraph(f"<i>Timeline:</i> {esc(item['timeline'])}", base))
            story.append(Spacer(1, 4))

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=rl_letter,
        leftMargin=50,
        rightMargin=50,
        topMargin=45,
        bottomMargin=45,
        title=report_filename(report),
    )
    doc.build(story)
    return buf.getvalue()
