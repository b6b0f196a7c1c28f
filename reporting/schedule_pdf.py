"""
Comparable Adjustment Schedule (v1.0)

Generates a print-ready PDF of the adjustment schedule for each
comparable against the subject property, the adjusted value
indications and their reconciliation.
Uses ReportLab for deterministic PDF generation.

Output Structure:
1. Schedule header (subject, policy, reference)
2. Adjustment grid (per comparable)
3. Totals and derived rates (per comparable)
4. Reconciliation of indications
5. Basis of adjustments & disclaimer
"""

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Tuple, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    KeepTogether,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from core.adjustment_engine import (
    ComparableAdjustmentEngine,
    InvalidInputError,
    ReconciliationSummary,
    ValuationIndication,
    get_policy,
    is_applicable,
    reconcile,
)
from utils.config import Config
from utils.formatting import format_currency, format_percent
from utils.logging import get_logger

from .schemas import AdjustmentSchedule


logger = get_logger(__name__)


# =============================================================================
# Report Generation Result Types
# =============================================================================

@dataclass
class ScheduleReportSuccess:
    """Returned when PDF generation succeeds."""
    path: Path
    comparables_included: int
    comparables_rejected: int = 0


@dataclass
class ScheduleNoValidComparables:
    """Returned when no comparable could be adjusted."""
    message: str = "No comparable with a positive base price; schedule not generated."


ScheduleReportResult = Union[ScheduleReportSuccess, ScheduleNoValidComparables]

NOT_APPLICABLE_DISPLAY = "n/a"

BASIS_NOTES = [
    "Adjustments are expressed relative to the comparable: a positive "
    "adjustment indicates the subject is superior on that attribute.",
    "Percentage adjustments are summed linearly and are not compounded.",
    "Lump-sum adjustments (areas, bedrooms, bathrooms, car spaces, caller-valued "
    "position) are shown with their equivalent percentage of the comparable's "
    "base price.",
    "Where no improvements value is recorded, improvements and land rates "
    "assume a 70/30 improvements/land split. This is a default assumption, "
    "not a valuation method.",
]


# =============================================================================
# Color Palette
# =============================================================================

class Palette:
    """Print-friendly palette: white background, charcoal text."""
    CHARCOAL = colors.Color(0.2, 0.2, 0.22)
    SLATE = colors.Color(0.35, 0.38, 0.42)
    GRAY = colors.Color(0.5, 0.5, 0.5)
    LIGHT_GRAY = colors.Color(0.85, 0.85, 0.85)
    PALE_GRAY = colors.Color(0.95, 0.95, 0.95)
    WHITE = colors.white

    ACCENT = colors.Color(0.15, 0.25, 0.4)

    POSITIVE = colors.Color(0.15, 0.4, 0.25)
    NEGATIVE = colors.Color(0.55, 0.2, 0.2)


# =============================================================================
# Style Configuration
# =============================================================================

def get_schedule_styles():
    """Paragraph styles for the adjustment schedule."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name='ScheduleTitle',
        parent=styles['Normal'],
        fontSize=18,
        leading=22,
        textColor=Palette.CHARCOAL,
        alignment=TA_LEFT,
        fontName='Helvetica-Bold',
        spaceAfter=4*mm,
    ))

    styles.add(ParagraphStyle(
        name='SectionTitle',
        parent=styles['Normal'],
        fontSize=12,
        leading=16,
        textColor=Palette.CHARCOAL,
        fontName='Helvetica-Bold',
        spaceBefore=14,
        spaceAfter=8,
    ))

    styles.add(ParagraphStyle(
        name='SubsectionTitle',
        parent=styles['Normal'],
        fontSize=10,
        leading=13,
        textColor=Palette.SLATE,
        fontName='Helvetica-Bold',
        spaceBefore=10,
        spaceAfter=6,
    ))

    styles['BodyText'].fontSize = 9
    styles['BodyText'].leading = 13
    styles['BodyText'].textColor = Palette.CHARCOAL
    styles['BodyText'].spaceAfter = 4
    styles['BodyText'].fontName = 'Helvetica'

    styles.add(ParagraphStyle(
        name='TableCell',
        parent=styles['Normal'],
        fontSize=7.5,
        leading=9.5,
        textColor=Palette.CHARCOAL,
        fontName='Helvetica',
    ))

    styles.add(ParagraphStyle(
        name='TableCellRight',
        parent=styles['TableCell'],
        alignment=TA_RIGHT,
    ))

    styles.add(ParagraphStyle(
        name='TableHeader',
        parent=styles['TableCell'],
        textColor=Palette.WHITE,
        fontName='Helvetica-Bold',
    ))

    styles.add(ParagraphStyle(
        name='TableCellPositive',
        parent=styles['TableCellRight'],
        textColor=Palette.POSITIVE,
    ))

    styles.add(ParagraphStyle(
        name='TableCellNegative',
        parent=styles['TableCellRight'],
        textColor=Palette.NEGATIVE,
    ))

    styles.add(ParagraphStyle(
        name='Disclaimer',
        parent=styles['Normal'],
        fontSize=7.5,
        leading=11,
        textColor=Palette.GRAY,
        fontName='Helvetica',
        spaceBefore=10,
    ))

    return styles


# =============================================================================
# Table Row Builders
# =============================================================================

SCHEDULE_HEADERS = ["Attribute", "Comparable", "Subject", "Adj %", "Adj $", "Included"]


def build_schedule_rows(
    indication: ValuationIndication,
    currency: str = "AUD",
) -> List[List[str]]:
    """
    Build the adjustment grid rows for one comparable.

    Excluded attributes are listed with a zero-contribution marker so
    the full schedule remains visible.
    """
    excluded = set(indication.totals.excluded)
    rows = [list(SCHEDULE_HEADERS)]
    for result in indication.adjustments:
        label = result.key + (" *" if result.policy_gap else "")
        rows.append([
            label,
            result.comparable_value,
            result.subject_value,
            format_percent(result.percentage_adjustment, signed=True),
            format_currency(result.dollar_adjustment, currency, signed=True),
            "No" if result.attribute in excluded else "Yes",
        ])
    return rows


def build_totals_rows(
    indication: ValuationIndication,
    currency: str = "AUD",
) -> List[List[str]]:
    """Build the totals and derived-rate rows for one comparable."""
    rates = indication.rates

    def money(value) -> str:
        if not is_applicable(value):
            return NOT_APPLICABLE_DISPLAY
        return format_currency(value, currency)

    return [
        ["Base price", format_currency(indication.base_price, currency)],
        ["Total adjustment (%)", format_percent(indication.totals.total_percentage, signed=True)],
        ["Total adjustment ($)", format_currency(indication.totals.total_dollar, currency, signed=True)],
        ["Adjusted value", format_currency(indication.adjusted_value, currency)],
        ["Rate per sqm (building)", money(rates.rate_per_sqm)],
        ["Rate per sqm (land)", money(rates.land_rate_per_sqm)],
        ["Rate per bedroom", money(rates.rate_per_bedroom)],
        ["Room rate", money(rates.room_rate)],
        ["Capitalised income", money(rates.capitalised_value)],
        ["Improvements rate per sqm", money(rates.improvements_rate_per_sqm)],
        ["Improved land rate per sqm", money(rates.improved_land_rate_per_sqm)],
    ]


def build_reconciliation_rows(
    indications: List[ValuationIndication],
    summary: ReconciliationSummary,
    currency: str = "AUD",
) -> List[List[str]]:
    """Build the reconciliation table: one row per comparable plus the spread."""
    rows = [["Comparable", "Base price", "Total adj %", "Adjusted value"]]
    for i, indication in enumerate(indications, 1):
        rows.append([
            indication.address or f"Comparable {i}",
            format_currency(indication.base_price, currency),
            format_percent(indication.totals.total_percentage, signed=True),
            format_currency(indication.adjusted_value, currency),
        ])

    def money(value) -> str:
        return format_currency(value, currency) if is_applicable(value) else NOT_APPLICABLE_DISPLAY

    rows.append(["Median", "", "", money(summary.median)])
    rows.append(["Range", "", "", f"{money(summary.low)} – {money(summary.high)}"])
    return rows


# =============================================================================
# Report Generator Class
# =============================================================================

class ScheduleReportGenerator:
    """
    Generates adjustment schedule PDFs.

    Usage:
        generator = ScheduleReportGenerator()
        result = generator.generate_report(schedule)

    The generator produces deterministic output - the same input will
    always produce the same PDF.
    """

    PAGE_WIDTH, PAGE_HEIGHT = A4
    MARGIN_LEFT = 16*mm
    MARGIN_RIGHT = 16*mm
    MARGIN_TOP = 16*mm
    MARGIN_BOTTOM = 20*mm

    def __init__(self, output_dir: Optional[Path] = None):
        """
        Initialize the report generator with styles.

        Args:
            output_dir: Directory for generated PDFs (default: Config.reports_dir)
        """
        self.styles = get_schedule_styles()
        self.output_dir = Path(output_dir) if output_dir else Config.load().reports_dir

    def value_schedule(
        self,
        schedule: AdjustmentSchedule,
    ) -> Tuple[List[ValuationIndication], List[str]]:
        """
        Run the engine for every comparable in the schedule.

        Comparables with an invalid base price are left out and reported
        by address.

        Returns:
            Tuple of (indications, rejected addresses)
        """
        weights = get_policy(schedule.asset_class)
        if schedule.rate_overrides:
            weights = weights.with_overrides(schedule.rate_overrides)
        engine = ComparableAdjustmentEngine(weights)

        indications = []
        rejected = []
        for i, comparable in enumerate(schedule.comparables, 1):
            try:
                indications.append(engine.value_comparable(
                    comparable,
                    schedule.subject,
                    included=schedule.included,
                    yield_rate=schedule.yield_rate,
                ))
            except InvalidInputError as e:
                label = comparable.address or f"Comparable {i}"
                logger.warning("Comparable %s left out of schedule: %s", label, e)
                rejected.append(label)
        return indications, rejected

    def generate_report(self, schedule: AdjustmentSchedule) -> ScheduleReportResult:
        """
        Generate the adjustment schedule PDF.

        Args:
            schedule: Subject, comparables and policy selection

        Returns:
            ScheduleReportSuccess with path if the PDF was written
            ScheduleNoValidComparables if no comparable could be adjusted
        """
        indications, rejected = self.value_schedule(schedule)
        if not indications:
            return ScheduleNoValidComparables()

        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / f"{schedule.reference_id or 'schedule'}.pdf"

        buffer = BytesIO()
        self._build_document(schedule, indications, rejected, buffer)
        output_path.write_bytes(buffer.getvalue())

        logger.info("Adjustment schedule written to %s", output_path)
        return ScheduleReportSuccess(
            path=output_path,
            comparables_included=len(indications),
            comparables_rejected=len(rejected),
        )

    def generate_to_buffer(self, schedule: AdjustmentSchedule) -> bytes:
        """Generate PDF and return as bytes (for testing or streaming)."""
        indications, rejected = self.value_schedule(schedule)
        buffer = BytesIO()
        self._build_document(schedule, indications, rejected, buffer)
        return buffer.getvalue()

    def _build_document(
        self,
        schedule: AdjustmentSchedule,
        indications: List[ValuationIndication],
        rejected: List[str],
        buffer: BytesIO,
    ):
        """Build the complete PDF document."""
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=self.MARGIN_LEFT,
            rightMargin=self.MARGIN_RIGHT,
            topMargin=self.MARGIN_TOP,
            bottomMargin=self.MARGIN_BOTTOM,
            title=f"Adjustment Schedule - {schedule.reference_id}",
            subject="Comparable Adjustment Schedule",
            invariant=1,
        )

        story = []
        story.extend(self._build_header(schedule))

        for i, indication in enumerate(indications, 1):
            story.extend(self._build_comparable(indication, i, schedule.currency))

        story.append(PageBreak())
        story.extend(self._build_reconciliation(indications, rejected, schedule.currency))
        story.extend(self._build_basis())

        doc.build(
            story,
            onFirstPage=self._draw_page_frame,
            onLaterPages=self._draw_page_frame,
        )

    # =========================================================================
    # Page Drawing
    # =========================================================================

    def _draw_page_frame(self, canvas_obj: canvas.Canvas, doc):
        """Draw footer: reference left, page number right."""
        canvas_obj.saveState()
        canvas_obj.setFont('Helvetica', 7)
        canvas_obj.setFillColor(Palette.GRAY)
        canvas_obj.drawString(
            self.MARGIN_LEFT,
            self.MARGIN_BOTTOM - 10*mm,
            "ADJUSTMENT SCHEDULE",
        )
        canvas_obj.drawRightString(
            self.PAGE_WIDTH - self.MARGIN_RIGHT,
            self.MARGIN_BOTTOM - 10*mm,
            f"{doc.page}",
        )
        canvas_obj.restoreState()

    # =========================================================================
    # Sections
    # =========================================================================

    def _build_header(self, schedule: AdjustmentSchedule) -> list:
        elements = []
        elements.append(Paragraph("Comparable Adjustment Schedule", self.styles['ScheduleTitle']))

        details = [
            ("Subject", schedule.subject.address or "-"),
            ("Reference", schedule.reference_id or "-"),
            ("Report date", schedule.report_date or "-"),
            ("Adjustment policy", schedule.asset_class),
        ]
        if schedule.subject.market_trend is not None:
            details.append(("Market conditions", schedule.subject.market_trend.value))

        for label, value in details:
            elements.append(Paragraph(f"<b>{label}:</b> {escape(value)}", self.styles['BodyText']))

        elements.append(Spacer(1, 4*mm))
        return elements

    def _build_comparable(
        self,
        indication: ValuationIndication,
        number: int,
        currency: str,
    ) -> list:
        elements = []
        title = f"Comparable {number}"
        if indication.address:
            title += f": {escape(indication.address)}"
        elements.append(Paragraph(title, self.styles['SectionTitle']))

        rows = build_schedule_rows(indication, currency)
        tones = {'positive': 'TableCellPositive', 'negative': 'TableCellNegative'}
        row_styles = [
            tones.get(result.adjustment_type.value, 'TableCellRight')
            for result in indication.adjustments
        ]
        grid = Table(
            self._wrap_table(rows, numeric_columns=(3, 4), row_styles=row_styles),
            colWidths=[34*mm, 30*mm, 30*mm, 22*mm, 26*mm, 16*mm],
            repeatRows=1,
        )
        grid.setStyle(self._grid_style())
        elements.append(grid)

        if indication.policy_gaps:
            elements.append(Paragraph(
                "* Rate not set in the selected policy; default rate applied.",
                self.styles['Disclaimer'],
            ))

        totals = Table(build_totals_rows(indication, currency), colWidths=[60*mm, 40*mm])
        totals.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, -1), 'Helvetica'),
            ('FONTNAME', (0, 3), (-1, 3), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('TEXTCOLOR', (0, 0), (-1, -1), Palette.CHARCOAL),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('LINEABOVE', (0, 3), (-1, 3), 0.5, Palette.ACCENT),
            ('LINEBELOW', (0, 3), (-1, 3), 0.5, Palette.ACCENT),
            ('TOPPADDING', (0, 0), (-1, -1), 1.5*mm),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 1.5*mm),
        ]))
        elements.append(Spacer(1, 4*mm))
        elements.append(KeepTogether([
            Paragraph("Totals and derived rates", self.styles['SubsectionTitle']),
            totals,
        ]))
        return elements

    def _build_reconciliation(
        self,
        indications: List[ValuationIndication],
        rejected: List[str],
        currency: str,
    ) -> list:
        elements = []
        elements.append(Paragraph("Reconciliation", self.styles['SectionTitle']))

        summary = reconcile(indications)
        rows = build_reconciliation_rows(indications, summary, currency)
        table = Table(
            self._wrap_table(rows, numeric_columns=(1, 2, 3)),
            colWidths=[70*mm, 35*mm, 25*mm, 45*mm],
        )
        table.setStyle(self._grid_style())
        elements.append(table)

        if rejected:
            elements.append(Paragraph("Evidence not adjusted", self.styles['SubsectionTitle']))
            for label in rejected:
                elements.append(Paragraph(
                    f"• {escape(label)}: base price missing, zero or negative",
                    self.styles['BodyText'],
                ))
        return elements

    def _build_basis(self) -> list:
        elements = [Paragraph("Basis of Adjustments", self.styles['SectionTitle'])]
        for note in BASIS_NOTES:
            elements.append(Paragraph(f"• {note}", self.styles['BodyText']))
        elements.append(Paragraph(
            "This schedule supports the valuer's analysis of comparable evidence. "
            "It is not itself a valuation and must be read with the full report.",
            self.styles['Disclaimer'],
        ))
        return elements

    # =========================================================================
    # Helpers
    # =========================================================================

    def _wrap_table(
        self,
        rows: List[List[str]],
        numeric_columns: Tuple[int, ...] = (),
        row_styles: Optional[List[str]] = None,
    ) -> list:
        """Wrap cells in Paragraphs; the first row is the header."""
        header, body = rows[0], rows[1:]
        wrapped = [[Paragraph(escape(cell), self.styles['TableHeader']) for cell in header]]
        for i, row in enumerate(body):
            numeric_style = row_styles[i] if row_styles and i < len(row_styles) else 'TableCellRight'
            wrapped.append([
                Paragraph(
                    escape(cell),
                    self.styles[numeric_style if col in numeric_columns else 'TableCell'],
                )
                for col, cell in enumerate(row)
            ])
        return wrapped

    def _grid_style(self) -> TableStyle:
        return TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), Palette.CHARCOAL),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('GRID', (0, 0), (-1, -1), 0.5, Palette.LIGHT_GRAY),
            ('TOPPADDING', (0, 0), (-1, -1), 1.5*mm),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 1.5*mm),
            ('LEFTPADDING', (0, 0), (-1, -1), 1.5*mm),
            ('RIGHTPADDING', (0, 0), (-1, -1), 1.5*mm),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [Palette.WHITE, Palette.PALE_GRAY]),
        ])


# =============================================================================
# Convenience Function
# =============================================================================

def generate_schedule_report(
    schedule: AdjustmentSchedule,
    output_dir: Optional[Path] = None,
) -> ScheduleReportResult:
    """
    Generate an adjustment schedule PDF.

    Example:
        from reporting import generate_schedule_report
        from reporting.schemas import create_sample_schedule

        result = generate_schedule_report(create_sample_schedule())
    """
    return ScheduleReportGenerator(output_dir).generate_report(schedule)
