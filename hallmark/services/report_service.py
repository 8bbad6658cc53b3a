import io
from datetime import datetime

import xlsxwriter
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def students_workbook(title, students):
    """Build an in-memory XLSX list of students."""
    output = io.BytesIO()
    workbook = xlsxwriter.Workbook(output, {'in_memory': True})

    title_format = workbook.add_format({'bold': True, 'font_size': 14, 'align': 'center'})
    header_format = workbook.add_format({
        'bold': True,
        'font_color': '#FFFFFF',
        'bg_color': '#4F81BD',
        'align': 'center',
        'valign': 'vcenter',
        'border': 1
    })
    data_format = workbook.add_format({'border': 1, 'align': 'left', 'valign': 'vcenter'})
    center_format = workbook.add_format({'border': 1, 'align': 'center', 'valign': 'vcenter'})

    worksheet = workbook.add_worksheet('Students')
    headers = ['Admission No.', 'Surname', 'First name', 'Other name', 'Class', 'Gender', 'Birthday',
               'Parent', 'Phone', 'Admitted']
    widths = [18, 18, 18, 15, 12, 10, 12, 25, 15, 12]
    for col, width in enumerate(widths):
        worksheet.set_column(col, col, width)

    worksheet.merge_range(0, 0, 0, len(headers) - 1, title, title_format)
    worksheet.merge_range(1, 0, 1, len(headers) - 1, f"Generated {datetime.utcnow():%Y-%m-%d %H:%M} UTC",
                          workbook.add_format({'italic': True, 'align': 'center'}))

    row = 3
    for col, header in enumerate(headers):
        worksheet.write(row, col, header, header_format)
    row += 1

    for s in students:
        worksheet.write(row, 0, s.admission_number, data_format)
        worksheet.write(row, 1, s.surname, data_format)
        worksheet.write(row, 2, s.firstname, data_format)
        worksheet.write(row, 3, s.othername or '', data_format)
        worksheet.write(row, 4, s.school_class.name if s.school_class else '', center_format)
        worksheet.write(row, 5, s.gender or '', center_format)
        worksheet.write(row, 6, s.birthday.strftime('%Y-%m-%d') if s.birthday else '', center_format)
        worksheet.write(row, 7, s.parent.full_name if s.parent else '', data_format)
        worksheet.write(row, 8, s.phone or '', data_format)
        worksheet.write(row, 9, s.admission_date.strftime('%Y-%m-%d') if s.admission_date else '', center_format)
        row += 1

    workbook.close()
    output.seek(0)
    return output


def report_card_pdf(school, grading, student, grades, traits, card):
    """Render one student's report card for a grading as a PDF."""
    output = io.BytesIO()
    doc = SimpleDocTemplate(
        output,
        pagesize=A4,
        leftMargin=1.5 * cm,
        rightMargin=1.5 * cm,
        topMargin=1.5 * cm,
        bottomMargin=1.5 * cm,
        title=f"Report card - {student.full_name}"
    )

    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="Center", alignment=TA_CENTER, fontSize=12, leading=14))
    styles.add(ParagraphStyle(name="CenterSmall", alignment=TA_CENTER, fontSize=10))

    flow = [
        Paragraph(f"<b>{school.name}</b>", styles["Title"]),
        Paragraph(school.subtitle or '', styles["CenterSmall"]),
        Spacer(1, 0.3 * cm),
        Paragraph(f"{grading.title}: {grading.term} Term, {grading.session}", styles["Center"]),
        Spacer(1, 0.5 * cm),
    ]

    info = Table([
        ['Name', student.full_name, 'Admission No.', student.admission_number],
        ['Class', student.school_class.name if student.school_class else '', 'Gender', student.gender or ''],
    ], colWidths=[3 * cm, 6 * cm, 3.5 * cm, 5 * cm])
    info.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTNAME', (2, 0), (2, -1), 'Helvetica-Bold'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
    ]))
    flow.extend([info, Spacer(1, 0.5 * cm)])

    rows = [['Subject', 'Score', 'Grade', 'Position', 'Remark']]
    for g in grades:
        rows.append([g.subject.name if g.subject else '', f"{g.score:.1f}", g.grade or '',
                     g.subject_position or '', g.remark or ''])
    scores = Table(rows, colWidths=[6 * cm, 2.5 * cm, 2 * cm, 2.5 * cm, 4.5 * cm], repeatRows=1)
    scores.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#4F81BD')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('ALIGN', (1, 0), (3, -1), 'CENTER'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#F2F2F2')]),
    ]))
    flow.extend([scores, Spacer(1, 0.5 * cm)])

    if traits:
        trait_rows = [['Trait', 'Category', 'Score', 'Remark']]
        for t in traits:
            trait_rows.append([t.trait.name, t.trait.category.title(), t.score if t.score is not None else '',
                               t.remark or ''])
        trait_table = Table(trait_rows, colWidths=[6 * cm, 4 * cm, 2 * cm, 5.5 * cm])
        trait_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ]))
        flow.extend([trait_table, Spacer(1, 0.5 * cm)])

    if card is not None:
        summary = [
            ['Total score', f"{card.total_score or 0:.1f}"],
            ['Average', f"{card.average_score or 0:.2f}"],
            ['Class position', card.class_position or ''],
            ['Remark', card.remark or ''],
            ["Form master's remark", card.formmaster_remark or ''],
        ]
        summary_table = Table(summary, colWidths=[5 * cm, 12.5 * cm])
        summary_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ]))
        flow.append(summary_table)

    doc.build(flow)
    output.seek(0)
    return output
