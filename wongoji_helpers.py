"""
Helper methods for wongoji table configuration
"""

UNUSED_FILL = 'F2F2F2'
OVERFLOW_FILL = 'F8CBAD'


def configure_wongoji_table(table, cell_width, cell_height):
    """
    Configure table to look like ruled manuscript paper
    """
    from docx.oxml import OxmlElement
    from docx.oxml.ns import qn
    from docx.enum.table import WD_ROW_HEIGHT_RULE

    tbl = table._tbl
    tblPr = tbl.tblPr

    # Fixed layout keeps every box the same size
    tblLayout = OxmlElement('w:tblLayout')
    tblLayout.set(qn('w:type'), 'fixed')
    tblPr.append(tblLayout)

    tblBorders = OxmlElement('w:tblBorders')
    for border_name in ['top', 'left', 'bottom', 'right', 'insideH', 'insideV']:
        border = OxmlElement(f'w:{border_name}')
        border.set(qn('w:val'), 'single')
        border.set(qn('w:sz'), '4')
        border.set(qn('w:color'), '5B8C5A')
        tblBorders.append(border)
    tblPr.append(tblBorders)

    for col in table.columns:
        col.width = cell_width
        for cell in col.cells:
            cell.width = cell_width

    for row in table.rows:
        row.height = cell_height
        row.height_rule = WD_ROW_HEIGHT_RULE.EXACTLY


def configure_wongoji_cell(cell, content, font_size_points, font_name, used=True, overflow=False):
    """
    Configure one box: centered content, minimal margins, shading for
    unused padding and for boxes past the maximum length
    """
    from docx.oxml import OxmlElement
    from docx.oxml.ns import qn
    from docx.shared import Pt
    from docx.enum.text import WD_PARAGRAPH_ALIGNMENT

    cell.text = ''

    tcPr = cell._tc.get_or_add_tcPr()

    vAlign = OxmlElement('w:vAlign')
    vAlign.set(qn('w:val'), 'center')
    tcPr.append(vAlign)

    fill = OVERFLOW_FILL if overflow else UNUSED_FILL if not used else None
    if fill:
        shd = OxmlElement('w:shd')
        shd.set(qn('w:val'), 'clear')
        shd.set(qn('w:color'), 'auto')
        shd.set(qn('w:fill'), fill)
        tcPr.append(shd)

    if content:
        paragraph = cell.paragraphs[0]
        paragraph.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER
        paragraph.paragraph_format.space_before = Pt(0)
        paragraph.paragraph_format.space_after = Pt(0)

        run = paragraph.add_run(content)
        run.font.name = font_name
        # East Asian font slot, otherwise Hangul falls back to the theme font
        rPr = run._r.get_or_add_rPr()
        rFonts = rPr.find(qn('w:rFonts'))
        if rFonts is None:
            rFonts = OxmlElement('w:rFonts')
            rPr.append(rFonts)
        rFonts.set(qn('w:eastAsia'), font_name)
        # digit pairs and shared punctuation squeeze two glyphs into one box
        run.font.size = Pt(font_size_points * (0.7 if len(content) > 1 else 1))

    tcMar = OxmlElement('w:tcMar')
    for margin in ['top', 'left', 'bottom', 'right']:
        mar = OxmlElement(f'w:{margin}')
        mar.set(qn('w:w'), '0')
        mar.set(qn('w:type'), 'dxa')
        tcMar.append(mar)
    tcPr.append(tcMar)
