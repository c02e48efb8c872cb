#!/usr/bin/env python3
"""
Wongoji Layout Simulator - lay out Korean text on manuscript paper (원고지)
Counts written boxes and full-row sheet length against min/max targets
Renders the grid in the terminal and exports DOCX sheets and JSON metadata
"""

import argparse
import copy
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import chardet
from docx import Document
from docx.enum.section import WD_ORIENTATION
from docx.shared import Mm
from rich import box
from rich.console import Console
from rich.progress import Progress, BarColumn, TextColumn, TaskProgressColumn
from rich.table import Table
from rich.text import Text

from sizes import PaperSizeSelector
from wongoji import LayoutResult, WongojiRules, layout
from wongoji_helpers import configure_wongoji_cell, configure_wongoji_table

logging.basicConfig(level=logging.INFO, format='[%(levelname)s] %(message)s')

SAMPLE_TEXT = (
    "러시아에는 지식의 날이라는 기념일이 있다. 이 날은 날씨가 좋지 않은데도 불구하고 "
    "매년 9월 1일에 기념된다.\n"
    "지식의 날은 소비엣 시대에 새로운 학년의 시작을 기념하기 위해 만들어졌다. "
    "그 이전에는 교육을 받을 수 있는 사람이 제한적이었다가, 소비엣 정부가 모든 아이들에게 "
    "학교 교육을 의무화했다. 그래서 교육의 중요성을 강조하기 위해 이 날을 기념일로 정했다."
)

# Single punctuation marks sit in the left half of their box
LEFT_ALIGNED_PUNCTUATION = frozenset('.,?!:;…)]”’」』》')


def parse_limit(raw, floor: int) -> Optional[int]:
    """Blank or missing means no limit; numbers are floored at `floor`"""
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if raw == '':
            return None
    try:
        return max(floor, int(float(raw)))
    except (TypeError, ValueError, OverflowError):
        logging.warning(f"Ignoring invalid limit {raw!r}")
        return None


def evaluate_limits(sheet_count: int, min_limit: Optional[int] = None,
                    max_limit: Optional[int] = None) -> Dict:
    """
    Compare the sheet count with optional min/max bounds.
    UNDER is checked before OVER; equal bounds accept only that exact length.
    """
    if min_limit is not None and max_limit is not None:
        range_label = f"{min_limit}–{max_limit}"
    elif min_limit is not None:
        range_label = f"≥ {min_limit}"
    elif max_limit is not None:
        range_label = f"≤ {max_limit}"
    else:
        range_label = "(no min/max set)"

    verdict = {
        'status': 'OK',
        'sheet_count': sheet_count,
        'min': min_limit,
        'max': max_limit,
        'need_to_add': 0,
        'need_to_cut': 0,
        'range_label': range_label,
    }

    if min_limit is None and max_limit is None:
        verdict['status'] = 'OFF'
    elif min_limit is not None and max_limit is not None and min_limit > max_limit:
        verdict['status'] = 'INVALID'
    elif min_limit is not None and sheet_count < min_limit:
        verdict['status'] = 'UNDER'
        verdict['need_to_add'] = min_limit - sheet_count
    elif max_limit is not None and sheet_count > max_limit:
        verdict['status'] = 'OVER'
        verdict['need_to_cut'] = sheet_count - max_limit

    return verdict


def is_overflow(position: int, max_limit: Optional[int]) -> bool:
    """Boxes past the maximum (1-based position) are highlighted"""
    return max_limit is not None and position > max_limit


class WongojiRenderer:
    """Terminal rendering of a layout result with rich"""

    STATUS_STYLES = {
        'OK': 'bold green',
        'UNDER': 'bold red',
        'OVER': 'bold red',
        'INVALID': 'bold red',
        'OFF': 'dim',
    }

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def build_grid_table(self, result: LayoutResult, max_limit: Optional[int] = None) -> Table:
        """One table row per grid row with a running count every 100 boxes"""
        table = Table(show_header=False, box=box.SQUARE, show_lines=True, padding=(0, 0))
        for _ in range(result.width):
            table.add_column(width=2, justify="center", no_wrap=True)
        table.add_column(width=5, justify="right", style="cyan", no_wrap=True)

        for line_no, row in enumerate(result.rows(), 1):
            rendered = []
            for offset, cell in enumerate(row):
                position = (line_no - 1) * result.width + offset + 1
                if not cell.used:
                    rendered.append(Text('', style="on grey15"))
                    continue
                style = "bold white on red" if is_overflow(position, max_limit) else ""
                justify = "left" if cell.content in LEFT_ALIGNED_PUNCTUATION else "center"
                rendered.append(Text(cell.content, style=style, justify=justify))

            current = line_no * result.width
            rendered.append(Text(str(current) if current % 100 == 0 else ''))
            table.add_row(*rendered)

        return table

    def build_stats_table(self, result: LayoutResult, verdict: Dict) -> Table:
        """Summary of counts and the length verdict"""
        stats = Table(title="Manuscript Length")
        stats.add_column("Metric", style="cyan")
        stats.add_column("Value", style="green")

        stats.add_row("Written boxes", str(result.used_count))
        stats.add_row("On sheet", str(result.sheet_count))
        stats.add_row("Rows", str(len(result.cells) // result.width))

        status = verdict['status']
        stats.add_row("Status", f"[{self.STATUS_STYLES[status]}]{status}[/{self.STATUS_STYLES[status]}]")
        if status == 'INVALID':
            stats.add_row("Problem", "Min is greater than Max")
        elif status == 'UNDER':
            stats.add_row("Need to add", str(verdict['need_to_add']))
        elif status == 'OVER':
            stats.add_row("Need to cut", str(verdict['need_to_cut']))
        elif status == 'OK':
            stats.add_row("Range", verdict['range_label'])
        return stats

    def render(self, result: LayoutResult, verdict: Dict, show_grid: bool = True):
        if show_grid and result.cells:
            self.console.print(self.build_grid_table(result, verdict.get('max')))
        self.console.print(self.build_stats_table(result, verdict))


class WongojiDocumentBuilder:
    """DOCX builder producing ruled manuscript sheets"""

    DEFAULT_PAPER_FORMAT = PaperSizeSelector.get_format('wongoji_400')

    def __init__(self, font_name='Noto Sans KR', paper_format=None, width=None, indent=None,
                 count_whitespace=True, digits_per_cell=None):
        self.doc = Document()
        self.font_name = font_name
        self.paper_format = copy.deepcopy(paper_format or self.DEFAULT_PAPER_FORMAT)

        # Grid width defaults to the paper's box columns
        if width is None:
            width = self.paper_format.get('grid', {}).get('columns') or None
        self.rules = WongojiRules.from_options(
            width=width,
            indent=indent,
            count_whitespace=count_whitespace,
            digits_per_cell=digits_per_cell
        )
        self.result: Optional[LayoutResult] = None

        self.setup_page_layout()

    @property
    def rows_per_page(self) -> int:
        rows = self.paper_format.get('grid', {}).get('rows')
        return rows if isinstance(rows, int) and rows > 0 else 20

    def _page_dimensions(self) -> Dict:
        """Paper size and margins, falling back to the default paper format (Wongoji 400) for unset custom formats"""
        fallback = self.DEFAULT_PAPER_FORMAT
        width = self.paper_format.get('width') or fallback['width']
        height = self.paper_format.get('height') or fallback['height']
        margins = self.paper_format.get('margins') or {}
        if not any(margins.values()):
            margins = fallback['margins']
        return {'width': width, 'height': height, 'margins': margins}

    def setup_page_layout(self):
        """Setup page size and margins from the paper format"""
        section = self.doc.sections[0]
        dims = self._page_dimensions()

        section.orientation = WD_ORIENTATION.PORTRAIT
        section.page_width = Mm(dims['width'])
        section.page_height = Mm(dims['height'])
        section.top_margin = Mm(dims['margins']['top'])
        section.bottom_margin = Mm(dims['margins']['bottom'])
        section.left_margin = Mm(dims['margins']['left'])
        section.right_margin = Mm(dims['margins']['right'])

    def cell_size_mm(self) -> float:
        """Box size, shrunk when a width override would not fit the text area"""
        dims = self._page_dimensions()
        text_width = dims['width'] - dims['margins']['left'] - dims['margins']['right']
        preferred = self.paper_format.get('cell_size') or 8
        return min(preferred, text_width / self.rules.width)

    def create_wongoji_document(self, text) -> LayoutResult:
        """Lay out the text with the builder's rules"""
        try:
            self.result = layout(text, self.rules)
        except Exception as e:
            logging.critical(f"Failed to lay out text: {e}")
            raise
        logging.info(f"Laid out {self.result.used_count} boxes over {len(self.result.cells)} cells")
        return self.result

    def get_all_pages(self) -> List[Dict]:
        """Group grid rows into sheets of rows_per_page rows"""
        if self.result is None:
            return []
        rows = self.result.rows()
        per_page = self.rows_per_page
        return [
            {'page_num': index // per_page + 1, 'rows': rows[index:index + per_page]}
            for index in range(0, len(rows), per_page)
        ]

    def export_grid_metadata_json(self, output_path=None):
        """Export rows, cells and counts as JSON"""
        if self.result is None:
            raise ValueError("No layout to export - call create_wongoji_document first")
        metadata = {
            'width': self.result.width,
            'used_count': self.result.used_count,
            'sheet_count': self.result.sheet_count,
            'rows': [
                {'row': row_no, 'cells': [{'content': c.content, 'used': c.used} for c in row]}
                for row_no, row in enumerate(self.result.rows(), 1)
            ]
        }

        json_str = json.dumps(metadata, ensure_ascii=False, indent=2)
        if output_path:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(json_str)
        return json_str

    def generate_docx_content(self, progress_callback=None, max_limit=None):
        """
        One bordered table per sheet; the last sheet is filled out with
        unused boxes so every page shows a complete grid
        """
        # Clear existing paragraphs
        while len(self.doc.paragraphs) > 0:
            p = self.doc.paragraphs[0]
            p._element.getparent().remove(p._element)

        pages = self.get_all_pages()
        if not self._validate_grid_data(pages):
            raise ValueError("Grid data validation failed - cannot generate DOCX")

        width = self.rules.width
        cell_size = self.cell_size_mm()
        font_size_points = max(6, min(14, cell_size * 2.835 * 0.7))
        position = 0

        for page_index, page in enumerate(pages):
            table = self.doc.add_table(rows=self.rows_per_page, cols=width)
            configure_wongoji_table(table, Mm(cell_size), Mm(cell_size))

            for row_idx, table_row in enumerate(table.rows):
                row = page['rows'][row_idx] if row_idx < len(page['rows']) else ()
                for col_idx, docx_cell in enumerate(table_row.cells):
                    if col_idx < len(row):
                        cell = row[col_idx]
                        position += 1
                        configure_wongoji_cell(
                            docx_cell, cell.content, font_size_points, self.font_name,
                            used=cell.used,
                            overflow=cell.used and is_overflow(position, max_limit)
                        )
                    else:
                        configure_wongoji_cell(docx_cell, '', font_size_points, self.font_name, used=False)

            if page_index < len(pages) - 1:
                self.doc.add_page_break()

            if progress_callback:
                progress_callback(page_index + 1, len(pages))

    def _validate_grid_data(self, pages):
        """Every row must hold exactly `width` cells"""
        if not pages:
            return False

        for page in pages:
            if len(page['rows']) > self.rows_per_page:
                print(f"Row overflow on page {page['page_num']}: {len(page['rows'])} > {self.rows_per_page}")
                return False
            for row in page['rows']:
                if len(row) != self.rules.width:
                    print(f"Invalid row length on page {page['page_num']}: {len(row)} != {self.rules.width}")
                    return False
        return True


def read_input_text(source: str) -> str:
    """Read a file (or '-' for stdin), detecting its encoding with chardet"""
    if source == '-':
        raw_data = sys.stdin.buffer.read()
    else:
        with open(source, 'rb') as f:
            raw_data = f.read()

    encoding_result = chardet.detect(raw_data)
    confidence = encoding_result.get('confidence') or 0
    detected_encoding = encoding_result['encoding'] if confidence > 0.7 else 'utf-8'
    try:
        return raw_data.decode(detected_encoding)
    except (UnicodeDecodeError, LookupError):
        logging.warning(f"Could not decode as {detected_encoding}, falling back to UTF-8")
        return raw_data.decode('utf-8', errors='replace')


def run_sample_check():
    """Log the sample's used boxes at the two common grid widths"""
    for width in (20, 25):
        result = layout(SAMPLE_TEXT, width=width, indent=1, count_whitespace=True)
        logging.info(f"Sample used boxes ({width}): {result.used_count}")


def main():
    """Command line entry point"""
    parser = argparse.ArgumentParser(description="Korean Manuscript Paper (Wongoji) Layout Simulator")
    parser.add_argument("input", nargs="?", help="Input text file, '-' for stdin")
    parser.add_argument("--width", type=int, default=None, help="Boxes per row (default: paper format, else 20)")
    parser.add_argument("--indent", type=int, default=1, help="Paragraph indent in boxes")
    parser.add_argument("--no-count-spaces", action="store_true", help="Do not give spaces their own box")
    parser.add_argument("--digits-per-cell", type=int, default=2, help="Digits sharing one box")
    parser.add_argument("--format", default=None, help="Paper format (wongoji_200, wongoji_400, topik_53, topik_54, custom)")
    parser.add_argument("--min", dest="min_limit", default=None, help="Minimum length in sheet boxes")
    parser.add_argument("--max", dest="max_limit", default=None, help="Maximum length in sheet boxes")
    parser.add_argument("-o", "--output", help="Output DOCX file")
    parser.add_argument("--json", help="Export grid metadata as JSON to file")
    parser.add_argument("--no-grid", action="store_true", help="Only print the counts")
    parser.add_argument("--sample", action="store_true", help="Log sample counts at widths 20 and 25 and exit")
    args = parser.parse_args()

    console = Console()

    if args.sample:
        run_sample_check()
        return

    console.print("[bold yellow]Wongoji Layout Simulator[/bold yellow]")
    console.print("[green]Korean manuscript paper box counting[/green]")
    console.print()

    if not args.input:
        console.print("[bold red]No input file specified.[/bold red]")
        sys.exit(1)

    if args.input != '-' and not Path(args.input).exists():
        console.print(f"[bold red]Error: Input file '{args.input}' not found.[/bold red]")
        sys.exit(1)

    try:
        text = read_input_text(args.input)
    except OSError as e:
        console.print(f"[bold red]Error reading input: {e}[/bold red]")
        sys.exit(1)

    # Paper format selection
    if args.format == "custom":
        paper_format = PaperSizeSelector(console=console).select_paper_size()
    elif args.format:
        paper_format = PaperSizeSelector.get_format(args.format)
        if paper_format is None:
            console.print(f"[bold red]Error: Unknown paper format '{args.format}'.[/bold red]")
            sys.exit(1)
    else:
        paper_format = None

    # Limits default to the paper's suggested range
    suggested = (paper_format or {}).get('limits') or {}
    min_limit = parse_limit(args.min_limit if args.min_limit is not None else suggested.get('min'), 0)
    max_limit = parse_limit(args.max_limit if args.max_limit is not None else suggested.get('max'), 1)

    builder = WongojiDocumentBuilder(
        paper_format=paper_format,
        width=args.width,
        indent=args.indent,
        count_whitespace=not args.no_count_spaces,
        digits_per_cell=args.digits_per_cell
    )
    result = builder.create_wongoji_document(text)
    verdict = evaluate_limits(result.sheet_count, min_limit, max_limit)

    WongojiRenderer(console).render(result, verdict, show_grid=not args.no_grid)

    if args.output:
        pages = builder.get_all_pages()
        if not pages:
            console.print("[bold yellow]Nothing to export: the text is empty.[/bold yellow]")
        else:
            with Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Generating DOCX...", total=len(pages))

                def progress_callback(current_page, total_pages):
                    progress.update(task, advance=1,
                                    description=f"Generating DOCX... Sheet {current_page}/{total_pages}")

                builder.generate_docx_content(progress_callback=progress_callback, max_limit=max_limit)

            output_path = Path(args.output)
            builder.doc.save(output_path)
            console.print(f"[bold green]✓ DOCX file saved:[/bold green] {output_path}")
            console.print(f"[bold green]✓ Sheets generated:[/bold green] {len(pages)}")

    if args.json:
        builder.export_grid_metadata_json(args.json)
        console.print(f"[bold green]✓ Metadata JSON saved:[/bold green] {args.json}")

    if verdict['status'] in ('UNDER', 'OVER', 'INVALID'):
        sys.exit(2)


if __name__ == "__main__":
    main()
