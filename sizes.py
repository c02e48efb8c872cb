"""
Interactive paper format selector for the Wongoji Layout Simulator
Based on common Korean manuscript paper (원고지) sheets and TOPIK answer grids
Pre-computed grid dimensions with case-insensitive lookups
"""
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table
from rich import box


class OptimizedPaperSizeSelector:
    """Paper format selector with pre-computed grid dimensions and fast lookups"""

    # Sizes in mm. 'limits' are suggested min/max lengths in sheet-count units.
    PAPER_FORMATS = {
        'wongoji_200': {
            'name': 'Wongoji 200',
            'width': 182,
            'height': 257,
            'grid': {'columns': 20, 'rows': 10},
            'characters_per_page': 200,
            'margins': {'top': 25, 'bottom': 25, 'left': 16, 'right': 16},
            'description': 'Standard 200-box manuscript sheet (B5)',
            'cell_size': 7.5,
            'limits': None
        },
        'wongoji_400': {
            'name': 'Wongoji 400',
            'width': 210,
            'height': 297,
            'grid': {'columns': 20, 'rows': 20},
            'characters_per_page': 400,
            'margins': {'top': 20, 'bottom': 20, 'left': 20, 'right': 20},
            'description': 'Standard 400-box manuscript sheet (A4)',
            'cell_size': 8.5,
            'limits': None
        },
        'topik_53': {
            'name': 'TOPIK II Q53',
            'width': 210,
            'height': 297,
            'grid': {'columns': 25, 'rows': 12},
            'characters_per_page': 300,
            'margins': {'top': 20, 'bottom': 20, 'left': 15, 'right': 15},
            'description': 'TOPIK II writing question 53 answer grid (200-300)',
            'cell_size': 7,
            'limits': {'min': 200, 'max': 300}
        },
        'topik_54': {
            'name': 'TOPIK II Q54',
            'width': 210,
            'height': 297,
            'grid': {'columns': 25, 'rows': 28},
            'characters_per_page': 700,
            'margins': {'top': 15, 'bottom': 15, 'left': 15, 'right': 15},
            'description': 'TOPIK II writing question 54 answer grid (600-700)',
            'cell_size': 7,
            'limits': {'min': 600, 'max': 700}
        },
        'custom': {
            'name': 'Custom',
            'width': 0,
            'height': 0,
            'grid': {'columns': 0, 'rows': 0},
            'characters_per_page': 0,
            'margins': {'top': 0, 'bottom': 0, 'left': 0, 'right': 0},
            'description': 'Custom user-defined format',
            'cell_size': 0,
            'limits': None
        }
    }

    # Ordered for display
    COMMON_SIZES = [
        PAPER_FORMATS['wongoji_200'],
        PAPER_FORMATS['wongoji_400'],
        PAPER_FORMATS['topik_53'],
        PAPER_FORMATS['topik_54'],
        PAPER_FORMATS['custom'],
    ]

    # Lookup by key or display name, case-insensitive
    _FORMAT_LOOKUP = {name.lower(): fmt for name, fmt in PAPER_FORMATS.items()}
    _FORMAT_LOOKUP.update({fmt['name'].lower(): fmt for fmt in PAPER_FORMATS.values()})

    def __init__(self, console=None):
        self.console = console or Console()

    @classmethod
    def get_format(cls, format_name):
        """Case-insensitive format lookup, None when unknown"""
        if not format_name:
            return None
        return cls._FORMAT_LOOKUP.get(format_name.lower())

    @staticmethod
    def calculate_grid_dimensions(page_width, page_height, margins, cell_size=None):
        """
        Grid dimensions for a custom sheet. Each row of boxes is followed by a
        thin separator band of half a box.
        """
        text_width = page_width - margins['left'] - margins['right']
        text_height = page_height - margins['top'] - margins['bottom']

        if cell_size is None:
            cell_size = 7 if text_width < 160 else 8 if text_width < 180 else 8.5

        columns = max(10, int(text_width / cell_size))
        rows = max(5, int(text_height / (cell_size * 1.5)))

        # Manuscript sheets are ruled in multiples of five boxes
        columns = columns - (columns % 5)

        return {
            'columns': columns,
            'rows': rows,
            'characters_per_page': columns * rows,
            'cell_size': cell_size
        }

    def show_sizes(self):
        """Print the available formats as a table"""
        table = Table(title="Manuscript Paper Formats", box=box.ROUNDED, expand=False)

        table.add_column("#", style="cyan", width=3, justify="right")
        table.add_column("Format", style="green", width=14)
        table.add_column("Size", style="blue", width=12, justify="center")
        table.add_column("Grid", style="magenta", width=14, justify="center")
        table.add_column("Description", style="yellow")

        for i, size in enumerate(self.COMMON_SIZES, 1):
            if size["name"] == "Custom":
                grid_info = size_info = "Custom"
            else:
                grid_info = f"{size['grid']['columns']}×{size['grid']['rows']} ({size['characters_per_page']})"
                size_info = f"{size['width']}×{size['height']}mm"

            table.add_row(str(i), size["name"], size_info, grid_info, size["description"])

        self.console.print(table)

    def select_paper_size(self):
        """Prompt for a paper format, building a custom one on request"""
        self.show_sizes()
        self.console.print("\n[bold cyan]Select a paper format:[/bold cyan]")

        valid_choices = [str(i) for i in range(1, len(self.COMMON_SIZES) + 1)]

        choice = Prompt.ask(
            "Enter selection",
            choices=valid_choices,
            default="1",
            console=self.console
        )

        selected = self.COMMON_SIZES[int(choice) - 1].copy()

        if selected["name"] == "Custom":
            self.console.print("\n[bold cyan]Custom Paper Dimensions:[/bold cyan]")

            width = int(Prompt.ask("Width (mm)", default="210", console=self.console))
            height = int(Prompt.ask("Height (mm)", default="297", console=self.console))

            self.console.print("\n[bold cyan]Margins:[/bold cyan]")
            top = int(Prompt.ask("Top margin (mm)", default="20", console=self.console))
            bottom = int(Prompt.ask("Bottom margin (mm)", default="20", console=self.console))
            left = int(Prompt.ask("Left margin (mm)", default="20", console=self.console))
            right = int(Prompt.ask("Right margin (mm)", default="20", console=self.console))

            margins = {'top': top, 'bottom': bottom, 'left': left, 'right': right}
            grid = self.calculate_grid_dimensions(width, height, margins)

            custom_size = {
                "name": "Custom",
                "width": width,
                "height": height,
                "grid": {'columns': grid['columns'], 'rows': grid['rows']},
                "characters_per_page": grid['characters_per_page'],
                "margins": margins,
                "description": f"Custom {width}×{height}mm format",
                "cell_size": grid['cell_size'],
                "limits": None
            }

            self.console.print(f"\n[bold green]✓ Custom format created:[/bold green] {width}×{height}mm")
            self.console.print(f"[bold green]✓ Grid:[/bold green] {grid['columns']}×{grid['rows']} ({grid['characters_per_page']} boxes/page)")

            return custom_size

        self.console.print(f"\n[bold green]✓ Selected:[/bold green] {selected['name']} ({selected['width']}×{selected['height']}mm)")
        self.console.print(f"[bold green]✓ Grid:[/bold green] {selected['grid']['columns']}×{selected['grid']['rows']} ({selected['characters_per_page']} boxes/page)")

        return selected


PaperSizeSelector = OptimizedPaperSizeSelector
