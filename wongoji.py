"""
Wongoji layout engine - simulate Korean manuscript paper (원고지) box placement
Turns free-form text into a row-major sequence of grid cells plus used/sheet counts
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Tuple

DEFAULT_WIDTH = 20
DEFAULT_INDENT = 1
DEFAULT_DIGITS_PER_CELL = 2

ELLIPSIS = '……'
MIDDLE_DOT_ELLIPSIS = '······'
DASH = '―'
CONTINUATION_MARKER = '·'

WHITESPACE_UNITS = frozenset({' ', '\t'})
ASCII_DIGITS = frozenset('0123456789')


class PunctuationClass(Enum):
    """Rule categories a token can belong to"""
    WHITESPACE = 'whitespace'
    TRAILING_BLANK = 'trailing_blank'
    NO_TYPED_SPACE_AFTER = 'no_typed_space_after'
    SHAREABLE = 'shareable'
    TWO_CELL = 'two_cell'


def _coerce_int(value) -> Optional[int]:
    """Return value as an int, or None when it is not a finite number"""
    if isinstance(value, bool):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number)


@dataclass(frozen=True)
class WongojiRules:
    """Immutable rule set for one layout call"""
    width: int = DEFAULT_WIDTH
    indent: int = DEFAULT_INDENT
    count_whitespace: bool = True
    digits_per_cell: int = DEFAULT_DIGITS_PER_CELL
    # ? and ! are followed by one written blank box
    trailing_blank: FrozenSet[str] = frozenset({'?', '!'})
    # a typed space after these is absorbed, never written
    no_typed_space_after: FrozenSet[str] = frozenset({'.', ',', ':', ';'})
    # may share the last box of the previous row instead of opening a new one
    shareable: FrozenSet[str] = frozenset({
        '.', ',', '?', '!', ':', ';', '…', ELLIPSIS, MIDDLE_DOT_ELLIPSIS,
        ')', ']', '”', '’', '」', '』', '》',
    })
    two_cell_glyphs: FrozenSet[str] = frozenset({ELLIPSIS, MIDDLE_DOT_ELLIPSIS, DASH})

    def __post_init__(self):
        # from_options coerces; direct construction must already be valid
        if self.width < 1 or self.digits_per_cell < 1 or self.indent < 0:
            raise ValueError(f"Invalid rules: width={self.width}, indent={self.indent}, "
                             f"digits_per_cell={self.digits_per_cell}")

    @classmethod
    def from_options(cls, width=None, indent=None, count_whitespace=None, digits_per_cell=None,
                     trailing_blank=None, no_typed_space_after=None, shareable=None,
                     two_cell_glyphs=None) -> 'WongojiRules':
        """
        Build rules from loosely-typed options, falling back to defaults for
        malformed numeric values instead of raising
        """
        coerced_width = _coerce_int(width)
        if coerced_width is None or coerced_width < 1:
            if width is not None:
                logging.warning(f"Invalid grid width {width!r}, using {DEFAULT_WIDTH}")
            coerced_width = DEFAULT_WIDTH

        if indent is None:
            coerced_indent = DEFAULT_INDENT
        else:
            coerced_indent = _coerce_int(indent)
            if coerced_indent is None:
                logging.warning(f"Invalid indent {indent!r}, using 0")
                coerced_indent = 0
            coerced_indent = max(0, coerced_indent)

        coerced_digits = _coerce_int(digits_per_cell)
        if coerced_digits is None or coerced_digits < 1:
            if digits_per_cell is not None:
                logging.warning(f"Invalid digits per cell {digits_per_cell!r}, using {DEFAULT_DIGITS_PER_CELL}")
            coerced_digits = DEFAULT_DIGITS_PER_CELL

        overrides = {
            'trailing_blank': trailing_blank,
            'no_typed_space_after': no_typed_space_after,
            'shareable': shareable,
            'two_cell_glyphs': two_cell_glyphs,
        }
        sets = {name: frozenset(chars) for name, chars in overrides.items() if chars is not None}

        return cls(
            width=coerced_width,
            indent=coerced_indent,
            count_whitespace=True if count_whitespace is None else bool(count_whitespace),
            digits_per_cell=coerced_digits,
            **sets
        )

    def classify(self, token: str) -> FrozenSet[PunctuationClass]:
        """Return every rule category the token belongs to"""
        classes = set()
        if token in WHITESPACE_UNITS:
            classes.add(PunctuationClass.WHITESPACE)
        if token in self.trailing_blank:
            classes.add(PunctuationClass.TRAILING_BLANK)
        if token in self.no_typed_space_after:
            classes.add(PunctuationClass.NO_TYPED_SPACE_AFTER)
        if token in self.shareable:
            classes.add(PunctuationClass.SHAREABLE)
        if token in self.two_cell_glyphs:
            classes.add(PunctuationClass.TWO_CELL)
        return frozenset(classes)

    def multi_char_glyphs(self) -> List[str]:
        """Two-cell glyphs the tokenizer must match atomically, longest first"""
        return sorted((g for g in self.two_cell_glyphs if len(g) > 1), key=len, reverse=True)


@dataclass(frozen=True)
class Cell:
    """One box on the manuscript paper"""
    content: str = ''
    used: bool = False


@dataclass(frozen=True)
class LayoutResult:
    """Emitted cells with the derived used and sheet counts"""
    cells: Tuple[Cell, ...]
    used_count: int
    sheet_count: int
    width: int = DEFAULT_WIDTH

    @property
    def last_used_index(self) -> int:
        """1-based position of the last used cell, 0 if none is used"""
        for idx in range(len(self.cells) - 1, -1, -1):
            if self.cells[idx].used:
                return idx + 1
        return 0

    def rows(self) -> List[Tuple[Cell, ...]]:
        """Split cells into grid rows of `width` cells"""
        return [self.cells[i:i + self.width] for i in range(0, len(self.cells), self.width)]


class WongojiTextProcessor:
    """Normalizer, tokenizer and digit packer"""

    @staticmethod
    def normalize(text: Optional[str]) -> str:
        """Collapse CRLF and lone CR into LF"""
        return (text or '').replace('\r\n', '\n').replace('\r', '\n')

    @classmethod
    def split_paragraphs(cls, text: Optional[str]) -> List[str]:
        """Every line break is a paragraph boundary, blank lines included"""
        return cls.normalize(text).split('\n')

    @staticmethod
    def tokenize_paragraph(paragraph: str, glyphs: Iterable[str] = (ELLIPSIS, MIDDLE_DOT_ELLIPSIS)) -> List[str]:
        """
        Split a paragraph into single characters, keeping multi-character
        glyphs (the ellipsis spellings) together as one token
        """
        glyphs = sorted((g for g in glyphs if len(g) > 1), key=len, reverse=True)
        tokens = []
        i = 0
        while i < len(paragraph):
            for glyph in glyphs:
                if paragraph.startswith(glyph, i):
                    tokens.append(glyph)
                    i += len(glyph)
                    break
            else:
                tokens.append(paragraph[i])
                i += 1
        return tokens

    @staticmethod
    def pack_digits(tokens: Iterable[str], digits_per_cell: int = DEFAULT_DIGITS_PER_CELL) -> List[str]:
        """Merge runs of ASCII digits into groups of digits_per_cell, e.g. 2026 -> 20, 26"""
        packed = []
        digit_buffer = ''
        for token in tokens:
            if token in ASCII_DIGITS:
                digit_buffer += token
                if len(digit_buffer) == digits_per_cell:
                    packed.append(digit_buffer)
                    digit_buffer = ''
                continue
            if digit_buffer:
                packed.append(digit_buffer)
                digit_buffer = ''
            packed.append(token)
        if digit_buffer:
            packed.append(digit_buffer)
        return packed

    @classmethod
    def paragraph_tokens(cls, paragraph: str, rules: WongojiRules) -> List[str]:
        """Tokenize and digit-pack one paragraph"""
        tokens = cls.tokenize_paragraph(paragraph, rules.multi_char_glyphs())
        return cls.pack_digits(tokens, rules.digits_per_cell)


class WongojiGrid:
    """Row-major cell placer tracking the current column"""

    def __init__(self, rules: Optional[WongojiRules] = None):
        self.rules = rules or WongojiRules()
        self.width = self.rules.width
        self.current_column = 0
        self._cells: List[Cell] = []

    @property
    def cells(self) -> Tuple[Cell, ...]:
        return tuple(self._cells)

    def at_line_start(self) -> bool:
        return self.current_column == 0

    def emit(self, content: str, used: bool):
        """Append one cell and advance the column, wrapping at the row end"""
        self._cells.append(Cell(content, used))
        self.current_column = (self.current_column + 1) % self.width

    def emit_used_blank(self):
        """Written blank box (indent, space, gap after ? and !)"""
        self.emit('', True)

    def pad_line_end(self):
        """Fill the rest of the current row with unused boxes"""
        while not self.at_line_start():
            self.emit('', False)

    def share_with_previous(self, punct: str) -> bool:
        """
        Fold punctuation that would open a new row into the last box of the
        previous row. Only the final cell is ever replaced, and only when it
        is a used cell.
        """
        if punct not in self.rules.shareable:
            return False
        if not self.at_line_start() or not self._cells:
            return False
        previous = self._cells[-1]
        if not previous.used:
            return False
        self._cells[-1] = replace(previous, content=previous.content + punct)
        return True

    def place_token(self, token: str, next_token: Optional[str] = None):
        """Place one packed token; next_token is None at the end of a paragraph"""
        classes = self.rules.classify(token)

        if PunctuationClass.WHITESPACE in classes:
            # wrapped lines never get a leading space
            if self.rules.count_whitespace and not self.at_line_start():
                self.emit_used_blank()
            return

        if PunctuationClass.TWO_CELL in classes:
            if self.current_column == self.width - 1:
                self.pad_line_end()
            self.emit(token, True)
            self.emit(CONTINUATION_MARKER, True)
            return

        if PunctuationClass.SHAREABLE in classes and self.at_line_start():
            if self.share_with_previous(token):
                if PunctuationClass.TRAILING_BLANK in classes and next_token is not None:
                    self.emit_used_blank()
                return

        self.emit(token, True)
        if PunctuationClass.TRAILING_BLANK in classes and next_token is not None:
            self.emit_used_blank()

    def place_paragraph(self, paragraph: str):
        """Start a fresh row, indent non-empty paragraphs, then place tokens"""
        self.pad_line_end()
        if paragraph and self.rules.indent > 0:
            for _ in range(self.rules.indent):
                self.emit_used_blank()

        tokens = WongojiTextProcessor.paragraph_tokens(paragraph, self.rules)
        absorbs_space = {PunctuationClass.TRAILING_BLANK, PunctuationClass.NO_TYPED_SPACE_AFTER}
        i = 0
        while i < len(tokens):
            token = tokens[i]
            next_token = tokens[i + 1] if i + 1 < len(tokens) else None
            self.place_token(token, next_token)
            # the rule already accounts for the gap, a typed space is not counted twice
            if (next_token in WHITESPACE_UNITS
                    and absorbs_space & self.rules.classify(token)):
                i += 1
            i += 1

    def finish(self) -> LayoutResult:
        """Close the last row and derive the counts"""
        self.pad_line_end()
        cells = self.cells
        used_count = sum(1 for cell in cells if cell.used)
        result = LayoutResult(cells=cells, used_count=used_count, sheet_count=0, width=self.width)
        last_used = result.last_used_index
        if last_used:
            result = replace(result, sheet_count=math.ceil(last_used / self.width) * self.width)
        return result


def layout(text: Optional[str], rules: Optional[WongojiRules] = None, **options) -> LayoutResult:
    """
    Lay out text on manuscript paper.

    Either pass a prepared WongojiRules or keyword options accepted by
    WongojiRules.from_options (width, indent, count_whitespace, ...).
    """
    if rules is None:
        rules = WongojiRules.from_options(**options)
    elif options:
        raise TypeError("Pass either rules or keyword options, not both")

    grid = WongojiGrid(rules)
    for paragraph in WongojiTextProcessor.split_paragraphs(text):
        grid.place_paragraph(paragraph)
    return grid.finish()
