"""
Matrix Builder

Flattens a ReportTree and a column spec into a rectangular cell grid with
merge ranges, ready for tabular display or spreadsheet export.

Key Concepts:
- Column spec: nested ColumnGroup / Column declarations. Header depth is
  the deepest nesting. Shallower branches are bottom-aligned: a column
  stretches down to the last header row and a group label stretches down
  to the row above its children.
- Merges: exactly one merge range per header label spanning more than one
  cell (horizontally over its sub-columns, vertically when stretched).
- Row order per group: summary row (always), then when expanded its direct
  items and package summary rows, and each expanded package's items.
  A group with no leaves renders one "no data" row spanning every value
  column and nothing else. The grand total row closes the body.
- Expansion is a read-only set of node keys supplied by the caller;
  ALL_EXPANDED gives the flat export view. Interactive and export views
  come from the same tree without re-aggregating.
"""
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Collection, List, Optional, Sequence, Tuple, Union

import pandas as pd

from report_engine.core.error_taxonomy import ColumnSpecError
from report_engine.data.hierarchy import Item, PackageNode, ReportTree

logger = logging.getLogger(__name__)

DEFAULT_NO_DATA_LABEL = "No activities for this component."
DEFAULT_LABEL_HEADER = "Program/Activity/Project"


class CellRole(Enum):
    """Role tag of an output cell."""
    HEADER = "header"
    LABEL = "label"
    DATA = "data"
    TOTAL = "total"
    PERCENT = "percent"
    NO_DATA = "no_data"


class RowKind(Enum):
    """What an output row represents."""
    HEADER = "header"
    GROUP = "group"
    PACKAGE = "package"
    ITEM = "item"
    GRAND_TOTAL = "grand_total"


class NumberFormat(Enum):
    """How a column's values should be presented by a renderer."""
    TEXT = "text"
    COUNT = "count"
    CURRENCY = "currency"
    PERCENT = "percent"


class _AllExpanded:
    """Expansion set containing every key."""

    def __contains__(self, key: object) -> bool:
        return True

    def __repr__(self) -> str:
        return "ALL_EXPANDED"


ALL_EXPANDED = _AllExpanded()


# ==================== COLUMN SPEC ====================

ValueFn = Callable[[Item], Any]


@dataclass(frozen=True)
class Column:
    """
    One leaf column.

    Attributes:
        label: Header text
        value: Function of the row's Item (leaf or summary) giving the cell value
        number_format: Presentation hint for renderers
        leaf_only: Blank on summary and total rows (e.g. unit of measure)
    """
    label: str
    value: ValueFn
    number_format: NumberFormat = NumberFormat.COUNT
    leaf_only: bool = False

    @property
    def role(self) -> CellRole:
        return CellRole.PERCENT if self.number_format == NumberFormat.PERCENT else CellRole.DATA


@dataclass(frozen=True)
class ColumnGroup:
    """A header label spanning its child columns and groups."""
    label: str
    children: Tuple[Union[Column, "ColumnGroup"], ...]


ColumnNode = Union[Column, ColumnGroup]


@dataclass(frozen=True)
class HeaderCell:
    """Placement of one header label."""
    label: str
    start_row: int
    start_col: int
    end_row: int
    end_col: int

    @property
    def is_merged(self) -> bool:
        return self.end_row > self.start_row or self.end_col > self.start_col


def _height(node: ColumnNode) -> int:
    if isinstance(node, Column):
        return 1
    return 1 + max(_height(child) for child in node.children)


class ColumnSpec:
    """
    Validated column layout for a report.

    Usage:
        spec = ColumnSpec([
            ColumnGroup("1st Quarter", (Column("Jan", jan), Column("Total", q1))),
            Column("Grand Total", total),
        ])
        spec.depth          # 2
        spec.leaf_columns   # [Jan, Total, Grand Total]
    """

    def __init__(self, columns: Sequence[ColumnNode], label_header: str = DEFAULT_LABEL_HEADER):
        self.columns: Tuple[ColumnNode, ...] = tuple(columns)
        self.label_header = label_header
        self._validate()
        self.depth = max(_height(node) for node in self.columns)
        self.leaf_columns: List[Column] = []
        self.header_cells: List[HeaderCell] = [
            HeaderCell(label_header, 0, 0, self.depth - 1, 0)
        ]
        col = 1
        for node in self.columns:
            col += self._place(node, 0, col)

    def _validate(self) -> None:
        if not self.columns:
            raise ColumnSpecError("Column spec has no columns")
        stack: List[Any] = list(self.columns)
        while stack:
            node = stack.pop()
            if isinstance(node, Column):
                if not isinstance(node.label, str) or not callable(node.value):
                    raise ColumnSpecError(f"Invalid column: {node!r}", label=getattr(node, "label", None))
            elif isinstance(node, ColumnGroup):
                if not isinstance(node.label, str) or not node.children:
                    raise ColumnSpecError(f"Column group {node.label!r} has no children", label=node.label)
                stack.extend(node.children)
            else:
                raise ColumnSpecError(f"Unrecognized column spec entry: {node!r}")

    def _place(self, node: ColumnNode, top_row: int, col: int) -> int:
        """Lay out a node at (top_row, col); returns its width."""
        if isinstance(node, Column):
            self.header_cells.append(HeaderCell(node.label, top_row, col, self.depth - 1, col))
            self.leaf_columns.append(node)
            return 1

        bottom_row = self.depth - _height(node)
        width = 0
        for child in node.children:
            width += self._place(child, bottom_row + 1, col + width)
        self.header_cells.append(HeaderCell(node.label, top_row, col, bottom_row, col + width - 1))
        return width

    @property
    def column_count(self) -> int:
        """Total columns including the label column."""
        return 1 + len(self.leaf_columns)

    def column_paths(self) -> List[str]:
        """Flattened header text per column, outer labels first."""
        paths: List[str] = []
        for col in range(self.column_count):
            covering = sorted(
                (c for c in self.header_cells if c.start_col <= col <= c.end_col),
                key=lambda c: c.start_row,
            )
            paths.append(" / ".join(c.label for c in covering))
        return paths


# ==================== OUTPUT ====================

@dataclass(frozen=True)
class MatrixCell:
    row: int
    column: int
    value: Any
    role: CellRole
    indent: int = 0


@dataclass(frozen=True)
class MergeRange:
    """Rectangular block of cells sharing one value (inclusive bounds)."""
    start_row: int
    start_col: int
    end_row: int
    end_col: int

    def shifted(self, rows: int) -> "MergeRange":
        return MergeRange(self.start_row + rows, self.start_col, self.end_row + rows, self.end_col)

    def to_dict(self) -> dict:
        """Spreadsheet-style {s: {r, c}, e: {r, c}} form."""
        return {
            "s": {"r": self.start_row, "c": self.start_col},
            "e": {"r": self.end_row, "c": self.end_col},
        }


@dataclass(frozen=True)
class MatrixRow:
    kind: RowKind
    cells: Tuple[MatrixCell, ...]
    key: Optional[str] = None
    depth: int = 0
    no_data: bool = False

    @property
    def values(self) -> List[Any]:
        return [cell.value for cell in self.cells]


@dataclass(frozen=True)
class MatrixPage:
    """One page of body rows with the header repeated."""
    rows: Tuple[MatrixRow, ...]
    merges: Tuple[MergeRange, ...]
    page_number: int
    total_pages: int

    def to_aoa(self) -> List[List[Any]]:
        return [row.values for row in self.rows]


@dataclass(frozen=True)
class MatrixGrid:
    """Header rows plus body rows, with merge ranges over both."""
    header: Tuple[MatrixRow, ...]
    body: Tuple[MatrixRow, ...]
    header_merges: Tuple[MergeRange, ...]
    body_merges: Tuple[MergeRange, ...] = ()
    column_paths: Tuple[str, ...] = field(default=())
    number_formats: Tuple[NumberFormat, ...] = field(default=())

    @property
    def rows(self) -> Tuple[MatrixRow, ...]:
        return self.header + self.body

    @property
    def merges(self) -> Tuple[MergeRange, ...]:
        return self.header_merges + self.body_merges

    @property
    def column_count(self) -> int:
        return len(self.column_paths)

    def to_aoa(self) -> List[List[Any]]:
        """Row-major array of arrays, header first."""
        return [row.values for row in self.rows]

    def page(self, page_number: int, page_size: int) -> MatrixPage:
        """
        Slice the body for paginated display.

        Args:
            page_number: One-based page number
            page_size: Body rows per page

        Returns:
            MatrixPage with the header repeated and merges re-based to the page
        """
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        total_pages = max(1, math.ceil(len(self.body) / page_size))
        page_number = min(max(page_number, 1), total_pages)
        start = (page_number - 1) * page_size
        end = start + page_size

        header_len = len(self.header)
        merges = list(self.header_merges)
        for merge in self.body_merges:
            body_row = merge.start_row - header_len
            if start <= body_row < end:
                merges.append(merge.shifted(-start))

        return MatrixPage(
            rows=self.header + self.body[start:end],
            merges=tuple(merges),
            page_number=page_number,
            total_pages=total_pages,
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Body rows as a DataFrame with flattened header paths as columns."""
        df = pd.DataFrame([row.values for row in self.body], columns=list(self.column_paths))
        df.insert(0, "row_kind", [row.kind.value for row in self.body])
        df.insert(1, "depth", [row.depth for row in self.body])
        return df


# ==================== BUILDER ====================

class MatrixBuilder:
    """
    Build a MatrixGrid from a tree.

    Usage:
        builder = MatrixBuilder()
        export = builder.build(tree, spec, ALL_EXPANDED)
        screen = builder.build(tree, spec, {"Production and Livelihood"})
    """

    def __init__(self, no_data_label: str = DEFAULT_NO_DATA_LABEL):
        self.no_data_label = no_data_label

    def build(
        self,
        tree: ReportTree,
        spec: ColumnSpec,
        expanded: Collection[str] = frozenset(),
    ) -> MatrixGrid:
        if not isinstance(spec, ColumnSpec):
            raise ColumnSpecError(f"Expected a ColumnSpec, got {type(spec).__name__}")

        header, header_merges = self._header(spec)
        rows: List[MatrixRow] = []
        body_merges: List[MergeRange] = []

        def emit(row_builder: Callable[[int], Tuple[MatrixRow, Optional[MergeRange]]]) -> None:
            row, merge = row_builder(len(header) + len(rows))
            rows.append(row)
            if merge is not None:
                body_merges.append(merge)

        for group in tree.groups:
            if group.is_empty:
                emit(lambda r, g=group: self._no_data_row(r, spec, g.name, g.key, RowKind.GROUP, 0))
                continue
            emit(lambda r, g=group: self._value_row(r, spec, g.summary, g.key, RowKind.GROUP, 0))
            if group.key not in expanded:
                continue
            for item in group.items:
                emit(lambda r, i=item: self._value_row(r, spec, i, None, RowKind.ITEM, 1))
            for package in group.packages:
                self._emit_package(emit, spec, package, expanded)

        emit(lambda r: self._value_row(r, spec, tree.grand_total, None, RowKind.GRAND_TOTAL, 0))

        logger.debug(f"Built matrix: {len(header)} header rows, {len(rows)} body rows")
        return MatrixGrid(
            header=tuple(header),
            body=tuple(rows),
            header_merges=tuple(header_merges),
            body_merges=tuple(body_merges),
            column_paths=tuple(spec.column_paths()),
            number_formats=(NumberFormat.TEXT,) + tuple(c.number_format for c in spec.leaf_columns),
        )

    def _emit_package(self, emit, spec: ColumnSpec, package: PackageNode, expanded: Collection[str]) -> None:
        if package.is_empty:
            emit(lambda r: self._no_data_row(r, spec, package.name, package.key, RowKind.PACKAGE, 1))
            return
        emit(lambda r: self._value_row(r, spec, package.summary, package.key, RowKind.PACKAGE, 1))
        if package.key in expanded:
            for item in package.items:
                emit(lambda r, i=item: self._value_row(r, spec, i, None, RowKind.ITEM, 2))

    @staticmethod
    def _header(spec: ColumnSpec) -> Tuple[List[MatrixRow], List[MergeRange]]:
        grid: List[List[Any]] = [[None] * spec.column_count for _ in range(spec.depth)]
        merges: List[MergeRange] = []
        for cell in spec.header_cells:
            grid[cell.start_row][cell.start_col] = cell.label
            if cell.is_merged:
                merges.append(MergeRange(cell.start_row, cell.start_col, cell.end_row, cell.end_col))
        rows = [
            MatrixRow(
                kind=RowKind.HEADER,
                cells=tuple(MatrixCell(r, c, value, CellRole.HEADER) for c, value in enumerate(values)),
            )
            for r, values in enumerate(grid)
        ]
        return rows, merges

    @staticmethod
    def _value_row(
        row: int, spec: ColumnSpec, item: Item, key: Optional[str], kind: RowKind, depth: int,
    ) -> Tuple[MatrixRow, None]:
        is_leaf = kind == RowKind.ITEM
        cells = [MatrixCell(row, 0, item.name, CellRole.LABEL, depth)]
        for col, column in enumerate(spec.leaf_columns, start=1):
            if column.leaf_only and not is_leaf:
                value = None
            else:
                value = column.value(item)
            role = column.role
            if role == CellRole.DATA and not is_leaf:
                role = CellRole.TOTAL
            cells.append(MatrixCell(row, col, value, role, depth))
        return MatrixRow(kind, tuple(cells), key, depth), None

    def _no_data_row(
        self, row: int, spec: ColumnSpec, label: str, key: str, kind: RowKind, depth: int,
    ) -> Tuple[MatrixRow, Optional[MergeRange]]:
        last_col = spec.column_count - 1
        cells = [MatrixCell(row, 0, label, CellRole.LABEL, depth)]
        cells.append(MatrixCell(row, 1, self.no_data_label, CellRole.NO_DATA, depth))
        cells.extend(MatrixCell(row, c, None, CellRole.NO_DATA, depth) for c in range(2, last_col + 1))
        merge = MergeRange(row, 1, row, last_col) if last_col > 1 else None
        return MatrixRow(kind, tuple(cells), key, depth, no_data=True), merge
