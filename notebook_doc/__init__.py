"""
notebook-doc: the in-memory document model of an interactive notebook.

This package provides:
- Cells grouped into sections, with branch sections that build on an
  earlier section instead of the one listed before them
- A dependency graph telling which cell each cell has to wait for
- An output store that merges streamed chunks, applies carriage returns
  and keeps nested, replaceable output frames up to date
"""

from notebook_doc.config import NotebookConfig
from notebook_doc.errors import (
    CellNotFoundError,
    DuplicateIdError,
    FrameDepthError,
    InvalidSectionParentError,
    InvalidSetupCellError,
    NotebookError,
    SectionNotFoundError,
)
from notebook_doc.graph import cell_dependency_graph, child_cell_ids, parent_cell_ids
from notebook_doc.notebook import SETUP_CELL_ID, Cell, CellKind, Notebook, Section
from notebook_doc.outputs import (
    AssetInfo,
    AssetOutput,
    Frame,
    FrameKind,
    FrameMessage,
    Ignored,
    MarkdownText,
    TerminalText,
    parse_output,
)

__version__ = "0.1.0"
__all__ = [
    "Notebook",
    "Section",
    "Cell",
    "CellKind",
    "SETUP_CELL_ID",
    "cell_dependency_graph",
    "parent_cell_ids",
    "child_cell_ids",
    "TerminalText",
    "MarkdownText",
    "Frame",
    "FrameKind",
    "FrameMessage",
    "AssetInfo",
    "AssetOutput",
    "Ignored",
    "parse_output",
    "NotebookConfig",
    "NotebookError",
    "CellNotFoundError",
    "SectionNotFoundError",
    "DuplicateIdError",
    "InvalidSectionParentError",
    "InvalidSetupCellError",
    "FrameDepthError",
]
