"""
Exceptions raised by notebook-doc operations.

Plain lookups (``fetch_section``, ``fetch_cell_sibling`` and friends) return
``None`` for missing ids instead of raising. The errors below are reserved for
edits that cannot be applied.
"""


class NotebookError(Exception):
    """Base class for all notebook-doc errors."""


class CellNotFoundError(NotebookError, KeyError):
    """An edit referenced a cell id that is not in the notebook."""

    def __init__(self, cell_id: str):
        self.cell_id = cell_id
        super().__init__(f"Cell not found: {cell_id}")

    def __str__(self) -> str:
        return self.args[0]


class SectionNotFoundError(NotebookError, KeyError):
    """An edit referenced a section id that is not in the notebook."""

    def __init__(self, section_id: str):
        self.section_id = section_id
        super().__init__(f"Section not found: {section_id}")

    def __str__(self) -> str:
        return self.args[0]


class DuplicateIdError(NotebookError, ValueError):
    """A cell or section id is already used elsewhere in the notebook."""


class InvalidSectionParentError(NotebookError, ValueError):
    """A section cannot branch off the requested parent."""


class InvalidSetupCellError(NotebookError, ValueError):
    """The notebook's setup cell does not have the setup id and kind."""


class FrameDepthError(NotebookError, ValueError):
    """An output message nests frames deeper than the configured limit."""

    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        super().__init__(f"Frames nested deeper than {max_depth} levels")
