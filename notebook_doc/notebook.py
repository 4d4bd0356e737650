"""
Notebook: the in-memory document model.

A notebook is an ordered tuple of sections, each an ordered tuple of cells,
plus a synthetic setup cell that every regular section builds on. All models
are frozen; every operation returns a new ``Notebook`` and shares whatever it
did not touch with the old one.
"""

import logging
import uuid
from enum import Enum
from typing import Any, Callable, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from notebook_doc.config import NotebookConfig, get_config
from notebook_doc.errors import (
    CellNotFoundError,
    DuplicateIdError,
    InvalidSectionParentError,
    InvalidSetupCellError,
    SectionNotFoundError,
)
from notebook_doc.outputs import (
    AssetInfo,
    FrameKind,
    FrameMessage,
    Ignored,
    OutputEntry,
    check_depth,
    check_update_depth,
    find_asset,
    find_frames,
    index_output,
    insert_output,
    parse_output,
    update_frames,
)

logger = logging.getLogger(__name__)

SETUP_CELL_ID = "setup"

# Marks a section boundary in the flattened cell list used by move_cell.
_SEPARATOR = object()


def generate_id(prefix: str) -> str:
    """Generate an id: prefix + '_' + 12 hex chars from uuid4."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class CellKind(str, Enum):
    """Type of notebook cell."""
    SETUP = "setup"
    MARKDOWN = "markdown"
    CODE = "code"


class Cell(BaseModel):
    """A single notebook cell and the outputs it has produced, newest first."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: generate_id("cell"))
    kind: CellKind = CellKind.CODE
    source: str = ""
    outputs: tuple[OutputEntry, ...] = ()

    @classmethod
    def new(cls, kind: CellKind = CellKind.CODE, **fields) -> "Cell":
        """Create a cell of the given kind with a fresh id."""
        return cls(kind=kind, **fields)

    @classmethod
    def setup(cls) -> "Cell":
        """Create the synthetic setup cell."""
        return cls(id=SETUP_CELL_ID, kind=CellKind.SETUP)

    @property
    def evaluable(self) -> bool:
        """Whether the evaluator runs this cell."""
        return self.kind in (CellKind.CODE, CellKind.SETUP)


class Section(BaseModel):
    """
    An ordered group of cells.

    A section with ``parent_id`` set is a branch: it builds on the tail of
    that (earlier, regular) section instead of the section listed before it.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: generate_id("section"))
    name: str = "Section"
    parent_id: Optional[str] = None
    cells: tuple[Cell, ...] = ()

    @property
    def is_branch(self) -> bool:
        return self.parent_id is not None


def _check_branches(sections: tuple[Section, ...]) -> None:
    """Raise ``InvalidSectionParentError`` unless every branch points at an earlier regular section."""
    seen: dict[str, Section] = {}
    for section in sections:
        if section.parent_id is not None:
            parent = seen.get(section.parent_id)
            if parent is None:
                raise InvalidSectionParentError(
                    f"Section {section.id} branches off {section.parent_id}, "
                    "which is not an earlier section"
                )
            if parent.is_branch:
                raise InvalidSectionParentError(
                    f"Section {section.id} branches off {parent.id}, which is itself a branch"
                )
        seen[section.id] = section


class Notebook(BaseModel):
    """
    The root of the document.

    ``output_counter`` hands out keys for new output entries. It only grows,
    so a counter is never reused within one notebook.
    """
    model_config = ConfigDict(frozen=True)

    name: str = "Untitled"
    setup_cell: Cell = Field(default_factory=Cell.setup)
    sections: tuple[Section, ...] = ()
    output_counter: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_structure(self) -> "Notebook":
        ids = [cell.id for cell in self.all_cells()]
        if len(ids) != len(set(ids)):
            raise DuplicateIdError("Cell ids must be unique within a notebook")
        section_ids = [section.id for section in self.sections]
        if len(section_ids) != len(set(section_ids)):
            raise DuplicateIdError("Section ids must be unique within a notebook")
        if self.setup_cell.id != SETUP_CELL_ID or self.setup_cell.kind is not CellKind.SETUP:
            raise InvalidSetupCellError(
                f"The setup cell must have id {SETUP_CELL_ID!r} and kind {CellKind.SETUP.value!r}"
            )
        _check_branches(self.sections)
        return self

    # ---------- Lookups ----------

    def all_cells(self) -> Iterator[Cell]:
        """The setup cell, then every section's cells in order."""
        yield self.setup_cell
        for section in self.sections:
            yield from section.cells

    def cells_with_section(self) -> Iterator[tuple[Cell, Section]]:
        for section in self.sections:
            for cell in section.cells:
                yield cell, section

    def fetch_section(self, section_id: str) -> Optional[Section]:
        return next((s for s in self.sections if s.id == section_id), None)

    def fetch_cell_and_section(self, cell_id: str) -> Optional[tuple[Cell, Section]]:
        return next(
            ((cell, section) for cell, section in self.cells_with_section() if cell.id == cell_id),
            None,
        )

    def fetch_cell(self, cell_id: str) -> Optional[Cell]:
        """Find any cell by id, the setup cell included."""
        return next((cell for cell in self.all_cells() if cell.id == cell_id), None)

    def fetch_cell_sibling(self, cell_id: str, offset: int) -> Optional[Cell]:
        """
        Get the cell ``offset`` positions away within the same section.

        Returns:
            The sibling cell, or None if the cell is unknown or the position
            falls outside its section
        """
        found = self.fetch_cell_and_section(cell_id)
        if found is None:
            return None
        cell, section = found
        index = section.cells.index(cell) + offset
        if 0 <= index < len(section.cells):
            return section.cells[index]
        return None

    def valid_parents_for(self, section_id: str) -> list[Section]:
        """Sections that ``section_id`` could branch off."""
        parents = []
        for section in self.sections:
            if section.id == section_id:
                return parents
            if not section.is_branch:
                parents.append(section)
        raise SectionNotFoundError(section_id)

    # ---------- Structural edits ----------

    def _replace_sections(self, sections) -> "Notebook":
        return self.model_copy(update={"sections": tuple(sections)})

    def _section_index(self, section_id: str) -> int:
        for index, section in enumerate(self.sections):
            if section.id == section_id:
                return index
        raise SectionNotFoundError(section_id)

    def _update_section(self, section_id: str, fn: Callable[[Section], Section]) -> "Notebook":
        index = self._section_index(section_id)
        sections = list(self.sections)
        sections[index] = fn(sections[index])
        return self._replace_sections(sections)

    def _update_cell(self, cell_id: str, fn: Callable[[Cell], Cell]) -> "Notebook":
        if cell_id == SETUP_CELL_ID:
            return self.model_copy(update={"setup_cell": fn(self.setup_cell)})
        found = self.fetch_cell_and_section(cell_id)
        if found is None:
            raise CellNotFoundError(cell_id)
        _, section = found
        return self._update_section(section.id, lambda s: s.model_copy(update={
            "cells": tuple(fn(c) if c.id == cell_id else c for c in s.cells),
        }))

    def insert_section(self, index: int, section: Optional[Section] = None, **fields) -> "Notebook":
        """Insert a section (a new empty one unless given) at ``index``."""
        if section is None:
            section = Section(**fields)
        if self.fetch_section(section.id) is not None:
            raise DuplicateIdError(f"Section id already in use: {section.id}")
        for cell in section.cells:
            if self.fetch_cell(cell.id) is not None:
                raise DuplicateIdError(f"Cell id already in use: {cell.id}")
        sections = list(self.sections)
        sections.insert(index, section)
        _check_branches(tuple(sections))
        return self._replace_sections(sections)

    def delete_section(self, section_id: str) -> "Notebook":
        """
        Remove a section and its cells.

        Branches of the removed section are detached and become regular
        sections.
        """
        self._section_index(section_id)
        return self._replace_sections(
            s.model_copy(update={"parent_id": None}) if s.parent_id == section_id else s
            for s in self.sections
            if s.id != section_id
        )

    def set_section_parent(self, section_id: str, parent_id: str) -> "Notebook":
        """Turn a section into a branch of ``parent_id``."""
        self._section_index(parent_id)
        if any(s.parent_id == section_id for s in self.sections):
            raise InvalidSectionParentError(
                f"Section {section_id} has branches of its own and cannot become a branch"
            )
        if parent_id not in {s.id for s in self.valid_parents_for(section_id)}:
            raise InvalidSectionParentError(
                f"Section {section_id} cannot branch off {parent_id}"
            )
        return self._update_section(section_id, lambda s: s.model_copy(update={"parent_id": parent_id}))

    def unset_section_parent(self, section_id: str) -> "Notebook":
        return self._update_section(section_id, lambda s: s.model_copy(update={"parent_id": None}))

    def insert_cell(self, section_id: str, index: int, cell: Optional[Cell] = None, **fields) -> "Notebook":
        """Insert a cell (a new one built from ``fields`` unless given) into a section."""
        if cell is None:
            cell = Cell(**fields)
        if self.fetch_cell(cell.id) is not None:
            raise DuplicateIdError(f"Cell id already in use: {cell.id}")

        def insert(section: Section) -> Section:
            cells = list(section.cells)
            cells.insert(index, cell)
            return section.model_copy(update={"cells": tuple(cells)})

        return self._update_section(section_id, insert)

    def delete_cell(self, cell_id: str) -> "Notebook":
        found = self.fetch_cell_and_section(cell_id)
        if found is None:
            raise CellNotFoundError(cell_id)
        _, section = found
        return self._update_section(section.id, lambda s: s.model_copy(update={
            "cells": tuple(c for c in s.cells if c.id != cell_id),
        }))

    def update_cell(self, cell_id: str, **fields) -> "Notebook":
        """Update a cell's attributes. Unknown attributes are ignored."""
        if "id" in fields:
            raise ValueError("Cell ids cannot be changed")
        if cell_id == SETUP_CELL_ID and fields.get("kind", CellKind.SETUP) != CellKind.SETUP:
            raise InvalidSetupCellError("The setup cell kind cannot be changed")
        fields = {key: value for key, value in fields.items() if key in Cell.model_fields}
        return self._update_cell(cell_id, lambda cell: Cell(**{**dict(cell), **fields}))

    def clear_cell_outputs(self, cell_id: str) -> "Notebook":
        return self._update_cell(cell_id, lambda cell: cell.model_copy(update={"outputs": ()}))

    def move_cell(self, cell_id: str, offset: int) -> "Notebook":
        """
        Move a cell by ``offset`` positions across the whole notebook.

        Sections are flattened with one extra slot at every boundary, so a
        cell can be moved into an empty section. Sections are never removed,
        even when they end up empty.
        """
        flat: list[Any] = []
        for index, section in enumerate(self.sections):
            if index:
                flat.append(_SEPARATOR)
            flat.extend(section.cells)

        index = next(
            (i for i, item in enumerate(flat) if item is not _SEPARATOR and item.id == cell_id),
            None,
        )
        if index is None:
            raise CellNotFoundError(cell_id)

        new_index = min(max(index + offset, 0), len(flat) - 1)
        flat.insert(new_index, flat.pop(index))

        groups: list[list[Cell]] = [[]]
        for item in flat:
            if item is _SEPARATOR:
                groups.append([])
            else:
                groups[-1].append(item)

        return self._replace_sections(
            section if tuple(cells) == section.cells
            else section.model_copy(update={"cells": tuple(cells)})
            for section, cells in zip(self.sections, groups)
        )

    # ---------- Outputs ----------

    def _update_frames(self, message: FrameMessage, counter: int) -> tuple["Notebook", int, int]:
        """Apply a frame update to every cell; see ``outputs.update_frames``."""
        matches = 0

        def update(cell: Cell) -> Cell:
            nonlocal counter, matches
            outputs, counter, cell_matches = update_frames(cell.outputs, message, counter)
            if not cell_matches:
                return cell
            matches += cell_matches
            return cell.model_copy(update={"outputs": outputs})

        setup_cell = update(self.setup_cell)
        sections = []
        for section in self.sections:
            before = matches
            cells = tuple(update(c) for c in section.cells)
            sections.append(section.model_copy(update={"cells": cells}) if matches > before else section)

        if not matches:
            return self, counter, 0
        notebook = self.model_copy(update={"setup_cell": setup_cell, "sections": tuple(sections)})
        return notebook, counter, matches

    def add_cell_output(self, cell_id: str, output, config: Optional[NotebookConfig] = None) -> "Notebook":
        """
        Add an output produced by ``cell_id``.

        Args:
            cell_id: Cell that produced the output
            output: An output message model or its dict form
            config: Limits to apply, defaults to the process-wide config

        Returns:
            The updated notebook (``self`` when nothing changed)

        Raises:
            FrameDepthError: if the output nests frames too deeply, or would
                once placed inside the frames it updates
        """
        config = config or get_config()
        message = parse_output(output)
        if isinstance(message, Ignored):
            logger.debug("Dropping ignored output for cell %s", cell_id)
            return self
        check_depth(message, config.max_frame_depth)

        if isinstance(message, FrameMessage) and message.kind is not FrameKind.DEFAULT:
            for cell in self.all_cells():
                check_update_depth(cell.outputs, message, config.max_frame_depth)
            notebook, counter, matches = self._update_frames(message, self.output_counter)
            if matches:
                logger.debug("Updated %d frame(s) with ref %s", matches, message.ref)
                return notebook.model_copy(update={"output_counter": counter})
            logger.debug("No frame with ref %s, creating it in cell %s", message.ref, cell_id)

        if self.fetch_cell(cell_id) is None:
            logger.debug("Dropping output for unknown cell %s", cell_id)
            return self

        entry, counter = index_output(message, self.output_counter)
        notebook = self._update_cell(
            cell_id, lambda cell: cell.model_copy(update={"outputs": insert_output(cell.outputs, entry)})
        )
        return notebook.model_copy(update={"output_counter": counter})

    def find_frame_outputs(self, ref: str) -> list[OutputEntry]:
        """Every frame entry with the given ref, in any cell and at any depth."""
        return [entry for cell in self.all_cells() for entry in find_frames(cell.outputs, ref)]

    def find_asset_info(self, hash: str) -> Optional[AssetInfo]:
        """Asset info for the given hash, or None if no output carries it."""
        for cell in self.all_cells():
            info = find_asset(cell.outputs, hash)
            if info is not None:
                return info
        return None
