"""Pytest fixtures shared across all test modules."""

import pytest

from notebook_doc import Cell, CellKind, Notebook, Section
from notebook_doc.config import set_config


@pytest.fixture(autouse=True)
def reset_config():
    """Drop the process-wide config before and after each test."""
    set_config(None)
    yield
    set_config(None)


def make_notebook(*sections, output_counter=0) -> Notebook:
    """
    Build a notebook from ``(section_id, parent_id, [cell ids])`` triples.

    Cell ids starting with "m" become markdown cells, the rest code cells.
    """
    return Notebook(
        sections=[
            Section(
                id=section_id,
                parent_id=parent_id,
                cells=[
                    Cell(id=cell_id, kind=CellKind.MARKDOWN if cell_id.startswith("m") else CellKind.CODE)
                    for cell_id in cell_ids
                ],
            )
            for section_id, parent_id, cell_ids in sections
        ],
        output_counter=output_counter,
    )


@pytest.fixture
def single_cell_notebook():
    """A notebook with one section holding one empty code cell "c1"."""
    return make_notebook(("s1", None, ["c1"]))
