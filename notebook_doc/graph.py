"""
Dependency graph: which cell each cell has to wait for.

Every cell depends on exactly one predecessor, so the graph is a tree rooted
at the setup cell and is returned as a plain ``{cell_id: predecessor_id}``
mapping.
"""

from collections import deque
from typing import Callable, Optional

from notebook_doc.notebook import SETUP_CELL_ID, Cell, Notebook


def cell_dependency_graph(
    notebook: Notebook,
    cell_filter: Optional[Callable[[Cell], bool]] = None,
) -> dict[str, Optional[str]]:
    """
    Compute the predecessor of every cell.

    Regular sections chain onto the previous regular section. A branch
    section chains onto the tail of its parent section instead, and does not
    affect the sections after it.

    Args:
        notebook: Notebook to analyse
        cell_filter: Keep only the cells it accepts; the chain skips the rest

    Returns:
        Mapping of cell id to predecessor id; ``"setup"`` maps to None
    """
    graph: dict[str, Optional[str]] = {}
    # Last kept cell of each section, or what it inherited if it kept none.
    last_cell_by_section: dict[str, str] = {}
    prev_regular_id: Optional[str] = None

    for section in notebook.sections:
        if section.parent_id is not None:
            parent = last_cell_by_section.get(section.parent_id, SETUP_CELL_ID)
        elif prev_regular_id is not None:
            parent = last_cell_by_section[prev_regular_id]
        else:
            parent = SETUP_CELL_ID

        for cell in section.cells:
            if cell_filter is None or cell_filter(cell):
                graph[cell.id] = parent
                parent = cell.id

        last_cell_by_section[section.id] = parent
        if section.parent_id is None:
            prev_regular_id = section.id

    graph[SETUP_CELL_ID] = None
    return graph


def parent_cell_ids(graph: dict[str, Optional[str]], cell_id: str) -> list[str]:
    """Predecessors of a cell, nearest first, ending with the setup cell."""
    parents = []
    current = graph.get(cell_id)
    while current is not None:
        parents.append(current)
        current = graph.get(current)
    return parents


def child_cell_ids(graph: dict[str, Optional[str]], cell_id: str) -> list[str]:
    """Cells that depend on ``cell_id`` directly or indirectly, breadth-first."""
    children: dict[str, list[str]] = {}
    for child, parent in graph.items():
        if parent is not None:
            children.setdefault(parent, []).append(child)

    result = []
    queue = deque(children.get(cell_id, []))
    while queue:
        child = queue.popleft()
        result.append(child)
        queue.extend(children.get(child, []))
    return result
