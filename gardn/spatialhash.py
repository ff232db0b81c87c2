"""Uniform grid over the arena for collision pairs and range queries."""

from __future__ import annotations

from typing import Any, Callable, Iterator

from gardn.entity import Component, Entity
from gardn.entitydef import EntityId
from gardn.helpers import div_round_up, fclamp
from gardn.staticdata import ARENA_HEIGHT, ARENA_WIDTH

GRID_SIZE = 128 * 2
MAX_GRID_X = div_round_up(ARENA_WIDTH, GRID_SIZE)
MAX_GRID_Y = div_round_up(ARENA_HEIGHT, GRID_SIZE)


def _cell(v: float, extent: int) -> int:
    return int(fclamp(v, 0, extent - 1) / GRID_SIZE)


class SpatialHash:
    """Buckets entity ids by grid cell; looks entities up in ``simulation``."""

    def __init__(self, simulation: Any) -> None:
        self.simulation = simulation
        self.cells: list[list[list[EntityId]]] = [
            [[] for _ in range(MAX_GRID_Y)] for _ in range(MAX_GRID_X)
        ]

    def clear(self) -> None:
        for column in self.cells:
            for cell in column:
                cell.clear()

    def insert(self, ent: Entity) -> None:
        if not ent.has_component(Component.PHYSICS):
            raise ValueError("only entities with physics can be inserted")
        self.cells[_cell(ent.x, ARENA_WIDTH)][_cell(ent.y, ARENA_HEIGHT)].append(ent.id)

    def _forward_neighbours(self, x: int, y: int) -> list[list[EntityId]]:
        cells = []
        if x < MAX_GRID_X - 1:
            if y > 0:
                cells.append(self.cells[x + 1][y - 1])
            cells.append(self.cells[x + 1][y])
            if y < MAX_GRID_Y - 1:
                cells.append(self.cells[x + 1][y + 1])
        if y < MAX_GRID_Y - 1:
            cells.append(self.cells[x][y + 1])
        return cells

    def collide(self, handler: Callable[[Any, Entity, Entity], None]) -> None:
        """Call ``handler(simulation, a, b)`` once for every pair in the same or adjacent cells."""
        sim = self.simulation
        get = sim.get_ent
        for x, column in enumerate(self.cells):
            for y, cell in enumerate(column):
                neighbours = self._forward_neighbours(x, y)
                for i, first_id in enumerate(cell):
                    for other_id in cell[i + 1:]:
                        handler(sim, get(first_id), get(other_id))
                    for other_cell in neighbours:
                        for other_id in other_cell:
                            handler(sim, get(first_id), get(other_id))

    def query(self, x: float, y: float, w: float, h: float) -> Iterator[Entity]:
        """Yield entities whose bounds overlap the box of half-size ``w`` by ``h`` around ``(x, y)``."""
        get = self.simulation.get_ent
        sx = _cell(x - w - GRID_SIZE, ARENA_WIDTH)
        sy = _cell(y - h - GRID_SIZE, ARENA_HEIGHT)
        ex = _cell(x + w + GRID_SIZE, ARENA_WIDTH)
        ey = _cell(y + h + GRID_SIZE, ARENA_HEIGHT)
        for cx in range(sx, ex + 1):
            for cy in range(sy, ey + 1):
                for ent_id in self.cells[cx][cy]:
                    ent = get(ent_id)
                    if ent.x + ent.radius < x - w or ent.x - ent.radius > x + w:
                        continue
                    if ent.y + ent.radius < y - h or ent.y - ent.radius > y + h:
                        continue
                    yield ent