"""A* search over the tile grid."""

import heapq
import math
from typing import Callable

from .grid import FOUR_NEIGHBORS

Position = tuple[int, int]


def astar(
    start: Position,
    goal: Position,
    passable: Callable[[int, int], bool],
    width: int,
    height: int,
    spherical: bool = False,
) -> list[Position] | None:
    """Shortest 4-connected path from ``start`` to ``goal``.

    Steps cost 1 and the heuristic is the straight-line distance, which never
    overestimates the remaining cost. On a spherical world moves and the
    heuristic wrap around both axes.

    Args:
        start: Starting (x, y); always allowed.
        goal: Target (x, y); always allowed.
        passable: Predicate telling whether a tile may be entered.
        width: Grid width.
        height: Grid height.
        spherical: Wrap moves around the edges.

    Returns:
        The path from start to goal inclusive, or None if the goal is
        unreachable.
    """
    gx, gy = goal

    def heuristic(pos: Position) -> float:
        dx = abs(pos[0] - gx)
        dy = abs(pos[1] - gy)
        if spherical:
            dx = min(dx, width - dx)
            dy = min(dy, height - dy)
        return math.hypot(dx, dy)

    # Entries are (f, g, tie, position); the counter keeps pops stable
    counter = 0
    open_set: list[tuple[float, int, int, Position]] = [(heuristic(start), 0, counter, start)]
    came_from: dict[Position, Position] = {}
    g_score: dict[Position, int] = {start: 0}
    closed: set[Position] = set()

    while open_set:
        _, current_g, _, current = heapq.heappop(open_set)

        if current == goal:
            path = [current]
            while current in came_from:
                current = came_from[current]
                path.append(current)
            path.reverse()
            return path

        if current in closed:
            continue
        closed.add(current)

        x, y = current
        for dx, dy in FOUR_NEIGHBORS:
            nx, ny = x + dx, y + dy
            if spherical:
                nx %= width
                ny %= height
            elif not (0 <= nx < width and 0 <= ny < height):
                continue

            neighbor = (nx, ny)
            if neighbor in closed:
                continue
            if neighbor != goal and not passable(nx, ny):
                continue

            tentative_g = current_g + 1
            if tentative_g < g_score.get(neighbor, math.inf):
                came_from[neighbor] = current
                g_score[neighbor] = tentative_g
                counter += 1
                heapq.heappush(
                    open_set,
                    (tentative_g + heuristic(neighbor), tentative_g, counter, neighbor),
                )

    return None
