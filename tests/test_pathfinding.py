"""Tests for A* road search."""

import numpy as np

from fantasymap.pathfinding import astar


def open_map(x: int, y: int) -> bool:
    return True


def assert_connected(path) -> None:
    """Every step moves to a 4-neighbour."""
    for (x1, y1), (x2, y2) in zip(path, path[1:]):
        assert abs(x1 - x2) + abs(y1 - y2) == 1


class TestAstar:
    """Tests for shortest paths on small grids."""

    def test_open_grid_shortest(self) -> None:
        """On an open grid the path has Manhattan length."""
        path = astar((0, 0), (4, 4), open_map, 5, 5)
        assert path[0] == (0, 0)
        assert path[-1] == (4, 4)
        assert len(path) == 9
        assert_connected(path)

    def test_start_is_goal(self) -> None:
        """A search from the goal returns just the goal."""
        assert astar((2, 2), (2, 2), open_map, 5, 5) == [(2, 2)]

    def test_routes_through_gap(self) -> None:
        """The path detours through the only gap in a wall."""
        blocked = np.zeros((5, 5), dtype=bool)
        blocked[:4, 2] = True  # wall at x=2 except the bottom row

        path = astar((0, 0), (4, 0), lambda x, y: not blocked[y, x], 5, 5)
        assert (2, 4) in path
        assert_connected(path)
        assert not any(blocked[y, x] for x, y in path)

    def test_unreachable(self) -> None:
        """A closed wall gives no path."""
        blocked = np.zeros((5, 5), dtype=bool)
        blocked[:, 2] = True
        assert astar((0, 0), (4, 0), lambda x, y: not blocked[y, x], 5, 5) is None

    def test_goal_always_enterable(self) -> None:
        """The goal tile itself does not need to pass the predicate."""
        path = astar((0, 0), (2, 0), lambda x, y: (x, y) != (2, 0), 3, 1)
        assert path == [(0, 0), (1, 0), (2, 0)]

    def test_spherical_wraps(self) -> None:
        """Spherical searches step across the edge."""
        path = astar((0, 0), (4, 0), open_map, 5, 5, spherical=True)
        assert path == [(0, 0), (4, 0)]

    def test_bounded_does_not_wrap(self) -> None:
        """Bounded searches stay inside the grid."""
        path = astar((0, 0), (4, 0), open_map, 5, 5)
        assert len(path) == 5
