import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import pytest

from matrix import ConstraintMatrix
from problems import knuth_example

KNUTH_ROWS = [
    ("A", [1, 4, 7]),
    ("B", [1, 4]),
    ("C", [4, 5, 7]),
    ("D", [3, 5, 6]),
    ("E", [2, 3, 6, 7]),
    ("F", [2, 7]),
]


@pytest.fixture
def knuth_rows():
    return list(KNUTH_ROWS)


@pytest.fixture
def knuth_matrix():
    matrix = ConstraintMatrix(range(1, 8))
    for label, elements in KNUTH_ROWS:
        matrix.add_row(label, elements)
    return matrix


@pytest.fixture
def knuth_problem():
    return knuth_example()


@pytest.fixture
def pygame_env():
    import pygame

    pygame.init()
    yield pygame
    pygame.quit()


@pytest.fixture
def surface(pygame_env):
    return pygame_env.Surface((1100, 760))


@pytest.fixture
def fonts(pygame_env):
    return pygame_env.font.Font(None, 32), pygame_env.font.Font(None, 18)
