# gui.py

from __future__ import annotations

from typing import List, Tuple

import pygame

from dlx import SearchResult
from problems import ExactCoverProblem

FPS = 60
TOP_BAR_HEIGHT = 120

WINDOW_WIDTH = 1100
WINDOW_HEIGHT = 760

# Colors – higher contrast, refined dark mode
BG = (15, 15, 17)
CARD_BG = (30, 30, 34)
CARD_HOVER = (50, 50, 55)
GRID = (90, 90, 95)
TEXT_MAIN = (245, 245, 250)
TEXT_SECONDARY = (230, 230, 235)
TEXT_MUTED = (140, 140, 150)

SUCCESS = (50, 255, 80)
FAILURE = (220, 90, 90)

# Cycled per option row
ROW_COLORS: List[Tuple[int, int, int]] = [
    (60, 200, 80),
    (45, 140, 255),
    (255, 190, 60),
    (190, 70, 210),
    (90, 220, 220),
    (250, 80, 80),
    (210, 145, 50),
    (110, 120, 255),
    (255, 160, 210),
]

MENU_BUTTONS = [
    ("Solve", "solve"),
    ("Understand the Algorithm", "algorithm"),
    ("Quit", "quit"),
]


def row_color(row: int) -> Tuple[int, int, int]:
    return ROW_COLORS[row % len(ROW_COLORS)]


def format_elements(elements) -> str:
    return "{" + ", ".join(str(e) for e in elements) + "}"


def draw_button(
    screen: pygame.Surface,
    rect: pygame.Rect,
    text: str,
    font: pygame.font.Font,
    mouse_pos: Tuple[int, int],
    radius: int = 12,
):
    color = CARD_HOVER if rect.collidepoint(mouse_pos) else CARD_BG
    pygame.draw.rect(screen, color, rect, border_radius=radius)
    pygame.draw.rect(screen, GRID, rect, width=1, border_radius=radius)

    label = font.render(text, True, TEXT_MAIN)
    screen.blit(label, label.get_rect(center=rect.center))


def draw_top_bar(
    screen: pygame.Surface,
    title_font: pygame.font.Font,
    label_font: pygame.font.Font,
    title: str,
    subtitle: str,
    status: str = "",
):
    w = screen.get_width()
    pygame.draw.rect(screen, BG, (0, 0, w, TOP_BAR_HEIGHT))

    card_rect = pygame.Rect(16, 16, w - 32, TOP_BAR_HEIGHT - 32)
    pygame.draw.rect(screen, CARD_BG, card_rect, border_radius=16)

    title_surf = title_font.render(title, True, TEXT_MAIN)
    screen.blit(title_surf, (card_rect.x + 20, card_rect.y + 12))

    if status:
        status_surf = label_font.render(status, True, TEXT_MAIN)
        status_x = card_rect.right - status_surf.get_width() - 20
        screen.blit(status_surf, (status_x, card_rect.y + 12))

    sub_surf = label_font.render(subtitle, True, TEXT_SECONDARY)
    screen.blit(sub_surf, (card_rect.x + 20, card_rect.y + 48))


def _menu_rects(screen_size: Tuple[int, int]) -> List[pygame.Rect]:
    w, h = screen_size
    start_y = h // 2
    button_height = 60
    spacing = 20
    button_width = min(400, w - 80)
    return [
        pygame.Rect((w - button_width) // 2, start_y + i * (button_height + spacing), button_width, button_height)
        for i in range(len(MENU_BUTTONS))
    ]


def draw_menu(
    screen: pygame.Surface,
    title_font: pygame.font.Font,
    button_font: pygame.font.Font,
    problem: ExactCoverProblem,
    mouse_pos: Tuple[int, int],
):
    screen.fill(BG)
    w, h = screen.get_size()

    title_surf = title_font.render("Exact Cover", True, TEXT_MAIN)
    screen.blit(title_surf, title_surf.get_rect(center=(w // 2, h // 4)))

    info = f"{problem.name}: {len(problem.options)} options, {len(problem.universe())} elements"
    info_surf = button_font.render(info, True, TEXT_MUTED)
    screen.blit(info_surf, info_surf.get_rect(center=(w // 2, h // 4 + 50)))

    for (text, _), rect in zip(MENU_BUTTONS, _menu_rects((w, h))):
        draw_button(screen, rect, text, button_font, mouse_pos)


def get_menu_action(mouse_pos: Tuple[int, int], screen_size: Tuple[int, int] = (WINDOW_WIDTH, WINDOW_HEIGHT)) -> str | None:
    for (_, action), rect in zip(MENU_BUTTONS, _menu_rects(screen_size)):
        if rect.collidepoint(mouse_pos):
            return action
    return None


def draw_result(
    screen: pygame.Surface,
    title_font: pygame.font.Font,
    label_font: pygame.font.Font,
    problem: ExactCoverProblem,
    result: SearchResult,
):
    """Top bar plus one card per chosen option, or the failure notice."""
    screen.fill(BG)
    status = "Solved" if result.solved else "Unsatisfiable"
    subtitle = f"{result.stats.rows_tried} rows tried, {result.stats.backtracks} backtracks"
    draw_top_bar(screen, title_font, label_font, problem.name, subtitle, status)

    w = screen.get_width()
    y = TOP_BAR_HEIGHT + 20

    if not result.solved:
        surf = label_font.render("No exact cover exists.", True, FAILURE)
        screen.blit(surf, (36, y))
        return

    for row, label in zip(result.rows, result.labels):
        card = pygame.Rect(16, y, w - 32, 44)
        pygame.draw.rect(screen, CARD_BG, card, border_radius=10)
        pygame.draw.rect(screen, row_color(row), (card.x, card.y, 8, card.height), border_radius=4)

        text = f"{label}  {format_elements(problem.option_for(row).elements)}"
        surf = label_font.render(text, True, TEXT_MAIN)
        screen.blit(surf, (card.x + 24, card.y + (card.height - surf.get_height()) // 2))
        y += 54

    hint = label_font.render("ESC: back to menu", True, TEXT_MUTED)
    screen.blit(hint, (36, y + 10))
