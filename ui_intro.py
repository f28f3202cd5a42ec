import pygame
from gui import BG, TEXT_MAIN, TEXT_SECONDARY, draw_button

INTRO_LINES = [
    "The problem is solved using an algorithm called 'Dancing Links' (DLX).",
    "",
    "1. The Matrix:",
    "   Imagine a grid where:",
    "   - ROWS are the options you supplied.",
    "   - COLUMNS are the elements each option covers.",
    "",
    "2. The Goal:",
    "   We need to select a set of ROWS such that every COLUMN",
    "   has exactly one '1' (is covered exactly once).",
    "",
    "3. The Dance:",
    "   The algorithm picks the column with the fewest options,",
    "   unlinks every row that clashes with its choice,",
    "   and relinks them exactly when it has to backtrack.",
]


def _start_button(screen_size: tuple[int, int]) -> pygame.Rect:
    w, h = screen_size
    return pygame.Rect(w - 160, h - 80, 120, 50)


def draw_intro(screen: pygame.Surface, title_font: pygame.font.Font, body_font: pygame.font.Font, mouse_pos: tuple[int, int]):
    screen.fill(BG)

    title = title_font.render("How it Works: Dancing Links", True, TEXT_MAIN)
    screen.blit(title, (40, 40))

    y = 100
    for line in INTRO_LINES:
        surf = body_font.render(line, True, TEXT_SECONDARY)
        screen.blit(surf, (40, y))
        y += 30

    draw_button(screen, _start_button(screen.get_size()), "Start >", body_font, mouse_pos, radius=8)


def get_intro_action(mouse_pos: tuple[int, int], screen_size: tuple[int, int]) -> str | None:
    if _start_button(screen_size).collidepoint(mouse_pos):
        return "start_viz"
    return None
