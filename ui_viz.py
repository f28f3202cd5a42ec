import logging
import random
from typing import Any, Dict, List, Optional, Set

import pygame

from dlx import SearchEngine
from gui import (
    BG, CARD_BG, GRID, TEXT_MAIN, TEXT_SECONDARY, TEXT_MUTED, SUCCESS, FAILURE,
    draw_button, format_elements, row_color,
)
from heuristics import ColumnChooser, min_remaining_values
from problems import ExactCoverProblem
from solver import build_exact_cover

logger = logging.getLogger(__name__)

# Replay
PLAY_SPEED = 0.35  # seconds per step while playing
MAX_HISTORY_STEPS = 20000
SHAKE_DURATION = 0.4
SHAKE_INTENSITY = 8
FOCUS_FADE = 0.3  # seconds for the focus column highlight to fade in
FOCUS_ALPHA = 70

# Matrix view
MATRIX_BG = (10, 10, 12)
MATRIX_HEADER_BG = (20, 20, 25)
MATRIX_ROW_SELECTED = (40, 50, 40)
MATRIX_GRID = (40, 40, 45)
SCROLLBAR_BG = (20, 20, 22)
SCROLLBAR_FG = (60, 60, 65)
FOCUS = (255, 200, 50)

CELL_SIZE = 28
HEADER_HEIGHT = 50
ROW_LABEL_WIDTH = 90
SCROLLBAR_SIZE = 12

TIMELINE_BUTTONS = [("<<", "prev"), ("PLAY", "toggle"), (">>", "next"), ("MENU", "menu")]


def get_narrative_text(event_type: str, data: Dict[str, Any], context: Dict[str, Any], state: 'VizState') -> List[str]:
    """Narration for one step; seeded by the step so scrubbing does not flicker."""
    rng = random.Random(state.current_step)
    lines: List[str] = []

    if event_type == "INIT":
        variations = [
            ["INITIALIZING", "I am clearing my mind.", "Building the exact cover matrix..."],
            ["STARTING", "Let's solve this problem.", "Linking every option into its columns..."],
        ]
        lines = rng.choice(variations)
        lines = lines + [f"{data.get('rows', '?')} options over {data.get('columns', '?')} elements."]

    elif event_type == "CHOOSE_COL":
        col_desc = f"Column {data['chosen']}"
        size = data["size"]
        variations = [
            [
                "ANALYZING",
                f"I need to satisfy {col_desc}.",
                f"It has only {size} options left.",
                "Minimizing the branching factor is key.",
            ],
            [
                "SCANNING",
                "Looking for the tightest constraint...",
                f"Aha! {col_desc} has just {size} possible rows.",
                "Let's focus on that one.",
            ],
        ]
        lines = rng.choice(variations)

    elif event_type == "SELECT_ROW":
        idx = context.get("option_idx", "?")
        total = context.get("total_options", "?")
        option = state.problem.option_for(data["row"])
        variations = [
            [
                "DECIDING",
                f"Let's try option {idx} of {total} for Column {data['col']}.",
                f"Row {option.label} covers {format_elements(option.elements)}.",
                f"That unlinks {data.get('unlinked', '?')} nodes.",
            ],
            [
                "HYPOTHESIZING",
                f"Hmm, what if I pick option {idx}/{total}?",
                f"I'll take row {option.label}.",
                "Let's see where this path leads.",
            ],
        ]
        lines = rng.choice(variations)

    elif event_type == "UNSELECT_ROW":
        variations = [
            ["REVERSING", f"Removing row {data['label']}.", "Relinking everything it hid."],
            ["UNDOING", f"Row {data['label']} didn't work out.", "Next!"],
        ]
        lines = rng.choice(variations)

    elif event_type == "BACKTRACK":
        col_desc = f"Column {data.get('col')}"
        if context.get("total_options") == 0:
            lines = [
                "DEAD END",
                f"Nothing can cover {col_desc} anymore.",
                "Every row for it clashes with an earlier choice.",
            ]
        else:
            lines = ["BACKTRACKING", f"All options for {col_desc} failed.", "Going back up the tree..."]

    elif event_type == "SOLUTION":
        variations = [
            ["SOLVED", "I found it!", "Every column is covered exactly once."],
            ["SUCCESS", "Aha! A valid cover.", "All constraints are satisfied."],
        ]
        lines = rng.choice(variations)

    elif event_type == "FAILURE":
        lines = ["UNSATISFIABLE", "Every branch has been explored.", "No exact cover exists."]

    return lines


class VizState:
    def __init__(self, problem: ExactCoverProblem, choose_column: ColumnChooser = min_remaining_values):
        self.problem = problem

        matrix = build_exact_cover(problem.rows(), problem.elements)
        engine = SearchEngine(matrix, choose_column)

        self.column_labels = list(matrix.columns)
        self.col_index = {element: i for i, element in enumerate(self.column_labels)}
        self.row_labels = [str(label) for label, _ in matrix.rows]
        self.row_cols = [[self.col_index[e] for e in elements] for _, elements in matrix.rows]

        self.col_to_rows: Dict[int, List[int]] = {i: [] for i in range(len(self.column_labels))}
        for row, cols in enumerate(self.row_cols):
            for c in cols:
                self.col_to_rows[c].append(row)

        logger.info("Generating history...")
        self.truncated = False
        history = []
        for event in engine.solve_steps():
            history.append(event)
            if event["type"] in ("SOLUTION", "FAILURE"):
                break
            if len(history) >= MAX_HISTORY_STEPS:
                self.truncated = True
                break
        engine.reset()

        self.history = self.process_history(history)
        self.total_steps = len(self.history)
        logger.info("History generated: %d steps.", self.total_steps)
        if self.truncated:
            logger.warning("Replay stopped after %d steps", MAX_HISTORY_STEPS)

        self.current_step = 0
        self.playing = False
        self.play_speed = PLAY_SPEED
        self.timer = 0.0
        self.step_timer = 0.0
        self.shake_timer = 0.0

        self.scroll_col_idx = 0.0
        self.target_scroll_col_idx = 0.0
        self.scroll_row_idx = 0.0
        self.target_scroll_row_idx = 0.0
        self.dragging_timeline = False

        self.set_step(0)

    def process_history(self, raw_events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Adds 'option X of Y' context by tracking which column each step belongs to."""
        context_stack: List[Dict[str, Any]] = []

        for event in raw_events:
            etype = event["type"]
            data = event["data"]

            if etype == "CHOOSE_COL":
                context_stack.append({"col": data["chosen"], "total": data["size"], "current": 0})

            elif etype == "SELECT_ROW" and context_stack:
                ctx = context_stack[-1]
                ctx["current"] += 1
                event["narrative_ctx"] = {
                    "col": ctx["col"],
                    "option_idx": ctx["current"],
                    "total_options": ctx["total"],
                }

            elif etype == "UNSELECT_ROW" and context_stack:
                ctx = context_stack[-1]
                event["narrative_ctx"] = {"col": ctx["col"], "option_idx": ctx["current"], "total_options": ctx["total"]}

            elif etype == "BACKTRACK" and context_stack:
                # Each chosen column ends in exactly one BACKTRACK when it fails.
                ctx = context_stack.pop()
                event["narrative_ctx"] = {"col": ctx["col"], "total_options": ctx["total"]}

        return raw_events

    def set_step(self, step: int):
        self.current_step = step
        self.current_event = self.history[step]
        self.step_timer = 0.0

        event = self.current_event
        data = event["data"]
        self.current_narrative = get_narrative_text(event["type"], data, event.get("narrative_ctx", {}), self)

        self.selected_rows: List[int] = list(event["rows"])
        self.covered_elements: Set[int] = set()
        for row in self.selected_rows:
            self.covered_elements.update(self.row_cols[row])

        self.hidden_rows: Set[int] = set()
        for c in self.covered_elements:
            self.hidden_rows.update(self.col_to_rows[c])
        self.hidden_rows.difference_update(self.selected_rows)

        self.focus_col: Optional[int] = None
        element = data.get("chosen", data.get("col"))
        if element in self.col_index:
            self.focus_col = self.col_index[element]
        self.focus_row: Optional[int] = data.get("row")

        if event["type"] == "BACKTRACK":
            self.shake_timer = SHAKE_DURATION
        else:
            self.shake_timer = 0.0

        # Keep the active cell in view
        if self.focus_col is not None:
            self.target_scroll_col_idx = float(max(0, self.focus_col - 5))
        if self.focus_row is not None:
            self.target_scroll_row_idx = float(max(0, self.focus_row - 5))

    def update(self, dt: float):
        self.step_timer += dt

        if self.shake_timer > 0:
            self.shake_timer = max(0.0, self.shake_timer - dt)

        if self.playing and self.current_step < self.total_steps - 1:
            self.timer += dt
            if self.timer >= self.play_speed:
                self.timer = 0.0
                self.set_step(self.current_step + 1)
        elif self.current_step >= self.total_steps - 1:
            self.playing = False

        # Smooth scroll
        for attr in ("col", "row"):
            current = getattr(self, f"scroll_{attr}_idx")
            target = getattr(self, f"target_scroll_{attr}_idx")
            diff = target - current
            if abs(diff) > 0.1:
                setattr(self, f"scroll_{attr}_idx", current + diff * min(1.0, dt * 10))
            else:
                setattr(self, f"scroll_{attr}_idx", target)

    def focus_alpha(self) -> int:
        # Fade in the focus column highlight after each step change
        return int(FOCUS_ALPHA * min(1.0, self.step_timer / FOCUS_FADE))

    def step_forward(self):
        if self.current_step < self.total_steps - 1:
            self.set_step(self.current_step + 1)

    def step_backward(self):
        if self.current_step > 0:
            self.set_step(self.current_step - 1)

    def toggle_play(self):
        self.playing = not self.playing

    def seek(self, progress: float):
        progress = max(0.0, min(1.0, progress))
        self.set_step(round(progress * (self.total_steps - 1)))

    def scroll_x(self, dx: float):
        limit = max(0, len(self.column_labels) - 1)
        self.target_scroll_col_idx = max(0.0, min(limit, self.target_scroll_col_idx + dx))

    def scroll_y(self, dy: float):
        limit = max(0, len(self.row_labels) - 1)
        self.target_scroll_row_idx = max(0.0, min(limit, self.target_scroll_row_idx + dy))


def _layout(screen_size: tuple[int, int]) -> Dict[str, Any]:
    w, h = screen_size
    half_h = h // 2
    half_w = w // 2
    text_area = pygame.Rect(half_w, 0, w - half_w, half_h)
    controls_y = half_h - 80

    buttons = []
    total_btn_w = len(TIMELINE_BUTTONS) * 80
    start_x = text_area.x + (text_area.width - total_btn_w) // 2
    for text, action in TIMELINE_BUTTONS:
        buttons.append((text, action, pygame.Rect(start_x, controls_y + 30, 64, 30)))
        start_x += 80

    return {
        "cover_area": pygame.Rect(0, 0, half_w, half_h),
        "text_area": text_area,
        "matrix_area": pygame.Rect(0, half_h, w, h - half_h),
        "timeline": pygame.Rect(text_area.x + 20, controls_y - 10, text_area.width - 40, 24),
        "buttons": buttons,
    }


def draw_scrollbar(screen: pygame.Surface, rect: pygame.Rect, content_size: float, view_size: float, scroll_pos: float, vertical: bool = True):
    """Draws a scrollbar."""
    pygame.draw.rect(screen, SCROLLBAR_BG, rect)

    if content_size <= view_size:
        return

    track = rect.height if vertical else rect.width
    thumb_size = max(20, int(track * view_size / content_size))
    max_scroll = content_size - view_size
    scroll_ratio = max(0.0, min(1.0, scroll_pos / max_scroll))
    thumb_pos = int((track - thumb_size) * scroll_ratio)

    if vertical:
        thumb_rect = pygame.Rect(rect.x + 2, rect.y + thumb_pos, rect.width - 4, thumb_size)
    else:
        thumb_rect = pygame.Rect(rect.x + thumb_pos, rect.y + 2, thumb_size, rect.height - 4)

    pygame.draw.rect(screen, SCROLLBAR_FG, thumb_rect, border_radius=4)


def draw_matrix(screen: pygame.Surface, rect: pygame.Rect, state: VizState, font: pygame.font.Font):
    """Options x elements grid: selected rows coloured, hidden rows dimmed, covered columns ticked."""
    pygame.draw.rect(screen, MATRIX_BG, rect)

    num_cols = len(state.column_labels)
    num_rows = len(state.row_labels)
    view = pygame.Rect(
        rect.x + ROW_LABEL_WIDTH,
        rect.y + HEADER_HEIGHT,
        rect.width - ROW_LABEL_WIDTH - SCROLLBAR_SIZE,
        rect.height - HEADER_HEIGHT - SCROLLBAR_SIZE,
    )

    shake_x = 0
    if state.shake_timer > 0:
        shake_x = int(SHAKE_INTENSITY * (state.shake_timer / SHAKE_DURATION) * (1 if state.current_step % 2 else -1))

    first_col = int(state.scroll_col_idx)
    first_row = int(state.scroll_row_idx)
    visible_cols = range(first_col, min(num_cols, first_col + view.width // CELL_SIZE + 1))
    visible_rows = range(first_row, min(num_rows, first_row + view.height // CELL_SIZE + 1))

    screen.set_clip(rect)

    # Column headers
    pygame.draw.rect(screen, MATRIX_HEADER_BG, (rect.x, rect.y, rect.width, HEADER_HEIGHT))
    for c in visible_cols:
        x = view.x + (c - first_col) * CELL_SIZE + shake_x
        color = TEXT_SECONDARY
        if c in state.covered_elements:
            color = SUCCESS
        if c == state.focus_col:
            color = FOCUS
            glow = pygame.Surface((CELL_SIZE, max(1, view.height)), pygame.SRCALPHA)
            glow.fill((*FOCUS, state.focus_alpha()))
            screen.blit(glow, (x, view.y))
        lbl = font.render(str(state.column_labels[c])[:4], True, color)
        screen.blit(lbl, lbl.get_rect(center=(x + CELL_SIZE // 2, rect.y + HEADER_HEIGHT // 2)))

    # Rows
    for r in visible_rows:
        y = view.y + (r - first_row) * CELL_SIZE
        selected = r in state.selected_rows
        hidden = r in state.hidden_rows

        if selected:
            pygame.draw.rect(screen, MATRIX_ROW_SELECTED, (rect.x, y, rect.width, CELL_SIZE))
        label_color = TEXT_MUTED if hidden else TEXT_MAIN
        lbl = font.render(state.row_labels[r][:10], True, label_color)
        screen.blit(lbl, (rect.x + 8, y + (CELL_SIZE - lbl.get_height()) // 2))

        for c in state.row_cols[r]:
            if c not in visible_cols:
                continue
            x = view.x + (c - first_col) * CELL_SIZE + shake_x
            cell = pygame.Rect(x + 4, y + 4, CELL_SIZE - 8, CELL_SIZE - 8)
            if selected:
                pygame.draw.rect(screen, row_color(r), cell, border_radius=4)
            elif hidden:
                pygame.draw.rect(screen, MATRIX_GRID, cell, border_radius=4)
            else:
                pygame.draw.rect(screen, TEXT_MUTED, cell, border_radius=4)

        if r == state.focus_row:
            outline = FAILURE if state.current_event["type"] == "UNSELECT_ROW" else TEXT_MAIN
            pygame.draw.rect(screen, outline, (view.x, y, view.width, CELL_SIZE), width=2, border_radius=4)

        pygame.draw.line(screen, MATRIX_GRID, (rect.x, y + CELL_SIZE - 1), (rect.right, y + CELL_SIZE - 1))

    screen.set_clip(None)

    sb_y = pygame.Rect(rect.right - SCROLLBAR_SIZE, view.y, SCROLLBAR_SIZE, view.height)
    sb_x = pygame.Rect(view.x, rect.bottom - SCROLLBAR_SIZE, view.width, SCROLLBAR_SIZE)
    draw_scrollbar(screen, sb_y, num_rows * CELL_SIZE, view.height, state.scroll_row_idx * CELL_SIZE)
    draw_scrollbar(screen, sb_x, num_cols * CELL_SIZE, view.width, state.scroll_col_idx * CELL_SIZE, vertical=False)


def _draw_wrapped(screen: pygame.Surface, font: pygame.font.Font, text: str, x: int, y: int, width: int) -> int:
    words = text.split(" ")
    curr_line = ""
    for word in words:
        test_line = curr_line + word + " "
        if font.size(test_line)[0] < width:
            curr_line = test_line
        else:
            screen.blit(font.render(curr_line, True, TEXT_SECONDARY), (x, y))
            y += 25
            curr_line = word + " "
    if curr_line:
        screen.blit(font.render(curr_line, True, TEXT_SECONDARY), (x, y))
    return y + 35


def draw_viz(screen: pygame.Surface, font_title: pygame.font.Font, font_body: pygame.font.Font, state: VizState, mouse_pos: tuple[int, int]):
    w, h = screen.get_size()
    layout = _layout((w, h))
    cover_area = layout["cover_area"]
    text_area = layout["text_area"]

    screen.fill(BG)

    # --- 1. Partial cover (top left) ---
    y = cover_area.y + 40
    title = font_title.render("Partial Cover", True, TEXT_MAIN)
    screen.blit(title, (cover_area.x + 20, y))
    y += 50

    covered = len(state.covered_elements)
    total = len(state.column_labels)
    progress_surf = font_body.render(f"{covered} of {total} elements covered", True, TEXT_MUTED)
    screen.blit(progress_surf, (cover_area.x + 20, y))
    y += 35

    for row in state.selected_rows:
        if y > cover_area.bottom - 30:
            break
        option = state.problem.option_for(row)
        card = pygame.Rect(cover_area.x + 20, y, cover_area.width - 40, 30)
        pygame.draw.rect(screen, CARD_BG, card, border_radius=6)
        pygame.draw.rect(screen, row_color(row), (card.x, card.y, 6, card.height), border_radius=3)
        text = font_body.render(f"{option.label}  {format_elements(option.elements)}", True, TEXT_MAIN)
        screen.blit(text, (card.x + 16, card.y + (card.height - text.get_height()) // 2))
        y += 36

    # --- 2. Thoughts (top right) ---
    pygame.draw.rect(screen, (20, 20, 25), text_area)
    pygame.draw.line(screen, GRID, (text_area.x, 0), (text_area.x, text_area.bottom))
    pygame.draw.line(screen, GRID, (0, text_area.bottom), (w, text_area.bottom))

    y = 40
    title = font_title.render("Algorithm's Mind", True, TEXT_MAIN)
    screen.blit(title, (text_area.x + 20, y))
    y += 50

    for line in state.current_narrative:
        y = _draw_wrapped(screen, font_body, line, text_area.x + 20, y, text_area.width - 40)

    # Timeline
    timeline = layout["timeline"]
    progress = state.current_step / (state.total_steps - 1) if state.total_steps > 1 else 0
    pygame.draw.rect(screen, GRID, (timeline.x, timeline.y + 10, timeline.width, 4))
    pygame.draw.circle(screen, TEXT_MAIN, (int(timeline.x + timeline.width * progress), timeline.y + 12), 6)

    for text, action, btn_rect in layout["buttons"]:
        if action == "toggle" and state.playing:
            text = "PAUSE"
        draw_button(screen, btn_rect, text, font_body, mouse_pos, radius=4)

    # --- 3. Matrix (bottom) ---
    draw_matrix(screen, layout["matrix_area"], state, font_body)


def handle_viz_input(event: pygame.event.Event, state: VizState, screen_size: tuple[int, int]) -> str | None:
    """Handles input for the visualization view. Returns an action string if one was triggered."""
    layout = _layout(screen_size)
    timeline = layout["timeline"]

    if event.type == pygame.KEYDOWN:
        if event.key == pygame.K_RIGHT:
            return "next"
        if event.key == pygame.K_LEFT:
            return "prev"
        if event.key == pygame.K_SPACE:
            return "toggle"

    elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
        if timeline.collidepoint(event.pos):
            state.dragging_timeline = True
            state.seek((event.pos[0] - timeline.x) / timeline.width)
            return "seek"
        for _, action, btn_rect in layout["buttons"]:
            if btn_rect.collidepoint(event.pos):
                return action

    elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
        state.dragging_timeline = False

    elif event.type == pygame.MOUSEMOTION and state.dragging_timeline:
        state.seek((event.pos[0] - timeline.x) / timeline.width)
        return "seek"

    return None
