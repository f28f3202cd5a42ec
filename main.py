from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from typing import List, Optional

from dlx import SearchResult
from heuristics import HEURISTICS, ColumnChooser
from problems import BUILTIN_PROBLEMS, ExactCoverProblem, load_problem
from solver import solve_exact_cover, verify_cover
from ui_state import AppState, UIState

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Solve an exact cover problem with Dancing Links.")
    parser.add_argument("problem", nargs="?", help="JSON problem file")
    parser.add_argument("--example", choices=sorted(BUILTIN_PROBLEMS), help="use a built-in problem")
    parser.add_argument("--heuristic", choices=sorted(HEURISTICS), default="mrv", help="column choice rule")
    parser.add_argument("--json", action="store_true", help="print the result as JSON")
    parser.add_argument("--viz", action="store_true", help="replay the search in a window")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    args = parser.parse_args(argv)
    if args.problem and args.example:
        parser.error("give either a problem file or --example, not both")
    return args


def format_result(problem: ExactCoverProblem, result: SearchResult) -> str:
    if not result.solved:
        return "No exact cover exists."
    lines = [f"Exact cover for {problem.name} ({len(result.labels)} options):"]
    for row, label in zip(result.rows, result.labels):
        elements = ", ".join(str(e) for e in problem.option_for(row).elements)
        lines.append(f"  {label}  {{{elements}}}")
    return "\n".join(lines)


def result_to_json(problem: ExactCoverProblem, result: SearchResult) -> str:
    doc = {
        "problem": problem.name,
        "solved": result.solved,
        "labels": result.labels,
        "rows": result.rows,
        "stats": asdict(result.stats),
    }
    return json.dumps(doc, default=str)


def apply_menu_action(app_state: AppState, action: Optional[str], choose_column: ColumnChooser) -> bool:
    """Move the app on after a menu click. Returns False once the user quits."""
    if action == "solve":
        problem = app_state.problem
        logger.info("Solving %s...", problem.name)
        app_state.result = solve_exact_cover(problem.rows(), problem.elements, choose_column)
        app_state.current_state = UIState.RESULT
    elif action == "algorithm":
        app_state.current_state = UIState.ALGORITHM_INTRO
    elif action == "quit":
        return False
    return True


def run_app(problem: ExactCoverProblem, choose_column: ColumnChooser) -> None:
    os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
    import pygame

    from gui import FPS, WINDOW_WIDTH, WINDOW_HEIGHT, draw_menu, get_menu_action, draw_result
    from ui_intro import draw_intro, get_intro_action
    from ui_viz import VizState, draw_viz, handle_viz_input

    app_state = AppState(problem)
    viz_state: VizState | None = None

    pygame.init()
    screen = pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT), pygame.RESIZABLE)
    pygame.display.set_caption(f"Exact Cover: {app_state.problem.name}")

    # Fonts
    title_font = pygame.font.SysFont("SF Pro Display", 32, bold=True)
    label_font = pygame.font.SysFont("SF Pro Text", 24)
    body_font = pygame.font.SysFont("SF Pro Text", 18)

    clock = pygame.time.Clock()

    running = True
    while running:
        dt = clock.tick(FPS) / 1000.0
        mouse_pos = pygame.mouse.get_pos()

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.VIDEORESIZE:
                screen = pygame.display.set_mode((event.w, event.h), pygame.RESIZABLE)

            if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                app_state.current_state = UIState.MENU
                viz_state = None
                continue

            if app_state.current_state == UIState.MENU:
                if event.type == pygame.MOUSEBUTTONDOWN:
                    action = get_menu_action(event.pos, screen.get_size())
                    running = apply_menu_action(app_state, action, choose_column)

            elif app_state.current_state == UIState.ALGORITHM_INTRO:
                if event.type == pygame.MOUSEBUTTONDOWN:
                    if get_intro_action(event.pos, screen.get_size()) == "start_viz":
                        viz_state = VizState(app_state.problem, choose_column)
                        app_state.current_state = UIState.ALGORITHM_VIEW

            elif app_state.current_state == UIState.ALGORITHM_VIEW and viz_state:
                action = handle_viz_input(event, viz_state, screen.get_size())
                if action == "prev":
                    viz_state.step_backward()
                elif action == "next":
                    viz_state.step_forward()
                elif action == "toggle":
                    viz_state.toggle_play()
                elif action == "menu":
                    app_state.current_state = UIState.MENU
                    viz_state = None

                if viz_state and event.type == pygame.MOUSEWHEEL:
                    if pygame.key.get_mods() & pygame.KMOD_SHIFT:
                        viz_state.scroll_x(-event.y)
                    else:
                        viz_state.scroll_y(-event.y)

        # Update
        if app_state.current_state == UIState.ALGORITHM_VIEW and viz_state:
            viz_state.update(dt)

        # Draw
        if app_state.current_state == UIState.MENU:
            draw_menu(screen, title_font, label_font, app_state.problem, mouse_pos)
        elif app_state.current_state == UIState.RESULT and app_state.result is not None:
            draw_result(screen, title_font, label_font, app_state.problem, app_state.result)
        elif app_state.current_state == UIState.ALGORITHM_INTRO:
            draw_intro(screen, title_font, body_font, mouse_pos)
        elif app_state.current_state == UIState.ALGORITHM_VIEW and viz_state:
            draw_viz(screen, title_font, body_font, viz_state, mouse_pos)

        pygame.display.flip()

    pygame.quit()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.problem:
            problem = load_problem(args.problem)
        else:
            problem = BUILTIN_PROBLEMS[args.example or "knuth"]()
        choose_column = HEURISTICS[args.heuristic]

        if args.viz:
            run_app(problem, choose_column)
            return 0

        result = solve_exact_cover(problem.rows(), problem.elements, choose_column)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if result.solved and logger.isEnabledFor(logging.DEBUG):
        logger.debug("Cover verified: %s", verify_cover(list(problem.rows()), result.rows, problem.elements))

    print(result_to_json(problem, result) if args.json else format_result(problem, result))
    return 0 if result.solved else 1


if __name__ == "__main__":
    sys.exit(main())
