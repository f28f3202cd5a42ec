from enum import Enum, auto

class UIState(Enum):
    MENU = auto()
    RESULT = auto()
    ALGORITHM_INTRO = auto()
    ALGORITHM_VIEW = auto()

class AppState:
    def __init__(self, problem):
        self.current_state = UIState.MENU
        self.problem = problem
        self.result = None  # SearchResult once "Solve" has run
