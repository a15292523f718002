"""Agent loop errors. Both are fatal to a single run only."""


class AgentError(Exception):
    """Base class for agent run failures."""


class InvalidInputError(AgentError):
    """The turn list is empty or carries an unknown role."""


class MaxIterationsExceededError(AgentError):
    """The model kept requesting tools past the round limit."""

    def __init__(self, max_rounds: int):
        self.max_rounds = max_rounds
        super().__init__(f"Max iterations ({max_rounds}) reached without a final response")
