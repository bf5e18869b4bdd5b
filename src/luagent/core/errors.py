"""Errors that can escape the control loop."""


class AgentError(RuntimeError):
    """Base class for terminal agent failures."""


class LLMError(AgentError):
    """The LLM collaborator failed to generate a response."""


class MaxIterationsReached(AgentError):
    """The iteration budget ran out before a final answer was produced."""

    def __init__(self, max_iterations: int) -> None:
        super().__init__(f"Maximum iterations reached ({max_iterations})")
        self.max_iterations = max_iterations


class AgentCancelled(AgentError):
    """The caller asked the loop to stop."""


class ConfigurationError(ValueError):
    """The tool set or agent options are unusable."""
