"""Error taxonomy for the research pipeline."""


class ResearchError(Exception):
    """Base exception for research pipeline errors."""

    pass


class InvalidQueryError(ResearchError):
    """Raised when a research query fails boundary validation."""

    pass


class InvalidPhaseTransition(ResearchError):
    """Raised when a session is moved to a phase it cannot reach."""

    pass


class CompletionError(ResearchError):
    """Raised when the completion service call itself fails."""

    pass


class FatalStageError(ResearchError):
    """Raised when a stage cannot produce its output and the run must stop."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage} failed: {message}")
        self.stage = stage
        self.message = message


class ResearchCancelled(ResearchError):
    """Raised at a cancellation point once cancellation has been requested."""

    pass
