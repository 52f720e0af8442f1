class AishellError(Exception):
    """Base class for all aishell errors."""


class ConfigError(AishellError):
    pass


class ServiceError(AishellError):
    """The model service returned nothing usable, or could not be reached."""


class ProtocolError(AishellError):
    """A tool call named an unknown function or carried invalid arguments."""


class ExecutionError(AishellError):
    """A shell command could not be spawned or waited on."""


class PolicyRejection(AishellError):
    """A command was refused because the model flagged it as dangerous."""

    def __init__(self, command: str):
        super().__init__(f"not executing dangerous command {command!r}")
        self.command = command


class ToolLoopLimitError(AishellError):
    def __init__(self, rounds: int):
        super().__init__(f"model requested tools for {rounds} rounds without answering; giving up")
        self.rounds = rounds
