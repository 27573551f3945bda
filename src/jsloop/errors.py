"""Fatal error types raised while parsing or simulating a program."""


class JSError(Exception):
    """Base class for all errors that abort a simulation run."""

    def __init__(self, message: str = "", name: str = "Error"):
        self.message = message
        self.name = name
        super().__init__(f"{name}: {message}" if message else name)


class JSSyntaxError(JSError):
    """Source text is not valid for the parser."""

    def __init__(self, message: str = "", line: int = 0, column: int = 0):
        self.line = line
        self.column = column
        # Include line/column in the message if provided
        if line > 0:
            full_message = f"line {line}, column {column}: {message}"
        else:
            full_message = message
        super().__init__(full_message, "SyntaxError")


class JSRangeError(JSError):
    """Raised when the simulated call stack grows past its limit."""

    def __init__(self, message: str = "Maximum call stack size exceeded"):
        super().__init__(message, "RangeError")


class StepLimitError(JSError):
    """Raised when a run records more steps than allowed."""

    def __init__(self, message: str = "Step limit exceeded"):
        super().__init__(message, "InternalError")
