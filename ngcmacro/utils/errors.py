"""
Exception types for the ngcmacro lexer, parser and evaluator.
One kind per stage; all of them are fatal to the operation in progress.
"""


class MacroError(RuntimeError):
    """Base class for every error raised while processing a macro program."""

    prefix = "Macro Error"

    def __init__(self, message: str):
        self.original_message = message
        super().__init__(f"{self.prefix}: {message}")

    def __str__(self):
        return f"{self.prefix}: {self.original_message}"


class LexError(MacroError):
    """No token pattern matches the remaining input."""

    prefix = "Lex Error"

    def __init__(self, message: str, line: int, column: int, char: str = ""):
        self.line = line
        self.column = column
        self.char = char
        super().__init__(message)

    def __str__(self):
        return f"{self.prefix} (line {self.line}, column {self.column}): {self.original_message}"


class MacroSyntaxError(MacroError):
    """Structural mismatch found while building the syntax tree."""

    prefix = "Syntax Error"

    def __init__(self, message: str, line: int | None = None, column: int | None = None, token=None):
        self.line = line
        self.column = column
        self.token = token
        super().__init__(message)

    def __str__(self):
        if self.line is None:
            return f"{self.prefix}: {self.original_message}"
        return f"{self.prefix} (line {self.line}, column {self.column}): {self.original_message}"


class EvaluationError(MacroError):
    """Semantic failure while executing a parsed program."""

    prefix = "Evaluation Error"
