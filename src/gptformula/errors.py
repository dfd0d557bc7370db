"""Failure categories raised inside the pipeline.

Every one of these is caught by GptFormula and rendered as a
"#GPT_ERROR: ..." / "#AGENT_ERROR: ..." string. Nothing here ever crosses
the formula boundary as an exception.
"""
from __future__ import annotations


class GptFormulaError(Exception):
    pass


class MissingInputError(GptFormulaError):
    pass


class ConfigMissingError(GptFormulaError):
    pass


class AdmissionRejectedError(GptFormulaError):
    def __init__(self, estimated: int, limit: int):
        super().__init__(f"TOKEN_LIMIT - estimated {estimated} tokens")
        self.estimated = estimated
        self.limit = limit


class RemoteFailureError(GptFormulaError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EmptyCompletionError(GptFormulaError):
    pass


class FormatViolationError(GptFormulaError):
    pass


class ToolkitInvalidError(GptFormulaError):
    pass


class ToolExecutionError(GptFormulaError):
    pass


class LoopExhaustedError(GptFormulaError):
    pass
