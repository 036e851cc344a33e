"""Shared error types for the runtime approval layer."""


class RuntimeSafetyError(Exception):
    """Base error for all runtime safety failures."""


class ApprovalInterruptedError(RuntimeSafetyError):
    """The user interrupted (or never answered) an approval prompt.

    The agent loop treats this exactly like a denial.
    """

    def __init__(self, tool_name: str, reason: str = "") -> None:
        self.tool_name = tool_name
        self.reason = reason
        msg = f"Approval interrupted for tool: {tool_name}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
