"""Custom exceptions for deck spec input and build errors."""

from __future__ import annotations


class SpecValidationError(ValueError):
    """Raised when an input deck spec is structurally invalid."""

    def __init__(self, issues: list[str]):
        self.issues = [str(i).strip() for i in issues if str(i).strip()]
        if not self.issues:
            self.issues = ["Invalid deck spec"]
        super().__init__(self._format())

    def _format(self) -> str:
        lines = ["Deck spec validation failed:"]
        for issue in self.issues:
            lines.append(f"- {issue}")
        return "\n".join(lines)


class FontLoadError(RuntimeError):
    """Raised when a font file exists but cannot be parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load font {path}: {reason}")


class BuildError(RuntimeError):
    """Raised when an artifact is requested for a build that has errors."""

    def __init__(self, messages: list[str]):
        self.messages = list(messages)
        lines = ["Cannot write presentation: validation errors exist."]
        for message in self.messages:
            lines.append(f"- {message}")
        super().__init__("\n".join(lines))
