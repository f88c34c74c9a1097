from __future__ import annotations

from .provider_errors import clear_errors, error_code_to_string, pop_error_code


def translate_error() -> str | None:
    """
    Convert the current thread's provider error state into a reason string.

    Pops the head of the queue and discards anything queued behind it, so the
    next operation starts from a clean slate. Returns None when no error was
    recorded. Call this directly after the failing primitive.
    """

    code = pop_error_code()
    clear_errors()
    if code == 0:
        return None
    reason = error_code_to_string(code)
    if reason is None:
        return f"unknown provider error (code={code})"
    return reason
