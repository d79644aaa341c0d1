"""One-line diagnostics for a project's last poll."""

from __future__ import annotations

import httpx

from buildwatch.models.projects import ProjectStatus


def describe_status(status: ProjectStatus) -> str:
    """Describe what went wrong with the last accepted poll, or "" if nothing did.

    Parse errors win over request errors, which win over the HTTP status.
    """
    if status.parse_error:
        return f"{status.parse_error_description or ''}\nJSON({status.parse_error})"
    if status.request_error:
        return f"{status.request_error_description or ''}\nRequest({status.request_error})"

    code = status.response_status_code
    if code is None:
        return ""
    if code == 200 and not status.had_response:
        return "Empty response\nHTTP(200)"
    if 400 <= code < 600:
        return f"{httpx.codes.get_reason_phrase(code)}\nHTTP({code})"
    return ""
