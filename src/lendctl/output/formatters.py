"""Rich/JSON output helpers.

The CLI renders a ServiceResult for humans (Rich tables and panels) or for
machines (--json). This module picks the mode; the Rich layouts live in
:mod:`lendctl.output.renderers`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from lendctl.output.renderers import render_result

if TYPE_CHECKING:
    from lendctl.services.result import ServiceResult


def format_result(
    result: ServiceResult,
    *,
    json_output: bool = False,
    verbose: bool = False,
) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        json_output: If True, return JSON; otherwise Rich-rendered text.
        verbose: Include error detail and the telemetry span tree in
            human output. JSON always carries both.
    """
    if json_output:
        return result.model_dump_json(indent=2)
    return render_result(result, verbose=verbose)
