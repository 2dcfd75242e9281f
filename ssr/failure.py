"""
SSR Kernel — Failure Reporter

Renders a script failure as an inline diagnostic overlay, shown in place
of the block that failed to render.
"""

from __future__ import annotations

from functools import lru_cache
from html import escape as _html_escape

from ssr.types import ASSETS_DIR, BOOTSTRAP_SCRIPT, DATA_INJECTION_SCRIPT, FailureReport

TAB_MARKER = '<span class="tab">→</span>'

_HINTS: dict[str, str] = {
    BOOTSTRAP_SCRIPT: "This appears to be an internal engine error in SSR. Please report it.",
    DATA_INJECTION_SCRIPT: "This appears to be an error in your script's data. Check that your data is valid.",
}


@lru_cache(maxsize=1)
def _overlay_css() -> str:
    return (ASSETS_DIR / "error-overlay.css").read_text(encoding="utf-8")


def format_source_excerpt(report: FailureReport) -> str:
    """
    The failing line and its caret underline, as escaped HTML.

        > 10 | const x = broken();
                         ^^^^^^
    """
    if report.line_number is None or report.source_line is None:
        return ""
    prefix = f"> {report.line_number} | "
    line = _html_escape(report.source_line, quote=False).replace("\t", TAB_MARKER)
    span = max(report.end_column - report.start_column, 0)
    carets = " " * (len(prefix) + report.start_column) + "^" * span
    return f"{prefix}{line}\n{carets}\n"


def render_failure(report: FailureReport) -> str:
    """
    Render the overlay for a failed script. Returns an HTML fragment.
    Pure apart from reading the bundled stylesheet.
    """
    summary = report.trace.splitlines()[0] if report.trace else report.message
    body = f"{_html_escape(report.script)}\n{_html_escape(summary)}\n\n{format_source_excerpt(report)}"

    hint = _HINTS.get(report.script)
    hint_html = f"\n      <p>{_html_escape(hint)}</p>" if hint else ""

    return f"""<style>{_overlay_css()}</style>
<div class="error-overlay"><div class="wrapper"><div class="overlay">
  <div class="header">Failed to render</div>
  <pre class="preStyle"><code class="codeStyle">{body}</code></pre>
  <div class="footer">
      <p>This error occurred during server-side rendering and cannot be dismissed.</p>{hint_html}
  </div>
</div></div></div>
"""
