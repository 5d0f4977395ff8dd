"""Response formatter for copilot answers."""

from typing import TextIO


class ResponseFormatter:
    """Renders one copilot response body."""

    def __init__(self, output: TextIO, show_lead: bool = False):
        self.output = output
        self.show_lead = show_lead

    def render(self, status_code: int, body: dict) -> None:
        if status_code != 200:
            self._render_error(status_code, body)
            return

        self._print(f"\n{body.get('message', '')}\n")

        intent = body.get("intent")
        confidence = body.get("confidence")
        if intent:
            suffix = f" ({confidence})" if confidence else ""
            self._print(f"\nIntent: {intent}{suffix}\n")

        references = body.get("references") or []
        if references:
            self._print("\nReferences:\n")
            for ref in references:
                self._print(f"  - {ref.get('title')}: {ref.get('url')}\n")

        ctas = body.get("cta") or []
        if ctas:
            self._print("\nNext steps:\n")
            for cta in ctas:
                marker = "*" if cta.get("type") == "primary" else "-"
                self._print(f"  {marker} {cta.get('label')} -> {cta.get('url')}\n")

        lead = body.get("lead")
        if self.show_lead and lead:
            signals = ", ".join(lead.get("signals") or []) or "none"
            self._print(
                f"\nLead: {lead.get('score')} ({lead.get('tier')}); signals: {signals}\n"
            )

    def _render_error(self, status_code: int, body: dict) -> None:
        message = body.get("message", "Unknown error")
        code = body.get("code", "UNKNOWN")
        self._print(f"\n❌ Error [{code}]: {message}\n")
        retry_after = body.get("retry_after")
        if retry_after:
            self._print(f"   Retry after {retry_after}s.\n")

    def _print(self, text: str) -> None:
        """Print text to output."""
        self.output.write(text)
        self.output.flush()
