"""Main CLI loop for interactive copilot sessions."""

import logging
import sys
import uuid
from typing import TextIO

from .client import CopilotAPIClient
from .config import CLIConfig
from .formatter import ResponseFormatter

logger = logging.getLogger(__name__)

RESET_COMMANDS = ("new", "reset")
EXIT_COMMANDS = ("exit", "quit", "q")


class CopilotCLI:
    """Interactive CLI for the copilot API."""

    def __init__(
        self,
        config: CLIConfig,
        input_stream: TextIO = sys.stdin,
        output_stream: TextIO = sys.stdout,
        show_lead: bool = False,
    ):
        """Initialize the CLI.

        Parameters
        ----------
        config
            CLI configuration.
        input_stream
            Input stream for user input (default: stdin).
        output_stream
            Output stream for responses (default: stdout).
        show_lead
            Whether to print the lead score of each answer.
        """
        self.config = config
        self.input_stream = input_stream
        self.output_stream = output_stream
        self.formatter = ResponseFormatter(output_stream, show_lead)
        self.client = CopilotAPIClient(config)
        self.session_id = self._new_session_id()

    async def run(self) -> None:
        """Run the interactive CLI loop."""
        try:
            self._print_welcome()
            while True:
                try:
                    query = self._get_user_input().strip()
                    if not query:
                        continue

                    if query.lower() in EXIT_COMMANDS:
                        self._print("Goodbye!\n")
                        break

                    if query.lower() in RESET_COMMANDS:
                        self.session_id = self._new_session_id()
                        self._print(f"Started new session {self.session_id}\n\n")
                        continue

                    await self._process_query(query)

                except KeyboardInterrupt:
                    self._print("\n\nInterrupted. Use 'exit' or 'quit' to exit.\n")
                except EOFError:
                    self._print("\nGoodbye!\n")
                    break
        finally:
            await self.client.close()

    async def _process_query(self, query: str) -> None:
        """Send one message and render the answer."""
        try:
            status_code, body = await self.client.ask(query, self.session_id)
            self.formatter.render(status_code, body)
            self._print("\n")
        except Exception as e:
            logger.exception("Error processing query")
            self._print(f"\n❌ Error: {str(e)}\n\n")

    def _get_user_input(self) -> str:
        self._print("> ")
        line = self.input_stream.readline()
        if not line:
            raise EOFError
        return line.rstrip("\n\r")

    @staticmethod
    def _new_session_id() -> str:
        return uuid.uuid4().hex

    def _print_welcome(self) -> None:
        self._print("Sensihi Copilot CLI\n")
        self._print(f"Connected to: {self.config.copilot_url}\n")
        self._print(f"Session: {self.session_id}\n")
        self._print(
            "Type your message and press Enter. "
            "'new' starts a fresh session, 'exit' or 'quit' exits.\n\n"
        )

    def _print(self, text: str) -> None:
        """Print text to output stream."""
        self.output_stream.write(text)
        self.output_stream.flush()


async def main(
    host: str = "localhost",
    port: int = 8080,
    api_path: str = "/copilot",
    page: str | None = None,
    persona: str | None = None,
    client_ip: str | None = None,
    debug: bool = False,
    show_lead: bool = False,
) -> None:
    """Main entry point for the CLI."""
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    config = CLIConfig(
        host=host,
        port=port,
        api_path=api_path,
        page=page,
        persona=persona,
        client_ip=client_ip,
    )

    cli = CopilotCLI(config, show_lead=show_lead)
    await cli.run()
