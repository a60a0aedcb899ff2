"""Interactive REPL over a ChatSession.

Interface layer only parses lines and formats output; all orchestration
lives in the session and router.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from kb_agent.application.session import ChatSession
from kb_agent.domain.errors import DomainError

logger = logging.getLogger(__name__)

PROMPT = "> "

HELP_TEXT = """Commands:
  /add <filepath>  Attach a file to the next query
  /history         Show conversation history
  /help            Show this help
  /exit            Quit
Any other input is sent to the agent as a query."""


class ChatShell:
    def __init__(
        self,
        session: ChatSession,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        self.session = session
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout

    def write(self, text: str = "") -> None:
        self.stdout.write(text + "\n")
        self.stdout.flush()

    def run(self) -> int:
        self.write("Knowledge base agent. Type /help for commands.")
        while True:
            self.stdout.write(PROMPT)
            self.stdout.flush()
            try:
                line = self.stdin.readline()
            except KeyboardInterrupt:
                self.write()
                return 0
            if not line:  # EOF
                self.write()
                return 0
            if not self.handle(line.strip()):
                return 0

    def handle(self, line: str) -> bool:
        """Process one input line; False means the user asked to quit."""
        if not line:
            return True
        if line == "/exit":
            return False
        if line == "/help":
            self.write(HELP_TEXT)
        elif line == "/history":
            self.show_history()
        elif line == "/add" or line.startswith("/add "):
            self.add_file(line[len("/add") :].strip())
        elif line.startswith("/"):
            self.write(f"Unknown command: {line.split()[0]} (try /help)")
        else:
            self.ask(line)
        return True

    def add_file(self, path: str) -> None:
        if not path:
            self.write("Usage: /add <filepath>")
            return
        try:
            attachment = self.session.add_file(path)
        except DomainError as ex:
            self.write(f"Error: {ex}")
            return
        self.write(f"File {attachment.name} ready for next query")

    def show_history(self) -> None:
        turns = self.session.history()
        if not turns:
            self.write("(no history)")
            return
        for i, turn in enumerate(turns, start=1):
            self.write(f"{i}: {turn.render()}")

    def ask(self, query: str) -> None:
        try:
            response = self.session.query(query)
        except KeyboardInterrupt:
            logger.info("Query cancelled by user")
            self.write("Query cancelled")
            return
        except DomainError as ex:
            logger.debug("Query failed", exc_info=True)
            self.write(f"Error: {ex}")
            return
        self.write(response)
