"""
Interactive token acquisition.

The orchestrator only depends on the TokenSource protocol; ConsoleTokenSource
is the terminal implementation used by the CLI.
"""

import sys
from typing import Callable, Optional, Protocol, TextIO

from .cli_ui import format_pat_instructions


class TokenSource(Protocol):
    """Port for obtaining a Personal Access Token for an organization."""

    def request_token(self, organization: str) -> Optional[str]:
        """
        Obtain a token for `organization`.

        Returns:
            The token, or None if the operator chose to skip
        """
        ...


class ConsoleTokenSource:
    """Prompts on the terminal; blocks until a line of input arrives."""

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        stream: Optional[TextIO] = None,
        err_stream: Optional[TextIO] = None,
    ):
        self.input_fn = input_fn
        self.stream = stream
        self.err_stream = err_stream

    def request_token(self, organization: str) -> Optional[str]:
        print(format_pat_instructions(organization), file=self.stream or sys.stdout)

        try:
            token = self.input_fn(f"Paste your PAT for {organization}: ")
        except EOFError:
            token = ""

        token = (token or "").strip()
        if not token:
            print("No token provided. Skipping...", file=self.err_stream or sys.stderr)
            return None
        return token
