"""Operator prompts.

select_option() is the pure core: it validates one answer against a fixed
option list. Prompter is the thin interactive loop around it, with injectable
input/output so tests can feed canned answers.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from .lib.errors import BuildAborted, InvalidSelection

logger = logging.getLogger(__name__)

QUIT = "Quit"


def select_option(options: Sequence[str], answer: str) -> str:
    """Return the option named by ``answer`` (1-based index or exact name)."""

    text = (answer or "").strip()
    if text.isdigit():
        idx = int(text)
        if 1 <= idx <= len(options):
            return options[idx - 1]
    else:
        for opt in options:
            if opt.lower() == text.lower():
                return opt
    raise InvalidSelection(text, options)


class Prompter:
    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print,
    ) -> None:
        self.input_fn = input_fn
        self.output_fn = output_fn

    def choose(self, title: str, options: Sequence[str], *, allow_quit: bool = True) -> str:
        menu: List[str] = list(options) + ([QUIT] if allow_quit else [])
        self.output_fn(title)
        for i, opt in enumerate(menu, start=1):
            self.output_fn(f"  {i}) {opt}")

        while True:
            answer = self.input_fn("> ")
            try:
                picked = select_option(menu, answer)
            except InvalidSelection:
                self.output_fn("Invalid selection.")
                continue
            if allow_quit and picked == QUIT:
                raise BuildAborted("Aborted by user.")
            logger.info("Selected %r for %r", picked, title)
            return picked

    def ask(self, prompt: str, default: Optional[str] = None) -> str:
        suffix = f" (default: {default})" if default is not None else ""
        answer = self.input_fn(f"{prompt}{suffix}: ").strip()
        return answer or (default or "")

    def pause(self, message: str) -> None:
        self.input_fn(f"{message} ")
