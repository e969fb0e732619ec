"""
Decision providers for the two points where a run waits on the operator:
choosing a primary copy and confirming the layout mode.
"""

import logging
from collections import deque
from typing import Callable, Iterable, List, Protocol, Sequence

logger = logging.getLogger(__name__)


class DecisionProvider(Protocol):
    """Source of operator decisions."""

    def ask_choice(self, options: Sequence[str], prompt: str = "") -> int:
        """Return the 0-based index of the chosen option (0 is the default)."""
        ...

    def ask_yes_no(self, prompt: str, default: bool = True) -> bool:
        ...


class AutoDecisionProvider:
    """Accepts every default without asking."""

    def ask_choice(self, options: Sequence[str], prompt: str = "") -> int:
        return 0

    def ask_yes_no(self, prompt: str, default: bool = True) -> bool:
        return default


class ConsoleDecisionProvider:
    """
    Interactive provider reading answers from the console.

    Invalid answers re-prompt until a valid one is given. End of input
    (e.g. stdin is not a terminal) accepts the default.
    """

    YES = {"y", "yes"}
    NO = {"n", "no"}

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print
    ):
        self._input = input_fn
        self._output = output_fn

    def ask_choice(self, options: Sequence[str], prompt: str = "") -> int:
        if not options:
            raise ValueError("No options to choose from")

        if prompt:
            self._output(prompt)
        for number, option in enumerate(options, start=1):
            marker = " (default)" if number == 1 else ""
            self._output(f"  {number}. {option}{marker}")

        while True:
            try:
                response = self._input(f"Select 1-{len(options)} [1]: ").strip()
            except EOFError:
                logger.info("No console input available, accepting default choice")
                return 0

            if not response:
                return 0
            if not response.isdecimal():
                self._output(f"'{response}' is not a number.")
                continue
            number = int(response)
            if not 1 <= number <= len(options):
                self._output(f"Please enter a number between 1 and {len(options)}.")
                continue
            return number - 1

    def ask_yes_no(self, prompt: str, default: bool = True) -> bool:
        suffix = "[Y/n]" if default else "[y/N]"
        while True:
            try:
                response = self._input(f"{prompt} {suffix}: ").strip().lower()
            except EOFError:
                logger.info("No console input available, accepting default answer")
                return default

            if not response:
                return default
            if response in self.YES:
                return True
            if response in self.NO:
                return False
            self._output("Please answer 'y' or 'n'.")


class ScriptedDecisionProvider:
    """
    Replays canned answers in order.

    Choice answers are 0-based indexes; yes/no answers are booleans. When
    a queue runs dry the default is returned.
    """

    def __init__(
        self,
        choices: Iterable[int] = (),
        answers: Iterable[bool] = ()
    ):
        self._choices = deque(choices)
        self._answers = deque(answers)
        self.asked: List[tuple] = []

    def ask_choice(self, options: Sequence[str], prompt: str = "") -> int:
        self.asked.append(("choice", prompt, list(options)))
        if not self._choices:
            return 0
        choice = self._choices.popleft()
        if not 0 <= choice < len(options):
            raise IndexError(f"Scripted choice {choice} out of range for {len(options)} options")
        return choice

    def ask_yes_no(self, prompt: str, default: bool = True) -> bool:
        self.asked.append(("yes_no", prompt, default))
        if not self._answers:
            return default
        return self._answers.popleft()
