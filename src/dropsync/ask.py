from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

from rich.console import Console

from .text_utils import normalize_key, same_key

T = TypeVar("T")

InputFn: TypeAlias = Callable[[str], str]


@dataclass(frozen=True)
class Choice(Generic[T]):
    label: str
    value: T


def parse_yes_or_no(value: str) -> bool | None:
    lower = normalize_key(value)
    if lower.startswith("y"):
        return True
    if lower.startswith("n"):
        return False
    return None


def ask_yes_or_no(
    prompt: str,
    input_fn: InputFn | None = None,
    out: Console | None = None,
) -> bool:
    read = input_fn or (out or Console()).input
    while True:
        response = parse_yes_or_no(read(prompt))
        if response is not None:
            return response


def match_choice(reply: str, choices: Sequence[Choice[T]]) -> Choice[T] | None:
    for choice in choices:
        if same_key(reply, choice.label):
            return choice
    return None


def format_choices_prompt(prompt: str, choices: Sequence[Choice[T]]) -> str:
    labels = " / ".join(choice.label for choice in choices)
    return f"{prompt} ({labels}) "


def ask_with_choices(
    prompt: str,
    choices: Sequence[Choice[T]],
    input_fn: InputFn | None = None,
    out: Console | None = None,
) -> T:
    if not choices:
        raise ValueError("ask_with_choices needs at least one choice")
    read = input_fn or (out or Console()).input
    full_prompt = format_choices_prompt(prompt, choices)
    while True:
        choice = match_choice(read(full_prompt), choices)
        if choice is not None:
            return choice.value
