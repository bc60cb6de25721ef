"""Prompt template filling."""

import re
from typing import Optional, Sequence

from .prompts import PromptArg

INPUT_PLACEHOLDER = "{input}"
ARGS_PLACEHOLDER = "{args}"

LANGUAGE_CODE = re.compile(r"^[A-Za-z]{2,3}$")


def fill_template(
    template: str,
    text: str,
    args: Sequence[str] = (),
    prompt_args: Optional[Sequence[PromptArg]] = None,
) -> str:
    """
    Substitute placeholders in a prompt template.

    Order of substitution:
    1. {input} -> text
    2. each declared argument {name} -> the positional arg at its index,
       or its default value
    3. {argN} (one-indexed) -> positional args not taken by a declared slot
    4. {args} -> all positional args joined by spaces

    Placeholders that match none of these are left untouched.
    """
    prompt_args = prompt_args or ()
    result = template.replace(INPUT_PLACEHOLDER, text)

    for i, prompt_arg in enumerate(prompt_args):
        value = args[i] if i < len(args) else prompt_arg.default_value
        result = result.replace(f"{{{prompt_arg.name}}}", value)

    for i, arg in enumerate(args):
        if i < len(prompt_args):
            continue
        result = result.replace(f"{{arg{i + 1}}}", arg)

    if ARGS_PLACEHOLDER in result:
        result = result.replace(ARGS_PLACEHOLDER, " ".join(args))

    return result


def apply_command_quirks(command: str, text: str, args: Sequence[str]) -> tuple[str, list[str]]:
    """
    Rewrite (text, args) for commands with a special calling convention.

    Only `translate` has one: `xa translate en "some text"` reads naturally,
    so when the input looks like a 2-3 letter language code and more
    arguments follow, the arguments become the text and the code becomes
    the target language. This is a heuristic; a short word such as "hi"
    followed by an argument is also treated as a language code.
    """
    args = list(args)
    if command == "translate" and args and LANGUAGE_CODE.match(text):
        return " ".join(args), [text]
    return text, args
