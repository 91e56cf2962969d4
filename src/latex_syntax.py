"""Strict well-formedness check for LaTeX math source.

latex2mathml renders a lot of malformed source without complaint (unbalanced
braces, missing arguments, unknown commands), so source is checked against
latex2mathml's own lexer and command tables before it is converted.
"""

import re
from typing import NamedTuple

from latex2mathml import commands as latex_commands
from latex2mathml.symbols_parser import SYMBOLS
from latex2mathml.tokenizer import PATTERN as LATEX_TOKEN_PATTERN


class LatexSyntaxError(Exception):
    """Raised when LaTeX source is not well formed."""

    pass


# Named groups of the lexer pattern, in the order the pattern tries them
TOKEN_KINDS = (
    "comment",
    "letter",
    "subsup_operator",
    "dimension",
    "number",
    "dot_decimal",
    "escaped",
    "begin_end",
    "operatorname",
    "text_cmd",
    "frac_cmd",
    "math_font",
    "verb",
    "command",
    "char",
)

ENVIRONMENT_PATTERN = re.compile(r"\\(begin|end)\{([a-zA-Z]+\*?)\}")

OPENING_BRACE = latex_commands.OPENING_BRACE
CLOSING_BRACE = latex_commands.CLOSING_BRACE
OPENING_BRACKET = latex_commands.OPENING_BRACKET
CLOSING_BRACKET = latex_commands.CLOSING_BRACKET
SCRIPT_OPERATORS = (latex_commands.SUPERSCRIPT, latex_commands.SUBSCRIPT)
ALIGNMENT_TAB = "&"


def _collect_known_commands() -> frozenset[str]:
    known = set(SYMBOLS)
    for value in vars(latex_commands).values():
        if isinstance(value, str):
            names = (value,)
        elif isinstance(value, dict):
            names = value.keys()
        elif isinstance(value, (tuple, list, set, frozenset)):
            names = value
        else:
            continue
        known.update(name for name in names if isinstance(name, str) and name.startswith("\\"))
    return frozenset(known)


KNOWN_COMMANDS = _collect_known_commands()

TWO_ARGUMENT_COMMANDS = frozenset(latex_commands.COMMANDS_WITH_TWO_PARAMETERS)
ONE_ARGUMENT_COMMANDS = frozenset(latex_commands.COMMANDS_WITH_ONE_PARAMETER)

# Commands that swallow the next token whole, e.g. "\big(" or "\text x"
NEXT_TOKEN_COMMANDS = frozenset(
    (
        *latex_commands.BIG,
        *latex_commands.BIG_OPEN_CLOSE,
        latex_commands.CLAP,
        latex_commands.EMPH,
        latex_commands.FBOX,
        latex_commands.HBOX,
        latex_commands.LLAP,
        latex_commands.MBOX,
        latex_commands.RLAP,
        latex_commands.TAG,
        latex_commands.TEXT,
        latex_commands.TEXTBF,
        latex_commands.TEXTIT,
        latex_commands.TEXTMD,
        latex_commands.TEXTNORMAL,
        latex_commands.TEXTRM,
        latex_commands.TEXTSF,
        latex_commands.TEXTTT,
        latex_commands.TEXTUP,
    )
)


class Token(NamedTuple):
    kind: str
    text: str
    match: re.Match


def tokenize(latex: str) -> list[Token]:
    """Split LaTeX source into tokens with latex2mathml's lexer, dropping comments."""
    tokens = []
    for match in LATEX_TOKEN_PATTERN.finditer(latex):
        kind = next(name for name in TOKEN_KINDS if match.group(name) is not None)
        if kind == "comment":
            continue
        text = match.group(0)
        if kind == "begin_end":
            text = "".join(text.split())
        tokens.append(Token(kind, text, match))
    return tokens


def _is_math_font(command: str) -> bool:
    return command.startswith(latex_commands.MATH) and command not in latex_commands.MATH_NON_FONT_COMMANDS


def _closes(token: Token, closer: str) -> bool:
    return token.kind in ("char", "command", "begin_end") and token.text == closer


def _ends_argument_list(token: Token) -> bool:
    if token.kind == "subsup_operator":
        return True
    if token.kind == "char":
        return token.text in (CLOSING_BRACE, ALIGNMENT_TAB, *SCRIPT_OPERATORS)
    if token.kind == "command":
        return token.text in (latex_commands.RIGHT, latex_commands.MIDDLE)
    if token.kind == "begin_end":
        return token.text.startswith(latex_commands.END)
    return False


class _Checker:
    """Recursive-descent walk over a token list; raises on the first defect."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> Token | None:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def take(self) -> Token | None:
        token = self.peek()
        self.pos += 1
        return token

    def sequence(self, closer: str | None = None, env_depth: int = 0) -> None:
        while True:
            token = self.peek()
            if token is None:
                if closer is None:
                    return
                raise LatexSyntaxError(f"Missing '{closer}'")
            if closer is not None and _closes(token, closer):
                self.pos += 1
                return
            self.atom(env_depth)

    def argument(self, command: str, env_depth: int) -> None:
        token = self.peek()
        if token is None or _ends_argument_list(token):
            raise LatexSyntaxError(f"Missing argument for '{command}'")
        self.atom(env_depth)

    def delimiter(self, command: str) -> None:
        token = self.take()
        if token is None:
            raise LatexSyntaxError(f"Missing delimiter after '{command}'")
        if token.kind == "command":
            if token.text not in KNOWN_COMMANDS:
                raise LatexSyntaxError(f"Undefined control sequence '{token.text}'")
            return
        if token.kind == "char" and token.text not in (OPENING_BRACE, CLOSING_BRACE, ALIGNMENT_TAB, *SCRIPT_OPERATORS):
            return
        if token.kind in ("escaped", "dot_decimal"):
            return
        raise LatexSyntaxError(f"Invalid delimiter '{token.text}' after '{command}'")

    def atom(self, env_depth: int) -> None:
        token = self.take()
        kind, text = token.kind, token.text

        if kind == "char":
            if text == OPENING_BRACE:
                self.sequence(CLOSING_BRACE, env_depth)
            elif text == CLOSING_BRACE:
                raise LatexSyntaxError("Unbalanced '}'")
            elif text == ALIGNMENT_TAB and env_depth == 0:
                raise LatexSyntaxError("Alignment '&' outside an environment")
            elif text in SCRIPT_OPERATORS:
                self.argument(text, env_depth)
            elif text == "\\":
                raise LatexSyntaxError("Stray '\\'")
            return

        if kind == "begin_end":
            action, name = ENVIRONMENT_PATTERN.match(text).groups()
            if action == "end":
                raise LatexSyntaxError(f"'{text}' without matching '\\begin{{{name}}}'")
            self.sequence(f"\\end{{{name}}}", env_depth + 1)
            return

        if kind == "frac_cmd":
            given = sum(1 for group in ("frac_arg1", "frac_arg2") if token.match.group(group))
            command = token.match.group("frac_cmd")
            for _ in range(2 - given):
                self.argument(command, env_depth)
            return

        if kind != "command":
            return

        if text not in KNOWN_COMMANDS:
            raise LatexSyntaxError(f"Undefined control sequence '{text}'")

        if text == latex_commands.RIGHT:
            raise LatexSyntaxError("'\\right' without matching '\\left'")
        if text == latex_commands.LEFT:
            self.delimiter(text)
            self.sequence(latex_commands.RIGHT, env_depth)
            self.delimiter(latex_commands.RIGHT)
        elif text == latex_commands.MIDDLE:
            self.delimiter(text)
        elif text in NEXT_TOKEN_COMMANDS:
            if self.take() is None:
                raise LatexSyntaxError(f"Missing argument for '{text}'")
        elif text == latex_commands.SQRT:
            next_token = self.peek()
            if next_token is not None and next_token.kind == "char" and next_token.text == OPENING_BRACKET:
                self.pos += 1
                self.sequence(CLOSING_BRACKET, env_depth)
            self.argument(text, env_depth)
        elif text in TWO_ARGUMENT_COMMANDS:
            self.argument(text, env_depth)
            self.argument(text, env_depth)
        elif text in ONE_ARGUMENT_COMMANDS or _is_math_font(text):
            self.argument(text, env_depth)


def check_syntax(latex: str) -> None:
    """Check that LaTeX math source is well formed.

    Braces, \\left/\\right pairs and \\begin/\\end environments must balance,
    commands must be known to latex2mathml and receive their arguments,
    sub/superscripts need an operand, and alignment tabs may only appear
    inside an environment.

    Args:
        latex: LaTeX source without math delimiters.

    Raises:
        LatexSyntaxError: On the first defect found.
    """
    _Checker(tokenize(latex)).sequence()
