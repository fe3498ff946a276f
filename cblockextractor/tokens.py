import re
import enum

from .exceptions import FormulaSyntaxError


class TokenType(enum.Enum):
    IDENTIFIER = enum.auto()
    NUMBER = enum.auto()
    OPERATOR = enum.auto()
    WHITESPACE = enum.auto()


class Token:
    __slots__ = ["position", "value", "type", "whitespace"]

    def __init__(self, position, value, type_):
        self.position = position
        self.value = value
        self.type = type_
        self.whitespace = type_ is TokenType.WHITESPACE

    def __repr__(self):
        return (
            f"Offset {self.position}, {self.type.name}, value {self.value!r}"
        )  # pragma: no cover


class Tokenizer:
    """
    Splits the text of a condition into tokens. Whitespace tokens are
    produced by the scanner but dropped by iteration.
    """

    def __init__(self, text):
        self.text = text
        self.position = 0
        self._scanner = re.Scanner([
            (r"&&|\|\|", self._make_cb(TokenType.OPERATOR)),
            (r"[!()]", self._make_cb(TokenType.OPERATOR)),
            (
                r"(?:0[xX][0-9a-fA-F]+|\d+)[uUlL]*\b",
                self._make_cb(TokenType.NUMBER)
            ),
            (r"[A-Za-z_]\w*", self._make_cb(TokenType.IDENTIFIER)),
            (r"\s+", self._make_cb(TokenType.WHITESPACE)),
        ])

    def _make_cb(self, type_):
        def _cb(scanner, t):
            token = Token(self.position, t, type_)
            self.position += len(t)
            return token
        return _cb

    def scan(self):
        self.position = 0
        tokens, remainder = self._scanner.scan(self.text)
        if remainder:
            offset = len(self.text) - len(remainder)
            raise FormulaSyntaxError(
                f"Unrecognized input {remainder!r} at offset {offset} "
                f"in expression {self.text!r}",
                self.text, offset
            )
        return tokens

    def __iter__(self):
        for token in self.scan():
            if not token.whitespace:
                yield token
