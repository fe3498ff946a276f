"""
Expression parser for the conditions of #if, #ifdef and #ifndef directives.
Uses precedence climbing for the binary operators and builds a Formula
instead of evaluating the expression.
"""
from .exceptions import FormulaSyntaxError
from .formula import TRUE, FALSE, And, Or, Not, VariableCache
from .tokens import Tokenizer, TokenType

BOOLEAN_LITERALS = {"true": TRUE, "false": FALSE}

PRECEDENCE_TABLE = {
    "||": 1,
    "&&": 2,
}

BINARY_OPERATORS = {
    "||": Or,
    "&&": And,
}


class ExpressionLexer:
    """Cursor over the non-whitespace tokens of an expression."""

    def __init__(self, text):
        self.tokens = list(Tokenizer(text))
        self.pos = 0

    def peek(self):
        """Return current token without advancing."""
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def consume(self):
        """Consume and return current token."""
        token = self.peek()
        self.pos += 1
        return token

    def at_end(self):
        """Check if at end of tokens."""
        return self.pos >= len(self.tokens)


class ExpressionParser:
    """
    Parser for boolean preprocessor conditions.
    Supports: defined(), defined NAME, bare identifiers, integer and
    boolean literals, !, &&, || and parentheses.
    """

    def __init__(self, text, cache=None):
        """
        Initialize parser.

        Args:
            text: condition text following the directive keyword
            cache: optional VariableCache shared between parses of one file
        """
        self.text = text
        self.cache = cache if cache is not None else VariableCache()
        self.lexer = ExpressionLexer(text)

    def _error(self, message, token=None):
        position = token.position if token is not None else None
        where = (
            f"at offset {position}" if position is not None
            else "at end of input"
        )
        return FormulaSyntaxError(
            f"{message} {where} in expression {self.text!r}",
            self.text, position
        )

    def parse(self):
        """Parse the whole text, returning a Formula."""
        if self.lexer.at_end():
            raise self._error("Empty expression")
        result = self._parse_expr(0)
        if not self.lexer.at_end():
            token = self.lexer.peek()
            raise self._error(f"Unexpected token {token.value!r}", token)
        return result

    def _parse_expr(self, min_precedence):
        """Parse expression with precedence climbing."""
        left = self._parse_unary()

        while (token := self.lexer.peek()) is not None:
            op = token.value
            # Stop at closing parenthesis
            if op == ")":
                break

            precedence = PRECEDENCE_TABLE.get(op, 0)
            if precedence <= 0:
                raise self._error(f"Unexpected token {op!r}", token)
            if precedence < min_precedence:
                break

            self.lexer.consume()
            right = self._parse_expr(precedence + 1)
            left = BINARY_OPERATORS[op](left, right)

        return left

    def _parse_unary(self):
        token = self.lexer.peek()
        if token is not None and token.value == "!":
            self.lexer.consume()
            return Not(self._parse_unary())
        return self._parse_primary()

    def _parse_primary(self):
        """Parse primary expression (literals, defined, names, parens)."""
        token = self.lexer.consume()
        if token is None:
            raise self._error("Unexpected end of expression")

        if token.value == "(":
            result = self._parse_expr(0)
            closing = self.lexer.consume()
            if closing is None or closing.value != ")":
                raise self._error("Missing closing parenthesis", closing)
            return result

        if token.type is TokenType.NUMBER:
            digits = token.value.rstrip("uUlL")
            if digits[:2] in ("0x", "0X"):
                digits = digits[2:]
            return TRUE if digits.strip("0") else FALSE

        if token.type is not TokenType.IDENTIFIER:
            raise self._error(f"Unexpected token {token.value!r}", token)

        if token.value == "defined":
            return self._parse_defined()

        literal = BOOLEAN_LITERALS.get(token.value)
        if literal is not None:
            return literal
        return self.cache.variable(token.value)

    def _parse_defined(self):
        """Parse the rest of defined(MACRO) or defined MACRO."""
        next_token = self.lexer.consume()
        if next_token is None:
            raise self._error("Expected identifier after 'defined'")

        has_parens = next_token.value == "("
        if has_parens:
            next_token = self.lexer.consume()
            if next_token is None:
                raise self._error("Expected identifier in defined()")

        if next_token.type is not TokenType.IDENTIFIER:
            raise self._error(
                f"Expected identifier in defined(), got {next_token.value!r}",
                next_token
            )
        macro_name = next_token.value

        if has_parens:
            closing = self.lexer.consume()
            if closing is None or closing.value != ")":
                raise self._error("Missing closing paren in defined()",
                                  closing)

        return self.cache.defined(macro_name)


def parse_expression(text, cache=None):
    """
    Parse the condition of a preprocessor directive.

    Args:
        text: expression text, e.g. "defined(FOO) && !BAR"
        cache: optional VariableCache used to intern atoms

    Returns:
        Formula equivalent to the expression

    Raises:
        FormulaSyntaxError: if the text is not a valid boolean expression
    """
    parser = ExpressionParser(text, cache)
    return parser.parse()
