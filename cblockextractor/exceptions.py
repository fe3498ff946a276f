class ParseError(Exception):
    pass


class FormulaSyntaxError(ParseError):
    """
    Raised when a condition is not a valid boolean expression.

    Attributes:
        text: the full expression text that failed to parse
        position: character offset of the offending token, or None when
            the expression ended prematurely
    """

    def __init__(self, message, text, position=None):
        super().__init__(message)
        self.text = text
        self.position = position


class MalformedExpression(FormulaSyntaxError):
    def __init__(self, message, text, position, line_no):
        super().__init__(message, text, position)
        self.line_no = line_no


class UnsupportedDirective(ParseError):
    def __init__(self, directive, line_no):
        super().__init__(
            f"{directive} is currently not supported (line {line_no})"
        )
        self.directive = directive
        self.line_no = line_no


class UnbalancedEndif(ParseError):
    def __init__(self, line_no):
        super().__init__(
            f"Found #endif with no corresponding opening in line {line_no}"
        )
        self.line_no = line_no


class UnclosedBlock(ParseError):
    def __init__(self, start_line):
        super().__init__(
            f"Found opening at line {start_line} but no closing #endif"
        )
        self.start_line = start_line
