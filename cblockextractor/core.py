import enum
import logging

from .exceptions import (FormulaSyntaxError, MalformedExpression,
                         UnsupportedDirective, UnbalancedEndif, UnclosedBlock)
from .expression import parse_expression
from .formula import And, VariableCache, equal

logger = logging.getLogger(__name__)

UNKNOWN_LINE = -1


class Tag(enum.Enum):
    IFDEF = "#ifdef"
    IFNDEF = "#ifndef"
    IF = "#if"
    ELIF = "#elif"
    ELSE = "#else"
    ENDIF = "#endif"


# prefix matching, so the longer keywords must be tried first
DIRECTIVE_ORDER = (Tag.IFDEF, Tag.IFNDEF, Tag.IF,
                   Tag.ELIF, Tag.ELSE, Tag.ENDIF)


def classify(line):
    """
    Return (tag, payload) for a source line, or (None, "") if the line is
    not one of the recognized conditional directives.

    Comments and line continuations are not taken into account; the
    payload is only stripped.
    """
    line = line.strip()
    for tag in DIRECTIVE_ORDER:
        if line.startswith(tag.value):
            return tag, line[len(tag.value):].strip()
    return None, ""


class Block:
    """
    A finalized conditional region of a source file. Blocks are immutable;
    equality and hashing cover all fields and the whole subtree of
    children, without recursion.

    Attributes:
        start_line: line of the opening #if, #ifdef or #ifndef (1-based)
        end_line: line of the matching #endif
        source_path: identifier of the file the block was read from
        condition: formula written on the opening line
        presence_condition: condition conjoined with all enclosing blocks
        children: nested blocks in source order
    """
    __slots__ = ["start_line", "end_line", "source_path", "condition",
                 "presence_condition", "children", "_hash"]

    def __init__(self, start_line, end_line, source_path, condition,
                 presence_condition, children=()):
        fields = {
            "start_line": start_line,
            "end_line": end_line,
            "source_path": source_path,
            "condition": condition,
            "presence_condition": presence_condition,
            "children": tuple(children),
        }
        for name, value in fields.items():
            object.__setattr__(self, name, value)
        # children and formulas cache their own hashes
        object.__setattr__(self, "_hash", hash(tuple(fields.values())))

    def __setattr__(self, name, value):
        raise AttributeError("Block is immutable")

    @property
    def own_condition(self):
        return self.condition

    def __eq__(self, other):
        if not isinstance(other, Block):
            return NotImplemented
        seen = set()
        pending = [(self, other)]
        while pending:
            mine, theirs = pending.pop()
            if mine is theirs:
                continue
            if (
                mine._hash != theirs._hash
                or (mine.start_line, mine.end_line, mine.source_path)
                != (theirs.start_line, theirs.end_line, theirs.source_path)
                or len(mine.children) != len(theirs.children)
                or not equal(mine.condition, theirs.condition, seen)
                or not equal(mine.presence_condition,
                             theirs.presence_condition, seen)
            ):
                return False
            pending.extend(zip(mine.children, theirs.children))
        return True

    def __hash__(self):
        return self._hash

    def walk(self):
        """Yield this block and all nested blocks, depth first."""
        stack = [self]
        while stack:
            block = stack.pop()
            yield block
            stack.extend(reversed(block.children))

    def __repr__(self):
        return (
            f"Block(lines {self.start_line}-{self.end_line}, "
            f"condition {self.condition}, "
            f"pc {self.presence_condition}, "
            f"{len(self.children)} children)"
        )


class BlockBuilder:
    """Open block on the nesting stack, waiting for its #endif."""
    __slots__ = ["start_line", "end_line", "source_path", "condition",
                 "presence_condition", "children"]

    def __init__(self, start_line, source_path, condition,
                 presence_condition):
        self.start_line = start_line
        self.end_line = UNKNOWN_LINE
        self.source_path = source_path
        self.condition = condition
        self.presence_condition = presence_condition
        self.children = []

    def add_child(self, block):
        self.children.append(block)

    def finalize(self, end_line):
        return Block(self.start_line, end_line, self.source_path,
                     self.condition, self.presence_condition, self.children)


class SourceFile:
    """The top-level blocks of one source file."""

    def __init__(self, path, blocks):
        self.path = path
        self.blocks = tuple(blocks)

    def __eq__(self, other):
        if not isinstance(other, SourceFile):
            return NotImplemented
        return (self.path, self.blocks) == (other.path, other.blocks)

    def __hash__(self):
        return hash((self.path, self.blocks))

    def __iter__(self):
        return iter(self.blocks)

    def __len__(self):
        return len(self.blocks)

    def __getitem__(self, index):
        return self.blocks[index]

    def __repr__(self):
        return f"SourceFile({self.path!r}, {len(self.blocks)} blocks)"


class Parser:
    """
    Reads a source file once and reconstructs its tree of conditional
    blocks.

    The parser owns the line iterable it is given; use it as a context
    manager (or call close()) to release it.
    """

    def __init__(self, f_obj, source_path=None, cache=None):
        self.f_obj = f_obj
        if source_path is None:
            source_path = getattr(f_obj, "name", None)
        self.source_path = source_path
        self.cache = cache if cache is not None else VariableCache()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def close(self):
        close = getattr(self.f_obj, "close", None)
        if close is not None:
            close()

    def _parse_condition(self, text, line_no):
        try:
            return parse_expression(text, self.cache)
        except FormulaSyntaxError as e:
            raise MalformedExpression(
                f"{e} (line {line_no})", e.text, e.position, line_no
            ) from e

    def process_if(self, nesting, text, line_no):
        condition = self._parse_condition(text, line_no)
        if nesting:
            presence_condition = And(nesting[-1].presence_condition,
                                     condition)
        else:
            presence_condition = condition
        logger.debug(f"Line {line_no}: opening block with {condition}")
        nesting.append(BlockBuilder(line_no, self.source_path, condition,
                                    presence_condition))

    def process_endif(self, nesting, top_blocks, line_no):
        if not nesting:
            raise UnbalancedEndif(line_no)
        block = nesting.pop().finalize(line_no)
        logger.debug(
            f"Line {line_no}: closing block opened at {block.start_line}"
        )
        if nesting:
            nesting[-1].add_child(block)
        else:
            top_blocks.append(block)

    def read_blocks(self):
        """
        Return the list of top-level blocks of the file.

        Raises:
            ParseError: on malformed conditions, unsupported directives or
                unbalanced nesting; no partial result is returned
            OSError: if reading the input fails
        """
        nesting = []
        top_blocks = []
        for line_no, line in enumerate(self.f_obj, 1):
            tag, payload = classify(line)
            if tag is None:
                continue
            if tag is Tag.IFDEF:
                self.process_if(nesting, f"defined({payload})", line_no)
            elif tag is Tag.IFNDEF:
                self.process_if(nesting, f"!defined({payload})", line_no)
            elif tag is Tag.IF:
                self.process_if(nesting, payload, line_no)
            elif tag is Tag.ENDIF:
                self.process_endif(nesting, top_blocks, line_no)
            else:
                raise UnsupportedDirective(tag.value, line_no)

        if nesting:
            raise UnclosedBlock(nesting[-1].start_line)

        logger.debug(
            f"Found {len(top_blocks)} top-level blocks in {self.source_path}"
        )
        return top_blocks
