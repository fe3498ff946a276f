"""
Boolean formulas describing the condition of a preprocessor block.

Formulas are immutable trees compared structurally: two formulas built
from the same expression text are equal and hash the same. No
simplification is ever applied.

Presence conditions of deeply nested blocks are long chains of And nodes,
so comparison, hashing and rendering never recurse: hashes are computed
once at construction and trees are walked with explicit stacks.
"""

OR_PRECEDENCE = 1
AND_PRECEDENCE = 2
NOT_PRECEDENCE = 3
ATOM_PRECEDENCE = 4


def fold(root, combine, children=None):
    """
    Combine a tree bottom-up without recursion.

    Args:
        root: node to start from
        combine: called as combine(node, results) once per distinct node,
            with the already combined results of its children
        children: returns the child nodes of a node; defaults to the
            operands of a Formula

    Returns:
        the result of combine for root
    """
    if children is None:
        children = _operands_of
    done = {}
    stack = [root]
    while stack:
        node = stack[-1]
        if id(node) in done:
            stack.pop()
            continue
        nodes = children(node)
        pending = [child for child in nodes if id(child) not in done]
        if pending:
            stack.extend(pending)
            continue
        stack.pop()
        done[id(node)] = combine(node, [done[id(child)] for child in nodes])
    return done[id(root)]


def _operands_of(formula):
    return formula._operands()


def equal(first, second, seen=None):
    """
    Structural equality of two formulas using a worklist of node pairs.

    Args:
        seen: set of (id, id) pairs already scheduled; callers comparing
            many formulas that share subtrees can pass one set to all calls
    """
    if seen is None:
        seen = set()
    pending = [(first, second)]
    while pending:
        left, right = pending.pop()
        if left is right:
            continue
        if type(left) is not type(right) or left._hash != right._hash:
            return False
        for mine, theirs in zip(left._key(), right._key()):
            if isinstance(mine, Formula):
                pair = (id(mine), id(theirs))
                if pair not in seen:
                    seen.add(pair)
                    pending.append((mine, theirs))
            elif mine != theirs:
                return False
    return True


class Formula:
    __slots__ = ["_hash"]
    precedence = ATOM_PRECEDENCE

    def _freeze(self, **fields):
        for name, value in fields.items():
            object.__setattr__(self, name, value)
        # operand hashes are cached, so this does not walk the tree
        object.__setattr__(self, "_hash",
                           hash((type(self).__name__,) + self._key()))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def _key(self):
        raise NotImplementedError  # pragma: no cover

    def _operands(self):
        return ()

    def __eq__(self, other):
        if not isinstance(other, Formula):
            return NotImplemented
        return equal(self, other)

    def __hash__(self):
        return self._hash

    def __str__(self):
        return fold(self, lambda node, parts: node._text(*parts))

    def __repr__(self):
        return fold(self, lambda node, parts: node._repr(*parts))

    def _wrap(self, operand, text, min_precedence):
        if operand.precedence < min_precedence:
            return f"({text})"
        return text


class TrueFormula(Formula):
    __slots__ = []

    def __init__(self):
        self._freeze()

    def _key(self):
        return ()

    def _repr(self):
        return "TRUE"

    def _text(self):
        return "1"


class FalseFormula(Formula):
    __slots__ = []

    def __init__(self):
        self._freeze()

    def _key(self):
        return ()

    def _repr(self):
        return "FALSE"

    def _text(self):
        return "0"


TRUE = TrueFormula()
FALSE = FalseFormula()


class Variable(Formula):
    """Bare macro name used as a boolean atom."""
    __slots__ = ["name"]

    def __init__(self, name):
        self._freeze(name=name)

    def _key(self):
        return (self.name,)

    def _repr(self):
        return f"Variable({self.name!r})"

    def _text(self):
        return self.name


class Defined(Formula):
    """Result of a defined(NAME) call."""
    __slots__ = ["name"]

    def __init__(self, name):
        self._freeze(name=name)

    def _key(self):
        return (self.name,)

    def _repr(self):
        return f"Defined({self.name!r})"

    def _text(self):
        return f"defined({self.name})"


class Not(Formula):
    __slots__ = ["operand"]
    precedence = NOT_PRECEDENCE

    def __init__(self, operand):
        self._freeze(operand=operand)

    def _key(self):
        return (self.operand,)

    def _operands(self):
        return (self.operand,)

    def _repr(self, operand):
        return f"Not({operand})"

    def _text(self, operand):
        return "!" + self._wrap(self.operand, operand, NOT_PRECEDENCE)


class _Binary(Formula):
    __slots__ = ["left", "right"]
    operator = None

    def __init__(self, left, right):
        self._freeze(left=left, right=right)

    def _key(self):
        return (self.left, self.right)

    def _operands(self):
        return (self.left, self.right)

    def _repr(self, left, right):
        return f"{type(self).__name__}({left}, {right})"

    def _text(self, left, right):
        # right operands of equal precedence keep their parentheses so the
        # text reparses into the same tree
        left = self._wrap(self.left, left, self.precedence)
        right = self._wrap(self.right, right, self.precedence + 1)
        return f"{left} {self.operator} {right}"


class And(_Binary):
    __slots__ = []
    operator = "&&"
    precedence = AND_PRECEDENCE


class Or(_Binary):
    __slots__ = []
    operator = "||"
    precedence = OR_PRECEDENCE


class VariableCache:
    """
    Interns atoms so that every mention of a macro within one file shares
    a single instance. Purely an allocation saving; equality of formulas
    does not depend on it.
    """

    def __init__(self):
        self._atoms = {}

    def __len__(self):
        return len(self._atoms)

    def _get(self, type_, name):
        key = (type_, name)
        atom = self._atoms.get(key)
        if atom is None:
            atom = type_(name)
            self._atoms[key] = atom
        return atom

    def variable(self, name):
        return self._get(Variable, name)

    def defined(self, name):
        return self._get(Defined, name)
