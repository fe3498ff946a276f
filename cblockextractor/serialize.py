"""
Plain-data form of block trees.

The dictionaries only hold str, int, list and dict values, so they can be
stored as JSON by a cache and compared against a freshly parsed tree.
Conversion walks the trees with fold(), so nesting depth is not limited by
the interpreter's recursion limit.
"""
from .core import Block, SourceFile
from .formula import (TRUE, FALSE, Formula, TrueFormula, FalseFormula,
                      Variable, Defined, Not, And, Or, fold)

_CONSTANTS = {"true": TRUE, "false": FALSE}
_ATOMS = {"variable": Variable, "defined": Defined}
_BINARY = {"and": And, "or": Or}


def _formula_operands(formula):
    if not isinstance(formula, Formula):
        raise ValueError(f"Unsupported formula {formula!r}")
    return formula._operands()


def _node_to_dict(formula, operands):
    if isinstance(formula, TrueFormula):
        return {"kind": "true"}
    if isinstance(formula, FalseFormula):
        return {"kind": "false"}
    if isinstance(formula, Variable):
        return {"kind": "variable", "name": formula.name}
    if isinstance(formula, Defined):
        return {"kind": "defined", "name": formula.name}
    if isinstance(formula, Not):
        return {"kind": "not", "operand": operands[0]}
    if isinstance(formula, (And, Or)):
        return {
            "kind": "and" if isinstance(formula, And) else "or",
            "left": operands[0],
            "right": operands[1],
        }
    raise ValueError(f"Unsupported formula {formula!r}")


def formula_to_dict(formula):
    return fold(formula, _node_to_dict, _formula_operands)


def _dict_operands(data):
    kind = data["kind"]
    if kind in _CONSTANTS or kind in _ATOMS:
        return ()
    if kind == "not":
        return (data["operand"],)
    if kind in _BINARY:
        return (data["left"], data["right"])
    raise ValueError(f"Unknown formula kind {kind!r}")


def _dict_to_node(data, operands):
    kind = data["kind"]
    if kind in _CONSTANTS:
        return _CONSTANTS[kind]
    if kind in _ATOMS:
        return _ATOMS[kind](data["name"])
    if kind == "not":
        return Not(operands[0])
    return _BINARY[kind](operands[0], operands[1])


def formula_from_dict(data):
    return fold(data, _dict_to_node, _dict_operands)


def block_to_dict(block):
    def combine(node, children):
        return {
            "start_line": node.start_line,
            "end_line": node.end_line,
            "condition": formula_to_dict(node.condition),
            "presence_condition": formula_to_dict(node.presence_condition),
            "children": children,
        }
    return fold(block, combine, lambda node: node.children)


def block_from_dict(data, source_path=None):
    def combine(node, children):
        return Block(node["start_line"], node["end_line"], source_path,
                     formula_from_dict(node["condition"]),
                     formula_from_dict(node["presence_condition"]),
                     children)
    return fold(data, combine, lambda node: node["children"])


def source_file_to_dict(source_file):
    return {
        "path": source_file.path,
        "blocks": [block_to_dict(block) for block in source_file],
    }


def source_file_from_dict(data):
    path = data["path"]
    return SourceFile(path, [block_from_dict(block, path)
                             for block in data["blocks"]])
