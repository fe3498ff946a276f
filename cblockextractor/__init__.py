from .core import Parser, SourceFile
from .filesystem import open_source


def read_blocks(f_obj, source_path=None):
    """
    Reconstruct the tree of #if/#ifdef/#ifndef blocks of a source file.

    Args:
        f_obj: iterable of the lines of the file. Closed when done if it
            has a close() method.
        source_path: identifier stamped on every block. Defaults to
            f_obj.name.

    Returns:
        List of top-level blocks in source order
    """
    with Parser(f_obj, source_path) as parser:
        return parser.read_blocks()


def extract_file(path, encoding="utf-8"):
    """
    Open and parse the source file at path.

    Returns:
        SourceFile holding the top-level blocks
    """
    path = str(path)
    with open_source(path, encoding) as f_obj:
        blocks = Parser(f_obj, path).read_blocks()
    return SourceFile(path, blocks)
