class FakeFile:
    """In-memory stand-in for an opened source file."""

    def __init__(self, name, contents):
        self.name = name
        self.contents = contents
        self.closed = False

    def __iter__(self):
        for line in self.contents:
            yield line

    def close(self):
        self.closed = True


def open_source(path, encoding="utf-8"):
    """
    Open a source file for line-by-line reading.
    Line endings are kept as they are; the parser strips every line.
    """
    return open(path, "r", encoding=encoding, newline="")
