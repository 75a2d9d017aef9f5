from __future__ import annotations


class Printer:
    """Append-only text buffer that indents every line it starts."""

    def __init__(self, indent: str = "    ") -> None:
        self._chunks: list[str] = []
        self._indent = indent
        self._depth = 0
        self._at_line_start = True

    def printf(self, text: str) -> None:
        for line in text.splitlines(keepends=True):
            if self._at_line_start and line != "\n":
                self._chunks.append(self._indent * self._depth)
            self._chunks.append(line)
            self._at_line_start = line.endswith("\n")

    def indent(self) -> None:
        self._depth += 1

    def outdent(self) -> None:
        if self._depth == 0:
            raise RuntimeError("printer: outdent below zero")
        self._depth -= 1

    def getvalue(self) -> str:
        return "".join(self._chunks)
