"""
ShaderLoop - Annotation Preprocessor
====================================
Extracts preview configuration from annotated GLSL fragment programs.

Responsibilities:
- Validate that the source is ASCII
- Strip // and (nested) /* */ comments
- Read `#define size/rate/loop` directives (last occurrence wins)
- Collect `uniform sampler2D <name> @ <path>;` texture bindings and
  remove the `@ <path>` annotation from the emitted source
- Detect feedback mode from the reserved `previous` sampler

This module does NOT compile GLSL or touch the GPU. It is a scanner,
not a parser: declarations split across tokens it does not expect
(e.g. `uniform\\nsampler2D`) are left alone.
"""

import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from shaderloop.core.timeline import DEFAULT_RATE
from shaderloop.errors import DirectiveParseError, EncodingError, SourceReadError

DEFAULT_RESOLUTION = (500, 500)

SAMPLER_PREFIX = "uniform sampler2D "
FEEDBACK_DECLARATION = "uniform sampler2D previous"
FEEDBACK_SAMPLER = "previous"

_POSITIVE_INT = re.compile(r"[0-9]+")
_MAX_DIRECTIVE_VALUE = 2 ** 32 - 1
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def validate_ascii(code: str) -> str:
    """
    Reject sources containing non-ASCII characters.

    Raises:
        EncodingError: If any character is outside the ASCII range
    """
    if not code.isascii():
        for line_number, line in enumerate(code.splitlines(), start=1):
            if not line.isascii():
                raise EncodingError(f"Non-ASCII characters found on line {line_number}")
        raise EncodingError("Non-ASCII characters found")
    return code


def load_source(path) -> str:
    """
    Read a shader source file.

    Args:
        path: Path to the GLSL file

    Returns:
        Source text

    Raises:
        SourceReadError: If the file cannot be read
        EncodingError: If the file is not ASCII
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise SourceReadError(f"Could not read {path}: {e.strerror or e}") from e

    try:
        code = data.decode('ascii')
    except UnicodeDecodeError as e:
        raise EncodingError(f"Non-ASCII characters found in {path.name} at byte {e.start}") from e
    return code


def strip_comments(code: str) -> str:
    """
    Remove comments in a single forward pass.

    A line comment is replaced by one line break (also at end of input).
    Block comments nest and are removed together with the line breaks
    they span, so the text around them is joined.

    Examples:
        "abc//def"            -> "abc\\n"
        "abc/*def\\nghi*/jkl" -> "abcjkl"
        "abc/*/*def*/*/ghi"   -> "abcghi"
    """
    stripped = []
    depth = 0
    length = len(code)
    index = 0
    start = 0  # first character of the pending run of plain text

    while index < length:
        pair = code[index:index + 2]

        if depth == 0:
            if pair == "//":
                stripped.append(code[start:index])
                newline = code.find("\n", index)
                index = length if newline < 0 else newline + 1
                stripped.append("\n")
                start = index
            elif pair == "/*":
                stripped.append(code[start:index])
                depth = 1
                index += 2
            else:
                index += 1
            continue

        if pair == "/*":
            depth += 1
            index += 2
        elif pair == "*/":
            depth -= 1
            index += 2
            if depth == 0:
                start = index
        else:
            index += 1

    if depth == 0:
        stripped.append(code[start:])
    return "".join(stripped)


@dataclass(frozen=True)
class Directives:
    """
    Preview configuration declared by a shader.

    Attributes:
        resolution: Render target size (width, height)
        feedback: Whether the previous frame is fed back as `previous`
        rate: Frame rate in frames per second
        loop: Loop length in frames (None = endless)
        texture_paths: Uniform name -> image path (relative to the source)
    """
    resolution: Tuple[int, int] = DEFAULT_RESOLUTION
    feedback: bool = False
    rate: int = DEFAULT_RATE
    loop: Optional[int] = None
    texture_paths: Mapping[str, Path] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self):
        if not isinstance(self.texture_paths, MappingProxyType):
            object.__setattr__(self, 'texture_paths', MappingProxyType(dict(self.texture_paths)))


def _parse_positive(value: str, directive: str) -> int:
    if not _POSITIVE_INT.fullmatch(value):
        raise DirectiveParseError(
            f"Could not parse '{directive}' directive: invalid digit found in '{value}'"
        )
    number = int(value)
    if number == 0:
        raise DirectiveParseError(f"Could not parse '{directive}' directive: number would be zero")
    if number > _MAX_DIRECTIVE_VALUE:
        raise DirectiveParseError(
            f"Could not parse '{directive}' directive: number too large to fit in target type"
        )
    return number


def _last_directive(lines: List[str], directive: str) -> Optional[str]:
    """Value of the last `#define <directive> ...` line, if any."""
    prefix = f"#define {directive} "
    value = None
    for line in lines:
        if line.startswith(prefix):
            value = line[len(prefix):].strip()
    return value


def _scan_texture_bindings(code: str) -> Tuple[str, dict]:
    """
    Collect texture bindings and drop their `@ <path>` annotations.

    Returns:
        (code without annotations, {name: path})
    """
    bindings = {}
    emitted = []
    cursor = 0  # everything before cursor has been emitted or dropped

    index = code.find(SAMPLER_PREFIX)
    while index >= 0:
        start = index + len(SAMPLER_PREFIX)
        terminator = code.find(";", start)
        marker = code.find("@", start)
        if terminator < 0:
            break

        if 0 <= marker < terminator:
            name = code[start:marker].strip()
            path = code[marker + 1:terminator].strip()

            if not _IDENTIFIER.fullmatch(name):
                raise DirectiveParseError(f"Invalid texture binding name '{name}'")
            if name == FEEDBACK_SAMPLER:
                raise DirectiveParseError(
                    f"'{FEEDBACK_SAMPLER}' is reserved for feedback and cannot be bound to a file"
                )
            if not path:
                raise DirectiveParseError(f"Missing texture path for '{name}'")

            bindings[name] = Path(path)
            emitted.append(code[cursor:marker])
            cursor = terminator

        index = code.find(SAMPLER_PREFIX, terminator + 1)

    emitted.append(code[cursor:])
    return "".join(emitted), bindings


class AnnotatedGLSL:
    """
    Cleaned GLSL source together with the directives it declares.
    """

    def __init__(self, code: str, directives: Directives):
        self.code = code
        self.directives = directives

    @classmethod
    def parse(cls, source: str) -> 'AnnotatedGLSL':
        """
        Preprocess annotated GLSL.

        Args:
            source: Raw shader text

        Returns:
            AnnotatedGLSL with comment-free, annotation-free code

        Raises:
            EncodingError: If the source is not ASCII
            DirectiveParseError: If a directive or binding is malformed
        """
        code = strip_comments(validate_ascii(source))
        lines = [line.strip() for line in code.splitlines()]

        resolution = DEFAULT_RESOLUTION
        size = _last_directive(lines, "size")
        if size is not None:
            values = size.split()
            if len(values) != 2:
                raise DirectiveParseError("Expected 2 values for the 'size' directive")
            resolution = tuple(_parse_positive(value, "size") for value in values)

        rate = DEFAULT_RATE
        value = _last_directive(lines, "rate")
        if value is not None:
            rate = _parse_positive(value, "rate")

        loop = None
        value = _last_directive(lines, "loop")
        if value is not None:
            loop = _parse_positive(value, "loop")

        cleaned, bindings = _scan_texture_bindings(code)

        directives = Directives(
            resolution=resolution,
            feedback=FEEDBACK_DECLARATION in code,
            rate=rate,
            loop=loop,
            texture_paths=bindings
        )
        return cls(cleaned, directives)

    def __repr__(self) -> str:
        return f"AnnotatedGLSL({self.directives!r}, {len(self.code)} chars)"


def main():
    """Print the directives declared by a shader file."""
    if len(sys.argv) != 2:
        print("usage: python -m shaderloop.core.annotations FILE")
        return 2

    try:
        annotated = AnnotatedGLSL.parse(load_source(sys.argv[1]))
    except (SourceReadError, EncodingError, DirectiveParseError) as e:
        print(f"[Error] {e}")
        return 1

    directives = annotated.directives
    width, height = directives.resolution
    print(f"Size:     {width}×{height}")
    print(f"Rate:     {directives.rate} fps")
    print(f"Loop:     {directives.loop or 'endless'}")
    print(f"Feedback: {'ON' if directives.feedback else 'OFF'}")
    for name, path in directives.texture_paths.items():
        print(f"Texture:  {name} <- {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
